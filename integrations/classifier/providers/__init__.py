# Classification Provider Implementations
# Each provider handles its own API-specific syntax

from integrations.classifier.providers.google import GoogleClassifier

__all__ = ["GoogleClassifier"]
