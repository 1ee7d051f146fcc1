# Classification Integration Layer
# Provides abstracted access to remote image classification providers

from integrations.classifier.base import (
    ClassificationError,
    EmptyResponseError,
    ImageClassifier,
)
from integrations.classifier.providers.google import GoogleClassifier


def build_classifier(settings) -> ImageClassifier:
    """
    Create the process-wide classifier from settings.

    Raises:
        ConfigError: If the provider credential is missing
    """
    return GoogleClassifier(
        api_key=settings.require_api_key(),
        model=settings.gemini_model,
        timeout=settings.classify_timeout_seconds,
        delete_remote_files=settings.delete_remote_files,
    )


__all__ = [
    "ClassificationError",
    "EmptyResponseError",
    "GoogleClassifier",
    "ImageClassifier",
    "build_classifier",
]
