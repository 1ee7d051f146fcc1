"""
FastAPI Dependencies for the classification relay.

Hands the process-wide settings and classifier (stored on app.state at
startup) to request handlers.
"""

from fastapi import Request

from app_settings import Settings
from integrations.classifier import ImageClassifier


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_classifier(request: Request) -> ImageClassifier:
    """
    Shared classifier handle.

    Raises:
        RuntimeError: If the application started without a classifier
    """
    classifier = getattr(request.app.state, "classifier", None)
    if classifier is None:
        raise RuntimeError("Classifier not initialized")
    return classifier
