"""
Abstract base class for image classification providers.
Each provider implements its own API-specific upload and prompting.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union


class ClassificationError(Exception):
    """Remote classification failed (network, provider, timeout, unreadable file)."""


class EmptyResponseError(ClassificationError):
    """The remote model answered without any usable text."""


class ImageClassifier(ABC):
    """
    Abstract base class for image classifiers.

    Implementations are created once at startup and shared across
    concurrent requests, so classify() must not mutate instance state.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'google')."""
        pass

    @abstractmethod
    async def classify(
        self,
        image_path: Union[str, Path],
        mime_type: str = "image/jpeg",
    ) -> str:
        """
        Classify the image stored at image_path.

        Args:
            image_path: Local file holding the image bytes
            mime_type: Media type declared to the provider

        Returns:
            The label text returned by the model

        Raises:
            EmptyResponseError: If the model returned no usable content
            ClassificationError: On any other failure
        """
        pass

    async def close(self) -> None:
        """Release provider resources. Default is a no-op."""
        return None
