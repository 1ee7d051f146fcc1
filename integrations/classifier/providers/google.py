"""
Google Gemini Classification Provider.

Flow per image:
- files.upload(): send the raw bytes with a MIME type and display name, get back a file URI
- chats.create() + send_message(): one user turn holding the file reference and
  the fixed instruction prompt
- Response: text parts of the first candidate, concatenated in order
- files.delete(): best-effort removal of the remote copy (DELETE_REMOTE_FILES)

The whole round trip is bounded by a single deadline; the remote delete has
its own short deadline so it cannot stretch a request that already timed out.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Union

from google import genai
from google.genai import types

from integrations.classifier.base import (
    ClassificationError,
    EmptyResponseError,
    ImageClassifier,
)
from utils.constants import CLASSIFICATION_PROMPT, KNOWN_CATEGORIES

logger = logging.getLogger("classify-relay")

# Seconds allowed for removing the remote copy
DELETE_TIMEOUT_SECONDS = 5.0


class GoogleClassifier(ImageClassifier):
    """
    Google Gemini implementation.

    One genai.Client is created at construction and reused by every request.
    """

    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: float = 60.0,
        delete_remote_files: bool = True,
        delete_timeout: float = DELETE_TIMEOUT_SECONDS,
        prompt: str = CLASSIFICATION_PROMPT,
        client: Optional[genai.Client] = None,
    ):
        self._client = client or genai.Client(api_key=api_key)
        self._model = model or self.DEFAULT_MODEL
        self._timeout = timeout
        self._delete_remote_files = delete_remote_files
        self._delete_timeout = delete_timeout
        self._prompt = prompt

    @property
    def name(self) -> str:
        return "google"

    @property
    def model(self) -> str:
        return self._model

    # ========================================================================
    # CLASSIFICATION
    # ========================================================================

    async def classify(
        self,
        image_path: Union[str, Path],
        mime_type: str = "image/jpeg",
    ) -> str:
        """Upload the image, ask for a category, and return the answer text."""
        try:
            return await asyncio.wait_for(
                self._classify(Path(image_path), mime_type),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"[GOOGLE] Classification timed out after {self._timeout}s")
            raise ClassificationError(
                f"classification timed out after {self._timeout:g}s"
            ) from e

    async def _classify(self, image_path: Path, mime_type: str) -> str:
        uploaded = await self._upload(image_path, mime_type)
        try:
            response = await self._send(uploaded, mime_type)
        finally:
            if self._delete_remote_files:
                await self._delete(uploaded)

        label = self._extract_label(response)
        if label.strip().lower() not in KNOWN_CATEGORIES:
            logger.warning(f"[GOOGLE] Model answered outside known categories: {label!r}")
        logger.info(f"[GOOGLE] Classified {image_path.name} as {label!r} (model={self._model})")
        return label

    async def _upload(self, image_path: Path, mime_type: str) -> types.File:
        """Upload raw image bytes and return the remote file handle."""
        try:
            f = open(image_path, "rb")
        except OSError as e:
            logger.error(f"[GOOGLE] Error opening file {image_path}: {e}")
            raise ClassificationError(f"error opening file: {e}") from e

        try:
            with f:
                uploaded = await self._client.aio.files.upload(
                    file=f,
                    config=types.UploadFileConfig(
                        mime_type=mime_type,
                        display_name=image_path.name,
                    ),
                )
        # Transport errors differ per HTTP backend of the SDK
        except Exception as e:
            logger.error(f"[GOOGLE] Error uploading file: {e}")
            raise ClassificationError(f"error uploading file: {e}") from e

        if not uploaded.uri:
            raise ClassificationError("error uploading file: no file URI returned")

        logger.debug(f"[GOOGLE] Uploaded {image_path.name} -> {uploaded.uri}")
        return uploaded

    async def _send(self, uploaded: types.File, mime_type: str) -> Any:
        """Send one user turn with the file reference and instruction."""
        chat = self._client.aio.chats.create(model=self._model)
        message = [
            types.Part.from_uri(
                file_uri=uploaded.uri,
                mime_type=uploaded.mime_type or mime_type,
            ),
            types.Part.from_text(text=self._prompt),
        ]
        try:
            return await chat.send_message(message)
        except Exception as e:
            logger.error(f"[GOOGLE] Error sending message: {e}")
            raise ClassificationError(f"error sending message: {e}") from e

    async def _delete(self, uploaded: types.File) -> None:
        """Remove the remote copy. Failures are logged, never raised."""
        if not uploaded.name:
            return
        try:
            await asyncio.wait_for(
                self._client.aio.files.delete(name=uploaded.name),
                timeout=self._delete_timeout,
            )
            logger.debug(f"[GOOGLE] Deleted remote file {uploaded.name}")
        except asyncio.TimeoutError:
            logger.warning(f"[GOOGLE] Timed out deleting remote file {uploaded.name}")
        except Exception as e:
            logger.warning(f"[GOOGLE] Could not delete remote file {uploaded.name}: {e}")

    # ========================================================================
    # INTERNAL: PARSING
    # ========================================================================

    @staticmethod
    def _extract_label(response: Any) -> str:
        """
        Concatenate the text parts of the first candidate.

        Thought parts (interim reasoning) are skipped.
        """
        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise EmptyResponseError("empty response received")

        content = getattr(candidates[0], "content", None)
        if content is None or not content.parts:
            raise EmptyResponseError("empty response received")

        label = "".join(
            part.text
            for part in content.parts
            if getattr(part, "text", None) and not getattr(part, "thought", False)
        )
        if not label.strip():
            raise EmptyResponseError("empty response received")
        return label

    async def close(self) -> None:
        aclose = getattr(self._client.aio, "aclose", None)
        if aclose is not None:
            await aclose()
