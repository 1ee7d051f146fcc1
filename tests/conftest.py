"""
Pytest configuration and fixtures for testing.

This module provides:
- Settings isolated from the developer's environment and .env file
- A fake classifier standing in for the remote provider
- Sync and async test clients for the FastAPI app
"""

import asyncio
import os
from pathlib import Path
from typing import Generator, List, Optional, Union

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"

from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from api.server import create_app
from app_settings import Settings
from integrations.classifier import ClassificationError, ImageClassifier


# =============================================================================
# FAKE CLASSIFIER
# =============================================================================


class FakeClassifier(ImageClassifier):
    """
    In-process classifier that records what it was asked.

    By default the label is the image file's content, so each request can
    be matched to its own upload.
    """

    def __init__(
        self,
        label: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.label = label
        self.error = error
        self.delay = delay
        self.calls: List[dict] = []

    @property
    def name(self) -> str:
        return "fake"

    async def classify(
        self,
        image_path: Union[str, Path],
        mime_type: str = "image/jpeg",
    ) -> str:
        path = Path(image_path)
        content = path.read_bytes()
        self.calls.append({"path": path, "mime_type": mime_type, "exists": path.exists()})
        if self.delay:
            await asyncio.sleep(self.delay)
        # Re-read after yielding so a shared scratch path would show up here
        content_after = path.read_bytes()
        if content_after != content:
            raise ClassificationError("scratch file changed during classification")
        if self.error is not None:
            raise self.error
        return self.label if self.label is not None else content.decode()


# =============================================================================
# SETTINGS & APP FIXTURES
# =============================================================================


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Directory that receives the per-request scratch files."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def settings(scratch_dir: Path) -> Settings:
    """Settings that never read the real environment's .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        gemini_api_key="test-key",
        scratch_dir=str(scratch_dir),
        max_upload_bytes=1024,
    )


@pytest.fixture
def fake_classifier() -> FakeClassifier:
    """Classifier returning a fixed label."""
    return FakeClassifier(label="plastic")


@pytest.fixture
def app(settings: Settings, fake_classifier: FakeClassifier):
    """Application wired to the fake classifier."""
    return create_app(settings=settings, classifier=fake_classifier)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a synchronous test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def async_client(app) -> AsyncClient:
    """Create an async test client for the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# UTILITY FIXTURES
# =============================================================================


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Minimal JPEG-looking payload (SOI marker + filler + EOI marker)."""
    return b"\xff\xd8\xff\xe0" + b"\x00" * 32 + b"\xff\xd9"
