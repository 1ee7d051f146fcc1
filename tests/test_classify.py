"""
Tests for the /classify endpoint.

These tests verify:
- Successful uploads return the classifier's label
- Missing, non-file, empty and oversized uploads are rejected
- Classification and storage failures map to 500 JSON errors
- Scratch files never outlive their request
- Concurrent uploads each get their own answer
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import UploadFile

from api.server import create_app
from integrations.classifier import ClassificationError, EmptyResponseError, GoogleClassifier
from tests.conftest import FakeClassifier


def _upload(data: bytes, filename: str = "frame.jpg", content_type: str = "image/jpeg"):
    return {"file": (filename, data, content_type)}


class TestClassifySuccess:
    """Test suite for successful classification."""

    def test_returns_category(self, client: TestClient, jpeg_bytes: bytes):
        """Test that a valid upload returns the label under 'category'."""
        response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 200
        assert response.json() == {"category": "plastic"}

    def test_label_passed_through_verbatim(self, settings, jpeg_bytes: bytes):
        """Test that labels outside the known set are not altered."""
        app = create_app(settings=settings, classifier=FakeClassifier(label=" Glass\n"))

        with TestClient(app) as client:
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 200
        assert response.json() == {"category": " Glass\n"}

    def test_classifier_sees_written_bytes(self, client: TestClient, fake_classifier, scratch_dir: Path):
        """Test that the classifier receives a real file inside the scratch dir."""
        client.post("/classify", files=_upload(b"paper-bytes"))

        assert len(fake_classifier.calls) == 1
        call = fake_classifier.calls[0]
        assert call["exists"] is True
        assert call["path"].parent == scratch_dir

    def test_image_content_type_forwarded(self, client: TestClient, fake_classifier):
        """Test that an explicit image/* type is declared to the classifier."""
        client.post("/classify", files=_upload(b"png", filename="frame.png", content_type="image/png"))

        assert fake_classifier.calls[0]["mime_type"] == "image/png"

    def test_octet_stream_defaults_to_jpeg(self, client: TestClient, fake_classifier):
        """Test that non-image content types fall back to image/jpeg."""
        client.post("/classify", files=_upload(b"raw", content_type="application/octet-stream"))

        assert fake_classifier.calls[0]["mime_type"] == "image/jpeg"


class TestClassifyValidation:
    """Test suite for upload validation."""

    def test_missing_file_part(self, client: TestClient, fake_classifier):
        """Test that a request without a file field gets 400 No file part."""
        response = client.post("/classify")

        assert response.status_code == 400
        assert response.json() == {"error": "No file part"}
        assert fake_classifier.calls == []

    def test_wrong_field_name(self, client: TestClient):
        """Test that a file under another field name counts as missing."""
        response = client.post("/classify", files={"image": ("frame.jpg", b"abc", "image/jpeg")})

        assert response.status_code == 400
        assert response.json() == {"error": "No file part"}

    def test_text_field_is_not_a_file(self, client: TestClient, fake_classifier):
        """Test that a plain form value under the file field counts as missing."""
        response = client.post("/classify", data={"file": "notafile"})

        assert response.status_code == 400
        assert response.json() == {"error": "No file part"}
        assert fake_classifier.calls == []

    def test_empty_file(self, client: TestClient, fake_classifier):
        """Test that a zero-byte upload is rejected."""
        response = client.post("/classify", files=_upload(b""))

        assert response.status_code == 400
        assert response.json() == {"error": "Empty file not allowed"}
        assert fake_classifier.calls == []

    def test_oversized_file(self, client: TestClient, fake_classifier):
        """Test that uploads above MAX_UPLOAD_BYTES get 413."""
        response = client.post("/classify", files=_upload(b"x" * 2048))

        assert response.status_code == 413
        assert response.json()["error"].startswith("File too large")
        assert fake_classifier.calls == []

    def test_read_is_capped_at_limit(self, client: TestClient, jpeg_bytes: bytes):
        """Test that the upload is never read past MAX_UPLOAD_BYTES + 1."""
        sizes = []
        original_read = UploadFile.read

        async def recording_read(self, size: int = -1) -> bytes:
            sizes.append(size)
            return await original_read(self, size)

        with patch.object(UploadFile, "read", recording_read):
            small = client.post("/classify", files=_upload(jpeg_bytes))
            assert sizes == [1025]

            sizes.clear()
            large = client.post("/classify", files=_upload(b"x" * 4096))

        assert small.status_code == 200
        assert large.status_code == 413
        assert sizes == []


class TestClassifyErrors:
    """Test suite for failure mapping."""

    def test_classification_error_message_surfaced(self, settings, jpeg_bytes: bytes):
        """Test that classifier errors become 500 with their message."""
        classifier = FakeClassifier(error=ClassificationError("error sending message: quota exceeded"))
        app = create_app(settings=settings, classifier=classifier)

        with TestClient(app) as client:
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 500
        assert response.json() == {"error": "error sending message: quota exceeded"}

    def test_empty_response_is_500(self, settings, jpeg_bytes: bytes):
        """Test that an empty model answer never produces a 200."""
        classifier = FakeClassifier(error=EmptyResponseError("empty response received"))
        app = create_app(settings=settings, classifier=classifier)

        with TestClient(app) as client:
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 500
        assert response.json() == {"error": "empty response received"}

    def test_socket_error_from_provider(self, settings, jpeg_bytes: bytes):
        """Test that a socket error inside the real provider becomes a 500 with its message."""
        genai_client = MagicMock()
        genai_client.aio.files.upload = AsyncMock(side_effect=ConnectionResetError("connection reset by peer"))
        genai_client.aio.aclose = AsyncMock()
        app = create_app(settings=settings, classifier=GoogleClassifier(api_key="k", client=genai_client))

        with TestClient(app) as client:
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 500
        assert response.json() == {"error": "error uploading file: connection reset by peer"}

    def test_storage_failure(self, client: TestClient, fake_classifier, jpeg_bytes: bytes):
        """Test that a scratch write failure returns 500 Failed to save file."""
        with patch("utils.scratch.open", side_effect=PermissionError("read-only"), create=True):
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save file"}
        assert fake_classifier.calls == []

    def test_missing_scratch_dir(self, settings, fake_classifier, tmp_path: Path, jpeg_bytes: bytes):
        """Test that an unusable scratch directory is a storage failure."""
        broken = settings.model_copy(update={"scratch_dir": str(tmp_path / "does-not-exist")})
        app = create_app(settings=broken, classifier=fake_classifier)

        with TestClient(app) as client:
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save file"}


class TestScratchCleanup:
    """Test suite for scratch file lifetime."""

    def test_no_scratch_left_after_success(self, client: TestClient, scratch_dir: Path, jpeg_bytes: bytes):
        """Test that the scratch file is removed after a successful call."""
        client.post("/classify", files=_upload(jpeg_bytes))

        assert list(scratch_dir.iterdir()) == []

    def test_no_scratch_left_after_failure(self, settings, scratch_dir: Path, jpeg_bytes: bytes):
        """Test that the scratch file is removed after a failed call."""
        classifier = FakeClassifier(error=ClassificationError("boom"))
        app = create_app(settings=settings, classifier=classifier)

        with TestClient(app) as client:
            client.post("/classify", files=_upload(jpeg_bytes))

        assert len(classifier.calls) == 1
        assert not classifier.calls[0]["path"].exists()
        assert list(scratch_dir.iterdir()) == []

    def test_each_request_gets_new_path(self, client: TestClient, fake_classifier, jpeg_bytes: bytes):
        """Test that scratch paths are never reused."""
        for _ in range(3):
            client.post("/classify", files=_upload(jpeg_bytes))

        paths = {call["path"] for call in fake_classifier.calls}
        assert len(paths) == 3


class TestConcurrentClassification:
    """Regression tests for shared scratch file races."""

    async def test_concurrent_uploads_get_own_labels(self, settings, scratch_dir: Path):
        """Test that overlapping requests each see their own image."""
        classifier = FakeClassifier(delay=0.05)
        app = create_app(settings=settings, classifier=classifier)
        labels = ["metal", "clothes", "paper", "plastic"] * 3

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            responses = await asyncio.gather(*[
                ac.post("/classify", files=_upload(label.encode()))
                for label in labels
            ])

        assert [r.status_code for r in responses] == [200] * len(labels)
        assert [r.json()["category"] for r in responses] == labels
        assert len({call["path"] for call in classifier.calls}) == len(labels)
        assert list(scratch_dir.iterdir()) == []


class TestStartup:
    """Test suite for application startup."""

    @pytest.mark.parametrize("api_key", [None, "", "   "])
    def test_startup_fails_without_credentials(self, settings, api_key):
        """Test that the app refuses to start without GEMINI_API_KEY."""
        from app_settings import ConfigError

        broken = settings.model_copy(update={"gemini_api_key": api_key})
        app = create_app(settings=broken)

        with pytest.raises(ConfigError):
            with TestClient(app):
                pass

    def test_startup_builds_google_classifier(self, settings):
        """Test that the lifespan builds and closes the shared classifier."""
        from integrations.classifier import GoogleClassifier

        app = create_app(settings=settings)

        with patch("integrations.classifier.providers.google.genai.Client"):
            with patch.object(GoogleClassifier, "close") as close:
                with TestClient(app) as client:
                    assert isinstance(app.state.classifier, GoogleClassifier)
                    assert client.get("/health").status_code == 200

        close.assert_awaited_once()
        assert app.state.classifier is None


class TestClientDisconnect:
    """Test suite for cancelling work when the caller hangs up."""

    class _Request:
        def __init__(self, disconnected: bool):
            self.disconnected = disconnected

        async def is_disconnected(self) -> bool:
            return self.disconnected

    async def test_disconnect_cancels_remote_call(self):
        """Test that the in-flight call is cancelled once the client is gone."""
        from api.routers.classify import run_unless_disconnected

        cancelled = asyncio.Event()

        async def slow_call():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(ClassificationError, match="client disconnected"):
            await run_unless_disconnected(self._Request(True), slow_call(), poll_interval=0.01)

        assert cancelled.is_set()

    def test_slow_classification_through_endpoint(self, settings, jpeg_bytes: bytes):
        """Test that a request outliving several poll intervals still gets its label."""
        polling = settings.model_copy(update={"disconnect_poll_seconds": 0.01})
        classifier = FakeClassifier(label="metal", delay=0.1)
        app = create_app(settings=polling, classifier=classifier)

        with TestClient(app) as client:
            response = client.post("/classify", files=_upload(jpeg_bytes))

        assert response.status_code == 200
        assert response.json() == {"category": "metal"}
        assert len(classifier.calls) == 1

    async def test_connected_client_gets_result(self):
        """Test that a slow call still completes while the client waits."""
        from api.routers.classify import run_unless_disconnected

        async def slow_call():
            await asyncio.sleep(0.05)
            return "metal"

        result = await run_unless_disconnected(self._Request(False), slow_call(), poll_interval=0.01)

        assert result == "metal"
