"""
Image classification endpoint.

POST /classify takes a multipart upload in the "file" field, parks the bytes
in a per-request scratch file, asks the remote classifier for a category
and returns {"category": "<label>"}.
"""

import asyncio
import contextlib
from typing import Awaitable, TypeVar

from fastapi import APIRouter, Depends, Request, status
from starlette.datastructures import UploadFile

from api.dependencies import get_app_settings, get_classifier
from api.exceptions import (
    ClassificationFailedError,
    MissingFileError,
    StorageFailedError,
    UploadRejectedError,
)
from api.schemas import ClassificationResponse, ErrorResponse
from app_settings import Settings
from integrations.classifier import (
    ClassificationError,
    EmptyResponseError,
    ImageClassifier,
)
from utils.constants import UPLOAD_FIELD
from utils.files import resolve_image_mime_type, validate_file_size
from utils.logging import get_logger
from utils.scratch import StorageError, scratch_file

router = APIRouter(tags=["classify"])
logger = get_logger("api.classify")

T = TypeVar("T")

_UPLOAD_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {UPLOAD_FIELD: {"type": "string", "format": "binary"}},
                    "required": [UPLOAD_FIELD],
                }
            }
        },
    }
}


async def run_unless_disconnected(
    request: Request,
    awaitable: Awaitable[T],
    poll_interval: float,
) -> T:
    """
    Await awaitable, cancelling it if the caller goes away first.

    Raises:
        ClassificationError: If the client disconnected before completion
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("[CLASSIFY] Client disconnected, cancelling remote call")
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                raise ClassificationError("client disconnected")
    finally:
        if not task.done():
            task.cancel()


def _reject_size(size: int, limit: int) -> None:
    valid, error = validate_file_size(size, max_size=limit, min_size=1)
    if not valid:
        code = (
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
            if size > limit
            else status.HTTP_400_BAD_REQUEST
        )
        raise UploadRejectedError(error, status_code=code)


@router.post(
    "/classify",
    response_model=ClassificationResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    openapi_extra=_UPLOAD_BODY,
)
async def classify(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    classifier: ImageClassifier = Depends(get_classifier),
):
    """
    Classify an uploaded image.

    Errors:
    - 400 {"error": "No file part"} when the "file" field is missing or is not a file
    - 400/413 when the upload is empty or larger than MAX_UPLOAD_BYTES
    - 500 {"error": "Failed to save file"} when the scratch write fails
    - 500 {"error": "<message>"} when the remote classification fails
    """
    form = await request.form()
    file = form.get(UPLOAD_FIELD)
    if not isinstance(file, UploadFile):
        raise MissingFileError(field=UPLOAD_FIELD)

    limit = settings.max_upload_bytes
    # The multipart parser already knows the spooled size; only read what can pass
    if file.size is not None and file.size > limit:
        _reject_size(file.size, limit)
    data = await file.read(limit + 1)
    _reject_size(len(data), limit)

    mime_type = resolve_image_mime_type(file.content_type, default=settings.default_mime_type)
    logger.info(f"[CLASSIFY] Received {file.filename or 'upload'} ({len(data)} bytes, {mime_type})")

    try:
        with scratch_file(data, directory=settings.resolved_scratch_dir) as image_path:
            label = await run_unless_disconnected(
                request,
                classifier.classify(image_path, mime_type=mime_type),
                poll_interval=settings.disconnect_poll_seconds,
            )
    except StorageError:
        raise StorageFailedError()
    except EmptyResponseError as e:
        raise ClassificationFailedError(str(e), error_code="EMPTY_RESPONSE")
    except ClassificationError as e:
        raise ClassificationFailedError(str(e))

    return {"category": label}
