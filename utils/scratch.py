"""
Per-request scratch files.

Uploaded bytes are written to a uniquely named file for as long as the
outbound classification call needs them, then removed on every exit path.
"""

import os
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from utils.constants import SCRATCH_PREFIX, SCRATCH_SUFFIX
from utils.logging import get_logger

logger = get_logger("utils.scratch")


class StorageError(Exception):
    """Raised when upload bytes cannot be written to a scratch file."""


def scratch_path(directory: Path, suffix: str = SCRATCH_SUFFIX) -> Path:
    """Build a fresh, request-unique path inside directory."""
    return directory / f"{SCRATCH_PREFIX}{uuid.uuid4().hex}{suffix}"


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        logger.debug(f"[SCRATCH] Deleted {path}")
    except OSError as e:
        logger.warning(f"[SCRATCH] Could not delete {path}: {e}")


@contextmanager
def scratch_file(
    data: bytes,
    directory: Optional[Path] = None,
    suffix: str = SCRATCH_SUFFIX,
) -> Iterator[Path]:
    """
    Write data to a unique scratch file and yield its path.

    The file is removed when the block exits, whether it succeeded or raised.
    Deletion failures are logged and never propagate.

    Usage:
        with scratch_file(image_bytes, directory=settings.resolved_scratch_dir) as path:
            label = await classifier.classify(path)

    Raises:
        StorageError: If the file cannot be written
    """
    if directory is None:
        directory = Path(tempfile.gettempdir())

    path = scratch_path(directory, suffix)

    try:
        # "xb" refuses to clobber an existing file
        f = open(path, "xb")
    except OSError as e:
        logger.error(f"[SCRATCH] Failed to create {path}: {e}")
        raise StorageError(f"Failed to save file: {e}") from e

    try:
        with f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        logger.error(f"[SCRATCH] Failed to write {path}: {e}")
        _remove(path)
        raise StorageError(f"Failed to save file: {e}") from e

    logger.debug(f"[SCRATCH] Wrote {len(data)} bytes to {path}")
    try:
        yield path
    finally:
        _remove(path)
