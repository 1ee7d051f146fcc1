# Utils - Shared utilities

from utils.files import format_file_size, resolve_image_mime_type, validate_file_size
from utils.scratch import StorageError, scratch_file

__all__ = [
    # File utilities
    "validate_file_size",
    "format_file_size",
    "resolve_image_mime_type",
    # Scratch files
    "StorageError",
    "scratch_file",
]
