"""
File utilities for upload validation.

Provides:
- File size validation
- Human-readable size formatting
- Media type selection for uploads
"""

from typing import Optional


def validate_file_size(
    size: int,
    max_size: int,
    min_size: int = 0,
) -> tuple[bool, str | None]:
    """
    Validate file size is within bounds.

    Args:
        size: File size in bytes
        max_size: Maximum allowed size in bytes
        min_size: Minimum allowed size in bytes (default 0)

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        valid, error = validate_file_size(len(data), max_size=10*1024*1024, min_size=1)
        if not valid:
            raise ValueError(error)
    """
    if size < min_size:
        if min_size == 1:
            return False, "Empty file not allowed"
        return False, f"File too small. Minimum size is {format_file_size(min_size)}"

    if size > max_size:
        return False, f"File too large. Maximum size is {format_file_size(max_size)}"

    return True, None


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "10.5 MB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_bytes) < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


def resolve_image_mime_type(content_type: Optional[str], default: str = "image/jpeg") -> str:
    """
    Pick the media type to declare for an uploaded image.

    Devices often send application/octet-stream or nothing at all, so only
    an explicit image/* type from the client overrides the default.
    """
    if content_type:
        mime_type = content_type.split(";", 1)[0].strip().lower()
        if mime_type.startswith("image/") and len(mime_type) > len("image/"):
            return mime_type
    return default
