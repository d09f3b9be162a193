"""Upload validation and spooling to temporary files."""

import os
import tempfile

from core.config import (
    ALLOWED_IMAGE_TYPES, MAX_UPLOAD_BYTES,
    ALLOWED_AUDIO_TYPES, MAX_AUDIO_BYTES
)
from core.errors import InvalidUpload

CHUNK_SIZE = 64 * 1024


def _check_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise InvalidUpload(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")


def validate_image_type(content_type: str) -> None:
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidUpload("Invalid file type. Only JPEG and PNG are allowed.")


def validate_audio_type(content_type: str) -> None:
    # Browsers append codec info, e.g. "audio/webm;codecs=opus"
    base_type = (content_type or '').split(';')[0].strip()
    if base_type not in ALLOWED_AUDIO_TYPES:
        raise InvalidUpload(f"Invalid audio type: {content_type}")


def validate_image_upload(content_type: str, size: int,
                          max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Reject anything that is not a JPEG/PNG under the size limit."""
    validate_image_type(content_type)
    _check_size(size, max_bytes)


def validate_audio_upload(content_type: str, size: int,
                          max_bytes: int = MAX_AUDIO_BYTES) -> None:
    validate_audio_type(content_type)
    _check_size(size, max_bytes)


def spool_to_temp(source, suffix: str = '', max_bytes: int = None) -> tuple[str, int]:
    """Copy a file-like object to a temporary file. Returns (path, size).

    Stops reading and raises InvalidUpload as soon as more than max_bytes
    have arrived; the partial file is removed. Otherwise the caller owns the
    file and must delete it.
    """
    target = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
    size = 0
    try:
        with target:
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if max_bytes is not None:
                    _check_size(size, max_bytes)
                target.write(chunk)
    except Exception:
        remove_file(target.name)
        raise
    return target.name, size


def remove_file(path: str) -> None:
    """Delete a processed upload; a file that is already gone is fine."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
