"""
Media Utilities
===============

Helpers for moving generated images and videos around as data URLs and bytes.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Tuple, Union

from ..core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
}

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
}


def get_mime_type(path: Union[str, Path], default: str = "application/octet-stream") -> str:
    """Get MIME type from file extension."""
    return MIME_TYPES.get(Path(path).suffix.lower(), default)


def get_extension(mime_type: str) -> str:
    """Get a file extension for a MIME type (``.bin`` when unknown)."""
    return EXTENSIONS.get(mime_type.lower(), ".bin")


def is_data_url(value: str) -> bool:
    return value.startswith("data:")


def to_data_url(data: bytes, mime_type: str) -> str:
    """
    Encode raw bytes as a base64 data URL.

    Args:
        data: Raw image or video bytes
        mime_type: MIME type to embed

    Returns:
        Data URL string (data:image/png;base64,...)
    """
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def parse_data_url(url: str) -> Tuple[str, bytes]:
    """
    Split a base64 data URL into its MIME type and decoded bytes.

    Raises:
        InvalidArgumentError: If the value is not a base64 data URL
    """
    if not is_data_url(url) or "," not in url:
        raise InvalidArgumentError("Not a data URL", field="url", value=url[:40])

    header, payload = url.split(",", 1)
    if not header.endswith(";base64"):
        raise InvalidArgumentError(
            "Only base64 data URLs are supported",
            field="url",
            value=header,
        )
    mime_type = header[len("data:"):-len(";base64")] or "application/octet-stream"

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidArgumentError(f"Invalid base64 payload: {e}", field="url")

    return mime_type, data


def save_bytes(data: bytes, output_path: Union[str, Path]) -> str:
    """
    Write artifact bytes to a file, creating parent directories.

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "wb") as f:
        f.write(data)

    logger.info(f"Saved {len(data)} bytes to {output_path}")
    return str(output_path)
