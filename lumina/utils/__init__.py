"""
Utilities
=========

Helper functions for the studio core.
"""

from .media import (
    get_mime_type,
    get_extension,
    is_data_url,
    to_data_url,
    parse_data_url,
    save_bytes,
)

__all__ = [
    "get_mime_type",
    "get_extension",
    "is_data_url",
    "to_data_url",
    "parse_data_url",
    "save_bytes",
]
