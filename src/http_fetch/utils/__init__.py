"""Utility helpers: buffer pool, stream helpers, log sanitizing."""

from . import bufferpool
from .sanitizer import mask_sensitive_data, mask_url, mask_headers
from .streams import ProgressWriter, iter_chunks

__all__ = [
    "bufferpool",
    "mask_sensitive_data",
    "mask_url",
    "mask_headers",
    "ProgressWriter",
    "iter_chunks",
]
