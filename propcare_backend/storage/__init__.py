"""Blob storage for report attachments."""

from functools import lru_cache

from .local_provider import LocalStorageProvider, decode_file_token
from .provider import StorageProvider


@lru_cache
def get_storage() -> StorageProvider:
    """Return the process-wide storage provider."""
    return LocalStorageProvider()


__all__ = [
    "StorageProvider",
    "LocalStorageProvider",
    "decode_file_token",
    "get_storage",
]
