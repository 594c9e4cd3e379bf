"""
Local filesystem storage provider.

Signed URLs are short-lived JWTs naming the stored path; the API serves them
from ``/api/files/{token}``.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt

from ..config import settings
from ..core.logging import get_logger
from .provider import StorageProvider

logger = get_logger(__name__)

FILE_TOKEN_TYPE = "file"


class LocalStorageProvider(StorageProvider):
    """Stores blobs under ``<base_dir>/<bucket>/``."""

    def __init__(self, base_dir: str | None = None, bucket: str | None = None):
        self.base_dir = Path(base_dir or settings.storage_base_dir)
        self.bucket = bucket or settings.storage_bucket
        self.root = self.base_dir / self.bucket
        self.root.mkdir(parents=True, exist_ok=True)

    def _get_path(self, path: str) -> Path:
        clean = path.replace("\\", "/").lstrip("/")
        if not clean or any(part in ("", ".", "..") for part in clean.split("/")):
            raise ValueError(f"Invalid storage path: {path!r}")
        return self.root / clean

    def upload(self, data: bytes, path: str) -> str:
        target = self._get_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Blob stored", extra={"path": path, "size": len(data)})
        return path

    def resolve(self, path: str, expires_s: int) -> str:
        self._get_path(path)
        payload = {
            "path": path,
            "type": FILE_TOKEN_TYPE,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_s),
        }
        token = jwt.encode(
            payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )
        return f"{settings.api_prefix}/files/{token}"

    def open(self, path: str) -> bytes:
        return self._get_path(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self._get_path(path).is_file()

    def delete(self, path: str) -> None:
        self._get_path(path).unlink(missing_ok=True)


def decode_file_token(token: str) -> str | None:
    """Return the path named by a signed URL token, or None if invalid or expired."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != FILE_TOKEN_TYPE:
        return None
    return payload.get("path")
