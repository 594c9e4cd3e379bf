from abc import ABC, abstractmethod


class StorageProvider(ABC):
    """Blob store used for report attachments.

    Implementations are synchronous; callers run them off the event loop and
    bound each call with a timeout.
    """

    @abstractmethod
    def upload(self, data: bytes, path: str) -> str:
        """Store ``data`` under ``path`` and return the stored path."""

    @abstractmethod
    def resolve(self, path: str, expires_s: int) -> str:
        """Return a time-limited URL for reading ``path``."""

    @abstractmethod
    def open(self, path: str) -> bytes:
        """Read back the stored bytes."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def delete(self, path: str) -> None:
        raise NotImplementedError
