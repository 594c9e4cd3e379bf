"""Core infrastructure for the PropCare backend."""

from .database_types import UUID
from .exceptions import (
    AuthenticationError,
    ExternalServiceError,
    InvalidTransition,
    NotFoundError,
    PropCareException,
    ResourceNotFoundError,
    Unauthorized,
    UpstreamTimeout,
    ValidationError,
)
from .utils import bounded, sanitize_string, utc_now

__all__ = [
    "UUID",
    "PropCareException",
    "AuthenticationError",
    "ExternalServiceError",
    "InvalidTransition",
    "NotFoundError",
    "ResourceNotFoundError",
    "Unauthorized",
    "UpstreamTimeout",
    "ValidationError",
    "bounded",
    "sanitize_string",
    "utc_now",
]
