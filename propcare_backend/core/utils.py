"""Common utilities for the PropCare backend."""

import asyncio
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import TypeVar

from ..config import settings
from .exceptions import UpstreamTimeout

T = TypeVar("T")


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def sanitize_string(value: str | None, max_length: int = 255) -> str | None:
    """Sanitize a string value by stripping whitespace and truncating."""
    if value is None:
        return None
    value = value.strip()
    if len(value) > max_length:
        return value[:max_length]
    return value


async def bounded(
    awaitable: Awaitable[T], operation: str, timeout: float | None = None
) -> T:
    """Await a store call, raising UpstreamTimeout if it exceeds its bound.

    Args:
        awaitable: The pending record store / blob store call
        operation: Human readable name used in the error message
        timeout: Seconds to wait (defaults to settings.upstream_timeout_seconds)

    Returns:
        The result of the awaitable
    """
    limit = settings.upstream_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=limit)
    except asyncio.TimeoutError as e:
        raise UpstreamTimeout(operation, limit) from e
