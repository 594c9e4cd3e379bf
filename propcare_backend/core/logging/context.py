"""
Per-request logging context.

A transaction id is taken from the ``x-transaction-id`` header (or generated)
for every request, and the acting profile id is recorded once the request has
been authenticated. Both are injected into every log record.
"""

import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

_transaction_id: ContextVar[str | None] = ContextVar("transaction_id", default=None)
_actor_id: ContextVar[str | None] = ContextVar("actor_id", default=None)


def generate_transaction_id() -> str:
    """Generate a short transaction ID for request tracking."""
    return str(uuid.uuid4())[:8]


def get_transaction_id() -> str:
    """Get the current transaction ID or generate a new one."""
    txn_id = _transaction_id.get()
    if txn_id is None:
        txn_id = generate_transaction_id()
        _transaction_id.set(txn_id)
    return txn_id


def set_transaction_id(txn_id: str) -> None:
    """Set the transaction ID for the current context."""
    _transaction_id.set(txn_id)


def get_actor_id() -> str | None:
    """Get the authenticated profile id for the current context, if any."""
    return _actor_id.get()


def set_actor_id(actor_id: str | None) -> None:
    """Record the authenticated profile id for the current context."""
    _actor_id.set(actor_id)


class LogContextFilter(logging.Filter):
    """Logging filter that adds transaction and actor ids to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.transaction_id = get_transaction_id()
        record.actor_id = get_actor_id()
        return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets the transaction id for each request and logs its completion."""

    def __init__(self, app, logger: logging.Logger | None = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger("propcare_backend.requests")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        txn_id = request.headers.get("x-transaction-id") or generate_transaction_id()
        set_transaction_id(txn_id)
        set_actor_id(None)

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        self.logger.debug(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
            },
        )

        response.headers["x-transaction-id"] = txn_id
        return response
