"""
In-process change feed.

Services publish a raw change payload after every commit that touches one of
the watched tables. Payloads mirror a database change stream::

    {
        "table": "helpdesk_assignments",
        "eventType": "UPDATE",
        "new": {...},
        "old": {...},
        "event_id": "...",
        "commit_timestamp": "2024-01-01T00:00:00+00:00",
    }

Subscribers register per table with an optional column/value filter, checked
against both the new and the old row.
"""

import enum
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ...core.logging import get_logger
from ...core.utils import utc_now

logger = get_logger(__name__)

Payload = dict[str, Any]
Callback = Callable[[Payload], None]


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def snapshot(record: Any, **overrides: Any) -> Payload:
    """Column values of an ORM record as a JSON-friendly dict."""
    row = {
        column.key: _jsonable(getattr(record, column.key))
        for column in record.__table__.columns
    }
    row.update({k: _jsonable(v) for k, v in overrides.items()})
    return row


@dataclass(eq=False)
class Subscription:
    table: str
    callback: Callback
    column: str | None = None
    value: Any = None

    def matches(self, payload: Payload) -> bool:
        if self.column is None:
            return True
        expected = str(_jsonable(self.value))
        for key in ("new", "old"):
            row = payload.get(key) or {}
            if isinstance(row, dict) and str(row.get(self.column)) == expected:
                return True
        return False


class ChangeFeed:
    def __init__(self) -> None:
        # table -> subscriptions in registration order
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        table: str,
        callback: Callback,
        column: str | None = None,
        value: Any = None,
    ) -> Subscription:
        subscription = Subscription(table, callback, column, value)
        self._subscriptions.setdefault(table, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.table)
        if subs and subscription in subs:
            subs.remove(subscription)
            if not subs:
                self._subscriptions.pop(subscription.table, None)

    def subscriber_count(self, table: str | None = None) -> int:
        if table is not None:
            return len(self._subscriptions.get(table, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def dispatch(self, payload: Payload) -> None:
        """Deliver a raw payload to every matching subscriber."""
        table = payload.get("table") if isinstance(payload, dict) else None
        for subscription in list(self._subscriptions.get(table, [])):
            if not subscription.matches(payload):
                continue
            try:
                subscription.callback(payload)
            except Exception:
                logger.exception(
                    "Change subscriber failed", extra={"table": table}
                )

    def publish(
        self,
        table: str,
        event_type: str,
        new: Payload | None = None,
        old: Payload | None = None,
    ) -> Payload:
        """Build a change payload for a committed write and dispatch it."""
        payload = {
            "table": table,
            "eventType": event_type,
            "new": new or {},
            "old": old or {},
            "event_id": str(uuid.uuid4()),
            "commit_timestamp": utc_now().isoformat(),
        }
        self.dispatch(payload)
        return payload


# Global singleton feed
change_feed = ChangeFeed()
