"""
Per-recipient notification session.

A session turns a burst of change events into at most two alerts: one sent
as soon as the first event of a window arrives, and one summary when the
window closes if more events came in meanwhile. The session owns its feed
subscriptions, its window timer and its alert queue; closing it releases all
three and discards any count not yet flushed.
"""

import asyncio
from collections import OrderedDict
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...config import settings
from ...core.logging import get_logger
from .events import ChangeEvent, label_for
from .feed import ChangeFeed, Subscription
from .schemas import Alert, AlertKind

logger = get_logger(__name__)


class RecipientSession:
    def __init__(
        self,
        recipient_id: str,
        feed: ChangeFeed,
        window: float | None = None,
        dedup_size: int | None = None,
    ):
        self.recipient_id = recipient_id
        self.feed = feed
        self.window = settings.notification_window_seconds if window is None else window
        self.dedup_size = dedup_size or settings.notification_dedup_size
        self.queue: asyncio.Queue[Alert] = asyncio.Queue()
        self.closed = False

        self._loop = asyncio.get_running_loop()
        self._subscriptions: list[Subscription] = []
        self._timer: asyncio.TimerHandle | None = None
        self._count = 0
        self._seen: OrderedDict[str, None] = OrderedDict()

    @property
    def pending_count(self) -> int:
        """Events seen in the current window, 0 when no window is open."""
        return self._count

    @property
    def window_open(self) -> bool:
        return self._timer is not None

    def subscribe(self, table: str, column: str | None = None, value: Any = None):
        subscription = self.feed.subscribe(table, self.handle, column, value)
        self._subscriptions.append(subscription)
        return subscription

    def _already_seen(self, event_id: str | None) -> bool:
        if event_id is None:
            return False
        if event_id in self._seen:
            return True
        self._seen[event_id] = None
        while len(self._seen) > self.dedup_size:
            self._seen.popitem(last=False)
        return False

    def handle(self, payload: dict[str, Any]) -> None:
        """Feed callback: validate, de-duplicate and coalesce one raw payload."""
        if self.closed:
            return
        try:
            event = ChangeEvent.model_validate(payload)
        except PydanticValidationError:
            logger.debug(
                "Dropped malformed change payload",
                extra={"recipient_id": self.recipient_id},
            )
            return

        label = label_for(event)
        if label is None:
            return
        if self._already_seen(event.event_id):
            logger.debug(
                "Dropped duplicate change event",
                extra={"recipient_id": self.recipient_id, "event_id": event.event_id},
            )
            return

        if self._timer is not None:
            self._count += 1
            return

        self._count = 1
        self._timer = self._loop.call_later(self.window, self._flush)
        self.queue.put_nowait(Alert(description=label, kind=AlertKind.IMMEDIATE))

    def _flush(self) -> None:
        count, self._count = self._count, 0
        self._timer = None
        if self.closed or count <= 1:
            return
        self.queue.put_nowait(
            Alert(
                description=f"{count} updates just came in",
                count=count,
                kind=AlertKind.SUMMARY,
            )
        )

    async def next_alert(self) -> Alert:
        return await self.queue.get()

    def close(self) -> None:
        """Unsubscribe and cancel the window timer without flushing."""
        if self.closed:
            return
        self.closed = True
        for subscription in self._subscriptions:
            self.feed.unsubscribe(subscription)
        self._subscriptions.clear()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._count = 0
