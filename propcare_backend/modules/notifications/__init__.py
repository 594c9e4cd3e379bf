"""Notification fan-in for PropCare."""

from .coalescer import RecipientSession
from .feed import ChangeFeed, change_feed, snapshot
from .hub import NotificationHub, hub
from .routers import router
from .schemas import Alert, AlertKind

__all__ = [
    "ChangeFeed",
    "change_feed",
    "snapshot",
    "RecipientSession",
    "NotificationHub",
    "hub",
    "Alert",
    "AlertKind",
    "router",
]
