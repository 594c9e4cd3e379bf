"""Notification schemas for PropCare."""

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field


class AlertKind(str, enum.Enum):
    IMMEDIATE = "immediate"
    SUMMARY = "summary"


class Alert(BaseModel):
    """A refresh hint pushed to a recipient. Never carries record data."""

    title: str = "New activity"
    description: str
    action: str = "refresh"
    count: int = 1
    kind: AlertKind = AlertKind.IMMEDIATE
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
