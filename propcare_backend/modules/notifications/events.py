"""Typed view of raw change payloads and the labels shown for them."""

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Stream(str, enum.Enum):
    """Tables whose changes produce alerts."""

    ASSIGNMENTS = "helpdesk_assignments"
    FINAL_REPORTS = "contractor_final_reports"
    CONTRACTOR_RESPONSES = "contractor_responses"
    MAINTENANCE_REPORTS = "maintenance_reports"


class EventType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A change payload that passed validation."""

    table: Stream
    event_type: EventType = Field(..., alias="eventType")
    new: dict[str, Any] = Field(default_factory=dict)
    old: dict[str, Any] = Field(default_factory=dict)
    event_id: str | None = None
    commit_timestamp: datetime | None = None

    class Config:
        populate_by_name = True

    @property
    def row(self) -> dict[str, Any]:
        return self.new or self.old


def _assignment_label(event: ChangeEvent) -> str:
    row = event.row
    ticket = f"Ticket #{row['id']}" if row.get("id") else "A ticket"
    change = {
        EventType.UPDATE: "updated",
        EventType.INSERT: "created",
    }.get(event.event_type, "changed")
    return f"{ticket} {change}"


def _final_report_label(event: ChangeEvent) -> str:
    row = event.row
    subject = f"Final report {row['id']}" if row.get("id") else "A final report"
    return f"{subject} updated by contractor"


def _response_label(event: ChangeEvent) -> str:
    row = event.row
    ticket = row.get("assignment_id") or ""
    decision = row.get("response") or row.get("status")
    if decision == "accepted":
        return f"Contractor accepted Ticket #{ticket}"
    if decision == "rejected":
        reason = row.get("reason")
        suffix = f" — {reason}" if reason else ""
        return f"Contractor rejected Ticket #{ticket}{suffix}"
    return f"Contractor response on Ticket #{ticket}"


def _maintenance_label(event: ChangeEvent) -> str | None:
    row = event.row
    if event.event_type in (EventType.INSERT, EventType.UPDATE) and (
        row.get("status") == "approved"
    ):
        return f"Landlord approved report #{row.get('id')} — ready to triage"
    return None


_LABELLERS = {
    Stream.ASSIGNMENTS: _assignment_label,
    Stream.FINAL_REPORTS: _final_report_label,
    Stream.CONTRACTOR_RESPONSES: _response_label,
    Stream.MAINTENANCE_REPORTS: _maintenance_label,
}


def label_for(event: ChangeEvent) -> str | None:
    """Human readable label for an event, or None if it should not alert."""
    return _LABELLERS[event.table](event)
