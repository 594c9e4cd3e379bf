import asyncio
import uuid

import pytest

from propcare_backend.core.exceptions import Unauthorized
from propcare_backend.modules.auth.models import RoleSlug
from propcare_backend.modules.auth.schemas import AuthenticatedUser
from propcare_backend.modules.notifications.coalescer import RecipientSession
from propcare_backend.modules.notifications.events import ChangeEvent, label_for
from propcare_backend.modules.notifications.feed import ChangeFeed
from propcare_backend.modules.notifications.hub import NotificationHub
from propcare_backend.modules.notifications.schemas import AlertKind

WINDOW = 0.05


def drain(session: RecipientSession) -> list:
    alerts = []
    while not session.queue.empty():
        alerts.append(session.queue.get_nowait())
    return alerts


def assignment_payload(feed: ChangeFeed, contractor_id=None, event_type="UPDATE"):
    return feed.publish(
        "helpdesk_assignments",
        event_type,
        new={"id": str(uuid.uuid4()), "contractor_id": contractor_id},
    )


@pytest.fixture
def feed():
    return ChangeFeed()


# ----- Coalescing -----


async def test_burst_gives_one_immediate_and_one_summary(feed):
    session = RecipientSession("r1", feed, window=WINDOW)
    session.subscribe("helpdesk_assignments")

    for _ in range(5):
        assignment_payload(feed)

    alerts = drain(session)
    assert len(alerts) == 1
    assert alerts[0].kind == AlertKind.IMMEDIATE
    assert session.pending_count == 5

    await asyncio.sleep(WINDOW * 3)
    alerts = drain(session)
    assert len(alerts) == 1
    assert alerts[0].kind == AlertKind.SUMMARY
    assert alerts[0].count == 5
    assert alerts[0].description == "5 updates just came in"
    assert not session.window_open
    session.close()


async def test_single_event_has_no_summary(feed):
    session = RecipientSession("r1", feed, window=WINDOW)
    session.subscribe("helpdesk_assignments")

    assignment_payload(feed, event_type="INSERT")
    await asyncio.sleep(WINDOW * 3)

    alerts = drain(session)
    assert [a.kind for a in alerts] == [AlertKind.IMMEDIATE]
    assert alerts[0].description.endswith("created")
    session.close()


async def test_next_window_starts_fresh(feed):
    session = RecipientSession("r1", feed, window=WINDOW)
    session.subscribe("helpdesk_assignments")

    assignment_payload(feed)
    await asyncio.sleep(WINDOW * 3)
    assignment_payload(feed)

    alerts = drain(session)
    assert [a.kind for a in alerts] == [AlertKind.IMMEDIATE, AlertKind.IMMEDIATE]
    session.close()


async def test_duplicate_deliveries_count_once(feed):
    session = RecipientSession("r1", feed, window=WINDOW)
    payload = assignment_payload(feed)
    session.handle(payload)
    session.handle(payload)
    session.handle(payload)
    assert session.pending_count == 1
    session.close()


async def test_malformed_and_ignored_payloads_are_dropped(feed):
    session = RecipientSession("r1", feed, window=WINDOW)
    session.handle({"table": "helpdesk_assignments"})
    session.handle({"table": "unknown", "eventType": "INSERT"})
    session.handle(
        {
            "table": "maintenance_reports",
            "eventType": "UPDATE",
            "new": {"id": "r", "status": "working"},
        }
    )
    assert session.pending_count == 0
    assert drain(session) == []
    session.close()


async def test_close_discards_the_pending_summary(feed):
    session = RecipientSession("r1", feed, window=WINDOW)
    session.subscribe("helpdesk_assignments")
    for _ in range(3):
        assignment_payload(feed)
    drain(session)

    session.close()
    assert feed.subscriber_count() == 0
    await asyncio.sleep(WINDOW * 3)
    assert drain(session) == []

    assignment_payload(feed)
    assert drain(session) == []


async def test_failing_subscriber_does_not_stop_delivery(feed):
    session = RecipientSession("r1", feed, window=WINDOW)

    def boom(payload):
        raise RuntimeError("subscriber bug")

    feed.subscribe("helpdesk_assignments", boom)
    session.subscribe("helpdesk_assignments")
    assignment_payload(feed)
    assert session.pending_count == 1
    session.close()


# ----- Labels -----


def test_response_labels():
    accepted = ChangeEvent.model_validate(
        {
            "table": "contractor_responses",
            "eventType": "INSERT",
            "new": {"assignment_id": "a1", "response": "accepted"},
        }
    )
    rejected = ChangeEvent.model_validate(
        {
            "table": "contractor_responses",
            "eventType": "INSERT",
            "new": {"assignment_id": "a1", "response": "rejected", "reason": "busy"},
        }
    )
    assert label_for(accepted) == "Contractor accepted Ticket #a1"
    assert label_for(rejected).startswith("Contractor rejected Ticket #a1")
    assert "busy" in label_for(rejected)


def test_only_approved_reports_alert():
    approved = ChangeEvent.model_validate(
        {
            "table": "maintenance_reports",
            "eventType": "UPDATE",
            "new": {"id": "r9", "status": "approved"},
        }
    )
    deleted = ChangeEvent.model_validate(
        {
            "table": "maintenance_reports",
            "eventType": "DELETE",
            "old": {"id": "r9", "status": "approved"},
        }
    )
    assert "r9" in label_for(approved)
    assert label_for(deleted) is None


# ----- Hub -----


def make_actor(role: RoleSlug, contractor_id=None) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=uuid.uuid4(),
        email=f"{role.value}@example.com",
        role=role,
        contractor_id=contractor_id,
    )


async def test_helpdesk_watches_every_stream(feed):
    hub = NotificationHub(feed)
    session = hub.open_session(make_actor(RoleSlug.HELPDESK), window=WINDOW)

    for table in (
        "helpdesk_assignments",
        "contractor_final_reports",
        "contractor_responses",
        "maintenance_reports",
    ):
        assert feed.subscriber_count(table) == 1

    feed.publish(
        "contractor_final_reports", "INSERT", new={"id": "f1", "assignment_id": "a1"}
    )
    assert [a.description for a in drain(session)] == [
        "Final report f1 updated by contractor"
    ]
    hub.close_all()


async def test_contractor_only_hears_its_own_assignments(feed):
    contractor_id = uuid.uuid4()
    hub = NotificationHub(feed)
    session = hub.open_session(
        make_actor(RoleSlug.CONTRACTOR, contractor_id), window=WINDOW
    )

    assignment_payload(feed, contractor_id=str(uuid.uuid4()))
    assert drain(session) == []

    assignment_payload(feed, contractor_id=str(contractor_id))
    assert len(drain(session)) == 1

    # Unassigning still reaches the contractor through the old row
    feed.publish(
        "helpdesk_assignments",
        "UPDATE",
        new={"id": "a1", "contractor_id": None},
        old={"id": "a1", "contractor_id": str(contractor_id)},
    )
    assert session.pending_count == 2
    hub.close_all()


async def test_new_session_replaces_the_old_one(feed):
    hub = NotificationHub(feed)
    actor = make_actor(RoleSlug.HELPDESK)
    first = hub.open_session(actor, window=WINDOW)
    second = hub.open_session(actor, window=WINDOW)

    assert first.closed
    assert hub.get_session(str(actor.id)) is second
    assert feed.subscriber_count("helpdesk_assignments") == 1

    # A late close from the replaced connection leaves the new session alone
    hub.close_session(str(actor.id), first)
    assert hub.get_session(str(actor.id)) is second
    assert not second.closed
    hub.close_all()
    assert feed.subscriber_count() == 0


async def test_tenants_cannot_subscribe(feed):
    hub = NotificationHub(feed)
    with pytest.raises(Unauthorized):
        hub.open_session(make_actor(RoleSlug.TENANT))


async def test_unlinked_contractor_cannot_subscribe(feed):
    hub = NotificationHub(feed)
    with pytest.raises(Unauthorized):
        hub.open_session(make_actor(RoleSlug.CONTRACTOR))
