import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from propcare_backend.config import settings
from propcare_backend.core.exceptions import UpstreamTimeout
from propcare_backend.database import get_db
from propcare_backend.main import app
from propcare_backend.modules.auth.models import RoleSlug
from propcare_backend.modules.maintenance import crud as report_crud

from .conftest import PASSWORD, auth_headers


async def signup(client, email, role="tenant"):
    response = await client.post(
        "/api/auth/signup",
        json={"email": email, "password": PASSWORD, "full_name": "Sam", "role": role},
    )
    return response


# ----- Auth -----


async def test_signup_login_and_me(client):
    response = await signup(client, "sam@example.com", role="landlord")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["role"] == "landlord"

    response = await client.post(
        "/api/auth/login", json={"email": "SAM@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    response = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "sam@example.com"


async def test_team_roles_cannot_sign_up(client):
    response = await signup(client, "eve@example.com", role="helpdesk")
    assert response.status_code == 422
    assert response.json()["success"] is False


async def test_wrong_password_is_rejected(client):
    await signup(client, "sam@example.com")
    response = await client.post(
        "/api/auth/login", json={"email": "sam@example.com", "password": "nope-nope"}
    )
    assert response.status_code == 401


async def test_refresh_rotates_tokens(client):
    response = await signup(client, "sam@example.com")
    refresh = response.json()["data"]["refresh_token"]

    response = await client.post("/api/auth/refresh", json={"refresh_token": refresh})
    assert response.status_code == 200
    assert response.json()["data"]["refresh_token"] != refresh

    response = await client.post("/api/auth/refresh", json={"refresh_token": refresh})
    assert response.status_code == 401


async def test_missing_token_redirects_to_login(client):
    response = await client.get("/api/reports")
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["redirect_to"] == "/login"


async def test_forbidden_action_redirects_home(client, cast):
    response = await client.post(
        "/api/properties",
        json={"name": "Oak House"},
        headers=auth_headers(cast["tenant"]),
    )
    assert response.status_code == 403
    assert response.json()["redirect_to"] == "/"


# ----- Reports -----


async def test_report_flow_over_http(client, cast):
    tenant = auth_headers(cast["tenant"])
    landlord = auth_headers(cast["landlord"])
    helpdesk = auth_headers(cast["helpdesk"])
    contractor = auth_headers(cast["contractor"])

    response = await client.post(
        "/api/reports",
        json={
            "property_id": str(cast["property"].id),
            "title": "Broken heater",
            "description": "No heat in the bedroom",
            "category": "hvac",
            "urgency": "high",
        },
        headers=tenant,
    )
    assert response.status_code == 200
    report = response.json()["data"]
    assert report["status"] == "pending"
    assert report["landlord_status"] == "pending"
    assert report["property_name"] == "Elm Court"

    response = await client.get("/api/reports", headers=landlord)
    assert response.json()["data"]["total"] == 1

    response = await client.post(
        f"/api/reports/{report['id']}/approve", headers=landlord
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "approved"

    response = await client.get("/api/assignments", headers=helpdesk)
    items = response.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["status"] == "pending"

    response = await client.post(
        f"/api/reports/{report['id']}/assign",
        json={"contractor_id": str(cast["contractor"].contractor_id)},
        headers=helpdesk,
    )
    assert response.status_code == 200
    assignment = response.json()["data"]
    assert assignment["status"] == "assigned"
    assert assignment["reassignment_count"] == 1

    response = await client.post(
        f"/api/assignments/{assignment['id']}/respond",
        json={"decision": "accepted"},
        headers=contractor,
    )
    assert response.status_code == 200

    response = await client.get("/api/reports/summary", headers=landlord)
    summary = response.json()["data"]
    assert summary["total"] == 1
    assert summary["working"] == 1

    response = await client.post(
        f"/api/assignments/{assignment['id']}/final-report",
        json={"report_text": "Replaced thermostat"},
        headers=contractor,
    )
    assert response.status_code == 200

    response = await client.get(f"/api/reports/{report['id']}", headers=tenant)
    assert response.json()["data"]["landlord_status"] == "fixed"


async def test_invalid_transition_is_a_conflict(client, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    response = await client.post(
        f"/api/reports/{report.id}/reject", headers=auth_headers(cast["landlord"])
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


async def test_tenant_cannot_read_someone_elses_report(client, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    stranger = await world.actor(RoleSlug.TENANT)
    response = await client.get(
        f"/api/reports/{report.id}", headers=auth_headers(stranger)
    )
    assert response.status_code == 403


async def test_pending_report_can_be_withdrawn(client, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    response = await client.delete(
        f"/api/reports/{report.id}", headers=auth_headers(cast["tenant"])
    )
    assert response.status_code == 200

    response = await client.get(
        f"/api/reports/{report.id}", headers=auth_headers(cast["tenant"])
    )
    assert response.status_code == 404


async def test_blank_title_is_rejected(client, cast):
    response = await client.post(
        "/api/reports",
        json={
            "property_id": str(cast["property"].id),
            "title": "   ",
            "description": "x",
            "category": "other",
        },
        headers=auth_headers(cast["tenant"]),
    )
    assert response.status_code == 422


# ----- Attachments -----


async def test_upload_and_download_through_signed_url(client, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    response = await client.post(
        f"/api/reports/{report.id}/attachments",
        files={"file": ("leak.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
        headers=auth_headers(cast["tenant"]),
    )
    assert response.status_code == 200
    attachment = response.json()["data"]
    assert attachment["file_type"] == "image"
    assert attachment["file_size"] == len(b"\xff\xd8jpeg-bytes")
    assert attachment["file_path"].startswith(f"{report.id}/")

    response = await client.get(attachment["url"])
    assert response.status_code == 200
    assert response.content == b"\xff\xd8jpeg-bytes"


async def test_non_media_upload_is_rejected(client, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    response = await client.post(
        f"/api/reports/{report.id}/attachments",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(cast["tenant"]),
    )
    assert response.status_code == 422


async def test_tampered_file_link_is_not_found(client):
    response = await client.get("/api/files/not-a-token")
    assert response.status_code == 404


async def test_stalled_blob_store_times_out_and_keeps_earlier_uploads(
    client, world, cast, storage, monkeypatch
):
    report = await world.report(cast["tenant"], cast["property"].id)
    tenant = auth_headers(cast["tenant"])
    response = await client.post(
        f"/api/reports/{report.id}/attachments",
        files={"file": ("before.jpg", b"\xff\xd8first", "image/jpeg")},
        headers=tenant,
    )
    assert response.status_code == 200

    def stalled_upload(data, path):
        time.sleep(1)
        return path

    with monkeypatch.context() as m:
        m.setattr(settings, "upstream_timeout_seconds", 0.2)
        m.setattr(storage, "upload", stalled_upload)
        response = await client.post(
            f"/api/reports/{report.id}/attachments",
            files={"file": ("after.jpg", b"\xff\xd8second", "image/jpeg")},
            headers=tenant,
        )
    assert response.status_code == 504
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert "upload attachment" in body["message"]

    response = await client.get(f"/api/reports/{report.id}", headers=tenant)
    assert response.status_code == 200
    attachments = response.json()["data"]["attachments"]
    assert [a["file_name"] for a in attachments] == ["before.jpg"]


async def test_failed_attachment_record_removes_the_uploaded_blob(
    client, world, cast, storage, monkeypatch
):
    report = await world.report(cast["tenant"], cast["property"].id)

    async def failing_record(db, **kwargs):
        raise UpstreamTimeout("record attachment", 5)

    monkeypatch.setattr(report_crud, "create_attachment", failing_record)
    response = await client.post(
        f"/api/reports/{report.id}/attachments",
        files={"file": ("leak.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
        headers=auth_headers(cast["tenant"]),
    )
    assert response.status_code == 504

    report_dir = storage.root / str(report.id)
    assert not report_dir.exists() or list(report_dir.iterdir()) == []


# ----- Directory -----


async def test_landlords_only_list_their_own_properties(client, world, cast):
    other = await world.actor(RoleSlug.LANDLORD)
    await world.property(other, name="Pine Lodge")

    response = await client.get(
        "/api/properties", headers=auth_headers(cast["landlord"])
    )
    assert [p["name"] for p in response.json()["data"]["items"]] == ["Elm Court"]

    response = await client.get("/api/properties", headers=auth_headers(cast["tenant"]))
    assert response.json()["data"]["total"] == 2


async def test_helpdesk_manages_the_contractor_directory(client, cast):
    helpdesk = auth_headers(cast["helpdesk"])
    response = await client.post(
        "/api/contractors",
        json={"full_name": "Ann Electric", "email": "ANN@example.com"},
        headers=helpdesk,
    )
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "ann@example.com"

    response = await client.get("/api/contractors", headers=helpdesk)
    names = [c["full_name"] for c in response.json()["data"]]
    assert names == sorted(names)
    assert "Ann Electric" in names


# ----- Realtime -----


@pytest.mark.parametrize("query", ["", "?token=garbage"])
def test_notification_socket_requires_a_valid_token(query):
    async def no_db():
        yield None

    app.dependency_overrides[get_db] = no_db
    try:
        client = TestClient(app)
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/api/notifications/ws{query}"):
                pass
        assert exc.value.code == 4401
    finally:
        app.dependency_overrides.clear()


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_only_helpdesk_reopens_jobs(client, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    response = await client.post(
        f"/api/reports/{report.id}/assign",
        json={"contractor_id": str(cast["contractor"].contractor_id)},
        headers=auth_headers(cast["landlord"]),
    )
    assignment_id = response.json()["data"]["id"]

    response = await client.post(
        f"/api/assignments/{assignment_id}/reopen",
        headers=auth_headers(cast["landlord"]),
    )
    assert response.status_code == 403

    response = await client.post(
        f"/api/assignments/{assignment_id}/reopen",
        headers=auth_headers(cast["helpdesk"]),
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"
    assert response.json()["data"]["contractor_id"] is None
