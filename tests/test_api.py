"""
Tests for the FastAPI boundary (`api/main.py`, `api/routers/*`).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api import __version__
from api.main import app

T0 = datetime(2025, 6, 2, 15, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(fake_db):
    return TestClient(app)


@pytest.fixture
def portal_id(fake_db):
    return fake_db.add_portal(industry="insurance")


@pytest.fixture
def agency_ids(fake_db):
    return [
        fake_db.add_agency(T0 - timedelta(days=2), name="A"),
        fake_db.add_agency(T0 - timedelta(days=1), name="B"),
    ]


def _submit(client, portal_id, **payload):
    body = {"name": "Jane Doe", "email": f"{uuid4().hex}@example.com", "zip": "75001"}
    body.update(payload)
    return client.post(f"/api/v1/portals/{portal_id}/leads", json=body)


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["version"] == __version__


def test_submit_lead_assigns_round_robin(client, portal_id, agency_ids) -> None:
    first = _submit(client, portal_id)
    second = _submit(client, portal_id)

    assert first.status_code == 201
    assert first.json()["outcome"] == "assigned_to_agency"
    assert first.json()["assigned_agency_id"] == str(agency_ids[0])
    assert second.json()["assigned_agency_id"] == str(agency_ids[1])


def test_submit_lead_unknown_portal(client) -> None:
    response = _submit(client, uuid4())

    assert response.status_code == 404


def test_submit_lead_portal_lookup_unavailable(client, fake_db, portal_id) -> None:
    fake_db.fail_on("portals")

    response = _submit(client, portal_id)

    assert response.status_code == 503


def test_submit_invalid_lead(client, portal_id) -> None:
    response = client.post(f"/api/v1/portals/{portal_id}/leads", json={"name": "No contact"})

    assert response.status_code == 400
    assert "Either email or phone number is required" in response.json()["detail"]


def test_submit_duplicate_lead(client, portal_id, agency_ids) -> None:
    _submit(client, portal_id, email="dup@example.com")

    response = _submit(client, portal_id, email="dup@example.com")

    assert response.status_code == 409


def test_exclusive_lead_view_and_purchase(client, portal_id, agency_ids) -> None:
    submitted = _submit(client, portal_id, mobile_exclusive=True).json()
    distribution_id = submitted["distribution_id"]
    agency = agency_ids[0]

    viewed = client.post(f"/api/v1/distributions/{distribution_id}/assignments/{agency}/view")
    purchased = client.post(
        f"/api/v1/distributions/{distribution_id}/assignments/{agency}/resolve",
        json={"action": "purchased"},
    )
    again = client.post(
        f"/api/v1/distributions/{distribution_id}/assignments/{agency}/resolve",
        json={"action": "dismissed"},
    )
    detail = client.get(f"/api/v1/distributions/{distribution_id}").json()

    assert viewed.status_code == 200
    assert viewed.json()["status"] == "viewed"
    assert purchased.json()["status"] == "purchased"
    assert again.status_code == 409
    assert detail["is_exclusive"] is True
    assert detail["view_count"] == 1
    assert {a["status"] for a in detail["assignments"]} == {"purchased", "assigned"}


def test_resolve_rejects_unknown_action(client, portal_id, agency_ids) -> None:
    submitted = _submit(client, portal_id, mobile_exclusive=True).json()

    response = client.post(
        f"/api/v1/distributions/{submitted['distribution_id']}/assignments/{agency_ids[0]}/resolve",
        json={"action": "expired"},
    )

    assert response.status_code == 422


def test_view_after_window_is_gone(client, fake_db, portal_id, agency_ids) -> None:
    submitted = _submit(client, portal_id, mobile_exclusive=True).json()
    distribution_id = submitted["distribution_id"]
    # Move the whole window into the past.
    current = datetime.now(timezone.utc)
    past = (current - timedelta(hours=1)).isoformat()
    record = fake_db.find("distribution_records", {"distribution_id": distribution_id})
    record["created_at"] = (current - timedelta(hours=25)).isoformat()
    record["available_until"] = past
    for row in fake_db.rows("lead_assignments"):
        row["assigned_at"] = record["created_at"]
        row["expires_at"] = past

    response = client.post(f"/api/v1/distributions/{distribution_id}/assignments/{agency_ids[0]}/view")

    assert response.status_code == 410
    detail = client.get(f"/api/v1/distributions/{distribution_id}").json()
    assert {a["status"] for a in detail["assignments"]} == {"expired"}


def test_unknown_distribution(client) -> None:
    response = client.get(f"/api/v1/distributions/{uuid4()}")

    assert response.status_code == 404


def test_distribution_stats(client, portal_id, agency_ids) -> None:
    for _ in range(3):
        _submit(client, portal_id)

    stats = client.get("/api/v1/distribution/stats").json()

    assert stats["total_assignments"] == 3
    counts = {a["agency_id"]: a["assignment_count"] for a in stats["agencies"]}
    assert counts == {str(agency_ids[0]): 2, str(agency_ids[1]): 1}
    assert stats["cursors"] == [
        {"scope": "insurance", "position": 1, "updated_at": stats["cursors"][0]["updated_at"]}
    ]

    scoped = client.get("/api/v1/distribution/stats", params={"scope": "solar"}).json()
    assert scoped["cursors"][0]["position"] == 0


def test_lead_distribution_lookup(client, portal_id, agency_ids) -> None:
    submitted = _submit(client, portal_id).json()

    found = client.get(f"/api/v1/leads/{submitted['lead_id']}/distribution")
    missing = client.get(f"/api/v1/leads/{uuid4()}/distribution")

    assert found.status_code == 200
    assert found.json()["distribution_id"] == submitted["distribution_id"]
    assert found.json()["is_exclusive"] is False
    assert missing.status_code == 404


def test_agency_assignments(client, portal_id, agency_ids) -> None:
    for _ in range(3):
        _submit(client, portal_id)

    everything = client.get(f"/api/v1/agencies/{agency_ids[0]}/assignments").json()
    open_only = client.get(
        f"/api/v1/agencies/{agency_ids[0]}/assignments", params={"status": ["assigned", "viewed"]}
    ).json()
    purchased = client.get(
        f"/api/v1/agencies/{agency_ids[0]}/assignments", params={"status": "purchased"}
    ).json()
    bad = client.get(f"/api/v1/agencies/{agency_ids[0]}/assignments", params={"status": "nope"})

    assert len(everything) == 2
    assert {a["agency_id"] for a in everything} == {str(agency_ids[0])}
    assert len(open_only) == 2
    assert purchased == []
    assert bad.status_code == 400


def test_distribution_stats_past_response_cap(client, fake_db, portal_id, agency_ids) -> None:
    for _ in range(5):
        _submit(client, portal_id)
    fake_db.max_rows = 2

    stats = client.get("/api/v1/distribution/stats").json()

    assert stats["total_assignments"] == 5
    counts = {a["agency_id"]: a["assignment_count"] for a in stats["agencies"]}
    assert counts == {str(agency_ids[0]): 3, str(agency_ids[1]): 2}


def test_openapi_carries_model_examples(client) -> None:
    schemas = client.get("/openapi.json").json()["components"]["schemas"]

    assert schemas["ResolveRequest"]["example"] == {"action": "purchased"}
    assert schemas["IngestionResponse"]["example"]["outcome"] == "assigned_to_agency"
