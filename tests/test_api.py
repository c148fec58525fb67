from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from conftest import form_payload
from core.db import StorageError
from core.settings import Settings
from main import create_app
from submissions.dependencies import get_store


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sqlite_path=str(tmp_path / "intake.db"),
        fallback_json_path=str(tmp_path / "fallback.json"),
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def _submit(client, **overrides) -> str:
    resp = client.post("/api/submit", json=form_payload(**overrides))
    assert resp.status_code == 200, resp.text
    return resp.json()["submissionId"]


def test_submit_then_fetch(client):
    payload = {
        "distributorName": "Acme",
        "installDate": "2025-01-10",
        "neededByDate": "2025-01-05",
        "rsm": "J. Doe",
        "acknowledgment": True,
        "nexusQuantity": 2,
    }
    resp = client.post("/api/submit", json=payload)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["submissionId"]

    resp = client.get(f"/api/submissions/{body['submissionId']}")
    assert resp.status_code == 200
    submission = resp.json()["submission"]
    assert submission["id"] == body["submissionId"]
    assert submission["status"] == "pending"
    assert submission["nexus_quantity"] == 2
    assert submission["sensor_power_unit_quantity"] == 0
    assert submission["acknowledgment"] is True


def test_submit_missing_fields(client):
    resp = client.post("/api/submit", json={"distributorName": "Acme"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Missing required fields: installDate, neededByDate, rsm, acknowledgment"


def test_submit_negative_quantity(client):
    resp = client.post("/api/submit", json=form_payload(type2SensorQuantity=-4))
    assert resp.status_code == 400
    assert "type2SensorQuantity" in resp.json()["error"]


def test_submit_unreadable_body(client):
    resp = client.post(
        "/api/submit",
        content="{not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_unknown_submission_is_404(client):
    resp = client.get("/api/submissions/unknown-id")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Submission not found"}


def test_invalid_status_names_valid_set(client):
    submission_id = _submit(client)
    resp = client.put(f"/api/submissions/{submission_id}/status", json={"status": "maybe"})
    assert resp.status_code == 400
    assert "pending, approved, rejected" in resp.json()["error"]

    resp = client.put(f"/api/submissions/{submission_id}/status", json={})
    assert resp.status_code == 400


def test_update_status(client):
    submission_id = _submit(client)
    resp = client.put(f"/api/submissions/{submission_id}/status", json={"status": "approved"})
    assert resp.status_code == 200
    submission = resp.json()["submission"]
    assert submission["status"] == "approved"
    assert submission["status_updated"] > submission["timestamp"]

    again = client.get(f"/api/submissions/{submission_id}").json()["submission"]
    assert again == submission


def test_update_status_unknown_id_is_404(client):
    resp = client.put("/api/submissions/unknown-id/status", json={"status": "approved"})
    assert resp.status_code == 404


def test_list_filter_and_stats(client):
    first = _submit(client, distributorName="First")
    second = _submit(client, distributorName="Second")
    third = _submit(client, distributorName="Third")
    client.put(f"/api/submissions/{second}/status", json={"status": "rejected"})

    rows = client.get("/api/submissions").json()["submissions"]
    assert [r["id"] for r in rows] == [third, second, first]

    pending = client.get("/api/submissions", params={"status": "pending"}).json()["submissions"]
    assert [r["id"] for r in pending] == [third, first]

    resp = client.get("/api/submissions", params={"status": "maybe"})
    assert resp.status_code == 400

    stats = client.get("/api/submissions/stats").json()["stats"]
    assert stats == {"total": 3, "pending": 2, "approved": 0, "rejected": 1}


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "OK"
    assert body["timestamp"]
    assert body["database"] == "sqlite"


def test_fallback_mode_serves_requests(tmp_path):
    settings = Settings(
        sqlite_path=str(tmp_path / "missing-dir" / "intake.db"),
        fallback_json_path=str(tmp_path / "fallback.json"),
    )
    with TestClient(create_app(settings)) as client:
        assert client.get("/health").json()["database"] == "fallback"

        submission_id = _submit(client)
        resp = client.put(f"/api/submissions/{submission_id}/status", json={"status": "approved"})
        assert resp.json()["submission"]["status"] == "approved"

    saved = json.loads((tmp_path / "fallback.json").read_text())
    assert [r["id"] for r in saved] == [submission_id]
    assert saved[0]["status"] == "approved"
    assert saved[0]["nexus_quantity"] == 2


class _BrokenStore:
    async def get_all(self):
        raise StorageError("disk I/O error")


def test_storage_failure_is_generic_500(settings):
    app = create_app(settings)
    app.dependency_overrides[get_store] = lambda: _BrokenStore()
    with TestClient(app) as client:
        resp = client.get("/api/submissions")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error"}


@pytest.mark.parametrize("quantity", [3_000_000_000, 2**63])
def test_submit_oversized_quantity(client, quantity):
    resp = client.post("/api/submit", json=form_payload(nexusQuantity=quantity))
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "nexusQuantity" in body["error"]
    assert client.get("/api/submissions").json()["submissions"] == []


def test_non_string_status_names_valid_set(client):
    submission_id = _submit(client)
    resp = client.put(f"/api/submissions/{submission_id}/status", json={"status": 5})
    assert resp.status_code == 400
    assert "pending, approved, rejected" in resp.json()["error"]


def test_corrupt_fallback_file_is_json_500(tmp_path):
    (tmp_path / "fallback.json").write_text("[1]")
    settings = Settings(
        sqlite_path=str(tmp_path / "missing-dir" / "intake.db"),
        fallback_json_path=str(tmp_path / "fallback.json"),
    )
    with TestClient(create_app(settings)) as client:
        resp = client.get("/api/submissions")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error"}


class _BuggyStore:
    async def get_all(self):
        raise KeyError("distributor_name")


def test_unexpected_error_is_json_500(settings):
    app = create_app(settings)
    app.dependency_overrides[get_store] = lambda: _BuggyStore()
    # The server error middleware re-raises after responding; keep the response.
    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.get("/api/submissions")
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {"success": False, "error": "Internal server error"}
