"""End-to-end workflow through the full application.

Runs the real app (lifespan, middleware, error handlers) against a file-backed
SQLite database: sign up, create a project and lot, build a template, assign
it, record inspections, and watch the lot status roll up.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from siteproof.config import reset_config
from siteproof.db import connection

PASSWORD = "correct-horse"


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Logged-out client for the real app on a fresh database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'siteproof.db'}")
    monkeypatch.setattr(connection, "_engine", None)
    monkeypatch.setattr(connection, "_session_factory", None)
    reset_config()

    from siteproof.web.app import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def signed_in(client):
    response = client.post("/api/auth/signup", json={"email": "qa@example.com", "password": PASSWORD})
    assert response.status_code == 200
    return client


def ok(response) -> dict | list | None:
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    return body.get("data")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "connected"}
    assert "X-Request-ID" in response.headers


def test_api_requires_login(client):
    response = client.get("/api/projects")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Authentication required"}


def test_pages_redirect_to_login(client):
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_login_after_logout(signed_in):
    signed_in.post("/api/auth/logout")
    assert signed_in.get("/api/auth/me").status_code == 401

    bad = signed_in.post("/api/auth/login", json={"email": "qa@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401

    good = signed_in.post("/api/auth/login", json={"email": "QA@example.com", "password": PASSWORD})
    ok(good)
    assert ok(signed_in.get("/api/auth/me"))["email"] == "qa@example.com"


def test_inspection_workflow(signed_in):
    client = signed_in
    project = ok(client.post("/api/projects", json={"name": "Harbour Bridge", "projectNumber": "HB-01"}))
    template = ok(
        client.post(
            "/api/itp-templates",
            json={
                "name": "Concrete Pour",
                "category": "Concrete",
                "items": [
                    {"description": "Formwork checked"},
                    {"description": "Slump test", "itemType": "numeric"},
                ],
            },
        )
    )
    lot = ok(client.post("/api/lots", data={"projectId": project["id"], "lotNumber": "L-001"}))
    assert lot["status"] == "pending"

    ok(client.post(f"/api/lots/{lot['id']}/itps", json={"itpTemplateId": template["id"]}))
    first, second = template["items"]

    saved = ok(
        client.post(
            "/api/conformance/save",
            json={"lotId": lot["id"], "itpItemId": first["id"], "status": "pass"},
        )
    )
    assert saved["lot_status"] == "in_progress"

    overview = ok(client.get(f"/api/itps/overview?lot_id={lot['id']}"))
    assert [(row["lot_number"], row["completed"], row["total_items"]) for row in overview] == [("L-001", 1, 2)]
    assert overview[0]["lot_status"] == "in_progress"
    assert [row["lot_number"] for row in ok(client.get("/api/itps/overview?status=IN_PROGRESS"))] == ["L-001"]

    saved = ok(
        client.post(
            "/api/conformance/save",
            json={"lotId": lot["id"], "itpItemId": second["id"], "status": "pass", "resultNumeric": "80"},
        )
    )
    assert saved["lot_status"] == "completed"
    assert ok(client.get(f"/api/lots/{lot['id']}"))["status"] == "completed"

    page = client.get(f"/project/{project['id']}/lot/{lot['id']}")
    assert page.status_code == 200
    assert "Formwork checked" in page.text
    assert 'id="lot-status">Completed' in page.text

    assert "L-001" in client.get(f"/project/{project['id']}").text
    assert "Harbour Bridge" in client.get("/").text


def test_listing_is_stable(signed_in):
    ok(signed_in.post("/api/projects", json={"name": "Harbour Bridge"}))
    ok(signed_in.post("/api/projects", json={"name": "Rail Spur"}))

    first = ok(signed_in.get("/api/projects"))
    second = ok(signed_in.get("/api/projects"))

    assert first == second
    assert {p["name"] for p in first} == {"Harbour Bridge", "Rail Spur"}


def test_unknown_lot_is_404(signed_in):
    response = signed_in.get("/api/lots/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_invalid_id_uses_error_envelope(signed_in):
    response = signed_in.get("/api/lots/L-001")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid lot ID format"}


def test_unknown_overview_status_is_400(signed_in):
    response = signed_in.get("/api/itps/overview?status=bogus")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid status filter: bogus"}
