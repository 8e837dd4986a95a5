"""Tests for the ITP, ITP template and conformance routes."""

from unittest.mock import AsyncMock, patch
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from siteproof.actions.result import ActionResult
from siteproof.web.auth import require_user
from siteproof.web.routes import conformance, itp_templates, itps

PROJECT_ID = "aaaaaaaa-0000-0000-0000-000000000001"
LOT_ID = "bbbbbbbb-0000-0000-0000-000000000001"
ITP_ID = "dddddddd-0000-0000-0000-000000000001"


@pytest.fixture
def app(test_user):
    test_app = FastAPI()
    test_app.include_router(itps.router)
    test_app.include_router(itp_templates.router)
    test_app.include_router(conformance.router)
    test_app.dependency_overrides[require_user] = lambda: test_user
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestOverview:
    @patch("siteproof.web.routes.itps.itp_actions.itp_overview", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itps.get_session")
    def test_overview_is_not_an_itp_id(self, mock_get_session, mock_overview, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_overview.return_value = ActionResult.ok([])

        response = client.get("/api/itps/overview")

        assert response.status_code == 200
        assert mock_overview.await_args.kwargs == {"project_id": None, "lot_id": None, "status": None}

    @patch("siteproof.web.routes.itps.itp_actions.itp_overview", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itps.get_session")
    def test_filters(self, mock_get_session, mock_overview, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_overview.return_value = ActionResult.ok([])

        client.get(f"/api/itps/overview?project_id={PROJECT_ID}&lot_id={LOT_ID}&status=completed")

        assert mock_overview.await_args.kwargs == {
            "project_id": UUID(PROJECT_ID),
            "lot_id": UUID(LOT_ID),
            "status": "completed",
        }

    @patch("siteproof.web.routes.itps.itp_actions.itp_overview", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itps.get_session")
    def test_unknown_status_is_400(self, mock_get_session, mock_overview, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_overview.return_value = ActionResult.fail("Invalid status filter: bogus")

        response = client.get("/api/itps/overview?status=bogus")

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid status filter: bogus"}
        assert mock_overview.await_args.kwargs["status"] == "bogus"

    def test_bad_filter_id(self, client):
        response = client.get("/api/itps/overview?lot_id=L-001")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid lot ID format"


class TestItpRoutes:
    @patch("siteproof.web.routes.itps.itp_actions.create_itp_from_template", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itps.get_session")
    def test_create_from_template(self, mock_get_session, mock_create, client, mock_db_session, test_user):
        mock_get_session.return_value = mock_db_session
        mock_create.return_value = ActionResult.ok({"id": ITP_ID, "status": "pending"})

        response = client.post("/api/itps/create-from-template", json={"templateId": "x", "lotId": LOT_ID})

        assert response.status_code == 200
        assert mock_create.await_args.args[1:] == ({"templateId": "x", "lotId": LOT_ID}, test_user)

    def test_get_invalid_id(self, client):
        response = client.get("/api/itps/itp-1")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid ITP ID format"

    @patch("siteproof.web.routes.itps.itp_actions.update_itp", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itps.get_session")
    def test_update_rejected_transition(self, mock_get_session, mock_update, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_update.return_value = ActionResult.fail("Approved ITPs cannot be modified")

        response = client.patch(f"/api/itps/{ITP_ID}", json={"status": "pending"})

        assert response.status_code == 400
        assert mock_update.await_args.args[1:] == (UUID(ITP_ID), {"status": "pending"})

    @patch("siteproof.web.routes.itps.itp_actions.delete_itp", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itps.get_session")
    def test_delete_missing(self, mock_get_session, mock_delete, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_delete.return_value = ActionResult.fail("ITP not found", code="not_found")

        response = client.delete(f"/api/itps/{ITP_ID}")

        assert response.status_code == 404


class TestTemplateRoutes:
    @patch("siteproof.web.routes.itp_templates.template_actions.list_templates", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itp_templates.get_session")
    def test_list_include_inactive(self, mock_get_session, mock_list, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_list.return_value = ActionResult.ok([])

        client.get("/api/itp-templates?include_inactive=true")

        assert mock_list.await_args.kwargs == {"include_inactive": True}

    @patch("siteproof.web.routes.itp_templates.template_actions.import_templates", new_callable=AsyncMock)
    @patch("siteproof.web.routes.itp_templates.get_session")
    def test_import_passes_template_list(self, mock_get_session, mock_import, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_import.return_value = ActionResult.ok({"created": 1, "errors": []})
        templates = [{"name": "Earthworks", "items": [{"description": "Proof roll"}]}]

        response = client.post("/api/itp-templates/import", json={"templates": templates})

        assert response.status_code == 200
        assert mock_import.await_args.args[1] == templates

    def test_items_invalid_id(self, client):
        response = client.get("/api/itp-templates/pour/items")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid template ID format"


class TestConformanceRoute:
    @patch("siteproof.web.routes.conformance.conformance_actions.save_conformance_record", new_callable=AsyncMock)
    @patch("siteproof.web.routes.conformance.get_session")
    def test_save(self, mock_get_session, mock_save, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_save.return_value = ActionResult.ok({"id": "r1", "lot_status": "in_progress"})
        body = {"lotId": LOT_ID, "itemId": "i1", "status": "pass"}

        response = client.post("/api/conformance/save", json=body)

        assert response.status_code == 200
        assert response.json()["data"]["lot_status"] == "in_progress"
        assert mock_save.await_args.args[1] == body

    def test_save_rejects_non_object_body(self, client):
        response = client.post("/api/conformance/save", json=["pass"])

        assert response.status_code == 400
        assert response.json()["detail"] == "Request body must be a JSON object"
