"""Integration tests for conformance records and the status roll-up they drive."""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions import conformance as conformance_actions
from siteproof.actions import itp_templates as template_actions
from siteproof.actions import itps as itp_actions
from siteproof.actions import lots as lot_actions
from siteproof.db import repository
from siteproof.db.models import ConformanceRecordModel, LotITPTemplateModel, LotModel


@pytest.fixture
def save(db_session: AsyncSession, test_user):
    async def _save(lot: dict, item: dict, status: str, **extra):
        return await conformance_actions.save_conformance_record(
            db_session,
            {"lotId": lot["id"], "itpItemId": item["id"], "status": status, **extra},
            test_user,
        )

    return _save


class TestSaveConformanceRecord:
    @pytest.mark.asyncio
    async def test_derives_template_and_project(self, db_session, project, lot, template, save, test_user):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))

        result = await save(lot, template["items"][0], "pass", comments="Dimensions OK")

        assert result.success is True
        assert result.message == "Inspection saved successfully"
        assert result.data["itp_template_id"] == template["id"]
        assert result.data["project_id"] == project["id"]
        assert result.data["notes"] == "Dimensions OK"
        assert result.data["checked_by"] == test_user["user_id"]
        assert result.data["is_non_conformance"] is False
        assert result.data["itp_status"] == "in_progress"
        assert result.data["lot_status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_upsert_on_lot_and_item(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        item = template["items"][0]

        first = await save(lot, item, "fail", correctiveAction="Re-form edge")
        second = await save(lot, item, "pass")

        assert second.data["id"] == first.data["id"]
        assert first.data["is_non_conformance"] is True
        assert second.data["is_non_conformance"] is False
        assert await repository.count_rows(db_session, ConformanceRecordModel) == 1

    @pytest.mark.asyncio
    async def test_all_items_checked_completes_itp_and_lot(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        items = template["items"]

        await save(lot, items[0], "pass")
        await save(lot, items[1], "na")
        result = await save(lot, items[2], "fail", resultText="Slump 140mm")

        assert result.data["itp_status"] == "completed"
        assert result.data["lot_status"] == "completed"
        assignment = await repository.select_one(
            db_session, LotITPTemplateModel, {"lot_id": UUID(lot["id"])}
        )
        assert assignment.completed_at is not None

    @pytest.mark.asyncio
    async def test_reverting_to_pending_reopens(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        for item in template["items"]:
            await save(lot, item, "pass")

        result = await save(lot, template["items"][0], "pending")

        assert result.data["itp_status"] == "in_progress"
        assert result.data["lot_status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_approved_lot_is_not_recomputed(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        stored = await repository.get_by_id(db_session, LotModel, UUID(lot["id"]))
        stored.status = "approved"

        result = await save(lot, template["items"][0], "pass")

        assert result.data["lot_status"] == "approved"

    @pytest.mark.asyncio
    async def test_one_template_done_other_pending(self, db_session, lot, template, save):
        other = await template_actions.create_template(
            db_session, {"name": "Backfill", "items": [{"description": "Compaction"}]}
        )
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(other.data["id"]))

        result = await save(lot, other.data["items"][0], "pass")

        assert result.data["itp_status"] == "completed"
        assert result.data["lot_status"] == "in_progress"


class TestSaveRejections:
    """Records must reference an item whose template is actively assigned to the lot."""

    @pytest.mark.asyncio
    async def test_missing_ids(self, db_session: AsyncSession):
        result = await conformance_actions.save_conformance_record(db_session, {"status": "pass"})

        assert result.success is False
        assert result.error == "Lot ID and ITP item ID are required"

    @pytest.mark.asyncio
    async def test_unknown_item(self, db_session, lot, save):
        result = await save(lot, {"id": str(uuid4())}, "pass")

        assert result.success is False
        assert result.code == "not_found"
        assert result.error == "ITP item not found"

    @pytest.mark.asyncio
    async def test_template_not_assigned(self, db_session, lot, template, save):
        result = await save(lot, template["items"][0], "pass")

        assert result.success is False
        assert result.error == "ITP template is not assigned to this lot"
        assert await repository.count_rows(db_session, ConformanceRecordModel) == 0

    @pytest.mark.asyncio
    async def test_removed_template_rejected(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        await lot_actions.remove_itp_from_lot(db_session, UUID(lot["id"]), UUID(template["id"]))

        result = await save(lot, template["items"][0], "pass")

        assert result.error == "ITP template is not assigned to this lot"

    @pytest.mark.asyncio
    async def test_item_template_mismatch(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))

        result = await save(lot, template["items"][0], "pass", itpTemplateId=str(uuid4()))

        assert result.success is False
        assert result.error == "ITP item does not belong to the given template"

    @pytest.mark.asyncio
    async def test_invalid_status(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))

        result = await save(lot, template["items"][0], "maybe")

        assert result.success is False
        assert result.error.startswith("Invalid status")


class TestListConformance:
    @pytest.mark.asyncio
    async def test_records_and_stats(self, db_session, lot, template, save):
        await lot_actions.assign_itp_to_lot(db_session, UUID(lot["id"]), UUID(template["id"]))
        await save(lot, template["items"][0], "pass")
        await save(lot, template["items"][1], "fail")

        result = await conformance_actions.list_conformance_records(db_session, UUID(lot["id"]))

        assert len(result.data["records"]) == 2
        assert result.data["stats"]["passed"] == 1
        assert result.data["stats"]["failed"] == 1

    @pytest.mark.asyncio
    async def test_itp_detail_sees_records(self, db_session, lot, template, save):
        created = await itp_actions.create_itp_from_template(
            db_session, {"templateId": template["id"], "lotId": lot["id"]}
        )
        await save(lot, template["items"][0], "na")

        result = await itp_actions.get_itp(db_session, UUID(created.data["id"]))

        assert result.data["stats"]["na"] == 1
        assert result.data["stats"]["pending"] == 2
        assert [r["status"] for r in result.data["conformance_records"]] == ["na"]
