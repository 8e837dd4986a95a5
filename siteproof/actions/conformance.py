"""Conformance record actions.

A record links a lot to one ITP item. The item must belong to the record's
template, and that template must be actively assigned to the lot.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.lots import load_lot
from siteproof.actions.progress import ConformanceStats, refresh_assignment_status, refresh_lot_status, tally
from siteproof.actions.result import ActionError, ActionResult, NotFoundError, action, actor, parse
from siteproof.db import repository
from siteproof.db.models import ConformanceRecordModel, ITPItemModel, LotITPTemplateModel, utcnow
from siteproof.models import ConformanceSave, ConformanceStatus

logger = structlog.get_logger()


def conformance_stats(records: Iterable[ConformanceRecordModel | Mapping[str, Any]]) -> ConformanceStats:
    """Totals by status for a list of records (ORM rows or dicts)."""
    return tally(
        r["status"] if isinstance(r, Mapping) else r.status
        for r in records
    )


@action("conformance_save")
async def save_conformance_record(
    session: AsyncSession,
    payload: Mapping[str, Any],
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    """Insert or update the record for (lot, item), then roll progress up.

    The template and project are derived from the item and lot; a supplied
    ``itpTemplateId`` must agree with the item's template.
    """
    data = parse(ConformanceSave, payload)
    lot = await load_lot(session, data.lot_id)

    item = await repository.get_by_id(session, ITPItemModel, data.itp_item_id)
    if item is None:
        raise NotFoundError("ITP item not found")
    if data.itp_template_id is not None and data.itp_template_id != item.itp_template_id:
        raise ActionError("ITP item does not belong to the given template")

    assignment = await repository.select_one(
        session,
        LotITPTemplateModel,
        {"lot_id": lot.id, "itp_template_id": item.itp_template_id, "is_active": True},
    )
    if assignment is None:
        raise ActionError("ITP template is not assigned to this lot")

    values = {
        "project_id": lot.project_id,
        "itp_template_id": item.itp_template_id,
        "status": data.status,
        "result_numeric": data.result_numeric,
        "result_text": data.result_text,
        "notes": data.notes,
        "corrective_action": data.corrective_action,
        "photo_url": data.photo_url,
        "is_non_conformance": data.status == ConformanceStatus.FAIL.value,
        "checked_by": actor(user),
        "checked_at": utcnow(),
    }
    record = await repository.select_one(
        session, ConformanceRecordModel, {"lot_id": lot.id, "itp_item_id": item.id}
    )
    if record is None:
        record = await repository.insert_row(
            session, ConformanceRecordModel, {"lot_id": lot.id, "itp_item_id": item.id, **values}
        )
    else:
        repository.apply_changes(record, values)
        await session.flush()

    await refresh_assignment_status(session, assignment)
    await refresh_lot_status(session, lot)

    logger.info(
        "conformance_saved",
        lot_id=str(lot.id),
        itp_item_id=str(item.id),
        status=record.status,
        non_conformance=record.is_non_conformance,
    )
    return ActionResult.ok(
        {
            **repository.row_to_dict(record),
            "itp_status": assignment.status,
            "lot_status": lot.status,
        },
        message="Inspection saved successfully",
    )


@action("conformance_list")
async def list_conformance_records(session: AsyncSession, lot_id: UUID) -> ActionResult:
    lot = await load_lot(session, lot_id)
    records = await repository.select_rows(
        session, ConformanceRecordModel, {"lot_id": lot.id}, order_by="checked_at"
    )
    return ActionResult.ok(
        {
            "records": [repository.row_to_dict(r) for r in records],
            "stats": conformance_stats(records).to_dict(),
        }
    )
