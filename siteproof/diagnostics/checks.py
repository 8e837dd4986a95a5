"""Read-only diagnostic checks for connectivity, lot wiring and FK integrity.

Internal error text is returned verbatim; the routes exposing these are
only mounted outside production or when ENABLE_DIAGNOSTICS is set.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import and_, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from siteproof.config import get_config
from siteproof.db import repository
from siteproof.db.models import (
    ConformanceRecordModel,
    ITPItemModel,
    ITPTemplateModel,
    LotITPTemplateModel,
    LotModel,
)


async def existing_tables(session: AsyncSession) -> set[str]:
    connection = await session.connection()
    names = await connection.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    return set(names)


async def connection_report(session: AsyncSession) -> dict[str, Any]:
    """Config presence (never values) plus reachability and row count per table."""
    config = get_config()
    report: dict[str, Any] = {
        "config": {
            "database_url": bool(config.db.url),
            "database_dialect": config.db.url.split(":", 1)[0],
            "redis": bool(config.auth.redis_url),
            "environment": config.environment,
        },
        "tables": {},
    }

    try:
        present = await existing_tables(session)
    except SQLAlchemyError as exc:
        report["connected"] = False
        report["error"] = str(exc)
        return report

    report["connected"] = True
    for name in repository.TABLES:
        if name not in present:
            report["tables"][name] = {"exists": False}
            continue
        report["tables"][name] = {
            "exists": True,
            "row_count": await repository.count_rows(session, name),
        }
    report["missing_tables"] = sorted(set(repository.TABLES) - present)
    return report


async def lot_report(session: AsyncSession, lot_id: UUID) -> dict[str, Any]:
    """Everything that decides which ITPs a lot shows."""
    lot = await repository.get_by_id(session, LotModel, lot_id)
    junction = await repository.select_rows(
        session, LotITPTemplateModel, {"lot_id": lot_id}, order_by="assigned_at"
    )
    active = [row for row in junction if row.is_active]

    templates = []
    missing_templates = []
    for row in active:
        template = await repository.get_by_id(session, ITPTemplateModel, row.itp_template_id)
        if template is None:
            missing_templates.append(str(row.itp_template_id))
            continue
        item_count = await repository.count_rows(session, ITPItemModel, {"itp_template_id": template.id})
        templates.append({**repository.row_to_dict(template), "item_count": item_count})

    return {
        "lot": repository.row_to_dict(lot) if lot else None,
        "junction_rows": [repository.row_to_dict(row) for row in junction],
        "active_rows": [repository.row_to_dict(row) for row in active],
        "templates": templates,
        "missing_templates": missing_templates,
        "primary_template_id": str(lot.itp_template_id) if lot and lot.itp_template_id else None,
    }


async def _ids(session: AsyncSession, stmt) -> list[str]:
    return [str(row_id) for row_id in (await session.execute(stmt)).scalars().all()]


async def integrity_report(session: AsyncSession) -> dict[str, Any]:
    """Orphaned or mismatched foreign keys across the ITP tables."""
    record = ConformanceRecordModel
    item = ITPItemModel
    assignment = aliased(LotITPTemplateModel)

    issues = {
        "records_missing_item": await _ids(
            session,
            select(record.id)
            .outerjoin(item, item.id == record.itp_item_id)
            .where(item.id.is_(None)),
        ),
        "records_item_template_mismatch": await _ids(
            session,
            select(record.id)
            .join(item, item.id == record.itp_item_id)
            .where(item.itp_template_id != record.itp_template_id),
        ),
        "records_template_not_assigned": await _ids(
            session,
            select(record.id)
            .outerjoin(
                assignment,
                and_(
                    assignment.lot_id == record.lot_id,
                    assignment.itp_template_id == record.itp_template_id,
                    assignment.is_active.is_(True),
                ),
            )
            .where(assignment.id.is_(None)),
        ),
        "records_project_mismatch": await _ids(
            session,
            select(record.id)
            .join(LotModel, LotModel.id == record.lot_id)
            .where(LotModel.project_id != record.project_id),
        ),
        "assignments_missing_template": await _ids(
            session,
            select(LotITPTemplateModel.id)
            .outerjoin(ITPTemplateModel, ITPTemplateModel.id == LotITPTemplateModel.itp_template_id)
            .where(ITPTemplateModel.id.is_(None)),
        ),
        "assignments_missing_lot": await _ids(
            session,
            select(LotITPTemplateModel.id)
            .outerjoin(LotModel, LotModel.id == LotITPTemplateModel.lot_id)
            .where(LotModel.id.is_(None)),
        ),
        "lots_missing_primary_template": await _ids(
            session,
            select(LotModel.id)
            .outerjoin(ITPTemplateModel, ITPTemplateModel.id == LotModel.itp_template_id)
            .where(LotModel.itp_template_id.is_not(None), ITPTemplateModel.id.is_(None)),
        ),
    }
    counts = {name: len(ids) for name, ids in issues.items()}
    return {"ok": not any(counts.values()), "counts": counts, "issues": issues}
