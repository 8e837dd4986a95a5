"""ITP instances: a template applied to a lot (one ``lot_itp_templates`` row)."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.lots import attach_template, detach_template, load_lot, load_template, template_with_items
from siteproof.actions.progress import ConformanceStats, assignment_stats, refresh_lot_status, tally
from siteproof.actions.result import ActionError, ActionResult, NotFoundError, action, parse
from siteproof.db import repository
from siteproof.db.models import (
    ConformanceRecordModel,
    ITPItemModel,
    ITPTemplateModel,
    LotITPTemplateModel,
    LotModel,
    ProjectModel,
    utcnow,
)
from siteproof.models import AssignmentStatus, CreateFromTemplate, ITPUpdate, normalise_choice

logger = structlog.get_logger()


async def load_assignment(session: AsyncSession, assignment_id: UUID) -> LotITPTemplateModel:
    assignment = await repository.get_by_id(session, LotITPTemplateModel, assignment_id)
    if assignment is None or not assignment.is_active:
        raise NotFoundError("ITP not found")
    return assignment


async def _instance_detail(session: AsyncSession, assignment: LotITPTemplateModel) -> dict[str, Any]:
    template = await load_template(session, assignment.itp_template_id)
    lot = await load_lot(session, assignment.lot_id)
    records = await repository.select_rows(
        session,
        ConformanceRecordModel,
        {"lot_id": assignment.lot_id, "itp_template_id": assignment.itp_template_id},
        order_by="checked_at",
    )
    stats = await assignment_stats(session, assignment)
    return {
        **repository.row_to_dict(assignment),
        "lot": repository.row_to_dict(lot),
        "template": await template_with_items(session, template),
        "conformance_records": [repository.row_to_dict(r) for r in records],
        "stats": stats.to_dict(),
    }


@action("itp_create_from_template")
async def create_itp_from_template(
    session: AsyncSession,
    payload: Mapping[str, Any],
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    """Apply a template to a lot in the caller's transaction.

    Re-activates a previously removed assignment instead of duplicating it.
    """
    data = parse(CreateFromTemplate, payload)
    template = await load_template(session, data.template_id)
    lot = await load_lot(session, data.lot_id)
    if data.project_id is not None and data.project_id != lot.project_id:
        raise ActionError("Lot does not belong to the given project")

    assignment = await attach_template(session, lot, template, user, instance_name=data.name)
    return ActionResult.ok(
        await _instance_detail(session, assignment),
        message="ITP created successfully from template",
    )


@action("itp_get")
async def get_itp(session: AsyncSession, assignment_id: UUID) -> ActionResult:
    assignment = await load_assignment(session, assignment_id)
    return ActionResult.ok(await _instance_detail(session, assignment))


@action("itp_update")
async def update_itp(session: AsyncSession, assignment_id: UUID, payload: Mapping[str, Any]) -> ActionResult:
    """Rename an instance or set its status (e.g. sign-off as ``approved``)."""
    data = parse(ITPUpdate, payload)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ActionError("No changes provided")

    assignment = await load_assignment(session, assignment_id)
    repository.apply_changes(assignment, changes)
    if "status" in changes:
        done = {AssignmentStatus.COMPLETED.value, AssignmentStatus.APPROVED.value}
        assignment.completed_at = (assignment.completed_at or utcnow()) if assignment.status in done else None
        await refresh_lot_status(session, await load_lot(session, assignment.lot_id))
    await session.flush()

    logger.info("itp_updated", itp_id=str(assignment.id), fields=sorted(changes))
    return ActionResult.ok(repository.row_to_dict(assignment), message="ITP updated successfully")


@action("itp_delete")
async def delete_itp(session: AsyncSession, assignment_id: UUID) -> ActionResult:
    """Deactivate the instance; its conformance records are kept."""
    assignment = await load_assignment(session, assignment_id)
    lot = await load_lot(session, assignment.lot_id)
    await detach_template(session, lot, assignment)
    logger.info("itp_deleted", itp_id=str(assignment.id))
    return ActionResult.ok({"id": str(assignment.id)}, message="ITP deleted successfully")


@action("itp_overview")
async def itp_overview(
    session: AsyncSession,
    project_id: UUID | None = None,
    lot_id: UUID | None = None,
    status: str | None = None,
) -> ActionResult:
    """Progress of every active ITP instance, newest first.

    Three queries regardless of size: instances (joined with lot, project and
    template), item counts per template, record counts per lot/template/status.
    The status filter accepts any spelling of an ITP status ("IN_PROGRESS",
    "In Progress"); anything else is rejected.
    """
    stmt = (
        select(LotITPTemplateModel, LotModel, ProjectModel, ITPTemplateModel)
        .join(LotModel, LotModel.id == LotITPTemplateModel.lot_id)
        .join(ProjectModel, ProjectModel.id == LotModel.project_id)
        .join(ITPTemplateModel, ITPTemplateModel.id == LotITPTemplateModel.itp_template_id)
        .where(LotITPTemplateModel.is_active.is_(True))
        .order_by(LotITPTemplateModel.created_at.desc(), LotITPTemplateModel.id.desc())
    )
    if project_id is not None:
        stmt = stmt.where(LotModel.project_id == project_id)
    if lot_id is not None:
        stmt = stmt.where(LotITPTemplateModel.lot_id == lot_id)
    if status:
        try:
            wanted = AssignmentStatus(normalise_choice(status))
        except ValueError as exc:
            raise ActionError(f"Invalid status filter: {status}") from exc
        stmt = stmt.where(LotITPTemplateModel.status == wanted.value)
    instances = (await session.execute(stmt)).all()
    if not instances:
        return ActionResult.ok([])

    template_ids = {row.ITPTemplateModel.id for row in instances}
    lot_ids = {row.LotModel.id for row in instances}

    item_rows = await session.execute(
        select(ITPItemModel.itp_template_id, func.count())
        .where(ITPItemModel.itp_template_id.in_(template_ids))
        .group_by(ITPItemModel.itp_template_id)
    )
    item_counts = dict(item_rows.all())

    record_rows = await session.execute(
        select(
            ConformanceRecordModel.lot_id,
            ConformanceRecordModel.itp_template_id,
            ConformanceRecordModel.status,
            func.count(),
        )
        .where(ConformanceRecordModel.lot_id.in_(lot_ids))
        .group_by(
            ConformanceRecordModel.lot_id,
            ConformanceRecordModel.itp_template_id,
            ConformanceRecordModel.status,
        )
    )
    statuses: dict[tuple[UUID, UUID], list[str]] = defaultdict(list)
    for record_lot_id, template_id, record_status, count in record_rows.all():
        statuses[(record_lot_id, template_id)].extend([record_status] * count)

    overview = []
    for row in instances:
        assignment, lot, project, template = row
        stats: ConformanceStats = tally(
            statuses.get((lot.id, template.id), []),
            total_items=item_counts.get(template.id, 0),
        )
        overview.append(
            {
                "id": str(assignment.id),
                "instance_name": assignment.instance_name or template.name,
                "status": assignment.status,
                "project_id": str(project.id),
                "project_name": project.name,
                "lot_id": str(lot.id),
                "lot_number": lot.lot_number,
                "lot_status": lot.status,
                "itp_template_id": str(template.id),
                "template_name": template.name,
                "category": template.category,
                "total_items": stats.total,
                "passed": stats.passed,
                "failed": stats.failed,
                "na": stats.na,
                "pending": stats.pending,
                "completed": stats.completed,
                "progress_percentage": stats.progress_percentage,
                "pass_rate": stats.pass_rate,
                "has_non_conformances": stats.failed > 0,
                "assigned_at": assignment.assigned_at.isoformat(),
                "completed_at": assignment.completed_at.isoformat() if assignment.completed_at else None,
                "created_at": assignment.created_at.isoformat(),
            }
        )
    return ActionResult.ok(overview)
