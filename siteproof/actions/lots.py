"""Lot actions, including assignment of ITP templates to lots.

A lot may carry several templates through ``lot_itp_templates``; the lot's
own ``itp_template_id`` points at the first one assigned (its primary).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.progress import refresh_lot_status, tally
from siteproof.actions.projects import load_project
from siteproof.actions.result import (
    ActionError,
    ActionResult,
    ConflictError,
    NotFoundError,
    action,
    actor,
    parse,
)
from siteproof.db import repository
from siteproof.db.models import (
    ConformanceRecordModel,
    ITPItemModel,
    ITPTemplateModel,
    LotITPTemplateModel,
    LotModel,
    utcnow,
)
from siteproof.models import LotCreate

logger = structlog.get_logger()


async def load_lot(session: AsyncSession, lot_id: UUID) -> LotModel:
    lot = await repository.get_by_id(session, LotModel, lot_id)
    if lot is None:
        raise NotFoundError("Lot not found")
    return lot


async def load_template(session: AsyncSession, template_id: UUID) -> ITPTemplateModel:
    template = await repository.get_by_id(session, ITPTemplateModel, template_id)
    if template is None:
        raise NotFoundError("ITP template not found")
    return template


async def attach_template(
    session: AsyncSession,
    lot: LotModel,
    template: ITPTemplateModel,
    user: Mapping[str, Any] | None = None,
    instance_name: str | None = None,
) -> LotITPTemplateModel:
    """Create or re-activate the lot/template assignment.

    Raises:
        ActionError: If the template is inactive
        ConflictError: If the template is already actively assigned
    """
    if not template.is_active:
        raise ActionError("ITP template is inactive")

    existing = await repository.select_one(
        session, LotITPTemplateModel, {"lot_id": lot.id, "itp_template_id": template.id}
    )
    if existing is not None and existing.is_active:
        raise ConflictError("ITP template already assigned")

    values = {
        "is_active": True,
        "assigned_by": actor(user),
        "assigned_at": utcnow(),
        "instance_name": instance_name or template.name,
    }
    if existing is not None:
        assignment = repository.apply_changes(existing, values)
    else:
        assignment = await repository.insert_row(
            session,
            LotITPTemplateModel,
            {"lot_id": lot.id, "itp_template_id": template.id, **values},
        )

    if lot.itp_template_id is None:
        lot.itp_template_id = template.id

    await session.flush()
    await refresh_lot_status(session, lot)
    logger.info(
        "itp_assigned",
        lot_id=str(lot.id),
        itp_template_id=str(template.id),
        reactivated=existing is not None,
    )
    return assignment


@action("lot_create")
async def create_lot(
    session: AsyncSession,
    payload: Mapping[str, Any],
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    data = parse(LotCreate, payload)
    project = await load_project(session, data.project_id)

    duplicate = await repository.select_one(
        session, LotModel, {"project_id": project.id, "lot_number": data.lot_number}
    )
    if duplicate is not None:
        raise ConflictError("Lot number already exists in this project")

    template = None
    if data.itp_template_id is not None:
        template = await load_template(session, data.itp_template_id)
        if not template.is_active:
            raise ActionError("ITP template is inactive")

    lot = await repository.insert_row(
        session,
        LotModel,
        {
            "project_id": project.id,
            "lot_number": data.lot_number,
            "description": data.description,
            "location_description": data.location_description,
            "status": "pending",
            "created_by": actor(user),
        },
    )
    if template is not None:
        await attach_template(session, lot, template, user)

    logger.info("lot_created", lot_id=str(lot.id), project_id=str(project.id))
    return ActionResult.ok(repository.row_to_dict(lot), message="Lot created successfully")


async def template_with_items(session: AsyncSession, template: ITPTemplateModel) -> dict[str, Any]:
    items = await repository.select_rows(
        session,
        ITPItemModel,
        {"itp_template_id": template.id},
        order_by=["order_index", "item_number"],
    )
    return {
        **repository.row_to_dict(template),
        "items": [repository.row_to_dict(item) for item in items],
    }


@action("lot_get")
async def get_lot(session: AsyncSession, lot_id: UUID) -> ActionResult:
    """Lot with its project, active templates (items ordered) and records."""
    lot = await load_lot(session, lot_id)
    project = await load_project(session, lot.project_id)

    assignments = await repository.select_rows(
        session,
        LotITPTemplateModel,
        {"lot_id": lot.id, "is_active": True},
        order_by="assigned_at",
    )
    records = await repository.select_rows(
        session, ConformanceRecordModel, {"lot_id": lot.id}, order_by="checked_at"
    )

    templates = []
    for assignment in assignments:
        template = await repository.get_by_id(session, ITPTemplateModel, assignment.itp_template_id)
        if template is None:
            continue
        detail = await template_with_items(session, template)
        item_ids = {item["id"] for item in detail["items"]}
        detail["assignment"] = repository.row_to_dict(assignment)
        detail["stats"] = tally(
            (r.status for r in records if str(r.itp_item_id) in item_ids),
            total_items=len(item_ids),
        ).to_dict()
        templates.append(detail)

    return ActionResult.ok(
        {
            **repository.row_to_dict(lot),
            "project": repository.row_to_dict(project),
            "itp_templates": templates,
            "conformance_records": [repository.row_to_dict(r) for r in records],
        }
    )


@action("itp_assign")
async def assign_itp_to_lot(
    session: AsyncSession,
    lot_id: UUID,
    template_id: UUID,
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    lot = await load_lot(session, lot_id)
    template = await load_template(session, template_id)
    assignment = await attach_template(session, lot, template, user)
    return ActionResult.ok(repository.row_to_dict(assignment), message="ITP assigned successfully")


async def detach_template(session: AsyncSession, lot: LotModel, assignment: LotITPTemplateModel) -> None:
    assignment.is_active = False

    if lot.itp_template_id == assignment.itp_template_id:
        remaining = await repository.select_rows(
            session,
            LotITPTemplateModel,
            {"lot_id": lot.id, "is_active": True},
            order_by="assigned_at",
        )
        lot.itp_template_id = remaining[0].itp_template_id if remaining else None

    await session.flush()
    await refresh_lot_status(session, lot)


@action("itp_remove")
async def remove_itp_from_lot(session: AsyncSession, lot_id: UUID, template_id: UUID) -> ActionResult:
    """Deactivate an assignment; existing conformance records are kept."""
    lot = await load_lot(session, lot_id)
    assignment = await repository.select_one(
        session,
        LotITPTemplateModel,
        {"lot_id": lot.id, "itp_template_id": template_id, "is_active": True},
    )
    if assignment is None:
        raise NotFoundError("ITP assignment not found")

    await detach_template(session, lot, assignment)
    logger.info("itp_removed", lot_id=str(lot.id), itp_template_id=str(template_id))
    return ActionResult.ok(repository.row_to_dict(assignment), message="ITP removed from lot")
