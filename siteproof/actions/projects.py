"""Project actions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.result import ActionError, ActionResult, NotFoundError, action, actor, parse
from siteproof.config import get_config
from siteproof.db import repository
from siteproof.db.models import LotModel, ProjectModel
from siteproof.models import ProjectCreate, ProjectUpdate

logger = structlog.get_logger()


async def load_project(session: AsyncSession, project_id: UUID) -> ProjectModel:
    project = await repository.get_by_id(session, ProjectModel, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


@action("project_create")
async def create_project(
    session: AsyncSession,
    payload: Mapping[str, Any],
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    data = parse(ProjectCreate, payload)

    project = await repository.insert_row(
        session,
        ProjectModel,
        {
            **data.model_dump(),
            "org_id": (user or {}).get("org_id") or get_config().org_id,
            "created_by": actor(user),
        },
    )
    logger.info("project_created", project_id=str(project.id), name=project.name)
    return ActionResult.ok(repository.row_to_dict(project), message="Project created successfully")


@action("project_list")
async def list_projects(session: AsyncSession) -> ActionResult:
    """All projects, newest first, each with its lot count."""
    projects = await repository.select_rows(
        session, ProjectModel, order_by=["created_at", "id"], descending=True
    )

    rows = await session.execute(
        select(LotModel.project_id, func.count()).group_by(LotModel.project_id)
    )
    lot_counts = {project_id: count for project_id, count in rows.all()}

    return ActionResult.ok(
        [
            {**repository.row_to_dict(p), "lot_count": lot_counts.get(p.id, 0)}
            for p in projects
        ]
    )


@action("project_get")
async def get_project(session: AsyncSession, project_id: UUID) -> ActionResult:
    project = await load_project(session, project_id)
    lots = await repository.select_rows(
        session, LotModel, {"project_id": project.id}, order_by="lot_number"
    )
    return ActionResult.ok(
        {**repository.row_to_dict(project), "lots": [repository.row_to_dict(lot) for lot in lots]}
    )


@action("project_update")
async def update_project(
    session: AsyncSession,
    project_id: UUID,
    payload: Mapping[str, Any],
) -> ActionResult:
    """Partial update: only keys present in the payload change."""
    data = parse(ProjectUpdate, payload)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ActionError("No changes provided")

    project = await load_project(session, project_id)
    start = changes.get("start_date", project.start_date)
    end = changes.get("end_date", project.end_date)
    if start and end and end < start:
        raise ActionError("End date cannot be before start date")

    repository.apply_changes(project, changes)
    await session.flush()
    logger.info("project_updated", project_id=str(project.id), fields=sorted(changes))
    return ActionResult.ok(repository.row_to_dict(project), message="Project updated successfully")


@action("project_lots")
async def list_project_lots(session: AsyncSession, project_id: UUID) -> ActionResult:
    await load_project(session, project_id)
    lots = await repository.select_rows(
        session, LotModel, {"project_id": project_id}, order_by="lot_number"
    )
    return ActionResult.ok([repository.row_to_dict(lot) for lot in lots])
