"""ITP template actions: listing, creation and bulk import."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.lots import load_template, template_with_items
from siteproof.actions.result import ActionError, ActionResult, action, actor, parse
from siteproof.config import get_config
from siteproof.db import repository
from siteproof.db.models import ITPItemModel, ITPTemplateModel
from siteproof.models import ITPTemplateCreate

logger = structlog.get_logger()

DEFAULT_CATEGORY = "general"


@action("itp_template_list")
async def list_templates(session: AsyncSession, include_inactive: bool = False) -> ActionResult:
    filters = {} if include_inactive else {"is_active": True}
    templates = await repository.select_rows(session, ITPTemplateModel, filters, order_by="name")

    rows = await session.execute(
        select(ITPItemModel.itp_template_id, func.count()).group_by(ITPItemModel.itp_template_id)
    )
    item_counts = {template_id: count for template_id, count in rows.all()}

    return ActionResult.ok(
        [
            {**repository.row_to_dict(t), "item_count": item_counts.get(t.id, 0)}
            for t in templates
        ]
    )


@action("itp_template_get")
async def get_template_with_items(session: AsyncSession, template_id: UUID) -> ActionResult:
    """Template with items in ascending ``order_index``."""
    template = await load_template(session, template_id)
    return ActionResult.ok(await template_with_items(session, template))


async def _insert_template(
    session: AsyncSession,
    data: ITPTemplateCreate,
    user: Mapping[str, Any] | None,
) -> ITPTemplateModel:
    template = await repository.insert_row(
        session,
        ITPTemplateModel,
        {
            "name": data.name,
            "description": data.description,
            "category": data.category or DEFAULT_CATEGORY,
            "version": data.version,
            "is_active": data.is_active,
            "org_id": (user or {}).get("org_id") or get_config().org_id,
            "created_by": actor(user),
        },
    )
    if data.items:
        await repository.insert_rows(
            session,
            ITPItemModel,
            [
                {
                    **item.model_dump(exclude={"order_index"}),
                    "itp_template_id": template.id,
                    # Missing order defaults to position in the submitted list
                    "order_index": index if item.order_index is None else item.order_index,
                }
                for index, item in enumerate(data.items)
            ],
        )
    return template


@action("itp_template_create")
async def create_template(
    session: AsyncSession,
    payload: Mapping[str, Any],
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    data = parse(ITPTemplateCreate, payload)
    template = await _insert_template(session, data, user)
    logger.info("itp_template_created", itp_template_id=str(template.id), items=len(data.items))
    return ActionResult.ok(
        await template_with_items(session, template),
        message="ITP template created successfully",
    )


@action("itp_template_import")
async def import_templates(
    session: AsyncSession,
    templates: Sequence[Mapping[str, Any]] | None,
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    """Import many templates; bad rows are reported and skipped.

    Row numbers in errors are spreadsheet-style (header is row 1).
    """
    if not isinstance(templates, Sequence) or isinstance(templates, (str, bytes)):
        raise ActionError("Invalid templates data")

    imported: list[str] = []
    errors: list[str] = []
    for index, row in enumerate(templates):
        row_number = index + 2
        if not isinstance(row, Mapping) or not str(row.get("name") or "").strip():
            errors.append(f"Row {row_number}: Missing required field 'name'")
            continue
        try:
            data = parse(ITPTemplateCreate, row)
        except ActionError as exc:
            errors.append(f"Row {row_number}: {exc.message}")
            continue
        template = await _insert_template(session, data, user)
        imported.append(str(template.id))

    logger.info("itp_templates_imported", imported=len(imported), errors=len(errors))
    return ActionResult.ok({"imported": len(imported), "template_ids": imported, "errors": errors})
