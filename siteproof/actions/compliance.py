"""Compliance check actions (environmental / regulatory checks on a lot)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.lots import load_lot
from siteproof.actions.result import ActionResult, action, actor, parse
from siteproof.db import repository
from siteproof.db.models import ComplianceCheckModel
from siteproof.models import ComplianceCheckCreate

logger = structlog.get_logger()


@action("compliance_check_create")
async def create_compliance_check(
    session: AsyncSession,
    payload: Mapping[str, Any],
    user: Mapping[str, Any] | None = None,
) -> ActionResult:
    data = parse(ComplianceCheckCreate, payload)
    lot = await load_lot(session, data.lot_id)

    check = await repository.insert_row(
        session,
        ComplianceCheckModel,
        {
            **data.model_dump(),
            "lot_id": lot.id,
            "project_id": lot.project_id,
            "checked_by": actor(user),
        },
    )
    logger.info("compliance_check_created", lot_id=str(lot.id), status=check.status)
    return ActionResult.ok(repository.row_to_dict(check), message="Compliance check recorded")


@action("compliance_check_list")
async def list_compliance_checks(session: AsyncSession, lot_id: UUID) -> ActionResult:
    lot = await load_lot(session, lot_id)
    checks = await repository.select_rows(
        session, ComplianceCheckModel, {"lot_id": lot.id}, order_by="checked_at", descending=True
    )
    summary = {"compliant": 0, "non_compliant": 0, "pending": 0}
    for check in checks:
        summary[check.status] = summary.get(check.status, 0) + 1
    return ActionResult.ok(
        {"checks": [repository.row_to_dict(c) for c in checks], "summary": summary}
    )
