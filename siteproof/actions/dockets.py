"""Daily labour and materials dockets for a lot."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.lots import load_lot
from siteproof.actions.result import ActionResult, action, parse
from siteproof.db import repository
from siteproof.db.models import LabourDocketModel, MaterialsDocketModel
from siteproof.models import LabourDocketCreate, MaterialsDocketCreate

logger = structlog.get_logger()

CENTS = Decimal("0.01")


def labour_cost(docket: LabourDocketModel) -> Decimal:
    """Ordinary hours at the hourly rate plus overtime at the overtime rate.

    Overtime falls back to the ordinary rate when no overtime rate is set.
    """
    rate = docket.hourly_rate or Decimal("0")
    overtime_rate = docket.overtime_rate if docket.overtime_rate is not None else rate
    cost = docket.hours_worked * rate + (docket.overtime_hours or Decimal("0")) * overtime_rate
    return cost.quantize(CENTS)


@action("labour_docket_create")
async def create_labour_docket(session: AsyncSession, payload: Mapping[str, Any]) -> ActionResult:
    data = parse(LabourDocketCreate, payload)
    lot = await load_lot(session, data.lot_id)

    docket = await repository.insert_row(
        session, LabourDocketModel, {**data.model_dump(), "lot_id": lot.id}
    )
    logger.info("labour_docket_created", lot_id=str(lot.id), worker=docket.worker_name)
    return ActionResult.ok(
        {**repository.row_to_dict(docket), "total_cost": float(labour_cost(docket))},
        message="Labour docket saved",
    )


@action("materials_docket_create")
async def create_materials_docket(session: AsyncSession, payload: Mapping[str, Any]) -> ActionResult:
    data = parse(MaterialsDocketCreate, payload)
    lot = await load_lot(session, data.lot_id)

    values = {**data.model_dump(), "lot_id": lot.id}
    if values["total_cost"] is None and data.unit_cost is not None:
        values["total_cost"] = (data.quantity * data.unit_cost).quantize(CENTS)

    docket = await repository.insert_row(session, MaterialsDocketModel, values)
    logger.info("materials_docket_created", lot_id=str(lot.id), material=docket.material_type)
    return ActionResult.ok(repository.row_to_dict(docket), message="Materials docket saved")


@action("docket_list")
async def list_dockets(session: AsyncSession, lot_id: UUID) -> ActionResult:
    lot = await load_lot(session, lot_id)
    labour = await repository.select_rows(
        session, LabourDocketModel, {"lot_id": lot.id}, order_by="work_date", descending=True
    )
    materials = await repository.select_rows(
        session, MaterialsDocketModel, {"lot_id": lot.id}, order_by="delivery_date", descending=True
    )

    total_hours = sum((d.hours_worked + (d.overtime_hours or 0) for d in labour), Decimal("0"))
    total_labour = sum((labour_cost(d) for d in labour), Decimal("0"))
    total_materials = sum((d.total_cost or Decimal("0") for d in materials), Decimal("0"))

    return ActionResult.ok(
        {
            "labour": [
                {**repository.row_to_dict(d), "total_cost": float(labour_cost(d))} for d in labour
            ],
            "materials": [repository.row_to_dict(d) for d in materials],
            "totals": {
                "hours": float(total_hours),
                "labour_cost": float(total_labour),
                "materials_cost": float(total_materials),
                "total_cost": float(total_labour + total_materials),
            },
        }
    )
