"""Diagnostics routes.

Only served when diagnostics are enabled (outside production by default,
or ENABLE_DIAGNOSTICS=true); otherwise every path answers 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from siteproof.db.connection import get_session
from siteproof.diagnostics import connection_report, integrity_report, lot_report
from siteproof.web.auth import require_user
from siteproof.web.dependencies import require_diagnostics
from siteproof.web.responses import parse_uuid

router = APIRouter(
    prefix="/api/diagnostics",
    tags=["diagnostics"],
    dependencies=[Depends(require_diagnostics)],
)


@router.get("/connection")
async def connection(user: dict = Depends(require_user)):
    """Config presence and per-table reachability."""
    async with get_session() as session:
        report = await connection_report(session)
    return {"success": report["connected"], "data": report}


@router.get("/lots/{lot_id}")
async def lot(lot_id: str, user: dict = Depends(require_user)):
    """Lot row, junction rows (all and active) and the templates they resolve to."""
    lot_uuid = parse_uuid(lot_id, "lot")
    async with get_session() as session:
        report = await lot_report(session, lot_uuid)
    return {"success": True, "data": report}


@router.get("/integrity")
async def integrity(user: dict = Depends(require_user)):
    """Orphaned and mismatched foreign keys."""
    async with get_session() as session:
        report = await integrity_report(session)
    return {"success": True, "data": report}
