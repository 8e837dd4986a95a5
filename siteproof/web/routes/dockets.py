"""Daily docket routes (labour and materials)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from siteproof.actions import dockets as docket_actions
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, parse_uuid, read_payload

router = APIRouter(tags=["dockets"])


@router.post("/api/dockets/labour")
async def create_labour_docket(request: Request, user: dict = Depends(require_user)):
    payload = await read_payload(request)
    async with get_session() as session:
        result = await docket_actions.create_labour_docket(session, payload)
    return action_response(result)


@router.post("/api/dockets/materials")
async def create_materials_docket(request: Request, user: dict = Depends(require_user)):
    payload = await read_payload(request)
    async with get_session() as session:
        result = await docket_actions.create_materials_docket(session, payload)
    return action_response(result)


@router.get("/api/lots/{lot_id}/dockets")
async def list_dockets(lot_id: str, user: dict = Depends(require_user)):
    """Labour and materials dockets with hour and cost totals."""
    lot_uuid = parse_uuid(lot_id, "lot")
    async with get_session() as session:
        result = await docket_actions.list_dockets(session, lot_uuid)
    return action_response(result)
