"""Compliance check routes for SiteProof.

Environmental and regulatory checks recorded against a lot.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from siteproof.actions import compliance as compliance_actions
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, parse_uuid, read_payload

router = APIRouter(tags=["compliance"])


@router.post("/api/compliance-checks")
async def create_compliance_check(request: Request, user: dict = Depends(require_user)):
    payload = await read_payload(request)
    async with get_session() as session:
        result = await compliance_actions.create_compliance_check(session, payload, user)
    return action_response(result)


@router.get("/api/lots/{lot_id}/compliance-checks")
async def list_compliance_checks(lot_id: str, user: dict = Depends(require_user)):
    lot_uuid = parse_uuid(lot_id, "lot")
    async with get_session() as session:
        result = await compliance_actions.list_compliance_checks(session, lot_uuid)
    return action_response(result)
