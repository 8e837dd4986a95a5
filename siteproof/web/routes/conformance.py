"""Conformance record API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from siteproof.actions import conformance as conformance_actions
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, read_payload

router = APIRouter(tags=["conformance"])


@router.post("/api/conformance/save")
async def save_conformance(request: Request, user: dict = Depends(require_user)):
    """Upsert the inspection result for one lot/item pair."""
    payload = await read_payload(request)
    async with get_session() as session:
        result = await conformance_actions.save_conformance_record(session, payload, user)
    return action_response(result)
