"""ITP instance API routes (a template applied to a lot)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from siteproof.actions import itps as itp_actions
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, parse_optional_uuid, parse_uuid, read_payload

router = APIRouter(tags=["itps"])


@router.post("/api/itps/create-from-template")
async def create_from_template(request: Request, user: dict = Depends(require_user)):
    payload = await read_payload(request)
    async with get_session() as session:
        result = await itp_actions.create_itp_from_template(session, payload, user)
    return action_response(result)


# Declared before /api/itps/{itp_id} so "overview" is not taken as an id
@router.get("/api/itps/overview")
async def overview(
    project_id: str | None = None,
    lot_id: str | None = None,
    status: str | None = None,
    user: dict = Depends(require_user),
):
    """Per-instance progress, filterable by project, lot and status."""
    project_uuid = parse_optional_uuid(project_id, "project")
    lot_uuid = parse_optional_uuid(lot_id, "lot")
    async with get_session() as session:
        result = await itp_actions.itp_overview(
            session, project_id=project_uuid, lot_id=lot_uuid, status=status
        )
    return action_response(result)


@router.get("/api/itps/{itp_id}")
async def get_itp(itp_id: str, user: dict = Depends(require_user)):
    itp_uuid = parse_uuid(itp_id, "ITP")
    async with get_session() as session:
        result = await itp_actions.get_itp(session, itp_uuid)
    return action_response(result)


@router.patch("/api/itps/{itp_id}")
async def update_itp(itp_id: str, request: Request, user: dict = Depends(require_user)):
    itp_uuid = parse_uuid(itp_id, "ITP")
    payload = await read_payload(request)
    async with get_session() as session:
        result = await itp_actions.update_itp(session, itp_uuid, payload)
    return action_response(result)


@router.delete("/api/itps/{itp_id}")
async def delete_itp(itp_id: str, user: dict = Depends(require_user)):
    itp_uuid = parse_uuid(itp_id, "ITP")
    async with get_session() as session:
        result = await itp_actions.delete_itp(session, itp_uuid)
    return action_response(result)
