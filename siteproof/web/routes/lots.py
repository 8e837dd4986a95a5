"""Lot API routes, including ITP assignment and the lot's conformance records."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from siteproof.actions import conformance as conformance_actions
from siteproof.actions import lots as lot_actions
from siteproof.core.audit_logger import log_user_action
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, parse_uuid, read_payload

router = APIRouter(tags=["lots"])

TEMPLATE_ID_KEYS = ("itpTemplateId", "itp_template_id", "templateId", "template_id")


@router.post("/api/lots")
@router.post("/api/lots/create")
async def create_lot(request: Request, user: dict = Depends(require_user)):
    """Create a lot under a project (JSON or form body)."""
    payload = await read_payload(request)

    async with get_session() as session:
        result = await lot_actions.create_lot(session, payload, user)
        if result.success:
            await log_user_action(
                request,
                "LOT_CREATE",
                user,
                resource_type="lot",
                resource_id=result.data["id"],
                details={"project_id": result.data["project_id"], "lot_number": result.data["lot_number"]},
                session=session,
            )
    return action_response(result)


@router.get("/api/lots/{lot_id}")
async def get_lot(lot_id: str, user: dict = Depends(require_user)):
    """Lot with project, assigned ITPs (items ordered) and conformance records."""
    lot_uuid = parse_uuid(lot_id, "lot")
    async with get_session() as session:
        result = await lot_actions.get_lot(session, lot_uuid)
    return action_response(result)


@router.post("/api/lots/{lot_id}/itps")
async def assign_itp(lot_id: str, request: Request, user: dict = Depends(require_user)):
    """Assign an ITP template to the lot (re-activates a removed assignment)."""
    lot_uuid = parse_uuid(lot_id, "lot")
    payload = await read_payload(request)
    raw_template_id = next((payload[key] for key in TEMPLATE_ID_KEYS if payload.get(key)), None)
    if raw_template_id is None:
        raise HTTPException(status_code=400, detail="ITP template ID is required")
    template_uuid = parse_uuid(str(raw_template_id), "template")

    async with get_session() as session:
        result = await lot_actions.assign_itp_to_lot(session, lot_uuid, template_uuid, user)
        if result.success:
            await log_user_action(
                request,
                "ITP_ASSIGN",
                user,
                resource_type="lot",
                resource_id=lot_uuid,
                details={"itp_template_id": str(template_uuid)},
                session=session,
            )
    return action_response(result)


@router.delete("/api/lots/{lot_id}/itps/{template_id}")
async def remove_itp(lot_id: str, template_id: str, request: Request, user: dict = Depends(require_user)):
    """Deactivate the assignment; conformance records are kept."""
    lot_uuid = parse_uuid(lot_id, "lot")
    template_uuid = parse_uuid(template_id, "template")
    async with get_session() as session:
        result = await lot_actions.remove_itp_from_lot(session, lot_uuid, template_uuid)
        if result.success:
            await log_user_action(
                request,
                "ITP_REMOVE",
                user,
                resource_type="lot",
                resource_id=lot_uuid,
                details={"itp_template_id": str(template_uuid)},
                session=session,
            )
    return action_response(result)


@router.get("/api/lots/{lot_id}/conformance")
async def list_conformance(lot_id: str, user: dict = Depends(require_user)):
    """Conformance records for the lot with pass/fail totals."""
    lot_uuid = parse_uuid(lot_id, "lot")
    async with get_session() as session:
        result = await conformance_actions.list_conformance_records(session, lot_uuid)
    return action_response(result)
