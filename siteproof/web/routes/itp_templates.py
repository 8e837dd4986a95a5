"""ITP template API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from siteproof.actions import itp_templates as template_actions
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, parse_uuid, read_payload

router = APIRouter(tags=["itp-templates"])


@router.get("/api/itp-templates")
async def list_templates(include_inactive: bool = False, user: dict = Depends(require_user)):
    async with get_session() as session:
        result = await template_actions.list_templates(session, include_inactive=include_inactive)
    return action_response(result)


@router.post("/api/itp-templates")
async def create_template(request: Request, user: dict = Depends(require_user)):
    """Create a template with an optional ``items`` list."""
    payload = await read_payload(request)
    async with get_session() as session:
        result = await template_actions.create_template(session, payload, user)
    return action_response(result)


@router.get("/api/itp-templates/{template_id}/items")
async def get_template_items(template_id: str, user: dict = Depends(require_user)):
    """Template with items ordered by ``order_index``."""
    template_uuid = parse_uuid(template_id, "template")
    async with get_session() as session:
        result = await template_actions.get_template_with_items(session, template_uuid)
    return action_response(result)


@router.post("/api/itp-templates/import")
async def import_templates(request: Request, user: dict = Depends(require_user)):
    """Bulk import: ``{"templates": [...]}``; per-row errors are reported, not fatal."""
    payload = await read_payload(request)
    async with get_session() as session:
        result = await template_actions.import_templates(session, payload.get("templates"), user)
    return action_response(result)
