"""Project API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from siteproof.actions import projects as project_actions
from siteproof.core.audit_logger import log_user_action
from siteproof.db.connection import get_session
from siteproof.web.auth import require_user
from siteproof.web.responses import action_response, parse_uuid, read_payload

router = APIRouter(tags=["projects"])


@router.get("/api/projects")
async def list_projects(user: dict = Depends(require_user)):
    """All projects, newest first."""
    async with get_session() as session:
        result = await project_actions.list_projects(session)
    return action_response(result)


@router.post("/api/projects")
@router.post("/api/projects/create")
async def create_project(request: Request, user: dict = Depends(require_user)):
    """Create a project from a JSON or form body."""
    payload = await read_payload(request)

    async with get_session() as session:
        result = await project_actions.create_project(session, payload, user)
        if result.success:
            await log_user_action(
                request,
                "PROJECT_CREATE",
                user,
                resource_type="project",
                resource_id=result.data["id"],
                details={"name": result.data["name"]},
                session=session,
            )
    return action_response(result)


@router.get("/api/projects/{project_id}")
async def get_project(project_id: str, user: dict = Depends(require_user)):
    """Project with its lots."""
    project_uuid = parse_uuid(project_id, "project")
    async with get_session() as session:
        result = await project_actions.get_project(session, project_uuid)
    return action_response(result)


@router.patch("/api/projects/{project_id}")
async def update_project(project_id: str, request: Request, user: dict = Depends(require_user)):
    project_uuid = parse_uuid(project_id, "project")
    payload = await read_payload(request)
    async with get_session() as session:
        result = await project_actions.update_project(session, project_uuid, payload)
    return action_response(result)


@router.get("/api/projects/{project_id}/lots")
async def list_project_lots(project_id: str, user: dict = Depends(require_user)):
    project_uuid = parse_uuid(project_id, "project")
    async with get_session() as session:
        result = await project_actions.list_project_lots(session, project_uuid)
    return action_response(result)
