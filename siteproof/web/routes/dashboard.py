"""Dashboard routes: the landing page and its summary counts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from siteproof.actions import dashboard as dashboard_actions
from siteproof.actions import itps as itp_actions
from siteproof.actions import projects as project_actions
from siteproof.db.connection import get_session
from siteproof.web.auth import require_page_user, require_user
from siteproof.web.dependencies import get_templates
from siteproof.web.responses import action_response

router = APIRouter(tags=["dashboard"])


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(
    request: Request,
    user: dict = Depends(require_page_user),
    templates=Depends(get_templates),
):
    """Projects list, headline counts and the most recent ITP activity."""
    async with get_session() as session:
        stats = await dashboard_actions.get_dashboard_stats(session)
        projects = await project_actions.list_projects(session)
        overview = await itp_actions.itp_overview(session)

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": user,
            "stats": stats.data or {},
            "projects": projects.data or [],
            "itps": (overview.data or [])[:10],
            "error": stats.error or projects.error or overview.error,
        },
    )


@router.get("/api/dashboard/stats")
async def dashboard_stats(user: dict = Depends(require_user)):
    async with get_session() as session:
        result = await dashboard_actions.get_dashboard_stats(session)
    return action_response(result)
