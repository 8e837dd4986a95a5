"""Shared dependencies for SiteProof web routes.

Usage:
    from fastapi import Depends
    from siteproof.web.dependencies import get_templates

    @router.get("/page")
    async def page(request: Request, templates=Depends(get_templates)):
        return templates.TemplateResponse(request, "page.html", {})
"""

from __future__ import annotations

from pathlib import Path

from fastapi import HTTPException
from fastapi.templating import Jinja2Templates

from siteproof.config import get_config

# Global singleton for templates
_templates: Jinja2Templates | None = None

STATUS_LABELS = {
    "pending": "Pending",
    "in_progress": "In progress",
    "completed": "Completed",
    "approved": "Approved",
    "rejected": "Rejected",
    "active": "Active",
    "on_hold": "On hold",
    "cancelled": "Cancelled",
    "pass": "Pass",
    "fail": "Fail",
    "na": "N/A",
}


def get_templates() -> Jinja2Templates:
    """Jinja2Templates for siteproof/web/templates (initialised once)."""
    global _templates
    if _templates is None:
        _templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
        _templates.env.filters["status_label"] = lambda value: STATUS_LABELS.get(
            value, str(value).replace("_", " ").capitalize()
        )
    return _templates


def require_diagnostics() -> None:
    """404 unless diagnostics are enabled for this environment."""
    if not get_config().enable_diagnostics:
        raise HTTPException(status_code=404, detail="Not Found")
