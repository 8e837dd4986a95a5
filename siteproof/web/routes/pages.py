"""Server-rendered project and lot pages."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse

from siteproof.actions import compliance as compliance_actions
from siteproof.actions import dockets as docket_actions
from siteproof.actions import itp_templates as template_actions
from siteproof.actions import itps as itp_actions
from siteproof.actions import lots as lot_actions
from siteproof.actions import projects as project_actions
from siteproof.actions.result import ActionResult
from siteproof.db.connection import get_session
from siteproof.web.auth import require_page_user
from siteproof.web.dependencies import get_templates
from siteproof.web.responses import parse_uuid

router = APIRouter(tags=["pages"])


def _page_data(result: ActionResult):
    if not result.success:
        status_code = 404 if result.code == "not_found" else 400
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.data


@router.get("/project/{project_id}", response_class=HTMLResponse)
async def project_page(
    project_id: str,
    request: Request,
    user: dict = Depends(require_page_user),
    templates=Depends(get_templates),
):
    """Project detail: lots with ITP progress, plus the create-lot form."""
    project_uuid = parse_uuid(project_id, "project")
    async with get_session() as session:
        project = _page_data(await project_actions.get_project(session, project_uuid))
        overview = _page_data(await itp_actions.itp_overview(session, project_id=project_uuid))
        itp_templates = _page_data(await template_actions.list_templates(session))

    return templates.TemplateResponse(
        request,
        "project.html",
        {"user": user, "project": project, "itps": overview, "itp_templates": itp_templates},
    )


@router.get("/project/{project_id}/lot/{lot_id}", response_class=HTMLResponse)
async def lot_page(
    project_id: str,
    lot_id: str,
    request: Request,
    user: dict = Depends(require_page_user),
    templates=Depends(get_templates),
):
    """Lot inspection page: checklist per assigned ITP with auto-saving results."""
    project_uuid = parse_uuid(project_id, "project")
    lot_uuid = parse_uuid(lot_id, "lot")
    async with get_session() as session:
        lot = _page_data(await lot_actions.get_lot(session, lot_uuid))
        if lot["project_id"] != str(project_uuid):
            raise HTTPException(status_code=404, detail="Lot not found")
        itp_templates = _page_data(await template_actions.list_templates(session))
        checks = _page_data(await compliance_actions.list_compliance_checks(session, lot_uuid))
        dockets = _page_data(await docket_actions.list_dockets(session, lot_uuid))

    records_by_item = {r["itp_item_id"]: r for r in lot["conformance_records"]}
    assigned = {t["id"] for t in lot["itp_templates"]}

    return templates.TemplateResponse(
        request,
        "lot.html",
        {
            "user": user,
            "lot": lot,
            "project": lot["project"],
            "records_by_item": records_by_item,
            "available_templates": [t for t in itp_templates if t["id"] not in assigned],
            "compliance": checks,
            "dockets": dockets,
        },
    )
