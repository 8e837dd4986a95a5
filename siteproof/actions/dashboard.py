"""Dashboard summary counts."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.result import ActionResult, action
from siteproof.db import repository
from siteproof.db.models import ConformanceRecordModel, LotModel, ProjectModel


@action("dashboard_stats")
async def get_dashboard_stats(session: AsyncSession) -> ActionResult:
    """Project, lot and inspection counts.

    Inspection counts are per lot: ``pending`` lots have not started,
    ``completed`` lots have every assigned ITP finished.
    """
    return ActionResult.ok(
        {
            "total_projects": await repository.count_rows(session, ProjectModel),
            "active_projects": await repository.count_rows(session, ProjectModel, {"status": "active"}),
            "completed_projects": await repository.count_rows(session, ProjectModel, {"status": "completed"}),
            "total_lots": await repository.count_rows(session, LotModel),
            "pending_inspections": await repository.count_rows(session, LotModel, {"status": "pending"}),
            "completed_inspections": await repository.count_rows(
                session, LotModel, {"status": ["completed", "approved"]}
            ),
            "non_conformances": await repository.count_rows(
                session, ConformanceRecordModel, {"is_non_conformance": True}
            ),
        }
    )
