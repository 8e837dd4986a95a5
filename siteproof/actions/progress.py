"""Derived status of ITP instances and lots from their conformance records."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.db import repository
from siteproof.db.models import (
    ConformanceRecordModel,
    ITPItemModel,
    LotITPTemplateModel,
    LotModel,
    utcnow,
)
from siteproof.models import AssignmentStatus, LotStatus

# Manual sign-off states are never overwritten by recomputation
LOCKED_ASSIGNMENT_STATES = {AssignmentStatus.APPROVED.value}
LOCKED_LOT_STATES = {LotStatus.APPROVED.value, LotStatus.REJECTED.value}


@dataclass
class ConformanceStats:
    total: int = 0
    passed: int = 0
    failed: int = 0
    pending: int = 0
    na: int = 0

    @property
    def completed(self) -> int:
        return self.passed + self.failed + self.na

    @property
    def pass_rate(self) -> float:
        # N/A items do not count towards the rate
        assessed = self.passed + self.failed
        return round(self.passed / assessed * 100, 1) if assessed else 0.0

    @property
    def progress_percentage(self) -> float:
        return round(self.completed / self.total * 100, 1) if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            **asdict(self),
            "completed": self.completed,
            "pass_rate": self.pass_rate,
            "progress_percentage": self.progress_percentage,
        }


def tally(statuses: Iterable[str], total_items: int | None = None) -> ConformanceStats:
    """Count record statuses; items without a record count as pending."""
    stats = ConformanceStats()
    for status in statuses:
        if status == "pass":
            stats.passed += 1
        elif status == "fail":
            stats.failed += 1
        elif status == "na":
            stats.na += 1
        else:
            stats.pending += 1
    recorded = stats.passed + stats.failed + stats.na + stats.pending
    stats.total = max(total_items or 0, recorded)
    stats.pending += stats.total - recorded
    return stats


def assignment_status_for(stats: ConformanceStats) -> str:
    if stats.total and stats.completed == stats.total:
        return AssignmentStatus.COMPLETED.value
    if stats.completed:
        return AssignmentStatus.IN_PROGRESS.value
    return AssignmentStatus.PENDING.value


def lot_status_for(assignment_statuses: list[str]) -> str:
    if not assignment_statuses:
        return LotStatus.PENDING.value
    done = {AssignmentStatus.COMPLETED.value, AssignmentStatus.APPROVED.value}
    if all(status in done for status in assignment_statuses):
        return LotStatus.COMPLETED.value
    return LotStatus.IN_PROGRESS.value


async def assignment_stats(session: AsyncSession, assignment: LotITPTemplateModel) -> ConformanceStats:
    items = await repository.select_rows(
        session, ITPItemModel, {"itp_template_id": assignment.itp_template_id}
    )
    records = await repository.select_rows(
        session,
        ConformanceRecordModel,
        {"lot_id": assignment.lot_id, "itp_template_id": assignment.itp_template_id},
    )
    item_ids = {item.id for item in items}
    return tally(
        (record.status for record in records if record.itp_item_id in item_ids),
        total_items=len(items),
    )


async def refresh_assignment_status(session: AsyncSession, assignment: LotITPTemplateModel) -> str:
    if assignment.status in LOCKED_ASSIGNMENT_STATES:
        return assignment.status

    status = assignment_status_for(await assignment_stats(session, assignment))
    if status != assignment.status:
        assignment.status = status
        assignment.completed_at = utcnow() if status == AssignmentStatus.COMPLETED.value else None
    return status


async def refresh_lot_status(session: AsyncSession, lot: LotModel) -> str:
    if lot.status in LOCKED_LOT_STATES:
        return lot.status

    assignments = await repository.select_rows(
        session, LotITPTemplateModel, {"lot_id": lot.id, "is_active": True}
    )
    status = lot_status_for([a.status for a in assignments])
    if status != lot.status:
        lot.status = status
    await session.flush()
    return status
