"""Table accessor: filtered/ordered select, insert and update by table name.

Query construction only. Business rules live in ``siteproof.actions``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.db.models import (
    AuditLogModel,
    Base,
    ComplianceCheckModel,
    ConformanceRecordModel,
    ITPItemModel,
    ITPTemplateModel,
    LabourDocketModel,
    LotITPTemplateModel,
    LotModel,
    MaterialsDocketModel,
    ProjectModel,
    UserModel,
)

TABLES: dict[str, type[Base]] = {
    "projects": ProjectModel,
    "lots": LotModel,
    "itp_templates": ITPTemplateModel,
    "itp_items": ITPItemModel,
    "lot_itp_templates": LotITPTemplateModel,
    "conformance_records": ConformanceRecordModel,
    "compliance_checks": ComplianceCheckModel,
    "daily_labour": LabourDocketModel,
    "daily_materials": MaterialsDocketModel,
    "users": UserModel,
    "audit_logs": AuditLogModel,
}

Filters = Mapping[str, Any]


class UnknownTableError(KeyError):
    """Raised when a table name is not part of the schema."""


def model_for(table: str | type[Base]) -> type[Base]:
    if not isinstance(table, str):
        return table
    try:
        return TABLES[table]
    except KeyError as exc:
        raise UnknownTableError(table) from exc


def _where(model: type[Base], filters: Filters | None) -> list:
    """Translate ``{column: value}`` into SQL clauses.

    A list/tuple/set value becomes ``IN``; ``None`` becomes ``IS NULL``.
    """
    clauses = []
    for name, value in (filters or {}).items():
        column = getattr(model, name)
        if value is None:
            clauses.append(column.is_(None))
        elif isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(column.in_(list(value)))
        else:
            clauses.append(column == value)
    return clauses


async def select_rows(
    session: AsyncSession,
    table: str | type[Base],
    filters: Filters | None = None,
    order_by: str | Iterable[str] | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> list[Any]:
    """Return ORM rows from ``table`` matching ``filters``."""
    model = model_for(table)
    stmt = select(model).where(*_where(model, filters))

    if order_by:
        names = [order_by] if isinstance(order_by, str) else list(order_by)
        for name in names:
            column = getattr(model, name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def select_one(
    session: AsyncSession,
    table: str | type[Base],
    filters: Filters,
) -> Any | None:
    rows = await select_rows(session, table, filters, limit=1)
    return rows[0] if rows else None


async def get_by_id(session: AsyncSession, table: str | type[Base], row_id: UUID) -> Any | None:
    return await session.get(model_for(table), row_id)


async def count_rows(
    session: AsyncSession,
    table: str | type[Base],
    filters: Filters | None = None,
) -> int:
    model = model_for(table)
    stmt = select(func.count()).select_from(model).where(*_where(model, filters))
    return (await session.execute(stmt)).scalar_one()


async def insert_row(session: AsyncSession, table: str | type[Base], values: Mapping[str, Any]) -> Any:
    """Insert one row and flush so generated ids are available."""
    row = model_for(table)(**dict(values))
    session.add(row)
    await session.flush()
    return row


async def insert_rows(
    session: AsyncSession,
    table: str | type[Base],
    rows: Iterable[Mapping[str, Any]],
) -> list[Any]:
    model = model_for(table)
    created = [model(**dict(values)) for values in rows]
    session.add_all(created)
    await session.flush()
    return created


def apply_changes(row: Any, values: Mapping[str, Any]) -> Any:
    """Set attributes on a loaded row (flushed with the session)."""
    for name, value in values.items():
        setattr(row, name, value)
    return row


def _json_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_to_dict(row: Any, exclude: Iterable[str] = ()) -> dict[str, Any]:
    """Column values of an ORM row as JSON-friendly primitives."""
    skip = set(exclude)
    return {
        column.key: _json_value(getattr(row, column.key))
        for column in row.__table__.columns
        if column.key not in skip
    }
