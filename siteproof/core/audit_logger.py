"""Audit trail: one ``audit_logs`` row per security-relevant or mutating request."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.db.connection import get_session
from siteproof.db.models import AuditLogModel

logger = structlog.get_logger()


def client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def _as_uuid(value: str | UUID | None) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except ValueError:
        return None


async def log_action(
    request: Request,
    action: str,
    username: str,
    user_id: str | UUID | None = None,
    resource_type: str | None = None,
    resource_id: str | UUID | None = None,
    details: dict[str, Any] | None = None,
    session: AsyncSession | None = None,
) -> None:
    """Write an audit entry.

    Args:
        request: Incoming request (client IP)
        action: Action name, e.g. "LOGIN", "LOT_CREATE"
        username: Actor's email, or the attempted email for failed logins
        user_id: Actor's user id; non-UUID values are stored as NULL
        resource_type: "project", "lot", "user" or "system"
        resource_id: Affected row id
        details: Extra JSON payload
        session: Write inside the caller's transaction when given,
            otherwise in a session of its own
    """
    entry = AuditLogModel(
        user_id=_as_uuid(user_id),
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details,
        ip_address=client_ip(request),
    )
    logger.info(
        "audit",
        action=action,
        username=username,
        resource_type=resource_type,
        resource_id=entry.resource_id,
    )

    if session is not None:
        session.add(entry)
        return
    async with get_session() as own_session:
        own_session.add(entry)


async def log_user_action(
    request: Request,
    action: str,
    user: Mapping[str, Any],
    **kwargs: Any,
) -> None:
    """``log_action`` for the session user returned by ``require_user``."""
    await log_action(
        request,
        action,
        user.get("username") or "unknown",
        user_id=user.get("user_id"),
        **kwargs,
    )
