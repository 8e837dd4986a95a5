"""Session-based authentication for the SiteProof web UI and API.

Sessions are opaque tokens kept in Redis (with TTL) when REDIS_URL is set,
otherwise in process memory. The token travels in the httponly ``session``
cookie.
"""

from __future__ import annotations

import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import redis
import structlog
from fastapi import Cookie, HTTPException, Request

from siteproof.config import get_config

logger = structlog.get_logger()

SESSION_COOKIE = "session"

DEFAULT_USER = {
    "user_id": None,
    "username": "default_user",
    "email": "default_user",
    "role": "admin",
    "org_id": None,
}

# In-memory fallback when Redis is not configured or unavailable
_memory_sessions: dict[str, dict[str, Any]] = {}

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis | None:
    """Redis client for session storage, or None when REDIS_URL is unset."""
    global _redis_client
    redis_url = get_config().auth.redis_url
    if not redis_url:
        return None
    if _redis_client is None:
        _redis_client = redis.from_url(redis_url, decode_responses=True)
    return _redis_client


def session_expiry() -> timedelta:
    return timedelta(hours=get_config().auth.session_expiry_hours)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_session(user: dict[str, Any]) -> str:
    """Create a new session for an authenticated user.

    Args:
        user: Public user dict (id, email, role, org_id)

    Returns:
        str: Session token
    """
    session_token = secrets.token_urlsafe(32)
    expiry = session_expiry()

    session_data = {
        "user_id": user.get("id"),
        "username": user.get("email"),
        "email": user.get("email"),
        "role": user.get("role", "inspector"),
        "org_id": user.get("org_id"),
        "created_at": _now().isoformat(),
        "expires_at": (_now() + expiry).isoformat(),
    }

    client = get_redis_client()
    if client is not None:
        try:
            client.setex(
                f"session:{session_token}", int(expiry.total_seconds()), json.dumps(session_data)
            )
            return session_token
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            logger.warning("session_store_unavailable", error=str(exc))

    _memory_sessions[session_token] = session_data
    return session_token


def _expired(session_data: dict[str, Any]) -> bool:
    return _now() > datetime.fromisoformat(session_data["expires_at"])


def validate_session(session_token: str | None) -> dict[str, Any] | None:
    """Return session data if the token is valid and unexpired."""
    if not session_token:
        return None

    client = get_redis_client()
    if client is not None:
        try:
            raw = client.get(f"session:{session_token}")
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            logger.warning("session_store_unavailable", error=str(exc))
        else:
            if raw is None:
                return None
            try:
                session_data = json.loads(raw)
                if not _expired(session_data):
                    return session_data
            except (json.JSONDecodeError, KeyError, ValueError):
                pass
            client.delete(f"session:{session_token}")
            return None

    session_data = _memory_sessions.get(session_token)
    if session_data is None:
        return None
    if _expired(session_data):
        del _memory_sessions[session_token]
        return None
    return session_data


def logout(session_token: str | None) -> None:
    """Invalidate a session token."""
    if not session_token:
        return

    _memory_sessions.pop(session_token, None)
    client = get_redis_client()
    if client is not None:
        try:
            client.delete(f"session:{session_token}")
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            logger.warning("session_store_unavailable", error=str(exc))


def require_user(request: Request, session: str | None = Cookie(default=None)) -> dict[str, Any]:
    """Dependency for API routes: session data or 401."""
    if get_config().auth.auth_disabled:
        return dict(DEFAULT_USER)

    session_data = validate_session(session)
    if not session_data:
        raise HTTPException(status_code=401, detail="Authentication required")
    return session_data


def require_page_user(request: Request, session: str | None = Cookie(default=None)) -> dict[str, Any]:
    """Dependency for HTML pages: session data or redirect to /login."""
    if get_config().auth.auth_disabled:
        return dict(DEFAULT_USER)

    session_data = validate_session(session)
    if not session_data:
        raise HTTPException(
            status_code=307,
            detail="Authentication required",
            headers={"Location": "/login"},
        )
    return session_data


def set_session_cookie(response, session_token: str) -> None:
    config = get_config()
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_token,
        httponly=True,
        max_age=int(session_expiry().total_seconds()),
        samesite="lax",
        secure=config.auth.cookie_secure,
    )
