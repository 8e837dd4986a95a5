"""Authentication routes for SiteProof.

Routes:
- GET  /login             - Login page
- GET  /signup            - Signup page
- GET  /logout            - Logout and redirect to /login
- POST /api/auth/login    - Verify credentials, set session cookie
- POST /api/auth/signup   - Create account, set session cookie
- POST /api/auth/logout   - Invalidate session
- GET  /api/auth/me       - Current session user
- GET  /favicon.ico       - Empty favicon (204)
"""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from siteproof.actions import auth as auth_actions
from siteproof.core.audit_logger import log_action
from siteproof.db.connection import get_session
from siteproof.web.auth import (
    SESSION_COOKIE,
    create_session,
    require_user,
    set_session_cookie,
    validate_session,
)
from siteproof.web.auth import logout as auth_logout
from siteproof.web.dependencies import get_templates
from siteproof.web.responses import action_response, read_payload

router = APIRouter(tags=["authentication"])


# ============================================================================
# Pages
# ============================================================================


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, error: str | None = None, templates=Depends(get_templates)):
    """Login page."""
    return templates.TemplateResponse(request, "login.html", {"error": error})


@router.get("/signup", response_class=HTMLResponse)
async def signup_page(request: Request, templates=Depends(get_templates)):
    """Signup page."""
    return templates.TemplateResponse(request, "signup.html", {})


@router.get("/logout")
async def logout_page(request: Request, session: str | None = Cookie(default=None)):
    """Logout and redirect to the login page."""
    await _end_session(request, session)
    response = RedirectResponse(url="/login", status_code=302)
    response.delete_cookie(SESSION_COOKIE)
    return response


# ============================================================================
# API
# ============================================================================


@router.post("/api/auth/login")
async def login(request: Request):
    """Verify email/password.

    400 when fields are missing, 401 (and no cookie) on bad credentials,
    200 ``{success: true}`` with an httponly ``session`` cookie otherwise.
    """
    payload = await read_payload(request)

    async with get_session() as session:
        result = await auth_actions.login(session, payload)
        email = str(payload.get("email") or "")
        if not result.success:
            if result.code == "unauthorized":
                await log_action(request, "LOGIN_FAILED", email, resource_type="system", session=session)
            return action_response(result)

        user = result.data
        await log_action(
            request, "LOGIN", user["email"], user_id=user["id"], resource_type="system", session=session
        )

    response = action_response(result)
    set_session_cookie(response, create_session(user))
    return response


@router.post("/api/auth/signup")
async def signup(request: Request):
    """Create an account and log it in."""
    payload = await read_payload(request)

    async with get_session() as session:
        result = await auth_actions.signup(session, payload)
        if not result.success:
            return action_response(result)

        user = result.data
        await log_action(
            request, "SIGNUP", user["email"], user_id=user["id"], resource_type="user",
            resource_id=user["id"], session=session,
        )

    response = action_response(result)
    set_session_cookie(response, create_session(user))
    return response


@router.post("/api/auth/logout")
async def logout(request: Request, session: str | None = Cookie(default=None)):
    """Invalidate the session and clear the cookie."""
    await _end_session(request, session)
    response = JSONResponse({"success": True, "message": "Logged out"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/api/auth/me")
async def me(user: dict = Depends(require_user)):
    """Session user (401 when not logged in)."""
    return {"success": True, "data": {k: v for k, v in user.items() if k != "expires_at"}}


async def _end_session(request: Request, session_token: str | None) -> None:
    session_data = validate_session(session_token)
    if session_token:
        auth_logout(session_token)
    if session_data:
        await log_action(
            request,
            "LOGOUT",
            session_data.get("username") or "unknown",
            user_id=session_data.get("user_id"),
            resource_type="system",
        )


# ============================================================================
# Utility Routes
# ============================================================================


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Return empty favicon to prevent 404s."""
    return Response(status_code=204)
