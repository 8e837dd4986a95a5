"""Request parsing and ActionResult -> HTTP response mapping shared by routes.

Every API handler follows the same shape: read the body (JSON or form),
run one action inside a session, and hand the result to ``action_response``.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from siteproof.actions.result import ActionResult

FAILURE_STATUS = {
    "not_found": 404,
    "unauthorized": 401,
}


def action_response(result: ActionResult, failure_status: int = 400) -> JSONResponse:
    """200 on success; on failure 404/401 by category, else ``failure_status``."""
    if result.success:
        return JSONResponse(status_code=200, content=result.to_dict())
    status_code = FAILURE_STATUS.get(result.code or "", failure_status)
    return JSONResponse(status_code=status_code, content=result.to_dict())


async def read_payload(request: Request) -> dict[str, Any]:
    """Body as a dict, from JSON or urlencoded/multipart form data.

    Raises:
        HTTPException: 400 if the JSON body is malformed or not an object
    """
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body:
        return {}
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def parse_uuid(value: str, label: str) -> UUID:
    """Path/query id to UUID, or 400 ``Invalid <label> ID format``."""
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")


def parse_optional_uuid(value: str | None, label: str) -> UUID | None:
    return parse_uuid(value, label) if value else None
