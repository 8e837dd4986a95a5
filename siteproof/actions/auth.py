"""Account actions: signup and credential checks.

Session handling lives in ``siteproof.web.auth``; these actions only touch
the users table.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any
from uuid import UUID

import bcrypt
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions.result import ActionError, ActionResult, ConflictError, action, parse
from siteproof.config import get_config
from siteproof.db import repository
from siteproof.db.models import UserModel, utcnow
from siteproof.models import LoginRequest, SignupRequest

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_CREDENTIALS = "Invalid email or password"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed hash in the database
        return False


def public_user(user: UserModel) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "role": user.role,
        "org_id": user.org_id,
    }


@action("signup")
async def signup(session: AsyncSession, payload: Mapping[str, Any]) -> ActionResult:
    """Register a new account.

    Checks run in order: required fields, password length, email format,
    duplicate email.
    """
    data = parse(SignupRequest, payload)
    min_length = get_config().auth.min_password_length

    if len(data.password) < min_length:
        raise ActionError(f"Password must be at least {min_length} characters")
    if not EMAIL_PATTERN.match(data.email):
        raise ActionError("Please enter a valid email address")

    email = data.email.lower()
    if await repository.select_one(session, UserModel, {"email": email}):
        raise ConflictError("An account with this email already exists")

    user = await repository.insert_row(
        session,
        UserModel,
        {
            "email": email,
            "password_hash": hash_password(data.password),
            "first_name": data.first_name,
            "last_name": data.last_name,
            "org_id": get_config().org_id,
        },
    )
    logger.info("user_signed_up", user_id=str(user.id))
    return ActionResult.ok(public_user(user), message="Account created successfully")


@action("login")
async def login(session: AsyncSession, payload: Mapping[str, Any]) -> ActionResult:
    """Verify email + password.

    Unknown email, inactive account and wrong password all produce the same
    ``unauthorized`` failure.
    """
    data = parse(LoginRequest, payload)

    user = await repository.select_one(session, UserModel, {"email": data.email.lower()})
    if user is None or not user.is_active or not check_password(data.password, user.password_hash):
        raise ActionError(INVALID_CREDENTIALS, code="unauthorized")

    user.last_login = utcnow()
    await session.flush()
    return ActionResult.ok(public_user(user), message="Login successful")


async def get_user(session: AsyncSession, user_id: str) -> UserModel | None:
    try:
        return await repository.get_by_id(session, UserModel, UUID(user_id))
    except ValueError:
        return None
