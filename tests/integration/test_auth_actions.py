"""Integration tests for signup and login against the users table."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.actions import auth as auth_actions
from siteproof.db import repository
from siteproof.db.models import UserModel

PASSWORD = "correct-horse"


@pytest.fixture
def signup_payload() -> dict:
    return {"email": "Site.Engineer@Example.com", "password": PASSWORD, "firstName": "Sam", "lastName": "Lee"}


class TestSignup:
    @pytest.mark.asyncio
    async def test_creates_user_with_hashed_password(self, db_session: AsyncSession, signup_payload):
        result = await auth_actions.signup(db_session, signup_payload)

        assert result.success is True
        assert result.data["email"] == "site.engineer@example.com"
        assert result.data["full_name"] == "Sam Lee"
        assert result.data["org_id"] == "test-org"
        assert "password_hash" not in result.data

        user = await repository.select_one(db_session, UserModel, {"email": "site.engineer@example.com"})
        assert user.password_hash != PASSWORD
        assert auth_actions.check_password(PASSWORD, user.password_hash)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,error",
        [
            ({"email": "a@b.co"}, "Email and password are required"),
            ({"email": "a@b.co", "password": "short"}, "Password must be at least 8 characters"),
            ({"email": "not-an-email", "password": PASSWORD}, "Please enter a valid email address"),
        ],
    )
    async def test_validation_order(self, db_session: AsyncSession, payload, error):
        result = await auth_actions.signup(db_session, payload)

        assert result.success is False
        assert result.error == error

    @pytest.mark.asyncio
    async def test_duplicate_email_any_case(self, db_session: AsyncSession, signup_payload):
        await auth_actions.signup(db_session, signup_payload)

        result = await auth_actions.signup(
            db_session, {"email": "site.engineer@EXAMPLE.com", "password": PASSWORD}
        )

        assert result.success is False
        assert result.code == "conflict"
        assert result.error == "An account with this email already exists"


class TestLogin:
    @pytest.mark.asyncio
    async def test_success_records_last_login(self, db_session: AsyncSession, signup_payload):
        await auth_actions.signup(db_session, signup_payload)

        result = await auth_actions.login(
            db_session, {"email": "site.engineer@example.com", "password": PASSWORD}
        )

        assert result.success is True
        user = await auth_actions.get_user(db_session, result.data["id"])
        assert user.last_login is not None

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, db_session: AsyncSession, signup_payload):
        await auth_actions.signup(db_session, signup_payload)

        wrong = await auth_actions.login(db_session, {"email": signup_payload["email"], "password": "nope-nope"})
        unknown = await auth_actions.login(db_session, {"email": "ghost@example.com", "password": PASSWORD})

        assert wrong.to_dict() == unknown.to_dict() == {"success": False, "error": "Invalid email or password"}
        assert wrong.code == unknown.code == "unauthorized"

    @pytest.mark.asyncio
    async def test_inactive_user_rejected(self, db_session: AsyncSession, signup_payload):
        created = await auth_actions.signup(db_session, signup_payload)
        user = await auth_actions.get_user(db_session, created.data["id"])
        user.is_active = False

        result = await auth_actions.login(db_session, {"email": signup_payload["email"], "password": PASSWORD})

        assert result.code == "unauthorized"

    @pytest.mark.asyncio
    async def test_missing_fields(self, db_session: AsyncSession):
        result = await auth_actions.login(db_session, {"email": "a@b.co"})

        assert result.success is False
        assert result.code == "invalid"
        assert result.error == "Email and password are required"

    @pytest.mark.asyncio
    async def test_get_user_bad_id(self, db_session: AsyncSession):
        assert await auth_actions.get_user(db_session, "not-a-uuid") is None


class TestPasswordHashing:
    def test_malformed_hash_does_not_match(self):
        assert auth_actions.check_password(PASSWORD, "not-a-bcrypt-hash") is False
