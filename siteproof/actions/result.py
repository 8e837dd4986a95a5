"""Uniform result envelope shared by every server action.

Actions return ``ActionResult`` instead of raising: validation and business
rule failures are raised internally as ``ActionError`` and converted by the
``@action`` decorator, which rolls the session back first so a rejected
call leaves nothing behind.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_snake
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class ActionResult:
    """``{success, data | error, message?}`` plus a failure category.

    ``code`` is one of ``invalid``, ``conflict``, ``not_found``,
    ``unauthorized`` or ``database``; routes map it to an HTTP status.
    """

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> ActionResult:
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, code: str = "invalid") -> ActionResult:
        return cls(success=False, error=error, code=code)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success}
        if self.success:
            body["data"] = self.data
        else:
            body["error"] = self.error
        if self.message:
            body["message"] = self.message
        return body


class ActionError(Exception):
    """Validation or business-rule failure inside an action."""

    code = "invalid"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(ActionError):
    code = "not_found"


class ConflictError(ActionError):
    code = "conflict"


def validation_message(model: type[BaseModel], exc: ValidationError) -> str:
    """First validation error as a human-readable sentence."""
    error = exc.errors()[0]
    loc = error.get("loc", ())
    fields = [to_snake(str(part)) for part in loc if isinstance(part, str)]
    field = fields[-1] if fields else None
    positions = [part for part in loc if isinstance(part, int)]
    prefix = f"Item {positions[0] + 1}: " if positions else ""

    if error["type"] == "missing" and field:
        messages = getattr(model, "required_messages", {})
        if not positions and field in messages:
            return messages[field]
        return f"{prefix}{field.replace('_', ' ').capitalize()} is required"

    message = error["msg"].removeprefix("Value error, ")
    if field:
        return f"{prefix}Invalid {field.replace('_', ' ')}: {message}"
    return message


def parse(model: type[ModelT], payload: Mapping[str, Any] | None) -> ModelT:
    """Validate ``payload`` into ``model`` or raise ActionError."""
    try:
        return model.model_validate(dict(payload or {}))
    except ValidationError as exc:
        raise ActionError(validation_message(model, exc)) from exc


def actor(user: Mapping[str, Any] | None) -> str | None:
    """Identifier recorded in created_by / checked_by columns."""
    if not user:
        return None
    return user.get("user_id") or user.get("username")


def database_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


def action(event: str) -> Callable[[Callable[..., Awaitable[ActionResult]]], Callable[..., Awaitable[ActionResult]]]:
    """Convert ActionError / SQLAlchemyError raised by an action into a failed result.

    The wrapped coroutine must take the AsyncSession as its first argument.
    """

    def decorator(func: Callable[..., Awaitable[ActionResult]]) -> Callable[..., Awaitable[ActionResult]]:
        @functools.wraps(func)
        async def wrapper(session, *args, **kwargs) -> ActionResult:
            try:
                return await func(session, *args, **kwargs)
            except ActionError as exc:
                await session.rollback()
                logger.info(f"{event}_rejected", error=exc.message, code=exc.code)
                return ActionResult.fail(exc.message, code=exc.code)
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(f"{event}_failed", error=str(exc))
                return ActionResult.fail(database_message(exc), code="database")

        return wrapper

    return decorator
