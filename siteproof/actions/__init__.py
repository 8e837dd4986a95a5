"""Server actions: one coroutine per use case, each returning an ActionResult.

Every action takes the AsyncSession as its first argument; the caller owns
the transaction (``async with get_session() as session``).
"""

from siteproof.actions.result import (
    ActionError,
    ActionResult,
    ConflictError,
    NotFoundError,
    action,
    parse,
)

__all__ = [
    "ActionResult",
    "ActionError",
    "ConflictError",
    "NotFoundError",
    "action",
    "parse",
]
