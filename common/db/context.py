"""
Session context for the current task.

Repositories never receive a session explicitly. They ask
``common.db.scoped.get_session()``, which looks here first: if a
``transaction()`` is open in the current task, its session is reused so all
writes inside the block commit or roll back together.

Read sessions are tracked separately from write sessions so a ``@readonly``
call chain can later be routed to a replica without touching repositories.
"""

from contextvars import ContextVar, Token
from functools import wraps
from typing import Optional, Callable, TypeVar, ParamSpec

from sqlalchemy.ext.asyncio import AsyncSession

_write_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_write_session", default=None
)
_read_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_read_session", default=None
)
_force_readonly: ContextVar[bool] = ContextVar("db_force_readonly", default=False)

P = ParamSpec("P")
T = TypeVar("T")


def is_readonly_forced() -> bool:
    return _force_readonly.get()


def get_current_session(readonly: bool = False) -> Optional[AsyncSession]:
    """Return the session of the enclosing transaction, if there is one."""
    if readonly or is_readonly_forced():
        return _read_session.get()
    return _write_session.get()


def set_current_session(session: AsyncSession, readonly: bool = False) -> Token:
    var = _read_session if readonly else _write_session
    return var.set(session)


def reset_current_session(token: Token, readonly: bool = False) -> None:
    var = _read_session if readonly else _write_session
    var.reset(token)


def readonly(func: Callable[P, T]) -> Callable[P, T]:
    """Route every session opened under the decorated coroutine to the read side.

    Usage:
        @readonly
        async def usage_report(tenant_id: int):
            tenant = await tenant_repo.get(tenant_id)
            ...
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        token = _force_readonly.set(True)
        try:
            return await func(*args, **kwargs)
        finally:
            _force_readonly.reset(token)

    return wrapper
