"""
Operation-scoped database sessions.

A connection is held only for the duration of one repository call (or one
explicit ``transaction()`` block), never across calls to Stripe, SMTP or the
lock backend.

Usage:
    async with get_session() as session:
        tenant = await session.get(TenantEntity, tenant_id)

    async with transaction():
        await tenant_repo.update_billing(tenant_id, changes)
        await ledger_repo.append(event)
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger
from common.db.session import AsyncSessionLocal, AsyncSessionLocalReadonly
from common.db.context import (
    get_current_session,
    set_current_session,
    reset_current_session,
    is_readonly_forced,
)

logger = get_logger(__name__)


def _session_factory(readonly: bool):
    return AsyncSessionLocalReadonly if readonly else AsyncSessionLocal


@asynccontextmanager
async def _owned_session(readonly: bool, label: str) -> AsyncGenerator[AsyncSession, None]:
    start = time.perf_counter()
    async with _session_factory(readonly)() as session:
        logger.debug(
            f"{label} session acquire: {(time.perf_counter() - start) * 1000:.2f}ms, readonly={readonly}"
        )
        try:
            yield session
            if not readonly:
                await session.commit()
        except Exception as e:
            logger.error(f"{label} rollback due to: {e}")
            await session.rollback()
            raise


@asynccontextmanager
async def transaction(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    Every repository call inside the block shares one session. The block
    commits on normal exit and rolls back on any exception, which is then
    re-raised.
    """
    effective_readonly = readonly or is_readonly_forced()
    async with _owned_session(effective_readonly, "Transaction") as session:
        token = set_current_session(session, readonly=effective_readonly)
        try:
            yield session
        finally:
            reset_current_session(token, readonly=effective_readonly)


@asynccontextmanager
async def get_session(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for a single repository operation.

    Reuses the enclosing ``transaction()`` session when one is open (the
    transaction owns commit). Otherwise opens a session, commits on exit and
    releases the connection immediately.
    """
    effective_readonly = readonly or is_readonly_forced()
    existing = get_current_session(readonly=effective_readonly)

    if existing is not None:
        yield existing
        return

    async with _owned_session(effective_readonly, "Operation") as session:
        yield session
