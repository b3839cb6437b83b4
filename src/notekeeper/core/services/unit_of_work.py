"""Transaction scope for multi-statement writes."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import StorageFailureError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic_write(
    session: AsyncSession, lock_timeout_ms: Optional[int] = None
) -> AsyncIterator[AsyncSession]:
    """Run the enclosed statements as one transaction.

    Commits on normal exit and rolls back on any exception, so either every
    statement in the block is durable or none is. Driver errors (lock
    timeouts, aborted transactions, dropped connections) surface as a
    retryable ``StorageFailureError``.

    Usage::

        async with atomic_write(session):
            ...
    """
    try:
        if lock_timeout_ms and session.get_bind().dialect.name == "postgresql":
            # SET LOCAL only lasts until the end of the current transaction
            await session.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout_ms)}ms'"))
        yield session
        await session.commit()
    except DBAPIError as e:
        await session.rollback()
        logger.error(
            "Write transaction failed and was rolled back",
            extra={"exception_type": type(e).__name__, "exception_message": str(e.orig)},
        )
        raise StorageFailureError(cause=e) from e
    except BaseException:
        await session.rollback()
        raise


@asynccontextmanager
async def storage_guard(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Map driver errors raised anywhere in a service call to ``StorageFailureError``.

    The permission read that precedes a write already opens the
    transaction (on SQLite it takes the write lock), so a lock timeout or
    a dropped connection can surface before ``atomic_write`` is entered.
    """
    try:
        yield session
    except DBAPIError as e:
        await session.rollback()
        logger.error(
            "Storage failure outside the write transaction",
            extra={"exception_type": type(e).__name__, "exception_message": str(e.orig)},
        )
        raise StorageFailureError(cause=e) from e
