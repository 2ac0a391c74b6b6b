"""Unit-of-work runner with bounded retry.

Every multi-row operation goes through ``run_transaction``: one session, one
``session.begin()`` block, commit on success and rollback on any exception.
Transient store failures and unique-insert races (WriteRaceError) replay the WHOLE unit
of work from a fresh session; nothing is ever resumed half-applied.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import get_settings
from app.core.exceptions import ServiceUnavailableError, TransientStoreError, WriteRaceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS = (
    "database is locked",
    "deadlock detected",
    "could not serialize",
    "connection was closed",
    "connection refused",
    "server closed the connection",
    "terminating connection",
)


def is_transient_store_error(exc: BaseException) -> bool:
    """True when ``exc`` is lost connectivity or lock contention, not a business failure."""
    if isinstance(exc, (DisconnectionError, PoolTimeoutError, ConnectionError)):
        return True
    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated or isinstance(exc, InterfaceError):
            return True
        if isinstance(exc, OperationalError):
            message = str(exc.orig or exc).lower()
            return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False


async def _run_once(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    try:
        async with session_factory() as session:
            async with session.begin():
                return await work(session)
    except (DBAPIError, DisconnectionError, PoolTimeoutError, ConnectionError) as exc:
        if is_transient_store_error(exc):
            raise TransientStoreError(str(exc)) from exc
        raise


async def run_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    operation: str = "transaction",
    attempts: int | None = None,
) -> T:
    """Run ``work(session)`` atomically, retrying the whole unit on transient failure.

    Args:
        session_factory: SQLAlchemy async session factory
        work: coroutine function receiving the session; must not commit itself
        operation: name used in logs and in ServiceUnavailableError
        attempts: override for ``store_retry_attempts``

    Returns:
        Whatever ``work`` returns

    Raises:
        ServiceUnavailableError: store stayed unavailable after all attempts
        WriteRaceError: insert race persisted after all attempts
        EmissionTrackerError subclasses raised by ``work`` propagate unchanged
    """
    settings = get_settings()
    max_attempts = attempts or settings.store_retry_attempts

    retrying = AsyncRetrying(
        retry=retry_if_exception_type((TransientStoreError, WriteRaceError)),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=settings.store_retry_backoff_seconds, max=2),
        reraise=True,
        before_sleep=lambda rs: logger.warning(
            "transaction_retrying",
            operation=operation,
            attempt=rs.attempt_number,
            error_type=type(rs.outcome.exception()).__name__,
            sleep_seconds=rs.next_action.sleep,
        ),
    )

    try:
        async for attempt in retrying:
            with attempt:
                return await _run_once(session_factory, work)
    except TransientStoreError as exc:
        logger.error("transaction_exhausted", operation=operation, attempts=max_attempts, error=str(exc))
        raise ServiceUnavailableError(operation, max_attempts) from exc
