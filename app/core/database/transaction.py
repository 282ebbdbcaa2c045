"""
Unit-of-work helper for multi-statement writes.

Runs a coroutine inside a single transaction and retries the whole unit when
it loses a race with another writer (failed version check, duplicate insert,
lock timeout).
"""
import asyncio
import random
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from app.utils import get_logger


log = get_logger(__name__)

T = TypeVar("T")


class RetriesExhausted(Exception):
    """Raised when a unit of work kept losing concurrency races."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Gave up after {attempts} conflicting attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def is_conflict(exc: BaseException) -> bool:
    """
    Whether ``exc`` means another writer won a race and the unit can be rerun.

    Covers failed version checks, unique-key collisions on rows a concurrent
    writer inserted first, and lock or serialization failures.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, IntegrityError):
        msg = str(exc.orig).lower()
        return "unique" in msg or "duplicate" in msg or getattr(exc.orig, "pgcode", None) == "23505"
    if isinstance(exc, DBAPIError):
        msg = str(exc).lower()
        if "database is locked" in msg or "deadlock" in msg:
            return True
        if "serialization failure" in msg or "could not serialize access" in msg:
            return True
        # PostgreSQL serialization failure: SQLSTATE 40001
        return getattr(exc.orig, "pgcode", None) == "40001"
    return False


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    max_attempts: int = 5,
    base_delay: float = 0.01,
    max_delay: float = 0.5,
) -> T:
    """
    Run ``work(session)`` in one transaction, committing on success.

    Each attempt uses a fresh session so nothing read by a losing attempt leaks
    into the next one. Conflicts (see ``is_conflict``) are retried with
    jittered exponential backoff; any other exception rolls back and
    propagates immediately.
    """
    delay = base_delay
    attempt = 0
    while True:
        attempt += 1
        try:
            async with session_factory() as session:
                async with session.begin():
                    return await work(session)
        except Exception as exc:
            if not is_conflict(exc):
                raise
            if attempt >= max_attempts:
                raise RetriesExhausted(attempt, exc) from exc
            log.warning("Concurrent write detected (attempt %d/%d), retrying: %s", attempt, max_attempts, exc)
            await asyncio.sleep(delay + random.random() * delay)
            delay = min(max_delay, delay * 2.0)


async def run_read(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[Any]],
) -> Any:
    """Run a read-only ``work(session)`` in its own session."""
    async with session_factory() as session:
        return await work(session)
