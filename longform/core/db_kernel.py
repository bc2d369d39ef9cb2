"""Short-lived session helpers that translate DB failures into kernel errors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from time import monotonic
from typing import NoReturn, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from longform.core import database
from longform.core.db_retry import is_transient_connection_error
from longform.core.exceptions import LongformError

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")


class DbKernelError(RuntimeError):
    """Base error for DB kernel operations."""


class TransientDbError(DbKernelError):
    """Transient DB failure that can usually be retried."""


class ConflictError(DbKernelError):
    """Write conflict (usually integrity/unique constraint)."""


class PermanentDbError(DbKernelError):
    """Non-transient DB failure."""


def _translate_error(exc: Exception) -> Exception:
    # Domain errors raised inside the callback pass through untouched
    if isinstance(exc, (LongformError, DbKernelError)):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError(str(exc))
    if is_transient_connection_error(exc):
        return TransientDbError(str(exc))
    return PermanentDbError(str(exc))


def _elapsed_ms(started: float) -> float:
    return round((monotonic() - started) * 1000, 2)


def _raise_translated(exc: Exception) -> NoReturn:
    translated = _translate_error(exc)
    if translated is exc:
        raise exc
    raise translated from exc


async def db_read(
    fn: Callable[[AsyncSession], Awaitable[_ResultT]],
    *,
    operation_name: str,
) -> _ResultT:
    """Execute a read operation in a short-lived session."""
    started = monotonic()
    try:
        async with database.get_session_context(commit_on_exit=False) as session:
            result = await fn(session)
    except Exception as exc:
        translated = _translate_error(exc)
        if translated is not exc:
            logger.warning(
                "DB read operation failed",
                extra={
                    "operation": operation_name,
                    "duration_ms": _elapsed_ms(started),
                    "failure_class": type(translated).__name__,
                },
            )
        _raise_translated(exc)
    logger.debug(
        "DB read operation completed",
        extra={"operation": operation_name, "duration_ms": _elapsed_ms(started)},
    )
    return result


async def db_write_no_retry(
    fn: Callable[[AsyncSession], Awaitable[_ResultT]],
    *,
    operation_name: str,
) -> _ResultT:
    """Execute a write operation in one transaction without retries.

    Used for fenced writes where a retry after an ambiguous commit must not
    replay the callback.
    """
    return await db_write(fn, operation_name=operation_name, attempts=1)


async def db_write(
    fn: Callable[[AsyncSession], Awaitable[_ResultT]],
    *,
    operation_name: str,
    attempts: int = 3,
    base_delay_seconds: float = 0.2,
) -> _ResultT:
    """Execute a write operation with retries for transient failures."""
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    started = monotonic()
    for attempt in range(1, attempts + 1):
        try:
            async with database.get_session_context(commit_on_exit=False) as session:
                result = await fn(session)
                await session.commit()
        except Exception as exc:
            translated = _translate_error(exc)
            is_retryable = isinstance(translated, TransientDbError) and attempt < attempts
            if translated is not exc:
                logger.warning(
                    "DB write operation failed",
                    extra={
                        "operation": operation_name,
                        "duration_ms": _elapsed_ms(started),
                        "failure_class": type(translated).__name__,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "will_retry": is_retryable,
                    },
                )
            if not is_retryable:
                _raise_translated(exc)
            await asyncio.sleep(base_delay_seconds * attempt)
            continue

        logger.debug(
            "DB write operation completed",
            extra={
                "operation": operation_name,
                "duration_ms": _elapsed_ms(started),
                "attempt": attempt,
                "max_attempts": attempts,
            },
        )
        return result

    raise RuntimeError(f"DB write retry loop exhausted unexpectedly: {operation_name}")
