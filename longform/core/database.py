"""Async SQLAlchemy database setup."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import InterfaceError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from longform.config import settings
from longform.core.db_retry import is_transient_connection_error

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.database_echo}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,  # Recycle connections every 5 min to avoid server-side timeouts
    )
    return options


def build_engine(database_url: str | None = None, **overrides: Any) -> AsyncEngine:
    """Create an async engine for the configured (or given) database URL."""
    url = database_url or settings.database_url
    return create_async_engine(url, **{**_engine_options(url), **overrides})


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the settings every caller relies on."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine()
async_session_maker = build_session_maker(engine)


def _has_pending_state(session: AsyncSession) -> bool:
    return bool(session.new or session.dirty or session.deleted)


async def release_read_only_transaction(
    session: AsyncSession,
    *,
    context: str,
) -> None:
    """Close an open read-only transaction when no ORM changes are pending.

    Commit (not rollback) keeps loaded attributes usable after the session
    is released, since rollback expires them.
    """
    if not session.in_transaction() or _has_pending_state(session):
        return

    try:
        await session.commit()
    except Exception as exc:
        if is_transient_connection_error(exc):
            logger.debug(
                "Ignoring transient commit failure for read-only transaction",
                extra={"context": context},
            )
            return
        raise


async def _finalize_session(
    session: AsyncSession,
    *,
    commit_on_exit: bool,
    context: str,
) -> None:
    if commit_on_exit:
        await session.commit()
        return

    if _has_pending_state(session):
        raise RuntimeError(
            "Session has pending ORM changes but commit_on_exit=False. "
            "Commit explicitly or use commit_on_exit=True."
        )

    await release_read_only_transaction(session, context=context)


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except Exception:
        logger.warning("Rollback also failed (connection likely closed)")


@asynccontextmanager
async def get_session_context(
    *,
    commit_on_exit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session as context manager for non-DI usage."""
    context = "get_session_context"
    async with async_session_maker() as session:
        try:
            yield session
            await _finalize_session(session, commit_on_exit=commit_on_exit, context=context)
        except InterfaceError as e:
            if not session.in_transaction() and not _has_pending_state(session):
                # Connection closed after work already committed/rolled back.
                logger.debug("Session connection already closed during cleanup, ignoring")
                return
            logger.warning(
                "Database interface error with active transaction, rolling back",
                extra={"context": context, "error": repr(e)},
            )
            await _rollback_quietly(session)
            raise
        except Exception as e:
            logger.warning(
                "Database session error, rolling back",
                extra={"context": context, "error": repr(e)},
            )
            await _rollback_quietly(session)
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    async with get_session_context(commit_on_exit=True) as session:
        yield session


async def init_db() -> None:
    """Initialize database (create tables if needed)."""
    logger.info("Initializing database tables")
    from longform.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    logger.info("Closing database connections")
    await engine.dispose()
