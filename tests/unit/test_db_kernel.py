"""Unit tests for DB kernel helpers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from longform.core.db_kernel import (
    ConflictError,
    PermanentDbError,
    TransientDbError,
    db_read,
    db_write,
    db_write_no_retry,
)
from longform.core.exceptions import JobNotFoundError


class _FakeSession:
    def __init__(self) -> None:
        self.commit_calls = 0

    async def commit(self) -> None:
        self.commit_calls += 1


def _patch_session(monkeypatch: pytest.MonkeyPatch, session: _FakeSession) -> None:
    @asynccontextmanager
    async def _fake_context(*, commit_on_exit: bool = True):
        assert commit_on_exit is False
        yield session

    monkeypatch.setattr("longform.core.database.get_session_context", _fake_context)


@pytest.mark.asyncio
async def test_db_read_uses_short_lived_session(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _FakeSession()
    _patch_session(monkeypatch, session)

    result = await db_read(lambda s: _echo("ok", s), operation_name="unit_read")

    assert result == "ok"
    assert session.commit_calls == 0


@pytest.mark.asyncio
async def test_db_write_retries_transient_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _FakeSession()
    calls = {"count": 0}
    _patch_session(monkeypatch, session)

    async def _operation(_session: _FakeSession) -> str:
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("database is locked")
        return "done"

    result = await db_write(
        _operation,
        operation_name="unit_write",
        attempts=2,
        base_delay_seconds=0.0,
    )

    assert result == "done"
    assert calls["count"] == 2
    assert session.commit_calls == 1


@pytest.mark.asyncio
async def test_db_write_raises_permanent_on_non_transient_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_session(monkeypatch, _FakeSession())

    async def _operation(_session: _FakeSession) -> None:
        raise ValueError("bad payload")

    with pytest.raises(PermanentDbError):
        await db_write(_operation, operation_name="unit_write_perm", attempts=2, base_delay_seconds=0.0)


@pytest.mark.asyncio
async def test_db_write_no_retry_translates_integrity_conflict(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_session(monkeypatch, _FakeSession())

    async def _operation(_session: _FakeSession) -> None:
        raise IntegrityError("UPDATE jobs ...", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(ConflictError):
        await db_write_no_retry(_operation, operation_name="unit_write_conflict")


@pytest.mark.asyncio
async def test_db_write_no_retry_does_not_replay_transient_failure(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = {"count": 0}
    _patch_session(monkeypatch, _FakeSession())

    async def _operation(_session: _FakeSession) -> None:
        calls["count"] += 1
        raise OperationalError("UPDATE jobs ...", {}, Exception("disk I/O error"))

    with pytest.raises(TransientDbError):
        await db_write_no_retry(_operation, operation_name="unit_write_fenced")

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_db_write_exhausted_transient_retry_raises_transient(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _patch_session(monkeypatch, _FakeSession())

    async def _operation(_session: _FakeSession) -> None:
        raise RuntimeError("connection is closed")

    with pytest.raises(TransientDbError):
        await db_write(_operation, operation_name="unit_write_transient", attempts=2, base_delay_seconds=0.0)


@pytest.mark.asyncio
async def test_domain_errors_pass_through_untranslated(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _FakeSession()
    _patch_session(monkeypatch, session)

    async def _operation(_session: _FakeSession) -> None:
        raise JobNotFoundError("job_1")

    with pytest.raises(JobNotFoundError):
        await db_write(_operation, operation_name="unit_write_domain", base_delay_seconds=0.0)
    with pytest.raises(JobNotFoundError):
        await db_read(_operation, operation_name="unit_read_domain")

    assert session.commit_calls == 0


@pytest.mark.asyncio
async def test_db_write_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        await db_write(_echo_session, operation_name="unit_write_zero", attempts=0)


async def _echo(value: str, _session: Any) -> str:
    return value


async def _echo_session(_session: Any) -> None:
    return None
