"""Unit tests for settings parsing and model resolution."""

from __future__ import annotations

import pytest

from longform.config import Settings


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql+psycopg2://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ],
)
def test_database_url_is_normalized_to_async_driver(raw: str, expected: str) -> None:
    assert Settings(_env_file=None, database_url=raw).database_url == expected


def test_is_sqlite() -> None:
    assert Settings(_env_file=None, database_url="sqlite:///x.db").is_sqlite is True
    assert Settings(_env_file=None).is_sqlite is False


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('["https://a.test", "https://b.test"]', ["https://a.test", "https://b.test"]),
        ("https://a.test, https://b.test", ["https://a.test", "https://b.test"]),
        ("['https://a.test']", ["https://a.test"]),
        ("", []),
    ],
)
def test_cors_origins_accepts_several_formats(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: list[str],
) -> None:
    monkeypatch.setenv("CORS_ORIGINS", raw)

    assert Settings(_env_file=None).cors_origins == expected


def test_get_model_prefers_override_then_environment_default() -> None:
    settings = Settings(_env_file=None, environment="production", prod_model_standard="openai:gpt-4o")

    assert settings.get_model("standard") == "openai:gpt-4o"
    assert settings.get_model("fast") == "anthropic:claude-haiku-4-5"
    assert settings.get_model("unknown-tier") == settings.default_llm_model


def test_get_llm_timeout_falls_back_to_standard() -> None:
    settings = Settings(_env_file=None, llm_timeout_reasoning=99)

    assert settings.get_llm_timeout("reasoning") == 99
    assert settings.get_llm_timeout("nope") == settings.llm_timeout_standard


def test_search_enabled_requires_both_credentials() -> None:
    assert Settings(_env_file=None, dataforseo_login="me").search_enabled is False
    assert (
        Settings(_env_file=None, dataforseo_login="me", dataforseo_password="pw").search_enabled
        is True
    )
