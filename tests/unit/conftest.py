"""Shared fixtures: file-backed SQLite database and fake step backends."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from longform.agents.internal_link_planner import (
    InternalLinkInput,
    InternalLinkProposal,
    InternalLinkResult,
)
from longform.agents.outline_planner import OutlineInput, OutlineResult, OutlineSection
from longform.agents.reference_summarizer import (
    ReferenceInsights,
    ReferenceSummaryInput,
    ReferenceSummaryResult,
)
from longform.agents.section_writer import SectionInput, SectionResult
from longform.agents.social_post_writer import SocialPostInput, SocialPostResult
from longform.config import Settings
from longform.core import database
from longform.core.exceptions import UnavailableError
from longform.integrations.page_fetcher import ExtractedPage
from longform.integrations.search import SearchHit
from longform.models import Article, Base
from longform.repositories.article_repository import ArticleRepository
from longform.schemas.article import ArticleCreate
from longform.services.knowledge import KnowledgeCollaborators
from longform.services.steps.base_step import StepCollaborators

DEFAULT_HEADINGS = ["What it is", "How it works", "Common pitfalls", "Checklist"]


class FakeSearch:
    def __init__(self, hits: list[SearchHit] | None = None) -> None:
        self.hits = hits or []
        self.queries: list[tuple[str, int]] = []
        self.delay = 0.0
        self.error: Exception | None = None

    async def search(self, query: str, limit: int) -> list[SearchHit]:
        self.queries.append((query, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.hits[:limit]


class FakeOutlinePlanner:
    def __init__(self, headings: list[str] | None = None) -> None:
        self.headings = headings or list(DEFAULT_HEADINGS)
        self.calls: list[OutlineInput] = []

    async def run(self, input_data: OutlineInput) -> OutlineResult:
        self.calls.append(input_data)
        return OutlineResult(
            sections=[
                OutlineSection(h2=heading, intent_tag="how-to", planned_chars=2500)
                for heading in self.headings
            ],
            faq=["Is it worth it?"],
        )


class FakeSectionWriter:
    def __init__(self) -> None:
        self.calls: list[SectionInput] = []
        self.fail_at: int | None = None
        self.delay = 0.0
        self.on_call: Callable[[SectionInput], Awaitable[None]] | None = None
        self.fill_planned_length = False

    async def run(self, input_data: SectionInput) -> SectionResult:
        self.calls.append(input_data)
        if self.on_call is not None:
            await self.on_call(input_data)
        if self.delay:
            await asyncio.sleep(self.delay)
        if input_data.index == self.fail_at:
            raise UnavailableError("fake-llm", "HTTP 503")
        heading = input_data.heading_path.removeprefix("H2: ").split(" [")[0]
        content = f"## {heading}\n\nBody of section {input_data.index}.  \n"
        if self.fill_planned_length:
            content = content.ljust(input_data.planned_length, "x")
        return SectionResult(content=content)


class FakeLinkPlanner:
    def __init__(self) -> None:
        self.calls: list[InternalLinkInput] = []
        self.error: Exception | None = None

    async def run(self, input_data: InternalLinkInput) -> InternalLinkResult:
        self.calls.append(input_data)
        if self.error is not None:
            raise self.error
        return InternalLinkResult(
            proposals=[
                InternalLinkProposal(anchor="lease expiry", target_type="glossary", rationale="Term."),
                InternalLinkProposal(anchor="pricing", target_type="pricing"),
            ]
        )


class FakeSocialWriter:
    def __init__(self) -> None:
        self.calls: list[SocialPostInput] = []

    async def run(self, input_data: SocialPostInput) -> SocialPostResult:
        self.calls.append(input_data)
        return SocialPostResult(x_post="Ship long reads.", linkedin_post="A longer post.", cta="Read it.")


class FakeSummarizer:
    def __init__(self) -> None:
        self.calls: list[ReferenceSummaryInput] = []

    async def run(self, input_data: ReferenceSummaryInput) -> ReferenceSummaryResult:
        self.calls.append(input_data)
        return ReferenceSummaryResult(
            summary=f"Summary of {input_data.title}.",
            insights=ReferenceInsights(claims=["Leases expire"], faq=["Why leases?"]),
        )


class FakeFetcher:
    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.urls: list[str] = []

    async def fetch(self, url: str) -> ExtractedPage:
        self.urls.append(url)
        if url in self.failing:
            raise UnavailableError("page fetch", "HTTP 503")
        return ExtractedPage(
            url=url,
            title=f"Page {len(self.urls)}",
            headings=[{"level": 2, "text": "Leases"}],
            text="Readable body.",
        )


@pytest.fixture
def sqlite_db(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> Any:
    """Point the session factory at a fresh SQLite file with all tables."""
    db_path = tmp_path / "longform.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = database.build_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "async_session_maker", database.build_session_maker(engine))
    return engine


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, research_max_sources=5, advance_step_timeout_seconds=10.0)


@pytest.fixture
def collaborators(test_settings: Settings) -> StepCollaborators:
    return StepCollaborators(
        search=FakeSearch(
            [
                SearchHit(title="Guide", url="https://guides.example.org/long-form", snippet="A guide."),
                SearchHit(title="Study", url="https://research.example.net/study?utm_source=x"),
            ]
        ),
        outline_planner=FakeOutlinePlanner(),
        section_writer=FakeSectionWriter(),
        settings=test_settings,
    )


@pytest.fixture
def knowledge_collaborators(test_settings: Settings) -> KnowledgeCollaborators:
    return KnowledgeCollaborators(
        internal_link_planner=FakeLinkPlanner(),
        social_post_writer=FakeSocialWriter(),
        reference_summarizer=FakeSummarizer(),
        page_fetcher=FakeFetcher(),
        settings=test_settings,
    )


@pytest.fixture
def make_article(sqlite_db: Any) -> Callable[..., Awaitable[Article]]:
    async def _make(**overrides: Any) -> Article:
        params: dict[str, Any] = {
            "title": "Long-form content operations",
            "keywords": ["long-form", "content ops"],
            "target_length": 10_000,
            "tone": "practical",
            "reference_urls": ["https://docs.example.com/handbook/"],
        }
        params.update(overrides)
        return await ArticleRepository().create(ArticleCreate(**params).model_dump())

    return _make
