"""Unit tests for internal links, social posts and reference summaries."""

from __future__ import annotations

from typing import Any

import pytest

from longform.core.exceptions import (
    ArticleNotFoundError,
    InvalidTransitionError,
    UnavailableError,
)
from longform.models.knowledge import KnowledgeKind
from longform.repositories.article_repository import ArticleRepository
from longform.services.job_controller import JobController
from longform.services.knowledge import KnowledgeService
from longform.services.pipeline_driver import PipelineDriver


async def _finished_article(make_article: Any, collaborators: Any) -> str:
    article = await make_article()
    job = await JobController().create_job(article.id)
    driver = PipelineDriver(collaborators)
    for _ in range(7):
        await driver.advance(job.id)
    return article.id


@pytest.mark.asyncio
async def test_internal_links_are_stored_as_knowledge(
    make_article: Any,
    collaborators: Any,
    knowledge_collaborators: Any,
) -> None:
    article_id = await _finished_article(make_article, collaborators)
    service = KnowledgeService(knowledge_collaborators)

    item = await service.propose_internal_links(article_id)

    planner = knowledge_collaborators.internal_link_planner
    detail = await ArticleRepository().get_detail(article_id)
    assert len(planner.calls) == 1
    assert planner.calls[0].final_markdown == detail.article.final_output
    assert planner.calls[0].keywords == ["long-form", "content ops"]
    assert item.kind == KnowledgeKind.INTERNAL_LINK.value
    assert item.content.startswith("- **lease expiry** → glossary: Term.")
    assert item.source_urls == ["https://docs.example.com/handbook/"]
    assert item.payload["proposals"][1]["anchor"] == "pricing"
    assert [stored.id for stored in await service.list_items(article_id)] == [item.id]


@pytest.mark.asyncio
async def test_social_posts_are_stored_and_filterable(
    make_article: Any,
    collaborators: Any,
    knowledge_collaborators: Any,
) -> None:
    article_id = await _finished_article(make_article, collaborators)
    service = KnowledgeService(knowledge_collaborators)
    links = await service.propose_internal_links(article_id)

    posts = await service.draft_social_posts(article_id)

    assert posts.kind == KnowledgeKind.SNS.value
    assert posts.content == "X:\nShip long reads.\n\nLinkedIn:\nA longer post.\n\nCTA:\nRead it."
    assert posts.payload["cta"] == "Read it."
    only_posts = await service.list_items(article_id, kind=KnowledgeKind.SNS)
    assert [item.id for item in only_posts] == [posts.id]
    assert {item.id for item in await service.list_items(article_id)} == {links.id, posts.id}


@pytest.mark.asyncio
async def test_derived_outputs_need_final_output(
    make_article: Any,
    knowledge_collaborators: Any,
) -> None:
    article = await make_article()
    service = KnowledgeService(knowledge_collaborators)

    with pytest.raises(InvalidTransitionError):
        await service.propose_internal_links(article.id)
    with pytest.raises(InvalidTransitionError):
        await service.draft_social_posts(article.id)

    assert knowledge_collaborators.internal_link_planner.calls == []
    assert knowledge_collaborators.social_post_writer.calls == []
    assert await service.list_items(article.id) == []


@pytest.mark.asyncio
async def test_generation_failure_stores_nothing(
    make_article: Any,
    collaborators: Any,
    knowledge_collaborators: Any,
) -> None:
    article_id = await _finished_article(make_article, collaborators)
    knowledge_collaborators.internal_link_planner.error = UnavailableError("fake-llm", "HTTP 503")
    service = KnowledgeService(knowledge_collaborators)

    with pytest.raises(UnavailableError):
        await service.propose_internal_links(article_id)

    assert await service.list_items(article_id) == []


@pytest.mark.asyncio
async def test_summarize_references_works_in_batches_and_reports_failures(
    make_article: Any,
    collaborators: Any,
    knowledge_collaborators: Any,
) -> None:
    article_id = await _finished_article(make_article, collaborators)
    failing = "https://guides.example.org/long-form"
    knowledge_collaborators.page_fetcher.failing = {failing}
    knowledge_collaborators.settings = knowledge_collaborators.settings.model_copy(
        update={"reference_summary_batch_size": 2}
    )
    service = KnowledgeService(knowledge_collaborators)

    first = await service.summarize_references(article_id)

    assert [item.source_urls for item in first.stored] == [["https://docs.example.com/handbook"]]
    assert first.failed == {failing: "page fetch API error: HTTP 503"}
    assert first.already_summarized == 0
    assert first.remaining == 1

    second = await service.summarize_references(article_id)

    assert [item.source_urls for item in second.stored] == [["https://research.example.net/study"]]
    assert list(second.failed) == [failing]
    assert second.already_summarized == 1
    assert second.remaining == 0

    detail = await ArticleRepository().get_detail(article_id)
    summarized = {ref.url: ref for ref in detail.references if ref.summary}
    assert set(summarized) == {
        "https://docs.example.com/handbook",
        "https://research.example.net/study",
    }
    handbook = summarized["https://docs.example.com/handbook"]
    assert handbook.fetched_at is not None
    assert handbook.headings == [{"level": 2, "text": "Leases"}]
    assert handbook.extracted_text == "Readable body."
    assert handbook.insights["claims"] == ["Leases expire"]

    insight = first.stored[0]
    assert insight.kind == KnowledgeKind.INSIGHT.value
    assert insight.title == "Reference key points: Page 1"
    assert insight.content == "Summary of Page 1.\n\nKey claims:\n- Leases expire"
    assert knowledge_collaborators.reference_summarizer.calls[0].headings == ["H2: Leases"]


@pytest.mark.asyncio
async def test_summarized_references_are_not_fetched_again(
    make_article: Any,
    collaborators: Any,
    knowledge_collaborators: Any,
) -> None:
    article_id = await _finished_article(make_article, collaborators)
    service = KnowledgeService(knowledge_collaborators)
    await service.summarize_references(article_id)

    again = await service.summarize_references(article_id)

    assert again.stored == []
    assert again.already_summarized == 3
    assert len(knowledge_collaborators.page_fetcher.urls) == 3
    insights = await service.list_items(article_id, kind=KnowledgeKind.INSIGHT)
    assert len(insights) == 3


@pytest.mark.asyncio
async def test_summarize_references_needs_a_job(
    make_article: Any,
    knowledge_collaborators: Any,
) -> None:
    article = await make_article()

    with pytest.raises(InvalidTransitionError):
        await KnowledgeService(knowledge_collaborators).summarize_references(article.id)


@pytest.mark.asyncio
async def test_unknown_article_is_reported(sqlite_db: Any, knowledge_collaborators: Any) -> None:
    service = KnowledgeService(knowledge_collaborators)

    with pytest.raises(ArticleNotFoundError):
        await service.list_items("missing")
    with pytest.raises(ArticleNotFoundError):
        await service.summarize_references("missing")
