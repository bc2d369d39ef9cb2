"""On-demand outputs derived from a finished article and its references.

None of these operations run inside ``advance``: they read the article
aggregate, make their external calls and store knowledge items, leaving
job state untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from longform.agents.internal_link_planner import (
    InternalLinkInput,
    InternalLinkResult,
    render_internal_links,
)
from longform.agents.reference_summarizer import (
    ReferenceSummaryInput,
    ReferenceSummaryResult,
)
from longform.agents.social_post_writer import (
    SocialPostInput,
    SocialPostResult,
    render_social_posts,
)
from longform.config import Settings, get_settings
from longform.core.exceptions import ExternalAPIError, InvalidTransitionError
from longform.integrations.page_fetcher import ExtractedPage
from longform.models.article import Article
from longform.models.base import utcnow
from longform.models.job import Reference
from longform.models.knowledge import KnowledgeItem, KnowledgeKind
from longform.repositories.article_repository import ArticleDetail, ArticleRepository
from longform.repositories.knowledge_repository import KnowledgeRepository

logger = logging.getLogger(__name__)

INTERNAL_LINKS_TITLE = "Internal link proposals"
SOCIAL_POSTS_TITLE = "Social posts"


class InternalLinkGenerator(Protocol):
    async def run(self, input_data: InternalLinkInput) -> InternalLinkResult: ...


class SocialPostGenerator(Protocol):
    async def run(self, input_data: SocialPostInput) -> SocialPostResult: ...


class ReferenceSummaryGenerator(Protocol):
    async def run(self, input_data: ReferenceSummaryInput) -> ReferenceSummaryResult: ...


class PageSource(Protocol):
    async def fetch(self, url: str) -> ExtractedPage: ...


@dataclass
class KnowledgeCollaborators:
    """External backends for derived outputs."""

    internal_link_planner: InternalLinkGenerator
    social_post_writer: SocialPostGenerator
    reference_summarizer: ReferenceSummaryGenerator
    page_fetcher: PageSource
    settings: Settings = field(default_factory=get_settings)


@dataclass(slots=True)
class ReferenceSummaryReport:
    article_id: str
    stored: list[KnowledgeItem] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    already_summarized: int = 0
    remaining: int = 0


def render_insight(result: ReferenceSummaryResult) -> str:
    parts = [result.summary.strip()]
    if result.insights.claims:
        parts.append("Key claims:\n" + "\n".join(f"- {claim}" for claim in result.insights.claims))
    return "\n\n".join(parts)


def _finished(detail: ArticleDetail, action: str) -> Article:
    article = detail.article
    if not (article.final_output or "").strip():
        raise InvalidTransitionError(detail.job.id if detail.job else article.id, article.status, action)
    return article


class KnowledgeService:
    """Internal links, social posts and reference summaries for an article."""

    def __init__(
        self,
        collaborators: KnowledgeCollaborators,
        *,
        articles: ArticleRepository | None = None,
        repository: KnowledgeRepository | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.articles = articles or ArticleRepository()
        self.repository = repository or KnowledgeRepository()

    async def list_items(
        self,
        article_id: str,
        *,
        kind: KnowledgeKind | None = None,
    ) -> list[KnowledgeItem]:
        """Raises ArticleNotFoundError for unknown articles."""
        await self.articles.get_detail(article_id)
        return await self.repository.list_for_article(article_id, kind=kind)

    async def propose_internal_links(self, article_id: str) -> KnowledgeItem:
        """One generation call over the final output; stores an ``internal_link`` item.

        Raises:
            ArticleNotFoundError: If the article does not exist.
            InvalidTransitionError: If the article has no final output yet.
            ExternalAPIError: If the generation call fails; nothing is stored.
        """
        article = _finished(await self.articles.get_detail(article_id), "internal_links")
        result = await self.collaborators.internal_link_planner.run(
            InternalLinkInput(
                title=article.title,
                final_markdown=article.final_output or "",
                keywords=list(article.keywords or []),
            )
        )
        item = await self.repository.add(
            article.id,
            kind=KnowledgeKind.INTERNAL_LINK,
            title=INTERNAL_LINKS_TITLE,
            content=render_internal_links(result),
            source_urls=list(article.reference_urls or []),
            payload=result.model_dump(),
        )
        logger.info(
            "Internal links proposed",
            extra={"article_id": article.id, "proposals": len(result.proposals)},
        )
        return item

    async def draft_social_posts(self, article_id: str) -> KnowledgeItem:
        """One generation call over the final output; stores an ``sns`` item.

        Raises the same errors as :meth:`propose_internal_links`.
        """
        article = _finished(await self.articles.get_detail(article_id), "social_posts")
        result = await self.collaborators.social_post_writer.run(
            SocialPostInput(title=article.title, final_markdown=article.final_output or "")
        )
        item = await self.repository.add(
            article.id,
            kind=KnowledgeKind.SNS,
            title=SOCIAL_POSTS_TITLE,
            content=render_social_posts(result),
            source_urls=list(article.reference_urls or []),
            payload=result.model_dump(),
        )
        logger.info("Social posts drafted", extra={"article_id": article.id})
        return item

    async def summarize_references(self, article_id: str) -> ReferenceSummaryReport:
        """Fetch and summarize the latest job's unsummarized references, one batch per call.

        Each reference costs one fetch and one generation call. A failing
        reference is reported and left unsummarized so a later call retries it.

        Raises:
            ArticleNotFoundError: If the article does not exist.
            InvalidTransitionError: If the article has never had a job.
        """
        detail = await self.articles.get_detail(article_id)
        if detail.job is None:
            raise InvalidTransitionError(
                detail.article.id, detail.article.status, "summarize_references"
            )

        pending = [ref for ref in detail.references if not ref.summary]
        batch = pending[: self.collaborators.settings.reference_summary_batch_size]
        report = ReferenceSummaryReport(
            article_id=detail.article.id,
            already_summarized=len(detail.references) - len(pending),
            remaining=len(pending) - len(batch),
        )

        for reference in batch:
            try:
                item = await self._summarize(reference)
            except ExternalAPIError as e:
                logger.warning(
                    "Reference summary failed",
                    extra={"article_id": article_id, "url": reference.url, "error": str(e)},
                )
                report.failed[reference.url] = str(e)
                continue
            if item is not None:
                report.stored.append(item)

        logger.info(
            "References summarized",
            extra={
                "article_id": article_id,
                "stored": len(report.stored),
                "failed": len(report.failed),
                "remaining": report.remaining,
            },
        )
        return report

    async def _summarize(self, reference: Reference) -> KnowledgeItem | None:
        page = await self.collaborators.page_fetcher.fetch(reference.url)
        result = await self.collaborators.reference_summarizer.run(
            ReferenceSummaryInput(
                url=reference.url,
                title=page.title or reference.title,
                meta_description=page.meta_description,
                headings=[f"H{h['level']}: {h['text']}" for h in page.headings],
                text=page.text,
            )
        )
        label = page.title or reference.title or reference.url
        return await self.repository.save_reference_summary(
            reference.id,
            fetched_at=utcnow(),
            title=page.title,
            headings=page.headings,
            extracted_text=page.text,
            summary=result.summary,
            insights=result.insights.model_dump(),
            item_title=f"Reference key points: {label}",
            item_content=render_insight(result),
        )
