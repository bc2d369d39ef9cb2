"""Repository for article reads and user edits."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.db_kernel import db_read, db_write
from longform.core.exceptions import ArticleNotFoundError, SectionNotFoundError
from longform.models.article import Article, ArticleStatus
from longform.models.job import Job, Reference, Section, SectionStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"title", "outline", "final_output"})


@dataclass
class ArticleDetail:
    """Article with its latest job and that job's sections and references."""

    article: Article
    job: Job | None = None
    sections: list[Section] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)


async def _latest_job(session: AsyncSession, article_id: str) -> Job | None:
    result = await session.execute(
        select(Job)
        .where(Job.article_id == article_id)
        .order_by(Job.created_at.desc(), Job.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


class ArticleRepository:
    """Handles Article reads and last-write-wins user edits."""

    async def create(self, values: Mapping[str, Any]) -> Article:
        """Insert a DRAFT article."""

        async def _write(session: AsyncSession) -> Article:
            article = Article(**dict(values), status=ArticleStatus.DRAFT.value)
            session.add(article)
            await session.flush()
            await session.refresh(article)
            return article

        return await db_write(_write, operation_name="article_create", attempts=1)

    async def get(self, article_id: str) -> Article | None:
        return await db_read(
            lambda session: session.get(Article, article_id),
            operation_name="article_get",
        )

    async def get_detail(self, article_id: str) -> ArticleDetail:
        """Load the article aggregate.

        Raises:
            ArticleNotFoundError: If the article does not exist.
        """

        async def _read(session: AsyncSession) -> ArticleDetail:
            article = await session.get(Article, article_id)
            if article is None:
                raise ArticleNotFoundError(article_id)
            job = await _latest_job(session, article_id)
            if job is None:
                return ArticleDetail(article=article)

            sections = await session.execute(
                select(Section).where(Section.job_id == job.id).order_by(Section.index)
            )
            references = await session.execute(
                select(Reference)
                .where(Reference.job_id == job.id)
                .order_by(Reference.created_at, Reference.id)
            )
            return ArticleDetail(
                article=article,
                job=job,
                sections=list(sections.scalars().all()),
                references=list(references.scalars().all()),
            )

        return await db_read(_read, operation_name="article_get_detail")

    async def list_with_latest_job(self, *, limit: int) -> list[tuple[Article, Job | None]]:
        """Newest articles first, each paired with its most recent job."""

        async def _read(session: AsyncSession) -> list[tuple[Article, Job | None]]:
            result = await session.execute(
                select(Article).order_by(Article.created_at.desc(), Article.id.desc()).limit(limit)
            )
            articles = list(result.scalars().all())
            if not articles:
                return []

            jobs_result = await session.execute(
                select(Job)
                .where(Job.article_id.in_([article.id for article in articles]))
                .order_by(Job.created_at.desc(), Job.id.desc())
            )
            latest: dict[str, Job] = {}
            for job in jobs_result.scalars().all():
                latest.setdefault(job.article_id, job)
            return [(article, latest.get(article.id)) for article in articles]

        return await db_read(_read, operation_name="article_list")

    async def update(self, article_id: str, changes: Mapping[str, Any]) -> Article:
        """Apply a user edit to title/outline/final_output."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")

        async def _write(session: AsyncSession) -> Article:
            article = await session.get(Article, article_id)
            if article is None:
                raise ArticleNotFoundError(article_id)
            for key, value in changes.items():
                setattr(article, key, value)
            await session.flush()
            await session.refresh(article)
            return article

        return await db_write(_write, operation_name="article_update")

    async def update_section(self, article_id: str, index: int, content: str) -> Section:
        """Overwrite a section of the article's latest job and mark it reviewed.

        Raises:
            ArticleNotFoundError: If the article does not exist.
            SectionNotFoundError: If the latest job has no section at ``index``.
        """

        async def _write(session: AsyncSession) -> Section:
            article = await session.get(Article, article_id)
            if article is None:
                raise ArticleNotFoundError(article_id)
            job = await _latest_job(session, article_id)
            if job is None:
                raise SectionNotFoundError(article_id, index)

            result = await session.execute(
                update(Section)
                .where(Section.job_id == job.id, Section.index == index)
                .values(content=content, status=SectionStatus.REVIEWED.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise SectionNotFoundError(article_id, index)

            section = await session.execute(
                select(Section)
                .where(Section.job_id == job.id, Section.index == index)
                .execution_options(populate_existing=True)
            )
            return section.scalar_one()

        return await db_write(_write, operation_name="article_update_section")
