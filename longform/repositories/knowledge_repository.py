"""Repository for knowledge items and reference summaries."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.db_kernel import db_read, db_write
from longform.core.exceptions import ArticleNotFoundError
from longform.models.article import Article
from longform.models.job import Reference
from longform.models.knowledge import KnowledgeItem, KnowledgeKind

logger = logging.getLogger(__name__)


class KnowledgeRepository:
    """Stores derived outputs; never touches job or section state."""

    async def add(
        self,
        article_id: str,
        *,
        kind: KnowledgeKind,
        title: str,
        content: str,
        source_urls: list[str] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> KnowledgeItem:
        """Insert one item for an existing article."""

        async def _write(session: AsyncSession) -> KnowledgeItem:
            if await session.get(Article, article_id) is None:
                raise ArticleNotFoundError(article_id)
            item = KnowledgeItem(
                article_id=article_id,
                kind=kind.value,
                title=title,
                content=content,
                source_urls=list(source_urls or []),
                payload=dict(payload or {}),
            )
            session.add(item)
            await session.flush()
            await session.refresh(item)
            return item

        return await db_write(_write, operation_name="knowledge_add", attempts=1)

    async def list_for_article(
        self,
        article_id: str,
        *,
        kind: KnowledgeKind | None = None,
    ) -> list[KnowledgeItem]:
        """Newest first, optionally filtered by kind."""

        async def _read(session: AsyncSession) -> list[KnowledgeItem]:
            query = select(KnowledgeItem).where(KnowledgeItem.article_id == article_id)
            if kind is not None:
                query = query.where(KnowledgeItem.kind == kind.value)
            result = await session.execute(
                query.order_by(KnowledgeItem.created_at.desc(), KnowledgeItem.id.desc())
            )
            return list(result.scalars().all())

        return await db_read(_read, operation_name="knowledge_list")

    async def save_reference_summary(
        self,
        reference_id: str,
        *,
        fetched_at: datetime,
        title: str | None,
        headings: list[dict[str, Any]],
        extracted_text: str,
        summary: str,
        insights: Mapping[str, Any],
        item_title: str,
        item_content: str,
    ) -> KnowledgeItem | None:
        """Store a reference's summary and its insight item in one transaction.

        Returns ``None`` when the reference no longer exists.
        """

        async def _write(session: AsyncSession) -> KnowledgeItem | None:
            reference = await session.get(Reference, reference_id)
            if reference is None:
                return None
            reference.fetched_at = fetched_at
            if title and not reference.title:
                reference.title = title[:500]
            reference.headings = headings
            reference.extracted_text = extracted_text
            reference.summary = summary
            reference.insights = dict(insights)

            item = KnowledgeItem(
                article_id=reference.article_id,
                kind=KnowledgeKind.INSIGHT.value,
                title=item_title[:500],
                content=item_content,
                source_urls=[reference.url],
                payload={"reference_id": reference.id, "summary": summary, "insights": dict(insights)},
            )
            session.add(item)
            await session.flush()
            await session.refresh(item)
            return item

        return await db_write(_write, operation_name="knowledge_save_reference_summary", attempts=1)
