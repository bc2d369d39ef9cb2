"""Article operations: create, read and user edits."""

from __future__ import annotations

import logging

from longform.core.exceptions import ArticleNotFoundError
from longform.models.article import Article
from longform.models.job import Job, Section
from longform.repositories.article_repository import ArticleDetail, ArticleRepository
from longform.schemas.article import ArticleCreate, ArticleUpdate

logger = logging.getLogger(__name__)


class ArticleService:
    """Entry points for the article aggregate; job state is never touched here."""

    def __init__(self, repository: ArticleRepository | None = None) -> None:
        self.repository = repository or ArticleRepository()

    async def create_article(self, params: ArticleCreate) -> Article:
        article = await self.repository.create(params.model_dump())
        logger.info("Article created", extra={"article_id": article.id, "title": article.title})
        return article

    async def get_article(self, article_id: str) -> ArticleDetail:
        return await self.repository.get_detail(article_id)

    async def require_article(self, article_id: str) -> Article:
        article = await self.repository.get(article_id)
        if article is None:
            raise ArticleNotFoundError(article_id)
        return article

    async def list_articles(self, *, limit: int = 50) -> list[tuple[Article, Job | None]]:
        return await self.repository.list_with_latest_job(limit=limit)

    async def update_article(self, article_id: str, changes: ArticleUpdate) -> Article:
        """Last-write-wins edit of title, outline or final output."""
        values = changes.model_dump(exclude_unset=True)
        if values.get("title") is None:
            values.pop("title", None)
        if not values:
            return await self.require_article(article_id)
        article = await self.repository.update(article_id, values)
        logger.info(
            "Article edited",
            extra={"article_id": article_id, "fields": sorted(values)},
        )
        return article

    async def update_section(self, article_id: str, index: int, content: str) -> Section:
        """Direct edit of a section; it becomes ``reviewed``."""
        section = await self.repository.update_section(article_id, index, content)
        logger.info("Section edited", extra={"article_id": article_id, "index": index})
        return section
