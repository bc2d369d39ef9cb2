"""Article aggregate model."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from longform.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ArticleStatus(str, Enum):
    """Article status, derived from its most recent job."""

    DRAFT = "DRAFT"
    RUNNING = "RUNNING"
    ERROR = "ERROR"
    DONE = "DONE"


class Article(Base, UUIDMixin, TimestampMixin):
    """Long-form article and its generation parameters."""

    __tablename__ = "articles"

    status: Mapped[str] = mapped_column(
        String(20),
        default=ArticleStatus.DRAFT.value,
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)

    # Generation parameters
    keywords: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    target_length: Mapped[int] = mapped_column(Integer, default=10_000, nullable=False)
    tone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    persona: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_intent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    forbidden: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    reference_urls: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    # Job-driven outputs (user-editable, last write wins)
    outline: Mapped[str | None] = mapped_column(Text, nullable=True)
    final_output: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Article {self.id} ({self.status})>"
