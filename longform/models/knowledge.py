"""Knowledge items derived from finished articles and their references."""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from longform.models.base import Base, JSONType, StringUUID, TimestampMixin, UUIDMixin


class KnowledgeKind(str, Enum):
    """What produced a knowledge item."""

    INTERNAL_LINK = "internal_link"
    SNS = "sns"
    INSIGHT = "insight"


class KnowledgeItem(Base, UUIDMixin, TimestampMixin):
    """Reusable output kept next to an article.

    ``content`` is the human-readable rendering; ``payload`` holds the
    structured agent output it was rendered from.
    """

    __tablename__ = "knowledge_items"

    article_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    source_urls: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<KnowledgeItem {self.kind} {self.id}>"
