"""add knowledge items and reference summaries

Revision ID: 8c4d2e1f5a6b
Revises: 3f1a2b7c9d0e
Create Date: 2026-10-18 14:10:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from longform.models.base import StringUUID

# revision identifiers, used by Alembic.
revision: str = "8c4d2e1f5a6b"
down_revision: Union[str, None] = "3f1a2b7c9d0e"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.add_column("references", sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=True))
    op.add_column("references", sa.Column("headings", JSON_TYPE, nullable=True))
    op.add_column("references", sa.Column("extracted_text", sa.Text(), nullable=True))
    op.add_column("references", sa.Column("summary", sa.Text(), nullable=True))
    op.add_column("references", sa.Column("insights", JSON_TYPE, nullable=True))

    op.create_table(
        "knowledge_items",
        sa.Column("article_id", StringUUID(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source_urls", JSON_TYPE, nullable=False),
        sa.Column("payload", JSON_TYPE, nullable=False),
        sa.Column("id", StringUUID(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_knowledge_items_article_id"), "knowledge_items", ["article_id"], unique=False
    )
    op.create_index(op.f("ix_knowledge_items_kind"), "knowledge_items", ["kind"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_knowledge_items_kind"), table_name="knowledge_items")
    op.drop_index(op.f("ix_knowledge_items_article_id"), table_name="knowledge_items")
    op.drop_table("knowledge_items")

    op.drop_column("references", "insights")
    op.drop_column("references", "summary")
    op.drop_column("references", "extracted_text")
    op.drop_column("references", "headings")
    op.drop_column("references", "fetched_at")
