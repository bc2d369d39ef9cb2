"""create articles, jobs, sections and references

Revision ID: 3f1a2b7c9d0e
Revises:
Create Date: 2026-10-18 09:30:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from longform.models.base import StringUUID

# revision identifiers, used by Alembic.
revision: str = "3f1a2b7c9d0e"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
ACTIVE_JOB_PREDICATE = sa.text("status IN ('queued', 'running', 'paused', 'error')")


def _timestamps() -> list[sa.Column]:
    return [
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
    ]


def upgrade() -> None:
    op.create_table(
        "articles",
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("keywords", JSON_TYPE, nullable=False),
        sa.Column("target_length", sa.Integer(), nullable=False),
        sa.Column("tone", sa.String(length=100), nullable=True),
        sa.Column("persona", sa.Text(), nullable=True),
        sa.Column("search_intent", sa.String(length=50), nullable=True),
        sa.Column("forbidden", JSON_TYPE, nullable=False),
        sa.Column("reference_urls", JSON_TYPE, nullable=False),
        sa.Column("outline", sa.Text(), nullable=True),
        sa.Column("final_output", sa.Text(), nullable=True),
        sa.Column("id", StringUUID(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_articles_status"), "articles", ["status"], unique=False)

    op.create_table(
        "jobs",
        sa.Column("article_id", StringUUID(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("step", sa.String(length=20), nullable=False),
        sa.Column("cursor", sa.Integer(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("error_kind", sa.String(length=20), nullable=True),
        sa.Column("lease_token", sa.String(length=64), nullable=True),
        sa.Column("lease_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", StringUUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_jobs_article_id"), "jobs", ["article_id"], unique=False)
    op.create_index(op.f("ix_jobs_status"), "jobs", ["status"], unique=False)
    op.create_index(
        "uq_jobs_article_active",
        "jobs",
        ["article_id"],
        unique=True,
        postgresql_where=ACTIVE_JOB_PREDICATE,
        sqlite_where=ACTIVE_JOB_PREDICATE,
    )

    op.create_table(
        "sections",
        sa.Column("job_id", StringUUID(), nullable=False),
        sa.Column("article_id", StringUUID(), nullable=False),
        sa.Column("section_index", sa.Integer(), nullable=False),
        sa.Column("heading_path", sa.String(length=500), nullable=False),
        sa.Column("planned_length", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("id", StringUUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id", "section_index", name="uq_sections_job_index"),
    )
    op.create_index(op.f("ix_sections_job_id"), "sections", ["job_id"], unique=False)
    op.create_index(op.f("ix_sections_article_id"), "sections", ["article_id"], unique=False)

    op.create_table(
        "references",
        sa.Column("job_id", StringUUID(), nullable=False),
        sa.Column("article_id", StringUUID(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=True),
        sa.Column("snippet", sa.Text(), nullable=True),
        sa.Column("id", StringUUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id", "url", name="uq_references_job_url"),
    )
    op.create_index(op.f("ix_references_job_id"), "references", ["job_id"], unique=False)
    op.create_index(op.f("ix_references_article_id"), "references", ["article_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_references_article_id"), table_name="references")
    op.drop_index(op.f("ix_references_job_id"), table_name="references")
    op.drop_table("references")

    op.drop_index(op.f("ix_sections_article_id"), table_name="sections")
    op.drop_index(op.f("ix_sections_job_id"), table_name="sections")
    op.drop_table("sections")

    op.drop_index("uq_jobs_article_active", table_name="jobs")
    op.drop_index(op.f("ix_jobs_status"), table_name="jobs")
    op.drop_index(op.f("ix_jobs_article_id"), table_name="jobs")
    op.drop_table("jobs")

    op.drop_index(op.f("ix_articles_status"), table_name="articles")
    op.drop_table("articles")
