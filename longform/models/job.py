"""Generation job, section and reference models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from longform.models.base import Base, JSONType, StringUUID, TimestampMixin, UUIDMixin


class JobStatus(str, Enum):
    """Lifecycle status of a generation job."""

    QUEUED = "queued"
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    DONE = "done"
    ERROR = "error"


class StepName(str, Enum):
    """Pipeline steps in execution order; DONE is the terminal marker."""

    INIT = "init"
    RESEARCH = "research"
    OUTLINE = "outline"
    SECTION = "section"
    INTEGRATE = "integrate"
    DONE = "done"


class SectionStatus(str, Enum):
    """Drafting status of a single section."""

    PENDING = "pending"
    DRAFTED = "drafted"
    REVIEWED = "reviewed"


class ErrorKind(str, Enum):
    """Classification of a recorded job failure."""

    STEP_EXECUTION = "step_execution"
    DATA_INTEGRITY = "data_integrity"


ADVANCEABLE_STATUSES = (JobStatus.QUEUED.value, JobStatus.RUNNING.value)
ACTIVE_STATUSES = (
    JobStatus.QUEUED.value,
    JobStatus.RUNNING.value,
    JobStatus.PAUSED.value,
    JobStatus.ERROR.value,
)

_ACTIVE_JOB_PREDICATE = text("status IN ('queued', 'running', 'paused', 'error')")


class Job(Base, UUIDMixin, TimestampMixin):
    """One resumable pipeline execution for an article."""

    __tablename__ = "jobs"
    __table_args__ = (
        Index(
            "uq_jobs_article_active",
            "article_id",
            unique=True,
            postgresql_where=_ACTIVE_JOB_PREDICATE,
            sqlite_where=_ACTIVE_JOB_PREDICATE,
        ),
    )

    article_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # State machine
    status: Mapped[str] = mapped_column(
        String(20),
        default=JobStatus.QUEUED.value,
        nullable=False,
        index=True,
    )
    step: Mapped[str] = mapped_column(String(20), default=StepName.INIT.value, nullable=False)
    cursor: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Error tracking
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_kind: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Advance claim
    lease_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lease_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Timing
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Job {self.id} ({self.status}/{self.step}@{self.cursor})>"


class Section(Base, UUIDMixin, TimestampMixin):
    """One planned heading of the outline and its drafted body."""

    __tablename__ = "sections"
    __table_args__ = (
        UniqueConstraint("job_id", "section_index", name="uq_sections_job_index"),
    )

    job_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    article_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    index: Mapped[int] = mapped_column("section_index", Integer, nullable=False)
    heading_path: Mapped[str] = mapped_column(String(500), nullable=False)
    planned_length: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=SectionStatus.PENDING.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Section {self.job_id}#{self.index} ({self.status})>"


class Reference(Base, UUIDMixin, TimestampMixin):
    """Source collected during research."""

    __tablename__ = "references"
    __table_args__ = (
        UniqueConstraint("job_id", "url", name="uq_references_job_url"),
    )

    job_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    article_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    snippet: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Filled on demand by reference summarization, never by the pipeline steps
    fetched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    headings: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType, nullable=True)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    insights: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<Reference {self.url}>"
