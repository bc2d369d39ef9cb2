"""Repository for job state transitions via short-lived, conditional writes."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from longform.config import settings
from longform.core.db_kernel import db_read, db_write, db_write_no_retry
from longform.core.exceptions import (
    ActiveJobExistsError,
    ArticleNotFoundError,
    DataIntegrityError,
    JobNotFoundError,
)
from longform.models.article import Article, ArticleStatus
from longform.models.base import utcnow
from longform.models.job import (
    ACTIVE_STATUSES,
    ADVANCEABLE_STATUSES,
    Job,
    JobStatus,
    Reference,
    Section,
    SectionStatus,
    StepName,
)
from longform.schemas.pipeline import StepOutcome

logger = logging.getLogger(__name__)


@dataclass
class JobSnapshot:
    """Detached view of everything a step may read."""

    job: Job
    article: Article
    sections: list[Section] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)

    @property
    def section_count(self) -> int:
        return len(self.sections)


@dataclass(frozen=True)
class LeaseFence:
    """Preconditions a unit's commit must still match."""

    job_id: str
    lease_token: str
    step: str
    cursor: int


async def _load_job(session: AsyncSession, job_id: str) -> Job | None:
    return await session.get(Job, job_id)


async def _active_job_for_article(
    session: AsyncSession,
    article_id: str,
    *,
    excluding_job_id: str | None = None,
) -> Job | None:
    stmt = select(Job).where(Job.article_id == article_id, Job.status.in_(ACTIVE_STATUSES))
    if excluding_job_id is not None:
        stmt = stmt.where(Job.id != excluding_job_id)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none()


async def _set_article_status(session: AsyncSession, article_id: str, status: ArticleStatus) -> None:
    await session.execute(
        update(Article).where(Article.id == article_id).values(status=status.value)
    )


async def _sections_for_job(session: AsyncSession, job_id: str) -> list[Section]:
    result = await session.execute(
        select(Section).where(Section.job_id == job_id).order_by(Section.index)
    )
    return list(result.scalars().all())


async def _references_for_job(session: AsyncSession, job_id: str) -> list[Reference]:
    result = await session.execute(
        select(Reference).where(Reference.job_id == job_id).order_by(Reference.created_at, Reference.id)
    )
    return list(result.scalars().all())


class JobRepository:
    """Handles Job reads and conditional updates in short-lived sessions.

    Every state change is a single UPDATE guarded by the expected source
    state; the affected row count decides whether the caller won.
    """

    def __init__(self, *, lease_seconds: int | None = None) -> None:
        self.lease_seconds = lease_seconds if lease_seconds is not None else settings.job_lease_seconds

    async def get(self, job_id: str) -> Job | None:
        """Fetch a job by id."""
        return await db_read(lambda session: _load_job(session, job_id), operation_name="job_get")

    async def get_or_raise(self, job_id: str) -> Job:
        job = await self.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_advanceable_ids(self, *, limit: int) -> list[str]:
        """Ids of queued/running jobs without a live lease, oldest first."""
        now = utcnow()

        async def _read(session: AsyncSession) -> list[str]:
            result = await session.execute(
                select(Job.id)
                .where(
                    Job.status.in_(ADVANCEABLE_STATUSES),
                    or_(Job.lease_token.is_(None), Job.lease_expires_at < now),
                )
                .order_by(Job.updated_at, Job.id)
                .limit(limit)
            )
            return [str(job_id) for job_id in result.scalars().all()]

        return await db_read(_read, operation_name="job_list_advanceable")

    async def create(self, article_id: str) -> Job:
        """Create a queued job at step init and mark the article RUNNING.

        Output from an earlier run is cleared, the same way :meth:`reset`
        clears it, so the article never pairs stale text with the new job.
        """

        async def _write(session: AsyncSession) -> Job:
            article = await session.get(Article, article_id)
            if article is None:
                raise ArticleNotFoundError(article_id)
            existing = await _active_job_for_article(session, article_id)
            if existing is not None:
                raise ActiveJobExistsError(article_id, job_id=existing.id)

            job = Job(
                article_id=article_id,
                status=JobStatus.QUEUED.value,
                step=StepName.INIT.value,
                cursor=0,
                progress=0,
            )
            session.add(job)
            article.status = ArticleStatus.RUNNING.value
            article.outline = None
            article.final_output = None
            await session.flush()
            await session.refresh(job)
            return job

        return await db_write(_write, operation_name="job_create")

    async def load_snapshot(self, job_id: str) -> JobSnapshot:
        """Load job, article, sections (index order) and references."""

        async def _read(session: AsyncSession) -> JobSnapshot:
            job = await _load_job(session, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            article = await session.get(Article, job.article_id)
            if article is None:
                raise DataIntegrityError(
                    f"Job {job_id} references missing article {job.article_id}",
                    {"job_id": job_id, "article_id": job.article_id},
                )
            return JobSnapshot(
                job=job,
                article=article,
                sections=await _sections_for_job(session, job_id),
                references=await _references_for_job(session, job_id),
            )

        return await db_read(_read, operation_name="job_load_snapshot")

    async def claim(self, job_id: str, lease_token: str) -> bool:
        """Take the advance lease: queued|running without a live lease -> running."""
        now = utcnow()
        expires_at = now + timedelta(seconds=self.lease_seconds)

        async def _write(session: AsyncSession) -> bool:
            result = await session.execute(
                update(Job)
                .where(
                    Job.id == job_id,
                    Job.status.in_(ADVANCEABLE_STATUSES),
                    or_(Job.lease_token.is_(None), Job.lease_expires_at < now),
                )
                .values(
                    status=JobStatus.RUNNING.value,
                    lease_token=lease_token,
                    lease_expires_at=expires_at,
                    started_at=func.coalesce(Job.started_at, now),
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

        return await db_write_no_retry(_write, operation_name="job_claim")

    async def commit_outcome(
        self,
        fence: LeaseFence,
        outcome: StepOutcome,
        *,
        article_id: str,
        progress: int,
    ) -> bool:
        """Apply a step outcome in one transaction if the lease fence still holds.

        Returns False (and writes nothing) when the job was paused, cancelled,
        reset or re-claimed while the step ran.
        """
        now = utcnow()
        finished = outcome.next_step == StepName.DONE
        job_values: dict[str, Any] = {
            "step": outcome.next_step.value,
            "progress": progress,
            "lease_token": None,
            "lease_expires_at": None,
        }
        if outcome.cursor is not None:
            job_values["cursor"] = outcome.cursor
        if finished:
            job_values.update(status=JobStatus.DONE.value, finished_at=now)

        async def _write(session: AsyncSession) -> bool:
            fenced = await session.execute(
                update(Job)
                .where(
                    Job.id == fence.job_id,
                    Job.lease_token == fence.lease_token,
                    Job.status == JobStatus.RUNNING.value,
                    Job.step == fence.step,
                    Job.cursor == fence.cursor,
                )
                .values(**job_values)
                .execution_options(synchronize_session=False)
            )
            if fenced.rowcount != 1:
                return False

            article_values: dict[str, Any] = {}
            if outcome.outline is not None:
                article_values["outline"] = outcome.outline
            if outcome.final_output is not None:
                article_values["final_output"] = outcome.final_output
            if finished:
                article_values["status"] = ArticleStatus.DONE.value
            if article_values:
                await session.execute(
                    update(Article).where(Article.id == article_id).values(**article_values)
                )

            for plan in outcome.new_sections:
                session.add(
                    Section(
                        job_id=fence.job_id,
                        article_id=article_id,
                        index=plan.index,
                        heading_path=plan.heading_path,
                        planned_length=plan.planned_length,
                        status=SectionStatus.PENDING.value,
                    )
                )

            if outcome.section_draft is not None:
                drafted = await session.execute(
                    update(Section)
                    .where(
                        Section.job_id == fence.job_id,
                        Section.index == outcome.section_draft.index,
                    )
                    .values(
                        content=outcome.section_draft.content,
                        status=SectionStatus.DRAFTED.value,
                    )
                    .execution_options(synchronize_session=False)
                )
                if drafted.rowcount != 1:
                    raise DataIntegrityError(
                        f"Section {outcome.section_draft.index} missing for job {fence.job_id}",
                        {"job_id": fence.job_id, "index": outcome.section_draft.index},
                    )

            for reference in outcome.new_references:
                session.add(
                    Reference(
                        job_id=fence.job_id,
                        article_id=article_id,
                        url=reference.url,
                        title=reference.title,
                        snippet=reference.snippet,
                    )
                )
            await session.flush()
            return True

        return await db_write_no_retry(_write, operation_name="job_commit_outcome")

    async def record_failure(
        self,
        fence: LeaseFence,
        *,
        article_id: str,
        message: str,
        error_kind: str,
    ) -> bool:
        """Mark the job errored (and the article ERROR) if the lease is still held."""
        now = utcnow()

        async def _write(session: AsyncSession) -> bool:
            result = await session.execute(
                update(Job)
                .where(
                    Job.id == fence.job_id,
                    Job.lease_token == fence.lease_token,
                    Job.status == JobStatus.RUNNING.value,
                )
                .values(
                    status=JobStatus.ERROR.value,
                    error=message,
                    error_kind=error_kind,
                    finished_at=now,
                    lease_token=None,
                    lease_expires_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return False
            await _set_article_status(session, article_id, ArticleStatus.ERROR)
            return True

        return await db_write(_write, operation_name="job_record_failure")

    async def transition(
        self,
        job_id: str,
        *,
        from_statuses: Iterable[str],
        values: Mapping[str, Any],
        article_status: ArticleStatus | None = None,
    ) -> bool:
        """Conditionally move a job out of ``from_statuses``; releases any lease."""
        allowed = tuple(from_statuses)

        async def _write(session: AsyncSession) -> bool:
            result = await session.execute(
                update(Job)
                .where(Job.id == job_id, Job.status.in_(allowed))
                .values(**values, lease_token=None, lease_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return False
            if article_status is not None:
                job = await _load_job(session, job_id)
                if job is not None:
                    await _set_article_status(session, job.article_id, article_status)
            return True

        return await db_write(_write, operation_name="job_transition")

    async def reset(self, job_id: str, *, from_statuses: Iterable[str]) -> bool:
        """Return a finished or failed job to queued/init and drop its drafted state.

        Sections are deleted; references are kept since research re-runs
        deduplicate against them.
        """
        allowed = tuple(from_statuses)

        async def _write(session: AsyncSession) -> bool:
            result = await session.execute(
                update(Job)
                .where(Job.id == job_id, Job.status.in_(allowed))
                .values(
                    status=JobStatus.QUEUED.value,
                    step=StepName.INIT.value,
                    cursor=0,
                    progress=0,
                    error=None,
                    error_kind=None,
                    lease_token=None,
                    lease_expires_at=None,
                    started_at=None,
                    finished_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return False

            job = await _load_job(session, job_id)
            if job is None:
                return False
            await session.execute(delete(Section).where(Section.job_id == job_id))
            await session.execute(
                update(Article)
                .where(Article.id == job.article_id)
                .values(
                    outline=None,
                    final_output=None,
                    status=ArticleStatus.RUNNING.value,
                )
            )
            return True

        return await db_write(_write, operation_name="job_reset")

    async def has_other_active_job(self, article_id: str, *, excluding_job_id: str) -> bool:
        """Whether a non-terminal job other than ``excluding_job_id`` exists."""

        async def _read(session: AsyncSession) -> bool:
            other = await _active_job_for_article(
                session,
                article_id,
                excluding_job_id=excluding_job_id,
            )
            return other is not None

        return await db_read(_read, operation_name="job_has_other_active")
