"""Job controller: explicit lifecycle transitions outside of advance."""

from __future__ import annotations

import logging

from longform.core.db_kernel import ConflictError
from longform.core.exceptions import (
    ActiveJobExistsError,
    InvalidTransitionError,
    NotResettableError,
)
from longform.models.article import ArticleStatus
from longform.models.base import utcnow
from longform.models.job import Job, JobStatus
from longform.repositories.job_repository import JobRepository

logger = logging.getLogger(__name__)

PAUSABLE = (JobStatus.QUEUED.value, JobStatus.RUNNING.value)
CANCELLABLE = (
    JobStatus.QUEUED.value,
    JobStatus.RUNNING.value,
    JobStatus.PAUSED.value,
    JobStatus.ERROR.value,
)
RESETTABLE = (JobStatus.ERROR.value, JobStatus.DONE.value, JobStatus.CANCELLED.value)


class JobController:
    """Create, pause, resume, cancel and reset jobs.

    Each transition is one conditional UPDATE on the expected source
    statuses and releases any advance lease, so an in-flight step's commit
    is discarded.
    """

    def __init__(self, repository: JobRepository | None = None) -> None:
        self.repository = repository or JobRepository()

    async def get_job(self, job_id: str) -> Job:
        return await self.repository.get_or_raise(job_id)

    async def create_job(self, article_id: str) -> Job:
        """Create a queued job for an article with no other non-terminal job.

        Raises:
            ArticleNotFoundError: If the article does not exist.
            ActiveJobExistsError: If a queued/running/paused/error job exists.
        """
        try:
            job = await self.repository.create(article_id)
        except ConflictError as e:
            raise ActiveJobExistsError(article_id) from e
        logger.info("Job created", extra={"job_id": job.id, "article_id": article_id})
        return job

    async def pause(self, job_id: str) -> Job:
        """queued|running -> paused. No-op when already paused or done."""
        changed = await self.repository.transition(
            job_id,
            from_statuses=PAUSABLE,
            values={"status": JobStatus.PAUSED.value},
        )
        return await self._after_transition(
            job_id,
            changed=changed,
            action="pause",
            noop_statuses=(JobStatus.PAUSED.value, JobStatus.DONE.value),
        )

    async def resume(self, job_id: str) -> Job:
        """paused -> queued and article RUNNING. No-op when already queued or running."""
        changed = await self.repository.transition(
            job_id,
            from_statuses=(JobStatus.PAUSED.value,),
            values={"status": JobStatus.QUEUED.value},
            article_status=ArticleStatus.RUNNING,
        )
        return await self._after_transition(
            job_id,
            changed=changed,
            action="resume",
            noop_statuses=PAUSABLE,
        )

    async def cancel(self, job_id: str) -> Job:
        """Any non-terminal status -> cancelled and article ERROR. No-op when done or cancelled."""
        changed = await self.repository.transition(
            job_id,
            from_statuses=CANCELLABLE,
            values={"status": JobStatus.CANCELLED.value, "finished_at": utcnow()},
            article_status=ArticleStatus.ERROR,
        )
        return await self._after_transition(
            job_id,
            changed=changed,
            action="cancel",
            noop_statuses=(JobStatus.DONE.value, JobStatus.CANCELLED.value),
        )

    async def reset(self, job_id: str) -> Job:
        """error|done|cancelled -> queued at init with sections and outputs cleared.

        Raises:
            NotResettableError: If the job is still active.
            ActiveJobExistsError: If the article has another non-terminal job.
        """
        job = await self.repository.get_or_raise(job_id)
        if job.status not in RESETTABLE:
            raise NotResettableError(job_id, job.status)
        if await self.repository.has_other_active_job(job.article_id, excluding_job_id=job_id):
            raise ActiveJobExistsError(job.article_id, job_id=job_id)

        try:
            changed = await self.repository.reset(job_id, from_statuses=RESETTABLE)
        except ConflictError as e:
            raise ActiveJobExistsError(job.article_id, job_id=job_id) from e

        current = await self.repository.get_or_raise(job_id)
        if not changed:
            raise NotResettableError(job_id, current.status)
        logger.info(
            "Job reset",
            extra={"job_id": job_id, "article_id": job.article_id, "previous_status": job.status},
        )
        return current

    async def _after_transition(
        self,
        job_id: str,
        *,
        changed: bool,
        action: str,
        noop_statuses: tuple[str, ...],
    ) -> Job:
        current = await self.repository.get_or_raise(job_id)
        if changed:
            logger.info(
                "Job transition applied",
                extra={"job_id": job_id, "action": action, "status": current.status},
            )
            return current
        if current.status in noop_statuses:
            return current
        raise InvalidTransitionError(job_id, current.status, action)
