"""Pipeline driver: executes exactly one unit of work per advance call."""

from __future__ import annotations

import asyncio
import logging

from longform.core.exceptions import (
    DataIntegrityError,
    StepExecutionError,
    StepTimeoutError,
)
from longform.core.ids import generate_lease_token
from longform.core.logging import log_context
from longform.models.job import ADVANCEABLE_STATUSES, ErrorKind, Job, StepName
from longform.repositories.job_repository import JobRepository, JobSnapshot, LeaseFence
from longform.schemas.pipeline import AdvanceResult, StepOutcome
from longform.services.progress import compute_progress
from longform.services.steps.base_step import StepCollaborators
from longform.services.steps.registry import get_step_class

logger = logging.getLogger(__name__)

REASON_NOT_ADVANCEABLE = "not_advanceable"
REASON_CLAIMED_ELSEWHERE = "claimed_elsewhere"
REASON_DISCARDED = "discarded"
REASON_FAILED = "failed"


def _result(job: Job, *, performed: bool, reason: str | None = None) -> AdvanceResult:
    return AdvanceResult(
        job_id=job.id,
        status=job.status,
        step=job.step,
        progress=job.progress,
        cursor=job.cursor,
        performed=performed,
        reason=reason,
    )


def _has_delta(outcome: StepOutcome) -> bool:
    return bool(
        outcome.outline is not None
        or outcome.final_output is not None
        or outcome.new_sections
        or outcome.section_draft is not None
        or outcome.new_references
    )


class PipelineDriver:
    """Advances jobs one step at a time.

    The claim (conditional UPDATE plus lease token) lets at most one caller
    run a step for a job; the commit only lands if that lease and the
    job's step/cursor are unchanged, so pause, cancel and reset during an
    in-flight step discard its result.
    """

    def __init__(
        self,
        collaborators: StepCollaborators,
        *,
        repository: JobRepository | None = None,
        step_timeout_seconds: float | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.repository = repository or JobRepository()
        self.step_timeout_seconds = (
            step_timeout_seconds
            if step_timeout_seconds is not None
            else collaborators.settings.advance_step_timeout_seconds
        )

    async def advance(self, job_id: str) -> AdvanceResult:
        """Perform the next unit of work for ``job_id`` and return the job state.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        with log_context(job_id=job_id):
            return await self._advance(job_id)

    async def _advance(self, job_id: str) -> AdvanceResult:
        job = await self.repository.get_or_raise(job_id)
        log_info = {"job_id": job_id, "status": job.status, "step": job.step, "cursor": job.cursor}
        if job.status not in ADVANCEABLE_STATUSES:
            logger.info("Advance skipped, job not advanceable", extra=log_info)
            return _result(job, performed=False, reason=REASON_NOT_ADVANCEABLE)

        lease_token = generate_lease_token()
        if not await self.repository.claim(job_id, lease_token):
            current = await self.repository.get_or_raise(job_id)
            reason = (
                REASON_CLAIMED_ELSEWHERE
                if current.status in ADVANCEABLE_STATUSES
                else REASON_NOT_ADVANCEABLE
            )
            logger.info("Advance skipped, claim lost", extra={**log_info, "reason": reason})
            return _result(current, performed=False, reason=reason)

        snapshot = await self.repository.load_snapshot(job_id)
        fence = LeaseFence(
            job_id=job_id,
            lease_token=lease_token,
            step=snapshot.job.step,
            cursor=snapshot.job.cursor,
        )

        try:
            outcome = await asyncio.wait_for(
                self._run_unit(snapshot),
                timeout=self.step_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return await self._fail(
                snapshot,
                fence,
                StepTimeoutError(snapshot.job.step, self.step_timeout_seconds),
            )
        except Exception as exc:
            return await self._fail(snapshot, fence, exc)

        section_count = len(outcome.new_sections) or snapshot.section_count
        next_cursor = outcome.cursor if outcome.cursor is not None else fence.cursor
        progress = max(
            compute_progress(outcome.next_step, next_cursor, section_count),
            snapshot.job.progress,
        )

        try:
            committed = await self.repository.commit_outcome(
                fence,
                outcome,
                article_id=snapshot.article.id,
                progress=progress,
            )
        except DataIntegrityError as exc:
            # The commit transaction rolled back, so the lease is still ours
            return await self._fail(snapshot, fence, exc)
        current = await self.repository.get_or_raise(job_id)
        if not committed:
            logger.info(
                "Step result discarded, job changed while running",
                extra={**log_info, "current_status": current.status},
            )
            return _result(current, performed=False, reason=REASON_DISCARDED)

        logger.info(
            "Advance committed",
            extra={
                "job_id": job_id,
                "from_step": fence.step,
                "to_step": current.step,
                "cursor": current.cursor,
                "progress": current.progress,
            },
        )
        return _result(current, performed=True)

    async def _run_unit(self, snapshot: JobSnapshot) -> StepOutcome:
        """Run the current step, plus the following one when it only does bookkeeping."""
        step = get_step_class(snapshot.job.step)(self.collaborators)
        with log_context(step=step.step_name.value):
            outcome = await step.run(snapshot)

        while step.chains_into_next and outcome.next_step != StepName.DONE:
            if _has_delta(outcome):
                raise DataIntegrityError(
                    f"Step {step.step_name.value} cannot chain with a state delta",
                    {"job_id": snapshot.job.id},
                )
            # Snapshot is detached; move it to the position the chained step expects
            snapshot.job.step = outcome.next_step.value
            if outcome.cursor is not None:
                snapshot.job.cursor = outcome.cursor
            carried_cursor = outcome.cursor

            step = get_step_class(outcome.next_step)(self.collaborators)
            with log_context(step=step.step_name.value):
                outcome = await step.run(snapshot)
            if outcome.cursor is None and carried_cursor is not None:
                outcome = outcome.model_copy(update={"cursor": carried_cursor})

        return outcome

    async def _fail(self, snapshot: JobSnapshot, fence: LeaseFence, exc: Exception) -> AdvanceResult:
        """Record a failed unit; nothing from the unit itself is written."""
        # A chained step moves the snapshot forward, so name the step that was running
        active_step = snapshot.job.step
        integrity = isinstance(exc, DataIntegrityError)
        error_kind = ErrorKind.DATA_INTEGRITY if integrity else ErrorKind.STEP_EXECUTION
        if integrity or isinstance(exc, StepExecutionError):
            message = str(exc)
        else:
            message = str(StepExecutionError(active_step, str(exc) or type(exc).__name__))

        logger.log(
            logging.ERROR if integrity else logging.WARNING,
            "Advance step failed",
            extra={
                "job_id": fence.job_id,
                "step": active_step,
                "claimed_step": fence.step,
                "cursor": fence.cursor,
                "error_kind": error_kind.value,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
            exc_info=exc if integrity else None,
        )

        recorded = await self.repository.record_failure(
            fence,
            article_id=snapshot.article.id,
            message=message,
            error_kind=error_kind.value,
        )
        current = await self.repository.get_or_raise(fence.job_id)
        return _result(current, performed=False, reason=REASON_FAILED if recorded else REASON_DISCARDED)
