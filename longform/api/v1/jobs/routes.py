"""Job API endpoints: advance and lifecycle transitions."""

import logging
from collections.abc import Awaitable

from fastapi import APIRouter, HTTPException, status

from longform.api.v1.dependencies import JobControllerDep, PipelineDriverDep
from longform.api.v1.jobs.constants import (
    ACTIVE_JOB_EXISTS_DETAIL,
    INVALID_TRANSITION_DETAIL_TEMPLATE,
    JOB_NOT_FOUND_DETAIL,
    NOT_RESETTABLE_DETAIL_TEMPLATE,
)
from longform.core.exceptions import (
    ActiveJobExistsError,
    InvalidTransitionError,
    JobNotFoundError,
    NotResettableError,
)
from longform.models.job import Job
from longform.schemas.job import JobResponse
from longform.schemas.pipeline import AdvanceResult

logger = logging.getLogger(__name__)

router = APIRouter()


async def _transition(operation: Awaitable[Job]) -> Job:
    """Await a controller transition, mapping domain errors to HTTP errors."""
    try:
        return await operation
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=JOB_NOT_FOUND_DETAIL)
    except ActiveJobExistsError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ACTIVE_JOB_EXISTS_DETAIL)
    except NotResettableError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=NOT_RESETTABLE_DETAIL_TEMPLATE.format(status=e.status),
        )
    except InvalidTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=INVALID_TRANSITION_DETAIL_TEMPLATE.format(action=e.action, status=e.status),
        )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job",
    description="Current job status, step, cursor and progress.",
)
async def get_job(job_id: str, controller: JobControllerDep) -> Job:
    """Get a job."""
    return await _transition(controller.get_job(job_id))


@router.post(
    "/{job_id}/advance",
    response_model=AdvanceResult,
    summary="Advance job",
    description=(
        "Execute exactly one unit of work (one step, or one section) and return. "
        "Calling on a paused, cancelled, done or errored job is a no-op."
    ),
)
async def advance_job(job_id: str, driver: PipelineDriverDep) -> AdvanceResult:
    """Advance a job by one step."""
    try:
        return await driver.advance(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=JOB_NOT_FOUND_DETAIL)


@router.post("/{job_id}/pause", response_model=JobResponse, summary="Pause job")
async def pause_job(job_id: str, controller: JobControllerDep) -> Job:
    """Pause a queued or running job."""
    return await _transition(controller.pause(job_id))


@router.post("/{job_id}/resume", response_model=JobResponse, summary="Resume job")
async def resume_job(job_id: str, controller: JobControllerDep) -> Job:
    """Return a paused job to the queue."""
    return await _transition(controller.resume(job_id))


@router.post("/{job_id}/cancel", response_model=JobResponse, summary="Cancel job")
async def cancel_job(job_id: str, controller: JobControllerDep) -> Job:
    """Cancel a job (terminal)."""
    return await _transition(controller.cancel(job_id))


@router.post(
    "/{job_id}/reset",
    response_model=JobResponse,
    summary="Reset job",
    description="Return an errored, done or cancelled job to step init; drafted sections are deleted.",
)
async def reset_job(job_id: str, controller: JobControllerDep) -> Job:
    """Reset a job for a fresh run."""
    return await _transition(controller.reset(job_id))
