"""Advance sweep entrypoint for cron-style job execution."""

from __future__ import annotations

import argparse
import asyncio
import logging

from longform.api.v1.dependencies import get_step_collaborators
from longform.config import settings
from longform.core.database import close_db
from longform.core.db_kernel import DbKernelError
from longform.core.exceptions import JobNotFoundError, LongformError
from longform.core.logging import setup_logging
from longform.repositories.job_repository import JobRepository
from longform.schemas.pipeline import AdvanceResult
from longform.services.pipeline_driver import REASON_FAILED, PipelineDriver

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--job-id",
        action="append",
        dest="job_ids",
        help="Advance only this job. Repeat to select multiple jobs.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.advance_sweep_batch_size,
        help="Maximum number of advanceable jobs to pick up in one sweep.",
    )
    args = parser.parse_args(argv)
    if args.limit < 1:
        parser.error("--limit must be at least 1")
    return args


async def sweep(
    driver: PipelineDriver,
    *,
    job_ids: list[str] | None = None,
    limit: int,
) -> list[AdvanceResult]:
    """Advance each selected job exactly once, sequentially."""
    selected = list(dict.fromkeys(job_ids)) if job_ids else await driver.repository.list_advanceable_ids(
        limit=limit
    )
    results: list[AdvanceResult] = []
    for job_id in selected:
        try:
            results.append(await driver.advance(job_id))
        except JobNotFoundError:
            logger.warning("Sweep skipped unknown job", extra={"job_id": job_id})
        except (LongformError, DbKernelError) as exc:
            # Later jobs in the batch still get their advance
            logger.error(
                "Sweep advance failed",
                extra={"job_id": job_id, "error_type": type(exc).__name__, "error": str(exc)},
                exc_info=exc,
            )
    return results


async def run_sweep(*, job_ids: list[str] | None, limit: int) -> list[AdvanceResult]:
    """Run one sweep with the process-wide backends, then release the pool."""
    setup_logging()
    driver = PipelineDriver(get_step_collaborators(), repository=JobRepository())
    try:
        results = await sweep(driver, job_ids=job_ids, limit=limit)
    finally:
        await close_db()

    logger.info(
        "Advance sweep finished",
        extra={
            "jobs": len(results),
            "performed": sum(1 for result in results if result.performed),
            "failed": sum(1 for result in results if result.reason == REASON_FAILED),
        },
    )
    return results


def main(argv: list[str] | None = None) -> int:
    """Run a single advance sweep."""
    args = parse_args(argv)
    try:
        asyncio.run(run_sweep(job_ids=args.job_ids, limit=args.limit))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
