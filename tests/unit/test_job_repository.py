"""Unit tests for conditional job writes."""

from __future__ import annotations

from typing import Any

import pytest

from longform.core.db_kernel import ConflictError, db_write
from longform.core.exceptions import DataIntegrityError
from longform.models.article import ArticleStatus
from longform.models.job import Job, JobStatus, StepName
from longform.repositories.article_repository import ArticleRepository
from longform.repositories.job_repository import JobRepository, LeaseFence
from longform.schemas.pipeline import SectionDraft, StepOutcome
from longform.services.job_controller import JobController
from longform.services.pipeline_driver import PipelineDriver


@pytest.mark.asyncio
async def test_database_rejects_second_active_job(make_article: Any) -> None:
    article = await make_article()
    await JobController().create_job(article.id)

    async def _insert(session: Any) -> None:
        session.add(Job(article_id=article.id, status=JobStatus.PAUSED.value))

    with pytest.raises(ConflictError):
        await db_write(_insert, operation_name="test_insert_duplicate_active")


@pytest.mark.asyncio
async def test_terminal_jobs_do_not_count_as_active(make_article: Any) -> None:
    article = await make_article()

    async def _insert(session: Any) -> None:
        session.add(Job(article_id=article.id, status=JobStatus.DONE.value))
        session.add(Job(article_id=article.id, status=JobStatus.CANCELLED.value))

    await db_write(_insert, operation_name="test_insert_terminal")
    job = await JobController().create_job(article.id)

    assert job.status == JobStatus.QUEUED.value


@pytest.mark.asyncio
async def test_claim_is_exclusive_until_released(make_article: Any) -> None:
    article = await make_article()
    job = await JobController().create_job(article.id)
    repository = JobRepository()

    assert await repository.claim(job.id, "first") is True
    assert await repository.claim(job.id, "second") is False
    assert await repository.list_advanceable_ids(limit=10) == []

    claimed = await repository.get_or_raise(job.id)
    assert claimed.status == JobStatus.RUNNING.value
    assert claimed.lease_token == "first"
    assert claimed.started_at is not None


@pytest.mark.asyncio
async def test_commit_with_stale_fence_writes_nothing(make_article: Any) -> None:
    article = await make_article()
    job = await JobController().create_job(article.id)
    repository = JobRepository()
    assert await repository.claim(job.id, "current")

    stale = LeaseFence(job_id=job.id, lease_token="previous", step=StepName.INIT.value, cursor=0)
    committed = await repository.commit_outcome(
        stale,
        StepOutcome(next_step=StepName.OUTLINE, outline="# Should not land"),
        article_id=article.id,
        progress=15,
    )

    assert committed is False
    unchanged = await repository.get_or_raise(job.id)
    assert unchanged.step == StepName.INIT.value
    assert unchanged.lease_token == "current"
    snapshot = await repository.load_snapshot(job.id)
    assert snapshot.article.outline is None


@pytest.mark.asyncio
async def test_commit_of_draft_for_missing_section_rolls_back(make_article: Any) -> None:
    article = await make_article()
    job = await JobController().create_job(article.id)
    repository = JobRepository()
    assert await repository.claim(job.id, "current")

    fence = LeaseFence(job_id=job.id, lease_token="current", step=StepName.INIT.value, cursor=0)
    with pytest.raises(DataIntegrityError):
        await repository.commit_outcome(
            fence,
            StepOutcome(
                next_step=StepName.SECTION,
                cursor=1,
                section_draft=SectionDraft(index=0, content="orphan"),
            ),
            article_id=article.id,
            progress=40,
        )

    unchanged = await repository.get_or_raise(job.id)
    assert unchanged.step == StepName.INIT.value
    assert unchanged.lease_token == "current"


@pytest.mark.asyncio
async def test_record_failure_requires_lease(make_article: Any) -> None:
    article = await make_article()
    job = await JobController().create_job(article.id)
    repository = JobRepository()
    assert await repository.claim(job.id, "current")
    fence = LeaseFence(job_id=job.id, lease_token="other", step=StepName.INIT.value, cursor=0)

    recorded = await repository.record_failure(
        fence,
        article_id=article.id,
        message="boom",
        error_kind="step_execution",
    )

    assert recorded is False
    assert (await repository.get_or_raise(job.id)).status == JobStatus.RUNNING.value


@pytest.mark.asyncio
async def test_new_job_clears_output_of_finished_run(make_article: Any, collaborators: Any) -> None:
    article = await make_article()
    first = await JobController().create_job(article.id)
    driver = PipelineDriver(collaborators)
    for _ in range(7):
        await driver.advance(first.id)
    finished = await ArticleRepository().get_detail(article.id)
    assert finished.article.final_output

    second = await JobRepository().create(article.id)

    detail = await ArticleRepository().get_detail(article.id)
    assert detail.job is not None and detail.job.id == second.id
    assert detail.article.status == ArticleStatus.RUNNING.value
    assert detail.article.outline is None
    assert detail.article.final_output is None
    assert detail.sections == []
