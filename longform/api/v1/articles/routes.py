"""Article API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from longform.api.v1.articles.constants import (
    ACTIVE_JOB_EXISTS_DETAIL,
    ARTICLE_HAS_NO_JOB_DETAIL,
    ARTICLE_NOT_AUDITABLE_DETAIL,
    ARTICLE_NOT_FINISHED_DETAIL,
    ARTICLE_NOT_FOUND_DETAIL,
    DEFAULT_ARTICLE_LIMIT,
    GENERATION_FAILED_DETAIL,
    MAX_ARTICLE_LIMIT,
    SECTION_NOT_FOUND_DETAIL,
)
from longform.api.v1.dependencies import ArticleServiceDep, JobControllerDep, KnowledgeServiceDep
from longform.core.exceptions import (
    ActiveJobExistsError,
    ArticleNotFoundError,
    ExternalAPIError,
    InvalidTransitionError,
    SectionNotFoundError,
)
from longform.models.article import Article
from longform.models.job import Job, Section
from longform.models.knowledge import KnowledgeItem, KnowledgeKind
from longform.repositories.article_repository import ArticleDetail
from longform.schemas.article import (
    ArticleCreate,
    ArticleDetailResponse,
    ArticleResponse,
    ArticleSummaryResponse,
    ArticleUpdate,
    AuditCheckResponse,
    AuditReportResponse,
    ReferenceResponse,
    SectionResponse,
    SectionUpdate,
)
from longform.schemas.job import JobResponse
from longform.schemas.knowledge import KnowledgeItemResponse, ReferenceSummaryReportResponse
from longform.services.content_audit import audit_detail

logger = logging.getLogger(__name__)

router = APIRouter()


def _article_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ARTICLE_NOT_FOUND_DETAIL)


def _detail_response(detail: ArticleDetail) -> ArticleDetailResponse:
    return ArticleDetailResponse(
        article=ArticleResponse.model_validate(detail.article),
        job=JobResponse.model_validate(detail.job) if detail.job else None,
        sections=[SectionResponse.model_validate(section) for section in detail.sections],
        references=[ReferenceResponse.model_validate(ref) for ref in detail.references],
    )


@router.post(
    "",
    response_model=ArticleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create article",
    description="Create a DRAFT article with its generation parameters.",
)
async def create_article(payload: ArticleCreate, articles: ArticleServiceDep) -> Article:
    """Create a new article."""
    return await articles.create_article(payload)


@router.get(
    "",
    response_model=list[ArticleSummaryResponse],
    summary="List articles",
    description="Newest articles first, each with its most recent job.",
)
async def list_articles(
    articles: ArticleServiceDep,
    limit: int = Query(DEFAULT_ARTICLE_LIMIT, ge=1, le=MAX_ARTICLE_LIMIT),
) -> list[ArticleSummaryResponse]:
    """List articles."""
    rows = await articles.list_articles(limit=limit)
    return [
        ArticleSummaryResponse(
            article=ArticleResponse.model_validate(article),
            job=JobResponse.model_validate(job) if job else None,
        )
        for article, job in rows
    ]


@router.get(
    "/{article_id}",
    response_model=ArticleDetailResponse,
    summary="Get article",
    description="Article with its latest job, that job's sections in index order, and references.",
)
async def get_article(article_id: str, articles: ArticleServiceDep) -> ArticleDetailResponse:
    """Get the article aggregate."""
    try:
        detail = await articles.get_article(article_id)
    except ArticleNotFoundError:
        raise _article_not_found()
    return _detail_response(detail)


@router.patch(
    "/{article_id}",
    response_model=ArticleResponse,
    summary="Edit article",
    description="Last-write-wins edit of title, outline or final output.",
)
async def update_article(
    article_id: str,
    payload: ArticleUpdate,
    articles: ArticleServiceDep,
) -> Article:
    """Apply a user edit."""
    try:
        return await articles.update_article(article_id, payload)
    except ArticleNotFoundError:
        raise _article_not_found()


@router.patch(
    "/{article_id}/sections/{index}",
    response_model=SectionResponse,
    summary="Edit section",
    description="Overwrite one section of the latest job; the section becomes reviewed.",
)
async def update_section(
    article_id: str,
    index: int,
    payload: SectionUpdate,
    articles: ArticleServiceDep,
) -> Section:
    """Directly edit a section body."""
    try:
        return await articles.update_section(article_id, index, payload.content)
    except ArticleNotFoundError:
        raise _article_not_found()
    except SectionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=SECTION_NOT_FOUND_DETAIL)


@router.post(
    "/{article_id}/audit",
    response_model=AuditReportResponse,
    summary="Audit article",
    description="Run local quality checks on the article's final output.",
)
async def audit_article(article_id: str, articles: ArticleServiceDep) -> AuditReportResponse:
    """Audit a finished article."""
    try:
        detail = await articles.get_article(article_id)
        report = audit_detail(detail)
    except ArticleNotFoundError:
        raise _article_not_found()
    except InvalidTransitionError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ARTICLE_NOT_AUDITABLE_DETAIL)

    logger.info(
        "Article audited",
        extra={"article_id": article_id, "passed": report.passed, "failures": report.failures},
    )
    return AuditReportResponse(
        article_id=report.article_id,
        passed=report.passed,
        failures=report.failures,
        checks=[
            AuditCheckResponse(name=check.name, passed=check.passed, details=check.details)
            for check in report.checks
        ],
    )


@router.post(
    "/{article_id}/jobs",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create generation job",
    description="Queue a new job at step init; fails if the article already has an active job.",
)
async def create_job(article_id: str, controller: JobControllerDep) -> Job:
    """Create a job for an article."""
    try:
        return await controller.create_job(article_id)
    except ArticleNotFoundError:
        raise _article_not_found()
    except ActiveJobExistsError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ACTIVE_JOB_EXISTS_DETAIL)


@router.get(
    "/{article_id}/knowledge",
    response_model=list[KnowledgeItemResponse],
    summary="List knowledge items",
    description="Internal link proposals, social posts and reference insights, newest first.",
)
async def list_knowledge(
    article_id: str,
    knowledge: KnowledgeServiceDep,
    kind: KnowledgeKind | None = Query(None),
) -> list[KnowledgeItem]:
    """List derived outputs of an article."""
    try:
        return await knowledge.list_items(article_id, kind=kind)
    except ArticleNotFoundError:
        raise _article_not_found()


@router.post(
    "/{article_id}/internal-links",
    response_model=KnowledgeItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Propose internal links",
    description="One generation call over the final output; stores an internal_link item.",
)
async def propose_internal_links(article_id: str, knowledge: KnowledgeServiceDep) -> KnowledgeItem:
    """Propose internal links for a finished article."""
    try:
        return await knowledge.propose_internal_links(article_id)
    except ArticleNotFoundError:
        raise _article_not_found()
    except InvalidTransitionError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ARTICLE_NOT_FINISHED_DETAIL)
    except ExternalAPIError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=GENERATION_FAILED_DETAIL) from e


@router.post(
    "/{article_id}/social-posts",
    response_model=KnowledgeItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Draft social posts",
    description="One generation call producing an X post, a LinkedIn post and a CTA; stores an sns item.",
)
async def draft_social_posts(article_id: str, knowledge: KnowledgeServiceDep) -> KnowledgeItem:
    """Draft social copy for a finished article."""
    try:
        return await knowledge.draft_social_posts(article_id)
    except ArticleNotFoundError:
        raise _article_not_found()
    except InvalidTransitionError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ARTICLE_NOT_FINISHED_DETAIL)
    except ExternalAPIError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=GENERATION_FAILED_DETAIL) from e


@router.post(
    "/{article_id}/references/summarize",
    response_model=ReferenceSummaryReportResponse,
    summary="Summarize references",
    description=(
        "Fetch and summarize the next batch of unsummarized references of the latest job. "
        "Per-reference failures are reported, not raised."
    ),
)
async def summarize_references(
    article_id: str,
    knowledge: KnowledgeServiceDep,
) -> ReferenceSummaryReportResponse:
    """Summarize one batch of references."""
    try:
        report = await knowledge.summarize_references(article_id)
    except ArticleNotFoundError:
        raise _article_not_found()
    except InvalidTransitionError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ARTICLE_HAS_NO_JOB_DETAIL)

    return ReferenceSummaryReportResponse(
        article_id=report.article_id,
        stored=[KnowledgeItemResponse.model_validate(item) for item in report.stored],
        failed=report.failed,
        already_summarized=report.already_summarized,
        remaining=report.remaining,
    )
