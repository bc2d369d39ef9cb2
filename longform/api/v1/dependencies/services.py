"""Service providers injected into route handlers."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from longform.agents.internal_link_planner import InternalLinkPlannerAgent
from longform.agents.outline_planner import OutlinePlannerAgent
from longform.agents.reference_summarizer import ReferenceSummarizerAgent
from longform.agents.section_writer import SectionWriterAgent
from longform.agents.social_post_writer import SocialPostWriterAgent
from longform.config import get_settings
from longform.integrations.page_fetcher import PageFetcher
from longform.integrations.search import get_search_backend
from longform.services.articles import ArticleService
from longform.services.job_controller import JobController
from longform.services.knowledge import KnowledgeCollaborators, KnowledgeService
from longform.services.pipeline_driver import PipelineDriver
from longform.services.steps.base_step import StepCollaborators


@lru_cache
def get_step_collaborators() -> StepCollaborators:
    """Backends shared by every advance call in this process."""
    return StepCollaborators(
        search=get_search_backend(),
        outline_planner=OutlinePlannerAgent(),
        section_writer=SectionWriterAgent(),
        settings=get_settings(),
    )


@lru_cache
def get_knowledge_collaborators() -> KnowledgeCollaborators:
    return KnowledgeCollaborators(
        internal_link_planner=InternalLinkPlannerAgent(),
        social_post_writer=SocialPostWriterAgent(),
        reference_summarizer=ReferenceSummarizerAgent(),
        page_fetcher=PageFetcher(),
        settings=get_settings(),
    )


def get_pipeline_driver() -> PipelineDriver:
    return PipelineDriver(get_step_collaborators())


def get_job_controller() -> JobController:
    return JobController()


def get_article_service() -> ArticleService:
    return ArticleService()


def get_knowledge_service() -> KnowledgeService:
    return KnowledgeService(get_knowledge_collaborators())


PipelineDriverDep = Annotated[PipelineDriver, Depends(get_pipeline_driver)]
JobControllerDep = Annotated[JobController, Depends(get_job_controller)]
ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]
KnowledgeServiceDep = Annotated[KnowledgeService, Depends(get_knowledge_service)]
