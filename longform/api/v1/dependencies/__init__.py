"""Reusable API dependencies shared across v1 routes."""

from longform.api.v1.dependencies.services import (
    ArticleServiceDep,
    JobControllerDep,
    KnowledgeServiceDep,
    PipelineDriverDep,
    get_article_service,
    get_job_controller,
    get_knowledge_collaborators,
    get_knowledge_service,
    get_pipeline_driver,
    get_step_collaborators,
)

__all__ = [
    "ArticleServiceDep",
    "JobControllerDep",
    "KnowledgeServiceDep",
    "PipelineDriverDep",
    "get_article_service",
    "get_job_controller",
    "get_knowledge_collaborators",
    "get_knowledge_service",
    "get_pipeline_driver",
    "get_step_collaborators",
]
