"""SQLAlchemy database models."""
from dotenv import load_dotenv
from longform.models.article import Article, ArticleStatus
from longform.models.base import Base
from longform.models.job import (
    ErrorKind,
    Job,
    JobStatus,
    Reference,
    Section,
    SectionStatus,
    StepName,
)
from longform.models.knowledge import KnowledgeItem, KnowledgeKind


load_dotenv()

__all__ = [
    "Base",
    "Article",
    "ArticleStatus",
    "Job",
    "JobStatus",
    "StepName",
    "Section",
    "SectionStatus",
    "Reference",
    "ErrorKind",
    "KnowledgeItem",
    "KnowledgeKind",
]
