"""Knowledge item schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class KnowledgeItemResponse(BaseModel):
    """Schema for knowledge item response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    article_id: str
    kind: str
    title: str
    content: str
    source_urls: list[str]
    payload: dict
    created_at: datetime


class ReferenceSummaryReportResponse(BaseModel):
    """Outcome of one reference summarization batch."""

    article_id: str
    stored: list[KnowledgeItemResponse] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    already_summarized: int = 0
    remaining: int = 0
