"""Article schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from longform.schemas.job import JobResponse


def _clean_strings(values: list[str]) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for value in values:
        item = value.strip()
        if item and item.lower() not in seen:
            seen.add(item.lower())
            cleaned.append(item)
    return cleaned


class ArticleCreate(BaseModel):
    """Schema for creating an article."""

    title: str = Field(..., min_length=1, max_length=500)
    keywords: list[str] = Field(default_factory=list, max_length=50)
    target_length: int = Field(default=10_000, ge=1000, le=100_000)
    tone: str | None = Field(default=None, max_length=100)
    persona: str | None = Field(default=None, max_length=5000)
    search_intent: str | None = Field(default=None, max_length=50)
    forbidden: list[str] = Field(default_factory=list, max_length=100)
    reference_urls: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Title must not be blank")
        return stripped

    @field_validator("keywords", "forbidden", "reference_urls")
    @classmethod
    def _dedupe(cls, values: list[str]) -> list[str]:
        return _clean_strings(values)


class ArticleUpdate(BaseModel):
    """User edits; omitted fields are left untouched."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    outline: str | None = None
    final_output: str | None = None


class SectionUpdate(BaseModel):
    """Direct edit of one section body."""

    content: str = Field(..., min_length=1)


class ArticleResponse(BaseModel):
    """Schema for article response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    title: str
    keywords: list[str]
    target_length: int
    tone: str | None
    persona: str | None
    search_intent: str | None
    forbidden: list[str]
    reference_urls: list[str]
    outline: str | None
    final_output: str | None
    created_at: datetime
    updated_at: datetime


class SectionResponse(BaseModel):
    """Schema for section response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    index: int
    heading_path: str
    planned_length: int
    content: str | None
    status: str


class ReferenceResponse(BaseModel):
    """Schema for reference response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    title: str | None
    snippet: str | None
    summary: str | None = None
    insights: dict | None = None
    fetched_at: datetime | None = None


class ArticleSummaryResponse(BaseModel):
    """Article with its most recent job."""

    article: ArticleResponse
    job: JobResponse | None = None


class ArticleDetailResponse(ArticleSummaryResponse):
    """Article, latest job, its sections (index order) and references."""

    sections: list[SectionResponse] = Field(default_factory=list)
    references: list[ReferenceResponse] = Field(default_factory=list)


class AuditCheckResponse(BaseModel):
    name: str
    passed: bool
    details: dict = Field(default_factory=dict)


class AuditReportResponse(BaseModel):
    """Local quality report for a finished article."""

    article_id: str
    passed: bool
    failures: list[str]
    checks: list[AuditCheckResponse]
