"""Job schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class JobResponse(BaseModel):
    """Schema for job response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    article_id: str
    status: str
    step: str
    progress: int
    cursor: int
    error: str | None
    error_kind: str | None
    started_at: datetime | None
    finished_at: datetime | None
    created_at: datetime
    updated_at: datetime
