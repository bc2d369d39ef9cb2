"""Pipeline step outcome and advance result schemas."""

from pydantic import BaseModel, Field

from longform.models.job import StepName


class SectionPlan(BaseModel):
    """Section row to create from an outline heading."""

    index: int = Field(ge=0)
    heading_path: str
    planned_length: int = Field(ge=1)


class SectionDraft(BaseModel):
    """Drafted body for an existing section."""

    index: int = Field(ge=0)
    content: str


class ReferenceDraft(BaseModel):
    """Source to attach to the job during research."""

    url: str
    title: str | None = None
    snippet: str | None = None


class StepOutcome(BaseModel):
    """Pure state delta produced by one step, applied by the pipeline driver."""

    next_step: StepName
    cursor: int | None = Field(
        default=None,
        ge=0,
        description="New cursor value; None keeps the current cursor.",
    )
    outline: str | None = None
    final_output: str | None = None
    new_sections: list[SectionPlan] = Field(default_factory=list)
    section_draft: SectionDraft | None = None
    new_references: list[ReferenceDraft] = Field(default_factory=list)


class AdvanceResult(BaseModel):
    """Job state after one advance call."""

    job_id: str
    status: str
    step: str
    progress: int
    cursor: int
    performed: bool
    reason: str | None = Field(
        default=None,
        description="Why no work was committed: not_advanceable, claimed_elsewhere, discarded, failed.",
    )
