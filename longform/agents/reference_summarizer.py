"""Reference summarizer agent: condenses one fetched source page."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from longform.agents.base_agent import BaseAgent, clamp_text
from longform.config import settings


def _string_items(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class ReferenceSummaryInput(BaseModel):
    """Extracted page content."""

    url: str
    title: str | None = None
    meta_description: str | None = None
    headings: list[str] = Field(default_factory=list)
    text: str = ""


class ReferenceInsights(BaseModel):
    claims: list[str] = Field(default_factory=list)
    structure: list[str] = Field(default_factory=list)
    faq: list[str] = Field(default_factory=list)
    internal_links: list[str] = Field(default_factory=list)

    @field_validator("claims", "structure", "faq", "internal_links", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> list[str]:
        return _string_items(value)


class ReferenceSummaryResult(BaseModel):
    """Summary plus the reusable insights of a source."""

    summary: str = Field(min_length=1)
    insights: ReferenceInsights = Field(default_factory=ReferenceInsights)


class ReferenceSummarizerAgent(BaseAgent[ReferenceSummaryInput, ReferenceSummaryResult]):
    """Summarizes a reference page into key claims, structure and FAQ ideas."""

    model_tier = "fast"
    temperature = 0.3

    @property
    def system_prompt(self) -> str:
        return """You analyse web pages that will be cited as sources for a long-form article.

Return:
- summary: 3-5 sentences in your own words
- insights.claims: the key factual claims worth citing
- insights.structure: how the page is organised, as short notes
- insights.faq: questions the page answers
- insights.internal_links: topics that would deserve their own linked page

Paraphrase; never copy sentences from the page."""

    @property
    def output_type(self) -> type[ReferenceSummaryResult]:
        return ReferenceSummaryResult

    def _build_prompt(self, input_data: ReferenceSummaryInput) -> str:
        lines = [f"URL: {input_data.url}"]
        if input_data.title:
            lines.append(f"Title: {input_data.title}")
        if input_data.meta_description:
            lines.append(f"Description: {input_data.meta_description}")
        if input_data.headings:
            lines += ["", "Headings:"]
            lines.extend(f"- {heading}" for heading in input_data.headings)
        lines += ["", "Body:", clamp_text(input_data.text, settings.prompt_reference_max_chars)]
        return "\n".join(lines)
