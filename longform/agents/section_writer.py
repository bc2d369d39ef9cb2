"""Section writer agent: drafts the body of a single outline section."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from longform.agents.base_agent import BaseAgent

logger = logging.getLogger(__name__)


class SectionInput(BaseModel):
    """Input for drafting one section."""

    title: str
    tone: str | None = None
    keywords: list[str] = Field(default_factory=list)
    forbidden: list[str] = Field(default_factory=list)
    outline: str = ""
    previous_sections: list[str] = Field(default_factory=list)
    research_context: str = ""
    index: int
    heading_path: str
    planned_length: int


class SectionResult(BaseModel):
    """Drafted section body in markdown."""

    content: str = Field(min_length=1)

    @field_validator("content")
    @classmethod
    def _reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class SectionWriterAgent(BaseAgent[SectionInput, SectionResult]):
    """Writes one section at a time, keeping consistency with earlier sections."""

    model_tier = "standard"
    temperature = 0.7

    @property
    def system_prompt(self) -> str:
        return """You are an expert SEO writer producing one section of a long-form article.

Rules:
- Write ONE section only, in markdown.
- Start with a "## " heading matching the outline; use H3/H4 as needed.
- Be specific and practical: concrete checklists, steps and examples where appropriate.
- Add originality (experience, trade-offs, failure cases); avoid generic filler.
- Do not repeat earlier sections and never copy text from sources."""

    @property
    def output_type(self) -> type[SectionResult]:
        return SectionResult

    def _build_prompt(self, input_data: SectionInput) -> str:
        lines = [f"Article title: {input_data.title}"]
        if input_data.tone:
            lines.append(f"Tone: {input_data.tone}")
        if input_data.keywords:
            lines.append(f"Keywords: {', '.join(input_data.keywords)}")
        if input_data.forbidden:
            lines.append(f"Forbidden: {' / '.join(input_data.forbidden)}")

        lines += ["", "Outline (for consistency):", input_data.outline]

        if input_data.previous_sections:
            lines += ["", "Recent context:"]
            lines.extend(input_data.previous_sections)

        lines += [
            "",
            f"Write section index {input_data.index} with about {input_data.planned_length} characters.",
            f"Section heading path: {input_data.heading_path}",
        ]

        if input_data.research_context:
            lines += ["", input_data.research_context]

        return "\n".join(lines)
