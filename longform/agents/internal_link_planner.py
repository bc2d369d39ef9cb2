"""Internal link planner agent: proposes internal links for a finished article."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from longform.agents.base_agent import BaseAgent, clamp_text
from longform.config import settings

MIN_PROPOSALS = 8
MAX_PROPOSALS = 15


class InternalLinkInput(BaseModel):
    """Finished article to plan links for."""

    title: str
    final_markdown: str
    keywords: list[str] = Field(default_factory=list)


class InternalLinkProposal(BaseModel):
    """One anchor and the kind of page it should point to."""

    anchor: str = Field(min_length=1)
    target_type: str = Field(min_length=1)
    rationale: str = ""

    @field_validator("anchor", "target_type", "rationale", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""


class InternalLinkResult(BaseModel):
    """Internal link proposals, most valuable first."""

    proposals: list[InternalLinkProposal] = Field(min_length=1)

    @field_validator("proposals")
    @classmethod
    def _cap(cls, value: list[InternalLinkProposal]) -> list[InternalLinkProposal]:
        return value[:MAX_PROPOSALS]


class InternalLinkPlannerAgent(BaseAgent[InternalLinkInput, InternalLinkResult]):
    """Suggests anchors and target page types that strengthen topical authority."""

    model_tier = "standard"
    temperature = 0.4

    @property
    def system_prompt(self) -> str:
        return f"""You are an SEO editor planning internal links for a published article.

Propose {MIN_PROPOSALS}-{MAX_PROPOSALS} internal links that would strengthen topical authority.
For each link give:
- anchor: the exact phrase in the article to link from
- target_type: the kind of page it should point to (service, pricing, comparison, case study, FAQ, glossary, ...)
- rationale: one sentence on why the link helps the reader

Do NOT invent existing pages or URLs; describe the target page type only."""

    @property
    def output_type(self) -> type[InternalLinkResult]:
        return InternalLinkResult

    def _build_prompt(self, input_data: InternalLinkInput) -> str:
        lines = [f"Title: {input_data.title}"]
        if input_data.keywords:
            lines.append(f"Keywords: {', '.join(input_data.keywords)}")
        lines += [
            "",
            "Article:",
            clamp_text(input_data.final_markdown, settings.prompt_internal_links_max_chars),
        ]
        return "\n".join(lines)


def render_internal_links(result: InternalLinkResult) -> str:
    """Markdown list of proposals."""
    lines = []
    for proposal in result.proposals:
        line = f"- **{proposal.anchor}** → {proposal.target_type}"
        if proposal.rationale:
            line = f"{line}: {proposal.rationale}"
        lines.append(line)
    return "\n".join(lines)
