"""Outline planner agent: turns article parameters into a structured H2 plan."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

from longform.agents.base_agent import BaseAgent, clamp_text

logger = logging.getLogger(__name__)

PLANNED_CHARS_DEFAULT = 2000
PLANNED_CHARS_MIN = 800
PLANNED_CHARS_MAX = 3500


class ResearchSource(BaseModel):
    """Research reference passed as context."""

    url: str
    title: str | None = None
    snippet: str | None = None


class OutlineInput(BaseModel):
    """Input for the outline planner."""

    title: str
    keywords: list[str] = Field(default_factory=list)
    target_length: int
    tone: str | None = None
    persona: str | None = None
    search_intent: str | None = None
    forbidden: list[str] = Field(default_factory=list)
    sources: list[ResearchSource] = Field(default_factory=list)
    max_sections: int = 28


class OutlineSection(BaseModel):
    """One H2 of the outline."""

    h2: str = Field(min_length=1)
    intent_tag: str = ""
    planned_chars: int = PLANNED_CHARS_DEFAULT
    h3: list[str] = Field(default_factory=list)
    h4: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("planned_chars", mode="before")
    @classmethod
    def _coerce_planned_chars(cls, value: Any) -> int:
        if value is None or isinstance(value, bool):
            return PLANNED_CHARS_DEFAULT
        try:
            number = float(value)
        except (TypeError, ValueError):
            return PLANNED_CHARS_DEFAULT
        if number != number:  # NaN
            return PLANNED_CHARS_DEFAULT
        return max(PLANNED_CHARS_MIN, min(PLANNED_CHARS_MAX, round(number)))

    @field_validator("intent_tag", mode="before")
    @classmethod
    def _coerce_intent_tag(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("h3", mode="before")
    @classmethod
    def _coerce_h3(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    @field_validator("h4", mode="before")
    @classmethod
    def _coerce_h4(cls, value: Any) -> dict[str, list[str]]:
        if not isinstance(value, dict):
            return {}
        return {
            str(key): [item for item in items if isinstance(item, str) and item.strip()]
            for key, items in value.items()
            if isinstance(items, list)
        }


class OutlineResult(BaseModel):
    """Structured outline output."""

    sections: list[OutlineSection] = Field(min_length=3)
    faq: list[str] = Field(default_factory=list)
    glossary: list[str] = Field(default_factory=list)

    @field_validator("faq", "glossary", mode="before")
    @classmethod
    def _coerce_string_items(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        items: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
            elif isinstance(item, dict):
                picked = next(
                    (
                        item[key]
                        for key in ("text", "value", "title", "name", "question", "term")
                        if isinstance(item.get(key), str) and item[key].strip()
                    ),
                    None,
                )
                if picked:
                    items.append(picked.strip())
        return items


class OutlinePlannerAgent(BaseAgent[OutlineInput, OutlineResult]):
    """Plans the H2/H3/H4 structure and per-section lengths of a long article."""

    model_tier = "reasoning"
    temperature = 0.3

    @property
    def system_prompt(self) -> str:
        return """You are a senior SEO content strategist planning long-form articles.

Produce an outline that can scale to the requested length without breaking:
- Every section has an H2, an intent tag (definition, comparison, how-to, case study, pitfalls, FAQ, glossary) and a planned character count.
- Use H3 subsections where useful and H4 items keyed by their H3.
- Include experience and trade-off sections, failure cases, and at least one comparison table, checklist or step-by-step template.
- Headings must be consistent and non-overlapping.
- Do not copy text from sources; only paraphrase insights."""

    @property
    def output_type(self) -> type[OutlineResult]:
        return OutlineResult

    def _build_prompt(self, input_data: OutlineInput) -> str:
        lines = [
            "Article requirements:",
            f"- Title: {input_data.title}",
            f"- Keywords: {', '.join(input_data.keywords)}",
            f"- Target length (characters): {input_data.target_length}",
        ]
        if input_data.tone:
            lines.append(f"- Tone: {input_data.tone}")
        if input_data.persona:
            lines.append(f"- Persona: {clamp_text(input_data.persona, 1200)}")
        if input_data.search_intent:
            lines.append(f"- Search intent: {clamp_text(input_data.search_intent, 1200)}")
        if input_data.forbidden:
            lines.append(f"- Forbidden: {' / '.join(input_data.forbidden)}")

        lines += [
            "",
            "Constraints:",
            f"- sections: 3-{input_data.max_sections} H2 items.",
            f"- planned_chars per section between {PLANNED_CHARS_MIN} and {PLANNED_CHARS_MAX}.",
        ]

        if input_data.sources:
            lines += ["", "Research sources (paraphrase, never copy):"]
            for source in input_data.sources:
                label = source.title or source.url
                lines.append(f"- {label} ({source.url})")
                if source.snippet:
                    lines.append(f"  {clamp_text(source.snippet, 300)}")

        return "\n".join(lines)


def render_outline_markdown(title: str, outline: OutlineResult) -> str:
    """Render an outline as editable markdown."""
    lines = [f"# {title}", ""]
    for section in outline.sections:
        heading = f"## {section.h2}"
        if section.intent_tag:
            heading = f"{heading} [{section.intent_tag}]"
        lines.append(heading)
        for h3 in section.h3:
            lines.append(f"### {h3}")
            for h4 in section.h4.get(h3, []):
                lines.append(f"#### {h4}")
        lines.append("")

    if outline.faq:
        lines.append("## FAQ")
        lines.extend(f"- {question}" for question in outline.faq)
        lines.append("")
    if outline.glossary:
        lines.append("## Glossary")
        lines.extend(f"- {term}" for term in outline.glossary)
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
