"""Unit tests for outline normalization, length scaling and prompt building."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from longform.agents.outline_planner import (
    OutlineInput,
    OutlinePlannerAgent,
    OutlineResult,
    OutlineSection,
    ResearchSource,
    render_outline_markdown,
)
from longform.services.steps.step_outline import heading_path, scale_planned_lengths


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, 2000),
        ("not a number", 2000),
        (float("nan"), 2000),
        (True, 2000),
        ("2400.4", 2400),
        (100, 800),
        (10_000, 3500),
    ],
)
def test_planned_chars_is_coerced_and_clamped(raw: object, expected: int) -> None:
    assert OutlineSection(h2="Heading", planned_chars=raw).planned_chars == expected


def test_outline_section_drops_malformed_subheadings() -> None:
    section = OutlineSection(
        h2="Heading",
        intent_tag=None,
        h3=["  Sub  ", "", 3],
        h4={"Sub": ["Item", ""], "Bad": "not a list"},
    )

    assert section.intent_tag == ""
    assert section.h3 == ["Sub"]
    assert section.h4 == {"Sub": ["Item"]}


def test_outline_requires_three_sections() -> None:
    with pytest.raises(ValidationError):
        OutlineResult(sections=[OutlineSection(h2="Only"), OutlineSection(h2="Two")])


def test_outline_faq_accepts_object_items() -> None:
    outline = OutlineResult(
        sections=[OutlineSection(h2=name) for name in ("A", "B", "C")],
        faq=[{"question": "Why?"}, "  How?  ", {"unknown": "x"}, 5],
        glossary="not a list",
    )

    assert outline.faq == ["Why?", "How?"]
    assert outline.glossary == []


def test_render_outline_markdown() -> None:
    outline = OutlineResult(
        sections=[
            OutlineSection(h2="Basics", intent_tag="definition", h3=["Terms"], h4={"Terms": ["CUID"]}),
            OutlineSection(h2="Setup"),
            OutlineSection(h2="Pitfalls"),
        ],
        glossary=["Lease"],
    )

    markdown = render_outline_markdown("Guide", outline)

    assert markdown.startswith("# Guide\n")
    assert "## Basics [definition]\n### Terms\n#### CUID" in markdown
    assert "## Setup\n" in markdown
    assert markdown.rstrip().endswith("## Glossary\n- Lease")


def test_scale_planned_lengths_uses_minimum_target() -> None:
    lengths = scale_planned_lengths(
        [1000, 1000, 1000, 1000, 1000],
        target_length=3000,
        min_target_length=10_000,
        min_length=1200,
        max_length=3200,
    )

    assert lengths == [2000] * 5


def test_scale_planned_lengths_clamps_each_section() -> None:
    lengths = scale_planned_lengths(
        [800, 3500, 1700],
        target_length=6000,
        min_target_length=0,
        min_length=1200,
        max_length=3200,
    )

    assert lengths == [1200, 3200, 1700]


def test_heading_path_includes_intent_tag() -> None:
    assert heading_path(OutlineSection(h2=" Setup ", intent_tag="how-to")) == "H2: Setup [how-to]"
    assert heading_path(OutlineSection(h2="Setup")) == "H2: Setup"


def test_outline_prompt_lists_requirements_and_sources() -> None:
    agent = OutlinePlannerAgent(model_override="test")

    prompt = agent._build_prompt(
        OutlineInput(
            title="Guide",
            keywords=["a", "b"],
            target_length=12_000,
            tone="direct",
            forbidden=["synergy"],
            sources=[ResearchSource(url="https://a.example.com", title="Source A", snippet="s" * 500)],
            max_sections=12,
        )
    )

    assert "- Title: Guide" in prompt
    assert "- Keywords: a, b" in prompt
    assert "- Tone: direct" in prompt
    assert "- Forbidden: synergy" in prompt
    assert "3-12 H2 items" in prompt
    assert "- Source A (https://a.example.com)" in prompt
    assert "s" * 301 not in prompt
