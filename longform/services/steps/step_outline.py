"""Outline step: plan headings and create pending sections."""

from __future__ import annotations

from longform.agents.outline_planner import (
    OutlineInput,
    OutlineSection,
    ResearchSource,
    render_outline_markdown,
)
from longform.core.exceptions import DataIntegrityError
from longform.models.job import StepName
from longform.repositories.job_repository import JobSnapshot
from longform.schemas.pipeline import SectionPlan, StepOutcome
from longform.services.steps.base_step import BaseStep


def scale_planned_lengths(
    planned: list[int],
    *,
    target_length: int,
    min_target_length: int,
    min_length: int,
    max_length: int,
) -> list[int]:
    """Rescale planned lengths toward the article target, clamping each one."""
    target = max(target_length, min_target_length)
    ratio = target / max(sum(planned), 1)
    return [max(min_length, min(max_length, int(length * ratio + 0.5))) for length in planned]


def heading_path(section: OutlineSection) -> str:
    path = f"H2: {section.h2.strip()}"
    if section.intent_tag:
        path = f"{path} [{section.intent_tag}]"
    return path


class OutlineStep(BaseStep):
    """One generation call producing the outline; sections are fixed from here on."""

    step_name = StepName.OUTLINE

    def _validate_preconditions(self, snapshot: JobSnapshot) -> None:
        if snapshot.sections:
            raise DataIntegrityError(
                "Outline step found existing sections for job",
                {"job_id": snapshot.job.id, "sections": snapshot.section_count},
            )

    async def _execute(self, snapshot: JobSnapshot) -> StepOutcome:
        article = snapshot.article
        settings = self.settings
        outline = await self.collaborators.outline_planner.run(
            OutlineInput(
                title=article.title,
                keywords=list(article.keywords or []),
                target_length=article.target_length,
                tone=article.tone,
                persona=article.persona,
                search_intent=article.search_intent,
                forbidden=list(article.forbidden or []),
                sources=[
                    ResearchSource(url=ref.url, title=ref.title, snippet=ref.snippet)
                    for ref in snapshot.references
                ],
                max_sections=settings.outline_max_sections,
            )
        )

        sections = outline.sections[: settings.outline_max_sections]
        lengths = scale_planned_lengths(
            [section.planned_chars for section in sections],
            target_length=article.target_length,
            min_target_length=settings.min_target_length,
            min_length=settings.section_min_length,
            max_length=settings.section_max_length,
        )
        plans = [
            SectionPlan(index=index, heading_path=heading_path(section), planned_length=length)
            for index, (section, length) in enumerate(zip(sections, lengths))
        ]

        return StepOutcome(
            next_step=StepName.SECTION,
            cursor=0,
            outline=render_outline_markdown(
                article.title,
                outline.model_copy(update={"sections": sections}),
            ),
            new_sections=plans,
        )
