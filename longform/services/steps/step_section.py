"""Section step: draft the section under the cursor."""

from __future__ import annotations

import logging

from longform.agents.base_agent import clamp_text
from longform.agents.section_writer import SectionInput
from longform.core.exceptions import DataIntegrityError
from longform.models.job import Reference, Section, SectionStatus, StepName
from longform.repositories.job_repository import JobSnapshot
from longform.schemas.pipeline import SectionDraft, StepOutcome
from longform.services.steps.base_step import BaseStep

logger = logging.getLogger(__name__)

PREVIOUS_SECTIONS_IN_PROMPT = 2


def build_research_context(references: list[Reference], max_chars: int) -> str:
    """Compact bullet list of research sources for prompts."""
    if not references:
        return ""
    lines = ["Research notes (paraphrase, never copy):"]
    for reference in references:
        label = reference.title or reference.url
        line = f"- {label} ({reference.url})"
        if reference.snippet:
            line = f"{line}: {reference.snippet.strip()}"
        lines.append(line)
    return clamp_text("\n".join(lines), max_chars)


def _section_at(snapshot: JobSnapshot, index: int) -> Section:
    for section in snapshot.sections:
        if section.index == index:
            return section
    raise DataIntegrityError(
        f"Section {index} missing for job {snapshot.job.id}",
        {"job_id": snapshot.job.id, "index": index},
    )


class SectionStep(BaseStep):
    """One generation call per section; cursor moves forward by exactly one."""

    step_name = StepName.SECTION

    def _validate_preconditions(self, snapshot: JobSnapshot) -> None:
        count = snapshot.section_count
        cursor = snapshot.job.cursor
        if count == 0:
            raise DataIntegrityError(
                "Section step reached without sections",
                {"job_id": snapshot.job.id},
            )
        if cursor < 0 or cursor >= count:
            raise DataIntegrityError(
                f"Cursor {cursor} out of range for {count} sections",
                {"job_id": snapshot.job.id, "cursor": cursor, "sections": count},
            )

    def _next(self, snapshot: JobSnapshot) -> tuple[int, StepName]:
        cursor = snapshot.job.cursor + 1
        if cursor == snapshot.section_count:
            return cursor, StepName.INTEGRATE
        return cursor, StepName.SECTION

    async def _execute(self, snapshot: JobSnapshot) -> StepOutcome:
        settings = self.settings
        cursor = snapshot.job.cursor
        section = _section_at(snapshot, cursor)
        next_cursor, next_step = self._next(snapshot)

        if section.status == SectionStatus.REVIEWED.value and (section.content or "").strip():
            # User already supplied this section; keep their text
            logger.info(
                "Skipping reviewed section",
                extra={"job_id": snapshot.job.id, "index": cursor},
            )
            return StepOutcome(next_step=next_step, cursor=next_cursor)

        previous = [
            f"# Previous section {prior.index}\n"
            f"{clamp_text(prior.content or '', settings.prompt_previous_section_max_chars)}"
            for prior in snapshot.sections
            if prior.index < cursor and (prior.content or "").strip()
        ][-PREVIOUS_SECTIONS_IN_PROMPT:]

        article = snapshot.article
        result = await self.collaborators.section_writer.run(
            SectionInput(
                title=article.title,
                tone=article.tone,
                keywords=list(article.keywords or []),
                forbidden=list(article.forbidden or []),
                outline=clamp_text(article.outline or "", settings.prompt_outline_max_chars),
                previous_sections=previous,
                research_context=build_research_context(
                    snapshot.references,
                    settings.prompt_research_max_chars,
                ),
                index=cursor,
                heading_path=section.heading_path,
                planned_length=section.planned_length,
            )
        )

        return StepOutcome(
            next_step=next_step,
            cursor=next_cursor,
            section_draft=SectionDraft(index=cursor, content=result.content.strip()),
        )
