"""Integrate step: assemble drafted sections into the final article."""

from __future__ import annotations

import re

from longform.core.exceptions import DataIntegrityError
from longform.models.job import Section, StepName
from longform.repositories.job_repository import JobSnapshot
from longform.schemas.pipeline import StepOutcome
from longform.services.steps.base_step import BaseStep

_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
_TRAILING_SPACES = re.compile(r"[ \t]+\n")


def normalize_whitespace(text: str) -> str:
    """Unify newlines, drop trailing spaces and collapse runs of blank lines."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _TRAILING_SPACES.sub("\n", normalized)
    normalized = _EXCESS_BLANK_LINES.sub("\n\n", normalized)
    return normalized.strip()


def integrate_sections(job_id: str, sections: list[Section]) -> str:
    """Join section bodies in index order.

    Raises:
        DataIntegrityError: If sections are missing, have an index gap, or
            any section has no content.
    """
    if not sections:
        raise DataIntegrityError("No sections to integrate", {"job_id": job_id})

    ordered = sorted(sections, key=lambda section: section.index)
    parts: list[str] = []
    for expected, section in enumerate(ordered):
        if section.index != expected:
            raise DataIntegrityError(
                f"Section index gap: expected {expected}, found {section.index}",
                {"job_id": job_id, "expected": expected, "found": section.index},
            )
        body = normalize_whitespace(section.content or "")
        if not body:
            raise DataIntegrityError(
                f"Section {section.index} has no content",
                {"job_id": job_id, "index": section.index},
            )
        parts.append(body)
    return "\n\n".join(parts)


class IntegrateStep(BaseStep):
    """Local transform, no external call."""

    step_name = StepName.INTEGRATE

    async def _execute(self, snapshot: JobSnapshot) -> StepOutcome:
        final_output = integrate_sections(snapshot.job.id, snapshot.sections)
        return StepOutcome(next_step=StepName.DONE, final_output=final_output)
