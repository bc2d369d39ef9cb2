"""Deterministic job progress from step and cursor."""

from longform.models.job import StepName

_FIXED_PROGRESS: dict[StepName, int] = {
    StepName.INIT: 0,
    StepName.RESEARCH: 5,
    StepName.OUTLINE: 15,
    StepName.INTEGRATE: 85,
    StepName.DONE: 100,
}

SECTION_BASE = 25
SECTION_SPAN = 60


def compute_progress(step: StepName | str, cursor: int = 0, section_count: int = 0) -> int:
    """Return progress in 0..100 for a job positioned at ``step``/``cursor``.

    The section band spans 25..85 proportionally to drafted sections; it never
    reaches 85 while sections remain, so only ``done`` maps to 100.
    """
    step = StepName(step)
    if step != StepName.SECTION:
        return _FIXED_PROGRESS[step]
    if section_count <= 0:
        return SECTION_BASE
    bounded = min(max(cursor, 0), section_count)
    return SECTION_BASE + (SECTION_SPAN * bounded) // section_count
