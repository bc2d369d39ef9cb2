"""Mapping from step name to step implementation."""

from longform.core.exceptions import DataIntegrityError
from longform.models.job import StepName
from longform.services.steps.base_step import BaseStep
from longform.services.steps.step_init import InitStep
from longform.services.steps.step_integrate import IntegrateStep
from longform.services.steps.step_outline import OutlineStep
from longform.services.steps.step_research import ResearchStep
from longform.services.steps.step_section import SectionStep

STEP_REGISTRY: dict[StepName, type[BaseStep]] = {
    StepName.INIT: InitStep,
    StepName.RESEARCH: ResearchStep,
    StepName.OUTLINE: OutlineStep,
    StepName.SECTION: SectionStep,
    StepName.INTEGRATE: IntegrateStep,
}


def validate_registry(registry: dict[StepName, type[BaseStep]]) -> None:
    """Every non-terminal step needs exactly one implementation."""
    mismatched = (set(StepName) - {StepName.DONE}) ^ set(registry)
    if mismatched:
        raise RuntimeError(
            f"Step registry does not match working steps: {sorted(step.value for step in mismatched)}"
        )


validate_registry(STEP_REGISTRY)


def get_step_class(step: StepName | str) -> type[BaseStep]:
    """Resolve the implementation for ``step``."""
    try:
        return STEP_REGISTRY[StepName(step)]
    except (KeyError, ValueError) as e:
        raise DataIntegrityError(f"No step implementation for '{step}'", {"step": str(step)}) from e
