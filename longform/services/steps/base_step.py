"""Base class for pipeline steps."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Protocol

from longform.agents.outline_planner import OutlineInput, OutlineResult
from longform.agents.section_writer import SectionInput, SectionResult
from longform.config import Settings, get_settings
from longform.integrations.search import SearchBackend
from longform.models.job import StepName
from longform.repositories.job_repository import JobSnapshot
from longform.schemas.pipeline import StepOutcome

logger = logging.getLogger(__name__)


class OutlineGenerator(Protocol):
    async def run(self, input_data: OutlineInput) -> OutlineResult: ...


class SectionGenerator(Protocol):
    async def run(self, input_data: SectionInput) -> SectionResult: ...


@dataclass
class StepCollaborators:
    """External backends injected into every step."""

    search: SearchBackend
    outline_planner: OutlineGenerator
    section_writer: SectionGenerator
    settings: Settings = field(default_factory=get_settings)


class BaseStep(ABC):
    """Abstract base class for all pipeline steps.

    Each step should:
    1. Define step_name
    2. Implement _validate_preconditions to check the snapshot
    3. Implement _execute returning a StepOutcome

    Steps read only the snapshot, make at most one external call and never
    write to storage; the driver applies the returned outcome.
    """

    step_name: ClassVar[StepName]
    # Bookkeeping steps run in the same advance call as the step after them
    chains_into_next: ClassVar[bool] = False

    def __init__(self, collaborators: StepCollaborators) -> None:
        self.collaborators = collaborators
        self.settings = collaborators.settings

    async def run(self, snapshot: JobSnapshot) -> StepOutcome:
        """Validate the snapshot, execute, and log around it."""
        step_info = {
            "step": self.step_name.value,
            "job_id": snapshot.job.id,
            "article_id": snapshot.article.id,
            "cursor": snapshot.job.cursor,
        }
        logger.info("Step started", extra=step_info)

        try:
            self._validate_preconditions(snapshot)
            outcome = await self._execute(snapshot)
        except Exception as e:
            logger.warning(
                "Step failed",
                extra={**step_info, "error": str(e), "error_type": type(e).__name__},
            )
            raise

        logger.info(
            "Step completed",
            extra={**step_info, "next_step": outcome.next_step.value},
        )
        return outcome

    def _validate_preconditions(self, snapshot: JobSnapshot) -> None:
        """Raise DataIntegrityError when the snapshot cannot feed this step."""
        return None

    @abstractmethod
    async def _execute(self, snapshot: JobSnapshot) -> StepOutcome:
        """Override with step-specific logic."""
        pass
