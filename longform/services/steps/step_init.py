"""Init step: sanity-check article parameters before any external work."""

from longform.core.exceptions import DataIntegrityError
from longform.models.job import StepName
from longform.repositories.job_repository import JobSnapshot
from longform.schemas.pipeline import StepOutcome
from longform.services.steps.base_step import BaseStep


class InitStep(BaseStep):
    """No external call; hands over to research in the same advance call."""

    step_name = StepName.INIT
    chains_into_next = True

    def _validate_preconditions(self, snapshot: JobSnapshot) -> None:
        article = snapshot.article
        if not (article.title or "").strip():
            raise DataIntegrityError("Article has no title", {"article_id": article.id})
        if article.target_length <= 0:
            raise DataIntegrityError(
                "Article target length must be positive",
                {"article_id": article.id, "target_length": article.target_length},
            )
        if snapshot.sections:
            raise DataIntegrityError(
                "Job at init already has sections",
                {"job_id": snapshot.job.id, "sections": snapshot.section_count},
            )

    async def _execute(self, snapshot: JobSnapshot) -> StepOutcome:
        return StepOutcome(next_step=StepName.RESEARCH, cursor=0)
