"""Research step: collect candidate sources from search and article inputs."""

from __future__ import annotations

import logging

from longform.models.job import StepName
from longform.repositories.job_repository import JobSnapshot
from longform.schemas.pipeline import ReferenceDraft, StepOutcome
from longform.services.source_urls import is_unsafe_url, normalize_url
from longform.services.steps.base_step import BaseStep

logger = logging.getLogger(__name__)


def build_search_query(keywords: list[str], title: str) -> str:
    """Keywords joined by spaces, falling back to the title."""
    cleaned = [keyword.strip() for keyword in keywords if keyword and keyword.strip()]
    return " ".join(cleaned) if cleaned else title.strip()


class ResearchStep(BaseStep):
    """One search call; merges hits with user-supplied reference URLs."""

    step_name = StepName.RESEARCH

    async def _execute(self, snapshot: JobSnapshot) -> StepOutcome:
        article = snapshot.article
        max_sources = self.settings.research_max_sources
        known = {normalize_url(reference.url) for reference in snapshot.references}
        room = max(max_sources - len(known), 0)

        candidates = [ReferenceDraft(url=url) for url in article.reference_urls or []]
        if room > 0:
            query = build_search_query(list(article.keywords or []), article.title)
            hits = await self.collaborators.search.search(query, max_sources)
            candidates += [
                ReferenceDraft(url=hit.url, title=hit.title, snippet=hit.snippet) for hit in hits
            ]

        new_references: list[ReferenceDraft] = []
        dropped_unsafe = 0
        for candidate in candidates:
            if len(new_references) >= room:
                break
            if is_unsafe_url(candidate.url):
                dropped_unsafe += 1
                continue
            normalized = normalize_url(candidate.url)
            if normalized in known:
                continue
            known.add(normalized)
            new_references.append(candidate.model_copy(update={"url": normalized}))

        logger.info(
            "Research sources collected",
            extra={
                "job_id": snapshot.job.id,
                "candidates": len(candidates),
                "added": len(new_references),
                "dropped_unsafe": dropped_unsafe,
            },
        )
        return StepOutcome(next_step=StepName.OUTLINE, new_references=new_references)
