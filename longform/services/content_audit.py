"""Deterministic quality checks for finished articles."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from longform.config import settings
from longform.core.exceptions import InvalidTransitionError
from longform.repositories.article_repository import ArticleDetail, ArticleRepository

LENGTH_MIN_RATIO = 0.5
LENGTH_MAX_RATIO = 1.5

_H2_RE = re.compile(r"^##\s+\S", re.MULTILINE)


@dataclass(slots=True)
class AuditCheck:
    name: str
    passed: bool
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class AuditReport:
    """Per-check results plus the overall verdict."""

    article_id: str
    checks: list[AuditCheck]

    @property
    def failures(self) -> list[str]:
        return [check.name for check in self.checks if not check.passed]

    @property
    def passed(self) -> bool:
        return not self.failures


def count_h2_headings(text: str) -> int:
    return len(_H2_RE.findall(text))


def evaluate_article(
    final_output: str,
    *,
    planned_sections: int,
    target_length: int,
    forbidden: list[str],
    keywords: list[str],
    section_bodies: list[str | None],
) -> list[AuditCheck]:
    """Run every check over the assembled text."""
    checks: list[AuditCheck] = []

    heading_count = count_h2_headings(final_output)
    checks.append(
        AuditCheck(
            name="heading_count",
            passed=heading_count >= planned_sections,
            details={"h2_count": heading_count, "planned_sections": planned_sections},
        )
    )

    length = len(final_output)
    low = int(target_length * LENGTH_MIN_RATIO)
    high = int(target_length * LENGTH_MAX_RATIO)
    checks.append(
        AuditCheck(
            name="length",
            passed=low <= length <= high,
            details={"length": length, "min": low, "max": high},
        )
    )

    lowered = final_output.lower()
    occurrences = {
        phrase: lowered.count(phrase.lower())
        for phrase in forbidden
        if phrase and phrase.strip() and phrase.lower() in lowered
    }
    checks.append(
        AuditCheck(
            name="forbidden_phrases",
            passed=not occurrences,
            details={"occurrences": occurrences},
        )
    )

    missing_keywords = [keyword for keyword in keywords if keyword and keyword.lower() not in lowered]
    checks.append(
        AuditCheck(
            name="keyword_coverage",
            passed=not missing_keywords,
            details={"missing": missing_keywords, "total": len(keywords)},
        )
    )

    empty_sections = [index for index, body in enumerate(section_bodies) if not (body or "").strip()]
    checks.append(
        AuditCheck(
            name="empty_sections",
            passed=not empty_sections,
            details={"indexes": empty_sections},
        )
    )

    return checks


def audit_detail(detail: ArticleDetail, *, min_target_length: int | None = None) -> AuditReport:
    """Audit an already loaded article aggregate.

    The length check uses the same effective target the outline step scales
    sections to, so short targets are raised to ``min_target_length``.

    Raises:
        InvalidTransitionError: If the article has no final output yet.
    """
    article = detail.article
    if not (article.final_output or "").strip():
        raise InvalidTransitionError(
            detail.job.id if detail.job else article.id,
            article.status,
            "audit",
        )

    floor = settings.min_target_length if min_target_length is None else min_target_length
    sections = sorted(detail.sections, key=lambda section: section.index)
    checks = evaluate_article(
        article.final_output or "",
        planned_sections=len(sections),
        target_length=max(article.target_length, floor),
        forbidden=list(article.forbidden or []),
        keywords=list(article.keywords or []),
        section_bodies=[section.content for section in sections],
    )
    return AuditReport(article_id=article.id, checks=checks)


async def audit_article(
    article_id: str,
    *,
    repository: ArticleRepository | None = None,
) -> AuditReport:
    """Load an article and audit its final output. No external calls.

    Raises:
        ArticleNotFoundError: If the article does not exist.
        InvalidTransitionError: If the article has no final output yet.
    """
    detail = await (repository or ArticleRepository()).get_detail(article_id)
    return audit_detail(detail)
