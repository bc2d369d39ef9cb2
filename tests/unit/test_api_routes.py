"""Unit tests for article and job HTTP routes."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from longform.api.v1.articles.constants import (
    ACTIVE_JOB_EXISTS_DETAIL,
    ARTICLE_HAS_NO_JOB_DETAIL,
    ARTICLE_NOT_AUDITABLE_DETAIL,
    ARTICLE_NOT_FINISHED_DETAIL,
    ARTICLE_NOT_FOUND_DETAIL,
    GENERATION_FAILED_DETAIL,
    SECTION_NOT_FOUND_DETAIL,
)
from longform.api.v1.dependencies import get_knowledge_service, get_pipeline_driver
from longform.api.v1.jobs.constants import JOB_NOT_FOUND_DETAIL
from longform.core.exceptions import UnavailableError
from longform.main import create_app
from longform.services.knowledge import KnowledgeService
from longform.services.pipeline_driver import PipelineDriver

API = "/api/v1"


@pytest.fixture
def client(
    sqlite_db: Any,
    collaborators: Any,
    knowledge_collaborators: Any,
) -> Iterator[TestClient]:
    app = create_app()
    app.dependency_overrides[get_pipeline_driver] = lambda: PipelineDriver(collaborators)
    app.dependency_overrides[get_knowledge_service] = lambda: KnowledgeService(knowledge_collaborators)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_article(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload = {
        "title": "Long-form content operations",
        "keywords": ["long-form"],
        "target_length": 10_000,
        "reference_urls": ["https://docs.example.com/handbook"],
    }
    payload.update(overrides)
    response = client.post(f"{API}/articles", json=payload)
    assert response.status_code == 201
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_article_validates_payload(client: TestClient) -> None:
    response = client.post(f"{API}/articles", json={"title": "   "})

    assert response.status_code == 422


def test_article_lifecycle_through_api(client: TestClient) -> None:
    article = _create_article(client)
    assert article["status"] == "DRAFT"

    job_response = client.post(f"{API}/articles/{article['id']}/jobs")
    assert job_response.status_code == 201
    job = job_response.json()
    assert job["status"] == "queued"
    assert job["step"] == "init"

    conflict = client.post(f"{API}/articles/{article['id']}/jobs")
    assert conflict.status_code == 409
    assert conflict.json()["detail"] == ACTIVE_JOB_EXISTS_DETAIL

    not_ready = client.post(f"{API}/articles/{article['id']}/audit")
    assert not_ready.status_code == 409
    assert not_ready.json()["detail"] == ARTICLE_NOT_AUDITABLE_DETAIL

    steps = []
    for _ in range(7):
        response = client.post(f"{API}/jobs/{job['id']}/advance")
        assert response.status_code == 200
        steps.append(response.json()["step"])
    assert steps[-1] == "done"

    detail = client.get(f"{API}/articles/{article['id']}").json()
    assert detail["article"]["status"] == "DONE"
    assert detail["job"]["progress"] == 100
    assert [section["index"] for section in detail["sections"]] == [0, 1, 2, 3]
    assert detail["references"][0]["url"] == "https://docs.example.com/handbook"

    audit = client.post(f"{API}/articles/{article['id']}/audit")
    assert audit.status_code == 200
    assert {check["name"] for check in audit.json()["checks"]} >= {"heading_count", "length"}

    listing = client.get(f"{API}/articles", params={"limit": 5}).json()
    assert listing[0]["article"]["id"] == article["id"]
    assert listing[0]["job"]["status"] == "done"


def test_job_transitions_through_api(client: TestClient) -> None:
    article = _create_article(client)
    job = client.post(f"{API}/articles/{article['id']}/jobs").json()

    paused = client.post(f"{API}/jobs/{job['id']}/pause")
    assert paused.json()["status"] == "paused"

    advance = client.post(f"{API}/jobs/{job['id']}/advance").json()
    assert advance["performed"] is False
    assert advance["reason"] == "not_advanceable"

    not_resettable = client.post(f"{API}/jobs/{job['id']}/reset")
    assert not_resettable.status_code == 409
    assert not_resettable.json()["detail"] == "Job is not resettable in status 'paused'"

    cancelled = client.post(f"{API}/jobs/{job['id']}/cancel")
    assert cancelled.json()["status"] == "cancelled"

    bad_resume = client.post(f"{API}/jobs/{job['id']}/resume")
    assert bad_resume.status_code == 409
    assert bad_resume.json()["detail"] == "Cannot resume job in status 'cancelled'"

    reset = client.post(f"{API}/jobs/{job['id']}/reset")
    assert reset.status_code == 200
    assert reset.json()["status"] == "queued"
    assert reset.json()["step"] == "init"


def test_user_edits_through_api(client: TestClient) -> None:
    article = _create_article(client)

    edited = client.patch(f"{API}/articles/{article['id']}", json={"outline": "# Mine"})
    assert edited.status_code == 200
    assert edited.json()["outline"] == "# Mine"

    missing_section = client.patch(
        f"{API}/articles/{article['id']}/sections/0",
        json={"content": "text"},
    )
    assert missing_section.status_code == 404
    assert missing_section.json()["detail"] == SECTION_NOT_FOUND_DETAIL

    job = client.post(f"{API}/articles/{article['id']}/jobs").json()
    client.post(f"{API}/jobs/{job['id']}/advance")
    client.post(f"{API}/jobs/{job['id']}/advance")

    section = client.patch(
        f"{API}/articles/{article['id']}/sections/1",
        json={"content": "## Edited\n\nBody"},
    )
    assert section.status_code == 200
    assert section.json()["status"] == "reviewed"


def test_unknown_ids_return_404(client: TestClient) -> None:
    assert client.get(f"{API}/articles/c-missing").json()["detail"] == ARTICLE_NOT_FOUND_DETAIL
    assert client.post(f"{API}/articles/c-missing/jobs").status_code == 404
    assert client.get(f"{API}/jobs/c-missing").json()["detail"] == JOB_NOT_FOUND_DETAIL
    assert client.post(f"{API}/jobs/c-missing/advance").status_code == 404
    assert client.post(f"{API}/jobs/c-missing/cancel").status_code == 404


def test_knowledge_outputs_through_api(client: TestClient, knowledge_collaborators: Any) -> None:
    article = _create_article(client)

    no_job = client.post(f"{API}/articles/{article['id']}/references/summarize")
    assert no_job.status_code == 409
    assert no_job.json()["detail"] == ARTICLE_HAS_NO_JOB_DETAIL

    not_finished = client.post(f"{API}/articles/{article['id']}/internal-links")
    assert not_finished.status_code == 409
    assert not_finished.json()["detail"] == ARTICLE_NOT_FINISHED_DETAIL

    job = client.post(f"{API}/articles/{article['id']}/jobs").json()
    for _ in range(7):
        client.post(f"{API}/jobs/{job['id']}/advance")

    links = client.post(f"{API}/articles/{article['id']}/internal-links")
    assert links.status_code == 201
    assert links.json()["kind"] == "internal_link"

    posts = client.post(f"{API}/articles/{article['id']}/social-posts")
    assert posts.status_code == 201
    assert posts.json()["payload"]["x_post"] == "Ship long reads."

    knowledge_collaborators.page_fetcher.failing = {"https://guides.example.org/long-form"}
    summaries = client.post(f"{API}/articles/{article['id']}/references/summarize")
    assert summaries.status_code == 200
    body = summaries.json()
    assert len(body["stored"]) == 2
    assert list(body["failed"]) == ["https://guides.example.org/long-form"]

    detail = client.get(f"{API}/articles/{article['id']}").json()
    assert detail["references"][0]["summary"] == "Summary of Page 1."

    listing = client.get(f"{API}/articles/{article['id']}/knowledge", params={"kind": "sns"})
    assert [item["id"] for item in listing.json()] == [posts.json()["id"]]
    assert len(client.get(f"{API}/articles/{article['id']}/knowledge").json()) == 4

    knowledge_collaborators.internal_link_planner.error = UnavailableError("fake-llm", "HTTP 503")
    failed = client.post(f"{API}/articles/{article['id']}/internal-links")
    assert failed.status_code == 502
    assert failed.json()["detail"] == GENERATION_FAILED_DETAIL

    bad_kind = client.get(f"{API}/articles/{article['id']}/knowledge", params={"kind": "memo"})
    assert bad_kind.status_code == 422
    assert client.get(f"{API}/articles/c-missing/knowledge").status_code == 404
