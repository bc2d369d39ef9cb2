"""Web search backend for the research step (DataForSEO SERP API)."""

import base64
import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from longform.config import settings
from longform.core.exceptions import (
    APIKeyMissingError,
    InvalidOutputError,
    RateLimitedError,
    UnavailableError,
)

logger = logging.getLogger(__name__)

API_NAME = "DataForSEO"


class SearchHit(BaseModel):
    """One organic search result."""

    title: str | None = None
    url: str
    snippet: str | None = None


class SearchBackend(Protocol):
    """Anything that can turn a query into a ranked list of hits."""

    async def search(self, query: str, limit: int) -> list[SearchHit]: ...


class NullSearchBackend:
    """Backend used when no search credentials are configured."""

    async def search(self, query: str, limit: int) -> list[SearchHit]:
        logger.info("Search backend not configured, skipping web search", extra={"query": query})
        return []


class DataForSEOSearchClient:
    """Organic SERP lookups against DataForSEO's live endpoint."""

    BASE_URL = "https://api.dataforseo.com/v3"
    SERP_ENDPOINT = "serp/google/organic/live/regular"

    def __init__(
        self,
        login: str | None = None,
        password: str | None = None,
        *,
        timeout: float | None = None,
        location_code: int | None = None,
        language_code: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.login = login or settings.dataforseo_login
        self.password = password or settings.dataforseo_password
        self.timeout = timeout if timeout is not None else settings.search_timeout_seconds
        self.location_code = location_code or settings.search_location_code
        self.language_code = language_code or settings.search_language_code
        self._transport = transport

        if not self.login or not self.password:
            raise APIKeyMissingError(API_NAME)

    @property
    def _auth_header(self) -> str:
        """Generate Basic Auth header."""
        credentials = f"{self.login}:{self.password}"
        encoded = base64.b64encode(credentials.encode()).decode()
        return f"Basic {encoded}"

    async def _post(self, endpoint: str, data: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """POST a task batch and return the flattened task results."""
        logger.info("DataForSEO API request", extra={"endpoint": endpoint})
        try:
            async with httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                headers={
                    "Authorization": self._auth_header,
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            ) as client:
                response = await client.post(f"/{endpoint}", json=data)
        except httpx.HTTPError as e:
            logger.warning("DataForSEO HTTP error", extra={"endpoint": endpoint, "error": str(e)})
            raise UnavailableError(API_NAME, str(e)) from e

        if response.status_code == 429:
            logger.warning("DataForSEO rate limit hit", extra={"endpoint": endpoint})
            raise RateLimitedError(API_NAME)
        if response.status_code >= 400:
            raise UnavailableError(API_NAME, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidOutputError(API_NAME, "Response body is not JSON") from e

        if payload.get("status_code") != 20000:
            logger.warning(
                "DataForSEO API error",
                extra={"endpoint": endpoint, "status": payload.get("status_message")},
            )
            raise UnavailableError(API_NAME, payload.get("status_message", "Unknown error"))

        results: list[dict[str, Any]] = []
        for task in payload.get("tasks") or []:
            if task.get("status_code") == 20000 and task.get("result"):
                results.extend(task["result"])
        return results

    async def search(self, query: str, limit: int) -> list[SearchHit]:
        """Return up to ``limit`` organic hits for ``query``."""
        logger.info("Fetching SERP results", extra={"query": query, "limit": limit})
        results = await self._post(
            self.SERP_ENDPOINT,
            [
                {
                    "keyword": query,
                    "location_code": self.location_code,
                    "language_code": self.language_code,
                    "device": "desktop",
                    "depth": max(limit, 10),
                }
            ],
        )
        if not results:
            return []

        hits: list[SearchHit] = []
        for item in results[0].get("items") or []:
            if item.get("type") != "organic" or not item.get("url"):
                continue
            hits.append(
                SearchHit(
                    title=item.get("title"),
                    url=item["url"],
                    snippet=item.get("description"),
                )
            )
            if len(hits) >= limit:
                break
        return hits


def get_search_backend() -> SearchBackend:
    """Configured search backend, or a no-op one without credentials."""
    if settings.search_enabled:
        return DataForSEOSearchClient()
    return NullSearchBackend()
