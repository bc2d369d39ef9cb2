"""Reference page fetcher: downloads a URL and extracts its readable content."""

import logging
import re
from typing import Any

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from longform.config import settings
from longform.core.exceptions import InvalidOutputError, RateLimitedError, UnavailableError
from longform.services.source_urls import is_unsafe_url

logger = logging.getLogger(__name__)

API_NAME = "page fetch"

_WHITESPACE_RE = re.compile(r"\s+")


class ExtractedPage(BaseModel):
    """Readable parts of one fetched page."""

    url: str
    title: str | None = None
    meta_description: str | None = None
    headings: list[dict[str, Any]] = Field(default_factory=list)
    text: str = ""


def extract_page(
    url: str,
    html: str,
    *,
    max_headings: int = 50,
    max_chars: int = 50_000,
) -> ExtractedPage:
    """Pull title, description, h1-h6 headings and body text out of ``html``."""
    soup = BeautifulSoup(html, "lxml")

    title = soup.title.get_text(strip=True) if soup.title else ""
    meta_desc = ""
    meta_tag = soup.find("meta", attrs={"name": "description"})
    if meta_tag and meta_tag.get("content"):
        meta_desc = str(meta_tag["content"]).strip()

    headings: list[dict[str, Any]] = []
    for h in soup.find_all(re.compile(r"^h[1-6]$")):
        text = _WHITESPACE_RE.sub(" ", h.get_text(" ", strip=True)).strip()
        if text:
            headings.append({"level": int(h.name[1]), "text": text})
        if len(headings) >= max_headings:
            break

    # Boilerplate goes before the body text is taken
    for element in soup(["script", "style", "noscript", "head", "nav", "footer", "header"]):
        element.decompose()
    body = soup.body or soup
    text = _WHITESPACE_RE.sub(" ", body.get_text(" ", strip=True)).strip()

    return ExtractedPage(
        url=url,
        title=title or None,
        meta_description=meta_desc or None,
        headings=headings,
        text=text[:max_chars],
    )


class PageFetcher:
    """Fetches reference pages, refusing private and metadata hosts at every hop."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.reference_fetch_timeout_seconds
        self.user_agent = user_agent or settings.reference_fetch_user_agent
        self._transport = transport

    @staticmethod
    async def _reject_unsafe(request: httpx.Request) -> None:
        # Runs for the first request and for every redirect
        if is_unsafe_url(str(request.url)):
            raise UnavailableError(API_NAME, f"refusing to fetch unsafe URL {request.url}")

    async def fetch(self, url: str) -> ExtractedPage:
        """Download ``url`` and extract it.

        Raises:
            UnavailableError: Unsafe URL, transport failure or HTTP error status.
            RateLimitedError: The site answered 429.
            InvalidOutputError: The response is not HTML or text.
        """
        if is_unsafe_url(url):
            raise UnavailableError(API_NAME, f"refusing to fetch unsafe URL {url}")

        logger.info("Fetching reference page", extra={"url": url})
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                event_hooks={"request": [self._reject_unsafe]},
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Reference fetch failed", extra={"url": url, "error": str(e)})
            raise UnavailableError(API_NAME, str(e)) from e

        if response.status_code == 429:
            raise RateLimitedError(API_NAME)
        if response.status_code >= 400:
            raise UnavailableError(API_NAME, f"HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").lower()
        if content_type and "html" not in content_type and not content_type.startswith("text/"):
            raise InvalidOutputError(API_NAME, f"unsupported content type {content_type}")

        return extract_page(
            str(response.url),
            response.text,
            max_headings=settings.reference_max_headings,
            max_chars=settings.reference_max_extract_chars,
        )
