"""
URL extraction through the Firecrawl scrape API.

scrape_url(url) -> ScrapeResult(content, title, url)
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx

from repurpose.core.config import settings
from repurpose.core.errors import AppError, ServiceUnavailableError, ValidationError
from repurpose.core.logging import log_event

SCRAPE_PATH = "/v1/scrape"
DEFAULT_TITLE = "Untitled"


class ScrapeError(AppError):
    code = "scrape_failed"
    status_code = 502


@dataclass(frozen=True)
class ScrapeResult:
    content: str
    title: str
    url: str


def _validate_url(url: Optional[str]) -> str:
    if not url:
        raise ValidationError("URL is required")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("Invalid URL format")
    return url


def _error_text(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None


def scrape_url(url: Optional[str], *, client: Optional[httpx.Client] = None) -> ScrapeResult:
    """
    Fetch a page as markdown.

    Args:
        url: Absolute URL to scrape
        client: Optional httpx client (tests inject a MockTransport)

    Raises:
        ValidationError 400: missing/invalid URL, provider-reported failure, empty page
        ServiceUnavailableError 503: no Firecrawl key configured
        ScrapeError: upstream HTTP error (upstream status) or transport error (502)
    """
    url = _validate_url(url)

    api_key = settings.FIRECRAWL_API_KEY
    if not api_key:
        raise ServiceUnavailableError("Firecrawl API not configured", code="scrape_unconfigured")

    endpoint = settings.FIRECRAWL_API_URL.rstrip("/") + SCRAPE_PATH
    owns_client = client is None
    http = client or httpx.Client(timeout=settings.FIRECRAWL_TIMEOUT_SECONDS)
    try:
        response = http.post(
            endpoint,
            json={"url": url, "formats": ["markdown"]},
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except httpx.HTTPError as e:
        log_event("error", "scrape.transport_error", error_code="scrape_failed", extra={"url": url, "error": e})
        raise ScrapeError("Failed to scrape URL") from e
    finally:
        if owns_client:
            http.close()

    if not response.is_success:
        message = _error_text(response) or "Failed to scrape URL"
        log_event(
            "warning",
            "scrape.upstream_error",
            error_code="scrape_failed",
            extra={"url": url, "status": response.status_code, "error": message},
        )
        raise ScrapeError(message, status_code=response.status_code)

    payload = response.json()
    if not payload.get("success"):
        raise ValidationError(payload.get("error") or "Failed to scrape URL")

    data = payload.get("data") or {}
    content = data.get("markdown") or data.get("content") or ""
    if not content.strip():
        raise ValidationError("No content found at this URL")

    title = (data.get("metadata") or {}).get("title") or DEFAULT_TITLE
    log_event("info", "scrape.succeeded", extra={"url": url, "chars": len(content)})
    return ScrapeResult(content=content, title=title, url=url)
