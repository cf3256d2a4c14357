"""
Firecrawl-backed URL extraction.
"""
import json

import httpx
import pytest

from repurpose.core.config import settings
from repurpose.core.errors import ServiceUnavailableError, ValidationError
from repurpose.features.scrape.service import ScrapeError, scrape_url


@pytest.fixture(autouse=True)
def firecrawl_key(monkeypatch):
    monkeypatch.setattr(settings, "FIRECRAWL_API_KEY", "fc-test-key")
    monkeypatch.setattr(settings, "FIRECRAWL_API_URL", "https://firecrawl.test")


def client_for(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_successful_scrape_posts_expected_request():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "success": True,
            "data": {"markdown": "# Title\n\nBody text", "metadata": {"title": "A Post"}},
        })

    result = scrape_url("https://blog.example.com/post", client=client_for(handler))

    assert seen["url"] == "https://firecrawl.test/v1/scrape"
    assert seen["auth"] == "Bearer fc-test-key"
    assert seen["body"] == {"url": "https://blog.example.com/post", "formats": ["markdown"]}
    assert result.content == "# Title\n\nBody text"
    assert result.title == "A Post"
    assert result.url == "https://blog.example.com/post"


def test_content_fallback_and_untitled():
    def handler(request):
        return httpx.Response(200, json={"success": True, "data": {"content": "plain body"}})

    result = scrape_url("https://example.com", client=client_for(handler))
    assert result.content == "plain body"
    assert result.title == "Untitled"


def test_missing_url():
    with pytest.raises(ValidationError, match="URL is required"):
        scrape_url("")


def test_invalid_url():
    with pytest.raises(ValidationError, match="Invalid URL format"):
        scrape_url("not a url")


def test_unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "FIRECRAWL_API_KEY", None)
    with pytest.raises(ServiceUnavailableError, match="Firecrawl API not configured"):
        scrape_url("https://example.com")


def test_upstream_error_keeps_status_and_message():
    def handler(request):
        return httpx.Response(402, json={"error": "Payment required"})

    with pytest.raises(ScrapeError) as exc:
        scrape_url("https://example.com", client=client_for(handler))
    assert exc.value.status_code == 402
    assert exc.value.message == "Payment required"


def test_upstream_error_without_body():
    def handler(request):
        return httpx.Response(500, text="oops")

    with pytest.raises(ScrapeError, match="Failed to scrape URL"):
        scrape_url("https://example.com", client=client_for(handler))


def test_unsuccessful_payload_is_400():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "Blocked by robots.txt"})

    with pytest.raises(ValidationError, match="Blocked by robots.txt"):
        scrape_url("https://example.com", client=client_for(handler))


def test_empty_content_is_400():
    def handler(request):
        return httpx.Response(200, json={"success": True, "data": {"markdown": "   "}})

    with pytest.raises(ValidationError, match="No content found at this URL"):
        scrape_url("https://example.com", client=client_for(handler))


def test_transport_error_is_502():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ScrapeError) as exc:
        scrape_url("https://example.com", client=client_for(handler))
    assert exc.value.status_code == 502


def test_scrape_route_requires_auth(client):
    assert client.post("/api/scrape", json={"url": "https://example.com"}).status_code == 401


def test_scrape_route_missing_url(client, auth_headers):
    resp = client.post("/api/scrape", json={}, headers=auth_headers())
    assert resp.status_code == 400
    assert resp.json()["detail"] == "URL is required"
