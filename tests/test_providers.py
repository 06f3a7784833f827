"""Tests for the Crawl4AI provider."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
import requests

from crawl4ai_mcp.cache_manager import CacheManager
from crawl4ai_mcp.errors import RemoteFetchError
from crawl4ai_mcp.providers import (
    Crawl4AIProvider,
    FetchConfig,
    FetchResult,
    HtmlPage,
    MarkdownPage,
)
from crawl4ai_mcp.providers.base import CACHE_BYPASS
from crawl4ai_mcp.providers.crawl4ai_provider import parse_crawl_result


def make_response(data, status_code: int = 200) -> Mock:
    """Build a mock requests.Response returning ``data`` as JSON."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = data
    response.headers = {}
    response.elapsed.total_seconds.return_value = 0.25
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status.return_value = None
    return response


def crawl_payload(**overrides) -> dict:
    """A successful /crawl response body."""
    item = {
        "url": "https://example.com/",
        "success": True,
        "html": "<html><body><h1>Hi</h1></body></html>",
        "cleaned_html": "<h1>Hi</h1>",
        "markdown": {"raw_markdown": "# Hi", "fit_markdown": ""},
        "links": {
            "internal": [{"href": "https://example.com/a"}, {"href": "/b"}],
            "external": [{"href": "https://other.org/"}],
        },
        "metadata": {"title": "Hi"},
        "status_code": 200,
    }
    item.update(overrides)
    return {"success": True, "results": [item]}


async def mock_executor(executor, func):
    """Run the executor job synchronously."""
    return func()


class TestParseCrawlResult:
    """Tests for mapping /crawl results onto FetchResult."""

    def test_success_mapping(self) -> None:
        """Test that content variants and links are mapped."""
        result = parse_crawl_result("https://example.com/", crawl_payload()["results"][0])

        assert result.success is True
        assert result.text_content == "# Hi"
        assert result.raw_markup.startswith("<html>")
        assert result.filtered_markup == "<h1>Hi</h1>"
        assert result.internal_links == ["https://example.com/a", "/b"]
        assert result.external_links == ["https://other.org/"]
        assert result.metadata["page_metadata"] == {"title": "Hi"}
        assert result.metadata["status_code"] == 200
        assert result.error is None

    def test_fit_markdown_preferred(self) -> None:
        """Test that fit_markdown wins over raw_markdown when present."""
        item = crawl_payload(markdown={"raw_markdown": "# All", "fit_markdown": "# Fit"})["results"][0]

        assert parse_crawl_result("https://example.com/", item).text_content == "# Fit"

    def test_string_markdown(self) -> None:
        """Test older servers that return markdown as a string."""
        item = crawl_payload(markdown="plain markdown", links=None)["results"][0]

        result = parse_crawl_result("https://example.com/", item)

        assert result.text_content == "plain markdown"
        assert result.internal_links == []

    def test_failed_crawl(self) -> None:
        """Test mapping a remote-side crawl failure."""
        item = {"url": "https://example.com/", "success": False, "error_message": "Timeout 30000ms"}

        result = parse_crawl_result("https://example.com/", item)

        assert result.success is False
        assert result.error == "Timeout 30000ms"


class TestCrawl4AIProvider:
    """Tests for Crawl4AIProvider."""

    @pytest.fixture
    def crawler(self) -> Crawl4AIProvider:
        """Create a provider with caching disabled and no retry delay."""
        return Crawl4AIProvider(
            base_url="http://crawl4ai:11235/",
            api_key="secret",
            timeout=10,
            retry_delay=0,
            cache_enabled=False,
        )

    def test_configuration(self, crawler: Crawl4AIProvider) -> None:
        """Test base URL normalization and the API key header."""
        assert crawler.base_url == "http://crawl4ai:11235"
        assert crawler.session.headers["X-API-Key"] == "secret"
        assert crawler.cache_manager is None

    def test_env_configuration(self) -> None:
        """Test that the server URL and key come from the environment."""
        env = {"CRAWL4AI_BASE_URL": "http://env-host:9000", "CRAWL4AI_API_KEY": ""}
        with patch.dict("os.environ", env):
            crawler = Crawl4AIProvider(cache_enabled=False)

        assert crawler.base_url == "http://env-host:9000"
        assert "X-API-Key" not in crawler.session.headers

    def test_supports_url(self, crawler: Crawl4AIProvider) -> None:
        """Test that only http(s) URLs are supported."""
        assert crawler.supports_url("https://example.com")
        assert not crawler.supports_url("file:///etc/passwd")
        assert not crawler.supports_url("javascript:alert('test')")

    def test_payload_without_session(self, crawler: Crawl4AIProvider) -> None:
        """Test that a session-less payload carries a browser config."""
        payload = crawler.build_payload(
            "https://example.com/", FetchConfig(cache_mode=CACHE_BYPASS, browser_type="webkit")
        )

        assert payload == {
            "urls": ["https://example.com/"],
            "crawler_config": {"cache_mode": "BYPASS"},
            "browser_config": {"headless": True, "browser_type": "webkit"},
        }

    def test_payload_with_session(self, crawler: Crawl4AIProvider) -> None:
        """Test that a session payload omits the browser config."""
        payload = crawler.build_payload(
            "https://example.com/", FetchConfig(session_id="s1", extra={"wait_for": "css:#app"})
        )

        assert "browser_config" not in payload
        assert payload["crawler_config"] == {
            "cache_mode": "ENABLED",
            "wait_for": "css:#app",
            "session_id": "s1",
        }

    @pytest.mark.asyncio
    async def test_fetch_success(self, crawler: Crawl4AIProvider) -> None:
        """Test a successful fetch through the /crawl endpoint."""
        response = make_response(crawl_payload())

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                result = await crawler.fetch("https://example.com/")

        mock_post.assert_called_once()
        call_args = mock_post.call_args
        assert call_args[0][0] == "http://crawl4ai:11235/crawl"
        assert call_args[1]["timeout"] == 10
        assert call_args[1]["json"]["urls"] == ["https://example.com/"]

        assert isinstance(result, FetchResult)
        assert result.success is True
        assert result.metadata["elapsed_ms"] == 250.0
        assert result.metadata["attempts"] == 1
        assert result.metadata["from_cache"] is False

    @pytest.mark.asyncio
    async def test_fetch_config_overrides(self, crawler: Crawl4AIProvider) -> None:
        """Test that per-fetch timeout is used."""
        response = make_response(crawl_payload())

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                await crawler.fetch("https://example.com/", FetchConfig(timeout=45))

        assert mock_post.call_args[1]["timeout"] == 45

    @pytest.mark.asyncio
    async def test_fetch_no_results(self, crawler: Crawl4AIProvider) -> None:
        """Test that a response without results raises RemoteFetchError."""
        response = make_response({"success": True, "results": []})

        with patch.object(crawler.session, "post", return_value=response):
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                with pytest.raises(RemoteFetchError, match="no results received"):
                    await crawler.fetch("https://example.com/")

    @pytest.mark.asyncio
    async def test_retry_on_connection_error(self, crawler: Crawl4AIProvider) -> None:
        """Test that transient failures are retried."""
        response = make_response(crawl_payload())
        side_effect = [requests.ConnectionError("reset"), response]

        with patch.object(crawler.session, "post", side_effect=side_effect) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                result = await crawler.fetch("https://example.com/")

        assert mock_post.call_count == 2
        assert result.metadata["attempts"] == 2

    @pytest.mark.asyncio
    async def test_retry_exhausted(self, crawler: Crawl4AIProvider) -> None:
        """Test that the last error propagates once retries run out."""
        response = make_response({"detail": "Bad gateway"}, status_code=502)

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                with pytest.raises(requests.HTTPError):
                    await crawler.fetch("https://example.com/", FetchConfig(max_retries=1))

        assert mock_post.call_count == 2

    @pytest.mark.asyncio
    async def test_probe(self, crawler: Crawl4AIProvider) -> None:
        """Test that the probe issues a HEAD request against the target URL."""
        response = make_response(None)
        response.headers = {"Content-Type": "application/xml"}

        with patch("requests.head", return_value=response) as mock_head:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                result = await crawler.probe("https://example.com/sitemap.xml", timeout=5)

        assert result.content_type == "application/xml"
        assert mock_head.call_args[0][0] == "https://example.com/sitemap.xml"
        assert mock_head.call_args[1]["allow_redirects"] is True
        assert "X-API-Key" not in mock_head.call_args[1]["headers"]

    @pytest.mark.asyncio
    async def test_probe_failure_not_retried(self, crawler: Crawl4AIProvider) -> None:
        """Test that probe failures raise immediately."""
        with patch("requests.head", side_effect=requests.ConnectionError("refused")) as mock_head:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                with pytest.raises(requests.ConnectionError):
                    await crawler.probe("https://example.com/")

        assert mock_head.call_count == 1

    @pytest.mark.asyncio
    async def test_fetch_markdown(self, crawler: Crawl4AIProvider) -> None:
        """Test the /md request body and response mapping."""
        response = make_response(
            {
                "url": "https://example.com/",
                "filter": "bm25",
                "query": "pricing",
                "cache": "1",
                "markdown": "## Pricing",
                "success": True,
            }
        )

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                page = await crawler.fetch_markdown(
                    "https://example.com/", "bm25", "pricing", "1"
                )

        assert mock_post.call_args[0][0] == "http://crawl4ai:11235/md"
        assert mock_post.call_args[1]["json"] == {
            "url": "https://example.com/",
            "f": "bm25",
            "q": "pricing",
            "c": "1",
        }
        assert isinstance(page, MarkdownPage)
        assert page.markdown == "## Pricing"
        assert page.query == "pricing"
        assert page.cache == "1"

    @pytest.mark.asyncio
    async def test_fetch_markdown_without_query(self, crawler: Crawl4AIProvider) -> None:
        """Test that the query is left out of the body when not given."""
        response = make_response({"markdown": "", "success": True})

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                page = await crawler.fetch_markdown("https://example.com/")

        assert mock_post.call_args[1]["json"] == {
            "url": "https://example.com/",
            "f": "fit",
            "c": "0",
        }
        assert page.url == "https://example.com/"
        assert page.filter == "fit"
        assert page.markdown is None

    @pytest.mark.asyncio
    async def test_fetch_html(self, crawler: Crawl4AIProvider) -> None:
        """Test the /html request body and response mapping."""
        response = make_response(
            {"html": "<p>Hi</p>", "url": "https://example.com/", "success": True}
        )

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                page = await crawler.fetch_html("https://example.com/")

        assert mock_post.call_args[0][0] == "http://crawl4ai:11235/html"
        assert mock_post.call_args[1]["json"] == {"url": "https://example.com/"}
        assert isinstance(page, HtmlPage)
        assert page.html == "<p>Hi</p>"
        assert page.success is True

    @pytest.mark.asyncio
    async def test_fetch_html_invalid_body(self, crawler: Crawl4AIProvider) -> None:
        """Test that a non-object answer raises RemoteFetchError."""
        response = make_response(["unexpected"])

        with patch.object(crawler.session, "post", return_value=response):
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                with pytest.raises(RemoteFetchError, match="expected a JSON object"):
                    await crawler.fetch_html("https://example.com/")


class TestCrawl4AIProviderCaching:
    """Tests for disk caching of fetch results."""

    @pytest.fixture
    def cache(self, tmp_path) -> CacheManager:
        manager = CacheManager(cache_dir=tmp_path)
        yield manager
        manager.close()

    @pytest.fixture
    def crawler(self, cache: CacheManager) -> Crawl4AIProvider:
        return Crawl4AIProvider(base_url="http://crawl4ai:11235", retry_delay=0, cache_manager=cache)

    @pytest.mark.asyncio
    async def test_second_fetch_from_cache(self, crawler: Crawl4AIProvider) -> None:
        """Test that a repeated ENABLED-mode fetch is served from the cache."""
        response = make_response(crawl_payload())

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                first = await crawler.fetch("https://example.com/")
                second = await crawler.fetch("https://example.com/")

        assert mock_post.call_count == 1
        assert first.metadata["from_cache"] is False
        assert second.metadata["from_cache"] is True
        assert second.text_content == first.text_content
        assert second.internal_links == first.internal_links

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "config",
        [FetchConfig(cache_mode=CACHE_BYPASS), FetchConfig(session_id="s1")],
    )
    async def test_cache_skipped(self, crawler: Crawl4AIProvider, config: FetchConfig) -> None:
        """Test that BYPASS mode and session fetches never use the cache."""
        response = make_response(crawl_payload())

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                await crawler.fetch("https://example.com/", config)
                await crawler.fetch("https://example.com/", config)

        assert mock_post.call_count == 2

    @pytest.mark.asyncio
    async def test_failures_not_cached(self, crawler: Crawl4AIProvider) -> None:
        """Test that remote-side failures are not cached."""
        response = make_response(
            {"results": [{"url": "https://example.com/", "success": False, "error_message": "x"}]}
        )

        with patch.object(crawler.session, "post", return_value=response) as mock_post:
            with patch("asyncio.get_event_loop") as mock_loop:
                mock_loop.return_value.run_in_executor = mock_executor
                await crawler.fetch("https://example.com/")
                await crawler.fetch("https://example.com/")

        assert mock_post.call_count == 2
