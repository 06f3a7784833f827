"""Crawl provider backed by a Crawl4AI server, with retries and disk caching."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import asdict
from typing import Any

import requests

from crawl4ai_mcp.cache_manager import CacheManager, get_cache_manager
from crawl4ai_mcp.errors import RemoteFetchError
from crawl4ai_mcp.providers.base import (
    CACHE_ENABLED,
    DEFAULT_MARKDOWN_FILTER,
    CrawlProvider,
    FetchConfig,
    FetchResult,
    HtmlPage,
    MarkdownPage,
    ProbeResult,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11235"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; crawl4ai-mcp/1.0)"


def _link_hrefs(links: Any) -> list[str]:
    """Flatten a Crawl4AI link list (dicts with ``href`` or bare strings)."""
    hrefs: list[str] = []
    for link in links or []:
        if isinstance(link, dict):
            href = link.get("href")
        else:
            href = link
        if isinstance(href, str) and href:
            hrefs.append(href)
    return hrefs


def parse_crawl_result(url: str, item: dict[str, Any]) -> FetchResult:
    """Map one entry of a Crawl4AI ``/crawl`` response onto a FetchResult.

    Args:
        url: The URL that was requested
        item: First element of the response ``results`` array

    Returns:
        FetchResult with text, markup variants, links and error status
    """
    markdown = item.get("markdown")
    if isinstance(markdown, dict):
        text_content = markdown.get("fit_markdown") or markdown.get("raw_markdown")
    else:
        text_content = markdown or None

    links = item.get("links") or {}
    success = bool(item.get("success", False))

    metadata: dict[str, Any] = {}
    if item.get("metadata"):
        metadata["page_metadata"] = item["metadata"]
    if item.get("status_code") is not None:
        metadata["status_code"] = item["status_code"]

    return FetchResult(
        url=item.get("url") or url,
        success=success,
        text_content=text_content,
        raw_markup=item.get("html") or None,
        filtered_markup=item.get("fit_html") or item.get("cleaned_html") or None,
        internal_links=_link_hrefs(links.get("internal")),
        external_links=_link_hrefs(links.get("external")),
        error=None if success else (item.get("error_message") or "Crawl failed"),
        metadata=metadata,
    )


class Crawl4AIProvider(CrawlProvider):
    """Client for the Crawl4AI ``/crawl``, ``/md`` and ``/html`` endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float = 60,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        user_agent: str = DEFAULT_USER_AGENT,
        cache_enabled: bool = True,
        cache_manager: CacheManager | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            base_url: Crawl4AI server URL (default: CRAWL4AI_BASE_URL env)
            api_key: API key sent as X-API-Key (default: CRAWL4AI_API_KEY env)
            timeout: Request timeout in seconds (default: 60)
            max_retries: Maximum number of retry attempts (default: 2)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            user_agent: User agent used for direct probe requests
            cache_enabled: Cache successful fetches on disk (default: True)
            cache_manager: Cache to use instead of the global one
        """
        self.base_url = (base_url or os.getenv("CRAWL4AI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else os.getenv("CRAWL4AI_API_KEY", "")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.user_agent = user_agent
        self.cache_enabled = cache_enabled

        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if self.api_key:
            self.session.headers["X-API-Key"] = self.api_key

        if cache_enabled:
            self.cache_manager = cache_manager or get_cache_manager()
        else:
            self.cache_manager = None

        logger.info(
            f"Crawl4AIProvider initialized for {self.base_url} "
            f"(caching {'enabled' if cache_enabled else 'disabled'})"
        )

    def build_payload(self, url: str, config: FetchConfig) -> dict[str, Any]:
        """Build the ``/crawl`` request body for a single URL.

        The browser config is left out when a session id is set, since the
        remote session already owns its browser.
        """
        crawler_config: dict[str, Any] = {"cache_mode": config.cache_mode, **config.extra}
        if config.session_id:
            crawler_config["session_id"] = config.session_id

        payload: dict[str, Any] = {"urls": [url], "crawler_config": crawler_config}
        if not config.session_id:
            payload["browser_config"] = {
                "headless": config.headless,
                "browser_type": config.browser_type,
            }
        return payload

    def _use_cache(self, config: FetchConfig) -> bool:
        return (
            self.cache_manager is not None
            and config.cache_mode == CACHE_ENABLED
            and not config.session_id
        )

    async def _with_retries(
        self, url: str, call: Any, max_retries: int
    ) -> tuple[requests.Response, int]:
        """Run a blocking request in the executor, retrying transient failures.

        Returns:
            The response and the number of attempts it took
        """
        attempt = 0
        while True:
            try:
                loop = asyncio.get_event_loop()
                response = await loop.run_in_executor(None, call)
                response.raise_for_status()
                return response, attempt + 1
            except (
                requests.Timeout,
                requests.ConnectionError,
                requests.HTTPError,
            ):
                attempt += 1
                if attempt > max_retries:
                    raise

                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.debug(
                    f"Retry attempt {attempt}/{max_retries} for {url} after {delay:.2f}s delay"
                )
                await asyncio.sleep(delay)

    async def _post_json(
        self,
        path: str,
        payload: dict[str, Any],
        url: str,
        timeout: float,
        max_retries: int,
    ) -> tuple[Any, requests.Response, int]:
        """POST a JSON body to a server endpoint and decode the JSON answer.

        Returns:
            The decoded body, the response and the number of attempts

        Raises:
            RemoteFetchError: If the answer is not JSON
        """
        endpoint = f"{self.base_url}{path}"
        response, attempts = await self._with_retries(
            url,
            lambda: self.session.post(endpoint, json=payload, timeout=timeout),
            max_retries,
        )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteFetchError(f"Invalid response from server: {e}") from e
        return data, response, attempts

    async def fetch(self, url: str, config: FetchConfig | None = None) -> FetchResult:
        """Fetch a page through the Crawl4AI server.

        Args:
            url: The URL to fetch
            config: Session, cache and render options

        Returns:
            FetchResult for the page

        Raises:
            requests.RequestException: If the server is unreachable or keeps
                failing after all retries
            RemoteFetchError: If the server answers without any result
        """
        config = config or FetchConfig()
        timeout = config.timeout or self.timeout
        max_retries = config.max_retries if config.max_retries is not None else self.max_retries

        cache_key = None
        if self._use_cache(config):
            cache_key = self.cache_manager.make_key(
                url, browser_type=config.browser_type, extra=config.extra
            )
            cached = self.cache_manager.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache HIT for URL: {url}")
                result = FetchResult(**cached)
                result.metadata = {**result.metadata, "from_cache": True}
                return result

        payload = self.build_payload(url, config)
        data, response, attempts = await self._post_json(
            "/crawl", payload, url, timeout, max_retries
        )

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            raise RemoteFetchError("Invalid response from server: no results received")

        result = parse_crawl_result(url, results[0])
        result.metadata.update(
            {
                "elapsed_ms": response.elapsed.total_seconds() * 1000,
                "attempts": attempts,
                "from_cache": False,
            }
        )

        if cache_key and result.success:
            ttl = self.cache_manager.ttl_for(url)
            self.cache_manager.put(cache_key, asdict(result), ttl=ttl)
            logger.debug(f"Cached result for URL: {url} (TTL: {ttl}s)")

        return result

    async def probe(self, url: str, timeout: float | None = None) -> ProbeResult:
        """Issue a HEAD request directly against the target URL.

        Raises:
            requests.RequestException: If the probe fails
        """
        headers = {"User-Agent": self.user_agent}
        response, _ = await self._with_retries(
            url,
            lambda: requests.head(
                url,
                headers=headers,
                timeout=timeout or self.timeout,
                allow_redirects=True,
            ),
            0,
        )
        return ProbeResult(url=url, content_type=response.headers.get("Content-Type", ""))

    async def fetch_markdown(
        self,
        url: str,
        filter_mode: str = DEFAULT_MARKDOWN_FILTER,
        query: str | None = None,
        cache: str = "0",
        timeout: float | None = None,
    ) -> MarkdownPage:
        """Render a page as markdown through the server's ``/md`` endpoint.

        Raises:
            requests.RequestException: If the server is unreachable or keeps
                failing after all retries
            RemoteFetchError: If the server answers with something other
                than a JSON object
        """
        payload: dict[str, Any] = {"url": url, "f": filter_mode, "c": cache}
        if query:
            payload["q"] = query

        data, _, _ = await self._post_json(
            "/md", payload, url, timeout or self.timeout, self.max_retries
        )
        if not isinstance(data, dict):
            raise RemoteFetchError("Invalid response from server: expected a JSON object")

        return MarkdownPage(
            url=data.get("url") or url,
            filter=data.get("filter") or filter_mode,
            markdown=data.get("markdown") or None,
            query=data.get("query") or query,
            cache=str(data.get("cache") or cache),
            success=bool(data.get("success", True)),
        )

    async def fetch_html(self, url: str, timeout: float | None = None) -> HtmlPage:
        """Fetch sanitized HTML through the server's ``/html`` endpoint.

        Raises:
            requests.RequestException: If the server is unreachable or keeps
                failing after all retries
            RemoteFetchError: If the server answers with something other
                than a JSON object
        """
        data, _, _ = await self._post_json(
            "/html", {"url": url}, url, timeout or self.timeout, self.max_retries
        )
        if not isinstance(data, dict):
            raise RemoteFetchError("Invalid response from server: expected a JSON object")

        return HtmlPage(
            url=data.get("url") or url,
            html=data.get("html") or None,
            success=bool(data.get("success", True)),
        )
