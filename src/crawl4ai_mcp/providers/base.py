"""Base provider interface for the remote crawl service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from crawl4ai_mcp.utils import is_supported_url

# Cache modes understood by the remote crawler
CACHE_ENABLED = "ENABLED"
CACHE_BYPASS = "BYPASS"
CACHE_DISABLED = "DISABLED"

BROWSER_TYPES = ("chromium", "firefox", "webkit")
DEFAULT_BROWSER_TYPE = "chromium"

# Content filters of the remote markdown endpoint
MARKDOWN_FILTERS = ("raw", "fit", "bm25", "llm")
DEFAULT_MARKDOWN_FILTER = "fit"


@dataclass
class FetchConfig:
    """Per-fetch options forwarded to the remote crawler."""

    session_id: str | None = None
    cache_mode: str = CACHE_ENABLED
    browser_type: str = DEFAULT_BROWSER_TYPE
    headless: bool = True
    timeout: float | None = None
    max_retries: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class FetchResult:
    """Result of fetching and rendering a single page."""

    url: str
    success: bool
    text_content: str | None = None
    raw_markup: str | None = None
    filtered_markup: str | None = None
    internal_links: list[str] = field(default_factory=list)
    external_links: list[str] = field(default_factory=list)
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProbeResult:
    """Metadata-only view of a resource."""

    url: str
    content_type: str


@dataclass
class MarkdownPage:
    """Markdown rendition of a page produced by a remote content filter."""

    url: str
    filter: str
    markdown: str | None = None
    query: str | None = None
    cache: str = "0"
    success: bool = True


@dataclass
class HtmlPage:
    """Sanitized HTML of a page as returned by the remote service."""

    url: str
    html: str | None = None
    success: bool = True


class CrawlProvider(ABC):
    """Abstract base class for remote crawl providers."""

    @abstractmethod
    async def fetch(self, url: str, config: FetchConfig | None = None) -> FetchResult:
        """Fetch and render a page.

        Args:
            url: The URL to fetch
            config: Session, cache and render options

        Returns:
            FetchResult with content, links and error status. Transport
            failures are raised, remote-side crawl failures are reported
            with ``success=False``.
        """
        pass

    @abstractmethod
    async def probe(self, url: str, timeout: float | None = None) -> ProbeResult:
        """Look up the content type of a resource without fetching its body.

        Raises:
            Exception: If the probe could not be completed
        """
        pass

    @abstractmethod
    async def fetch_markdown(
        self,
        url: str,
        filter_mode: str = DEFAULT_MARKDOWN_FILTER,
        query: str | None = None,
        cache: str = "0",
        timeout: float | None = None,
    ) -> MarkdownPage:
        """Render a page as markdown, filtered by ``filter_mode``.

        ``query`` steers the bm25 and llm filters.

        Raises:
            Exception: If the remote call could not be completed
        """
        pass

    @abstractmethod
    async def fetch_html(self, url: str, timeout: float | None = None) -> HtmlPage:
        """Fetch the sanitized HTML of a page.

        Raises:
            Exception: If the remote call could not be completed
        """
        pass

    def supports_url(self, url: str) -> bool:
        """Check if this provider supports the given URL.

        Args:
            url: The URL to check

        Returns:
            True if the URL uses http or https scheme
        """
        return is_supported_url(url)
