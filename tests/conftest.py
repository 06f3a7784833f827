"""Pytest configuration and fixtures for crawl4ai-mcp tests."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from crawl4ai_mcp.admin.service import reset_config
from crawl4ai_mcp.core.providers import set_default_provider
from crawl4ai_mcp.providers import (
    CrawlProvider,
    FetchConfig,
    FetchResult,
    HtmlPage,
    MarkdownPage,
    ProbeResult,
)
from crawl4ai_mcp.sessions.service import SessionManager, set_session_manager


class FakeProvider(CrawlProvider):
    """In-memory provider answering from scripted pages and probes.

    Unknown URLs fetch as failed results; unknown probes report text/html.
    Markdown and HTML renditions are answered from ``markdown`` and ``html``.
    """

    def __init__(self) -> None:
        self.pages: dict[str, FetchResult | Exception] = {}
        self.probes: dict[str, str | Exception] = {}
        self.markdown: dict[str, str | Exception] = {}
        self.html: dict[str, str | Exception] = {}
        self.calls: list[tuple[str, FetchConfig | None]] = []
        self.probe_calls: list[str] = []
        self.markdown_calls: list[tuple[str, str, str | None, str]] = []
        self.html_calls: list[str] = []

    def add_page(
        self,
        url: str,
        links: list[str] | None = None,
        text: str | None = "content",
        **kwargs,
    ) -> FetchResult:
        result = FetchResult(
            url=kwargs.pop("final_url", url),
            success=True,
            text_content=text,
            internal_links=list(links or []),
            **kwargs,
        )
        self.pages[url] = result
        return result

    def add_failure(self, url: str, error: str | Exception = "Page load failed") -> None:
        if isinstance(error, Exception):
            self.pages[url] = error
        else:
            self.pages[url] = FetchResult(url=url, success=False, error=error)

    def add_probe(self, url: str, content_type: str | Exception) -> None:
        self.probes[url] = content_type

    @property
    def fetched_urls(self) -> list[str]:
        return [url for url, _ in self.calls]

    async def fetch(self, url: str, config: FetchConfig | None = None) -> FetchResult:
        self.calls.append((url, config))
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            return FetchResult(url=url, success=False, error="404 Not Found")
        return dataclasses.replace(
            page,
            internal_links=list(page.internal_links),
            metadata=dict(page.metadata),
        )

    async def probe(self, url: str, timeout: float | None = None) -> ProbeResult:
        self.probe_calls.append(url)
        content_type = self.probes.get(url, "text/html; charset=utf-8")
        if isinstance(content_type, Exception):
            raise content_type
        return ProbeResult(url=url, content_type=content_type)

    async def fetch_markdown(
        self,
        url: str,
        filter_mode: str = "fit",
        query: str | None = None,
        cache: str = "0",
        timeout: float | None = None,
    ) -> MarkdownPage:
        self.markdown_calls.append((url, filter_mode, query, cache))
        markdown = self.markdown.get(url)
        if isinstance(markdown, Exception):
            raise markdown
        return MarkdownPage(
            url=url, filter=filter_mode, markdown=markdown, query=query, cache=cache
        )

    async def fetch_html(self, url: str, timeout: float | None = None) -> HtmlPage:
        self.html_calls.append(url)
        html = self.html.get(url)
        if isinstance(html, Exception):
            raise html
        return HtmlPage(url=url, html=html, success=html is not None)


class FakeClock:
    """Manually advanced clock for session age calculations."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


@pytest.fixture
def provider() -> FakeProvider:
    """Scripted provider installed as the shared default."""
    return FakeProvider()


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def sessions(provider: FakeProvider, clock: FakeClock) -> SessionManager:
    """Session manager using the fake provider and clock."""
    manager = SessionManager(provider=provider, clock=clock)
    set_session_manager(manager)
    return manager


@pytest.fixture(autouse=True)
def isolated_state(provider: FakeProvider):
    """Install the fake provider and reset shared registries around each test."""
    set_default_provider(provider)
    set_session_manager(None)
    reset_config()
    yield
    set_default_provider(None)
    set_session_manager(None)
    reset_config()


@pytest.fixture
def sitemap_xml() -> str:
    """Sitemap with two page entries."""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
        <url><loc>https://example.com/page-1</loc><lastmod>2024-01-01</lastmod></url>
        <url><loc>https://example.com/page-2</loc></url>
    </urlset>
    """


@pytest.fixture
def sitemap_index_xml() -> str:
    """Sitemap index pointing at two nested sitemaps."""
    return """<?xml version="1.0" encoding="UTF-8"?>
    <sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
        <sitemap><loc>https://example.com/sitemap-posts.xml</loc></sitemap>
        <sitemap><loc>https://example.com/sitemap-pages.xml</loc></sitemap>
    </sitemapindex>
    """


def make_urlset(urls: list[str]) -> str:
    """Build sitemap XML listing ``urls``."""
    entries = "\n".join(f"<url><loc>{url}</loc></url>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n{entries}\n</urlset>'
    )


@pytest.fixture
def urlset():
    """Factory for sitemap XML."""
    return make_urlset
