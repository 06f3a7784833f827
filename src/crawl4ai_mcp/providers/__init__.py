"""Providers for the remote page-fetching/rendering service."""

from crawl4ai_mcp.providers.base import (
    CrawlProvider,
    FetchConfig,
    FetchResult,
    HtmlPage,
    MarkdownPage,
    ProbeResult,
)
from crawl4ai_mcp.providers.crawl4ai_provider import Crawl4AIProvider

__all__ = [
    "CrawlProvider",
    "FetchConfig",
    "FetchResult",
    "HtmlPage",
    "MarkdownPage",
    "ProbeResult",
    "Crawl4AIProvider",
]
