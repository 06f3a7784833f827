"""Sitemap fetching and URL extraction."""

from __future__ import annotations

import logging

from crawl4ai_mcp.admin.service import get_config
from crawl4ai_mcp.core.fetching import fetch_page_safe
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.errors import RemoteFetchError
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.models.crawl import SitemapResult
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig, FetchResult
from crawl4ai_mcp.utils import (
    compile_pattern,
    extract_sitemap_entries,
    format_url_listing,
    validate_url,
)

logger = logging.getLogger(__name__)


def parse_sitemap_result(result: FetchResult) -> tuple[list[str], list[str]]:
    """Extract page and nested sitemap URLs from a fetched sitemap.

    The raw markup carries the XML as served; the other variants are only
    consulted when it yields no ``<loc>`` entries.

    Returns:
        Tuple of (page URLs, nested sitemap URLs)
    """
    for candidate in (result.raw_markup, result.filtered_markup, result.text_content):
        if not candidate:
            continue
        pages, sitemaps = extract_sitemap_entries(candidate)
        if pages or sitemaps:
            return pages, sitemaps
    return [], []


async def parse_sitemap(
    url: str,
    filter_pattern: str | None = None,
    provider: CrawlProvider | None = None,
) -> SitemapResult:
    """Fetch a sitemap and list the URLs it declares.

    Args:
        url: Sitemap URL
        filter_pattern: Regex a URL must match to be listed
        provider: Provider override (default: provider for the URL)

    Returns:
        SitemapResult with the total and filtered URL counts

    Raises:
        InvalidInputError: On a malformed URL or an invalid filter pattern
        RemoteFetchError: If the sitemap could not be fetched
    """
    url = validate_url(url)
    pattern = compile_pattern(filter_pattern, "filter_pattern")
    provider = provider or get_provider(url)
    get_metrics().record_run("parse_sitemap")

    config = FetchConfig(
        timeout=get_config("default_timeout"),
        max_retries=get_config("default_max_retries"),
    )
    result = await fetch_page_safe(provider, url, config)
    if not result.success:
        raise RemoteFetchError(f"Could not fetch sitemap {url}: {result.error}")

    pages, sitemaps = parse_sitemap_result(result)
    urls = pages + sitemaps
    filtered = [u for u in urls if pattern.search(u)] if pattern else urls
    logger.info(f"Parsed sitemap {url}: {len(urls)} URLs, {len(filtered)} after filtering")

    report = "\n".join(
        [
            "Sitemap parsed successfully:",
            "",
            f"Total URLs found: {len(urls)}",
            f"Filtered URLs: {len(filtered)}",
            "",
            "URLs:",
            format_url_listing(filtered, get_config("sitemap_display_limit")),
        ]
    )

    return SitemapResult(
        url=url,
        total_urls=len(urls),
        filtered_urls=len(filtered),
        urls=filtered,
        report=report,
    )
