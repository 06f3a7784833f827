"""MCP tool definitions for crawling."""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from crawl4ai_mcp.admin.service import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_SMART_MAX_DEPTH,
)
from crawl4ai_mcp.cache_manager import get_cache_manager
from crawl4ai_mcp.crawl.batch import crawl_batch
from crawl4ai_mcp.crawl.content import html_page, markdown_page
from crawl4ai_mcp.crawl.dispatch import smart_traverse
from crawl4ai_mcp.crawl.links import analyze_links
from crawl4ai_mcp.crawl.page import crawl_page
from crawl4ai_mcp.crawl.sitemap import parse_sitemap as parse_sitemap_service
from crawl4ai_mcp.crawl.traversal import recursive_traverse
from crawl4ai_mcp.errors import CrawlError, format_error
from crawl4ai_mcp.models.crawl import (
    BatchCrawlResult,
    DispatchReport,
    HtmlResult,
    LinkReport,
    MarkdownResult,
    PageCrawlResult,
    SitemapResult,
    TraversalResult,
)


async def crawl(
    url: str,
    session_id: str | None = None,
    bypass_cache: bool = False,
    browser_type: str | None = None,
) -> PageCrawlResult:
    """Crawl a single page and return its extracted content.

    Args:
        url: The URL to crawl (must be http:// or https://)
        session_id: Session created with manage_session to keep browser state
                    (cookies, logins) across requests
        bypass_cache: Fetch a fresh copy instead of a cached one (default: False)
        browser_type: chromium, firefox or webkit (ignored for existing sessions)

    Returns:
        PageCrawlResult with content and link counts
    """
    try:
        return await crawl_page(url, session_id, bypass_cache, browser_type)
    except CrawlError as e:
        raise ToolError(format_error(e, "crawl")) from e


async def crawl_recursive(
    url: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_pages: int = DEFAULT_MAX_PAGES,
    include_pattern: str | None = None,
    exclude_pattern: str | None = None,
    session_id: str | None = None,
) -> TraversalResult:
    """Crawl a website by following internal links level by level.

    Args:
        url: Starting URL (must be http:// or https://)
        max_depth: Maximum link depth to follow (default: 3)
        max_pages: Maximum number of pages to crawl (default: 50)
        include_pattern: Regex a link must match to be followed
                         (e.g., "/docs/")
        exclude_pattern: Regex that stops a matching link from being followed
                         (e.g., "\\.pdf$")
        session_id: Optional session to run every fetch in

    Returns:
        TraversalResult with per-page content and a combined report
    """
    try:
        return await recursive_traverse(
            url, max_depth, max_pages, include_pattern, exclude_pattern, session_id
        )
    except CrawlError as e:
        raise ToolError(format_error(e, "crawl recursively")) from e


async def smart_crawl(
    url: str,
    max_depth: int = DEFAULT_SMART_MAX_DEPTH,
    follow_links: bool = False,
    bypass_cache: bool = False,
) -> DispatchReport:
    """Detect the content type of a URL and crawl it accordingly.

    Sitemaps are parsed into URL listings, everything else is fetched once.

    Args:
        url: The URL to crawl (must be http:// or https://)
        max_depth: Levels of nested sitemap indexes to expand (default: 2)
        follow_links: For sitemaps, also crawl the first discovered URLs (default: False)
        bypass_cache: Fetch fresh copies instead of cached ones (default: False)

    Returns:
        DispatchReport naming the detected content type
    """
    try:
        return await smart_traverse(url, max_depth, follow_links, bypass_cache)
    except CrawlError as e:
        raise ToolError(format_error(e, "smart crawl")) from e


async def parse_sitemap(url: str, filter_pattern: str | None = None) -> SitemapResult:
    """Extract the URLs listed in an XML sitemap.

    Args:
        url: Sitemap URL (e.g., "https://example.com/sitemap.xml")
        filter_pattern: Regex a URL must match to be listed (e.g., "/blog/")

    Returns:
        SitemapResult with total and filtered URL counts
    """
    try:
        return await parse_sitemap_service(url, filter_pattern)
    except CrawlError as e:
        raise ToolError(format_error(e, "parse sitemap")) from e


async def get_markdown(
    url: str,
    filter: str = "fit",
    query: str | None = None,
    cache: str = "0",
) -> MarkdownResult:
    """Get a page as markdown, optionally reduced to the content relevant to a query.

    Args:
        url: The URL to render (must be http:// or https://)
        filter: raw (full page), fit (main content, default), bm25 or llm
                (content relevant to query)
        query: Relevance query, required for the bm25 and llm filters
        cache: Cache revision; change it to force a fresh render (default: "0")

    Returns:
        MarkdownResult with the rendered markdown
    """
    try:
        return await markdown_page(url, filter, query, cache)
    except CrawlError as e:
        raise ToolError(format_error(e, "get markdown")) from e


async def get_html(url: str) -> HtmlResult:
    """Get the sanitized HTML of a page.

    Args:
        url: The URL to fetch (must be http:// or https://)

    Returns:
        HtmlResult with the HTML
    """
    try:
        return await html_page(url)
    except CrawlError as e:
        raise ToolError(format_error(e, "get HTML")) from e


async def extract_links(url: str, categorize: bool = True) -> LinkReport:
    """Extract the links on a page, optionally grouped by category.

    Args:
        url: The URL to analyze (must be http:// or https://)
        categorize: Group links into internal, external, social, documents,
                    images and scripts (default: True)

    Returns:
        LinkReport with the links and a readable summary
    """
    try:
        return await analyze_links(url, categorize)
    except CrawlError as e:
        raise ToolError(format_error(e, "extract links")) from e


async def batch_crawl(
    urls: list[str],
    max_concurrent: int | None = None,
    remove_images: bool = False,
    bypass_cache: bool = False,
) -> BatchCrawlResult:
    """Crawl several URLs concurrently.

    Args:
        urls: URLs to crawl (each http:// or https://, at most 50 by default)
        max_concurrent: Parallel fetches, 1-20 (default: 3)
        remove_images: Drop images from the extracted content (default: False)
        bypass_cache: Fetch fresh copies instead of cached ones (default: False)

    Returns:
        BatchCrawlResult with success status per URL
    """
    try:
        return await crawl_batch(urls, max_concurrent, remove_images, bypass_cache)
    except CrawlError as e:
        raise ToolError(format_error(e, "batch crawl")) from e


async def cache_stats() -> dict[str, Any]:
    """Get crawl result cache statistics.

    Returns:
        Dictionary with cache size, entry count, hit rate and location
    """
    return get_cache_manager().get_stats()


async def cache_clear_expired() -> dict[str, Any]:
    """Clear expired entries from the crawl result cache.

    Returns:
        Dictionary with the number of expired entries removed
    """
    removed = get_cache_manager().expire()
    return {
        "status": "success",
        "expired_entries_removed": removed,
    }


async def cache_clear_all() -> dict[str, Any]:
    """Clear all entries from the crawl result cache.

    Returns:
        Dictionary with the number of entries removed
    """
    removed = get_cache_manager().clear()
    return {
        "status": "success",
        "entries_removed": removed,
    }


def register_crawl_tools(mcp: FastMCP) -> None:
    """Register crawl tools on the MCP server.

    Args:
        mcp: FastMCP server instance
    """
    mcp.tool()(crawl)
    mcp.tool()(crawl_recursive)
    mcp.tool()(smart_crawl)
    mcp.tool()(parse_sitemap)
    mcp.tool()(get_markdown)
    mcp.tool()(get_html)
    mcp.tool()(extract_links)
    mcp.tool()(batch_crawl)


def register_cache_tools(mcp: FastMCP) -> None:
    """Register cache management tools on the MCP server.

    Args:
        mcp: FastMCP server instance
    """
    mcp.tool()(cache_stats)
    mcp.tool()(cache_clear_expired)
    mcp.tool()(cache_clear_all)
