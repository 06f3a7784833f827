"""MCP crawl tools and orchestration logic.

This module provides the crawling functionality exposed as MCP tools:
- crawl: Single-page crawl, optionally inside a session
- crawl_recursive: Depth- and page-bounded traversal of same-host links
- smart_crawl: Content-type detection followed by a matching strategy
- parse_sitemap: URL extraction from XML sitemaps
- get_markdown, get_html: Filtered markdown and sanitized HTML of a page
- extract_links: Link listing with optional categorization
- batch_crawl: Concurrent crawl of an explicit URL list

The crawl module follows a router -> engine pattern:
- router.py: MCP tool definitions and registration
- traversal.py, dispatch.py, sitemap.py, page.py, content.py, links.py,
  batch.py: orchestration logic
"""

from crawl4ai_mcp.crawl.batch import crawl_batch
from crawl4ai_mcp.crawl.content import html_page, markdown_page
from crawl4ai_mcp.crawl.dispatch import STRATEGIES, classify, smart_traverse
from crawl4ai_mcp.crawl.links import analyze_links, categorize_link
from crawl4ai_mcp.crawl.page import crawl_page
from crawl4ai_mcp.crawl.router import (
    batch_crawl,
    crawl,
    crawl_recursive,
    extract_links,
    get_html,
    get_markdown,
    parse_sitemap,
    register_cache_tools,
    register_crawl_tools,
    smart_crawl,
)
from crawl4ai_mcp.crawl.traversal import recursive_traverse

__all__ = [
    # MCP tool functions
    "crawl",
    "crawl_recursive",
    "smart_crawl",
    "parse_sitemap",
    "get_markdown",
    "get_html",
    "extract_links",
    "batch_crawl",
    # Registration functions
    "register_crawl_tools",
    "register_cache_tools",
    # Engine functions
    "STRATEGIES",
    "analyze_links",
    "categorize_link",
    "classify",
    "crawl_batch",
    "crawl_page",
    "html_page",
    "markdown_page",
    "recursive_traverse",
    "smart_traverse",
]
