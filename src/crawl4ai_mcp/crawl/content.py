"""Markdown and HTML renditions of a single page."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable
from typing import TypeVar

from crawl4ai_mcp.admin.service import get_config
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.errors import InvalidInputError, RemoteFetchError, format_error
from crawl4ai_mcp.metrics import get_metrics, record_fetch
from crawl4ai_mcp.models.crawl import HtmlResult, MarkdownResult
from crawl4ai_mcp.providers import CrawlProvider
from crawl4ai_mcp.providers.base import DEFAULT_MARKDOWN_FILTER, MARKDOWN_FILTERS
from crawl4ai_mcp.utils import validate_url

logger = logging.getLogger(__name__)

NO_MARKDOWN = "No content found."
# Filters that rank content against a caller query
QUERY_FILTERS = ("bm25", "llm")

T = TypeVar("T")


async def _call_remote(url: str, call: Awaitable[T]) -> T:
    """Await a provider call, recording it and wrapping failures in RemoteFetchError."""
    start = time.perf_counter()
    try:
        result = await call
    except Exception as e:
        error_msg = format_error(e)
        record_fetch(url=url, success=False, error=error_msg)
        raise RemoteFetchError(error_msg) from e

    elapsed_ms = (time.perf_counter() - start) * 1000
    record_fetch(url=url, success=getattr(result, "success", True), elapsed_ms=elapsed_ms)
    return result


async def markdown_page(
    url: str,
    filter_mode: str = DEFAULT_MARKDOWN_FILTER,
    query: str | None = None,
    cache: str = "0",
    provider: CrawlProvider | None = None,
) -> MarkdownResult:
    """Render a page as markdown through one of the remote content filters.

    Args:
        url: The URL to render
        filter_mode: raw (everything), fit (main content), bm25 or llm
            (content relevant to ``query``)
        query: Relevance query, required for bm25 and llm
        cache: Cache revision; change it to force a fresh render
        provider: Provider override (default: provider for the URL)

    Raises:
        InvalidInputError: On a malformed URL, unknown filter or missing query
        RemoteFetchError: If the remote service could not render the page
    """
    url = validate_url(url)
    if filter_mode not in MARKDOWN_FILTERS:
        raise InvalidInputError(
            f"Invalid filter '{filter_mode}' (expected one of: {', '.join(MARKDOWN_FILTERS)})"
        )
    query = (query or "").strip() or None
    if filter_mode in QUERY_FILTERS and query is None:
        raise InvalidInputError("Query parameter is required when using bm25 or llm filter")

    provider = provider or get_provider(url)
    get_metrics().record_run("get_markdown")

    page = await _call_remote(
        url,
        provider.fetch_markdown(
            url, filter_mode, query, str(cache), timeout=get_config("default_timeout")
        ),
    )
    logger.info(f"Rendered markdown for {url} with filter {page.filter}")

    lines = [f"URL: {page.url}", f"Filter: {page.filter}"]
    if page.query:
        lines.append(f"Query: {page.query}")
    lines.extend([f"Cache: {page.cache}", "", "Markdown:", page.markdown or NO_MARKDOWN])

    return MarkdownResult(
        url=page.url,
        filter=page.filter,
        query=page.query,
        cache=page.cache,
        markdown=page.markdown,
        report="\n".join(lines),
    )


async def html_page(url: str, provider: CrawlProvider | None = None) -> HtmlResult:
    """Fetch the sanitized HTML of a page.

    Raises:
        InvalidInputError: On a malformed URL
        RemoteFetchError: If the remote service could not be reached
    """
    url = validate_url(url)
    provider = provider or get_provider(url)
    get_metrics().record_run("get_html")

    page = await _call_remote(
        url, provider.fetch_html(url, timeout=get_config("default_timeout"))
    )
    return HtmlResult(url=page.url, success=page.success, html=page.html or "")
