"""Depth- and page-bounded breadth-first crawl over same-host links."""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from urllib.parse import urlsplit

from crawl4ai_mcp.admin.service import DEFAULT_MAX_DEPTH, DEFAULT_MAX_PAGES, get_config
from crawl4ai_mcp.core.fetching import fetch_page_safe, pick_content
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.errors import InvalidInputError
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.models.crawl import CrawledPage, TraversalResult
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig
from crawl4ai_mcp.providers.base import CACHE_BYPASS
from crawl4ai_mcp.sessions.service import get_session_manager
from crawl4ai_mcp.utils import compile_pattern, normalize_url, validate_url

logger = logging.getLogger(__name__)

NO_PAGES_MESSAGE = (
    "No pages could be crawled. This might be due to:\n"
    "- The starting URL returned an error\n"
    "- No internal links were found\n"
    "- All discovered links were filtered out by include/exclude patterns"
)


@dataclass(frozen=True)
class CrawlTarget:
    """A URL waiting to be fetched, with where and how deep it was found."""

    url: str
    depth: int
    parent_url: str | None = None


class LinkFilter:
    """Decides which discovered links are eligible for the crawl queue."""

    def __init__(
        self,
        hosts: set[str],
        include: re.Pattern[str] | None = None,
        exclude: re.Pattern[str] | None = None,
    ) -> None:
        self.hosts = hosts
        self.include = include
        self.exclude = exclude

    def allows(self, url: str) -> bool:
        host = (urlsplit(url).hostname or "").lower()
        if host not in self.hosts:
            return False
        if self.exclude is not None and self.exclude.search(url):
            return False
        if self.include is not None and not self.include.search(url):
            return False
        return True


def _build_report(
    start_url: str,
    pages: list[CrawledPage],
    pages_crawled: int,
    max_depth: int,
    max_depth_reached: int,
) -> str:
    lines = [
        "Recursive crawl completed:",
        "",
        f"Pages crawled: {pages_crawled}",
        f"Starting URL: {start_url}",
    ]

    if pages_crawled == 0:
        lines.append("")
        lines.append(NO_PAGES_MESSAGE)
        for page in pages:
            if page.error:
                lines.append("")
                lines.append(f"Error: {page.error}")
        return "\n".join(lines)

    lines.append(f"Max depth reached: {max_depth_reached} (limit: {max_depth})")
    lines.append("")
    lines.append("Note: Only internal links (same domain) are followed during recursive crawling.")
    lines.append("")
    lines.append("Pages found:")
    for page in pages:
        lines.append(f"- [Depth {page.depth}] {page.url}")
        if page.success:
            lines.append(f"  Content: {len(page.content)} chars")
            lines.append(f"  Internal links found: {page.internal_links_found}")
        else:
            lines.append(f"  Error: {page.error}")

    for page in pages:
        if not page.success:
            continue
        lines.append("")
        lines.append("---")
        lines.append(f"## [Depth {page.depth}] {page.url}")
        lines.append("")
        lines.append(page.content or "No content extracted")

    return "\n".join(lines)


async def recursive_traverse(
    url: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_pages: int = DEFAULT_MAX_PAGES,
    include_pattern: str | None = None,
    exclude_pattern: str | None = None,
    session_id: str | None = None,
    provider: CrawlProvider | None = None,
) -> TraversalResult:
    """Crawl from a start URL, following same-host links level by level.

    Links found on a page at depth ``d`` are queued at ``d + 1`` as long as
    ``d + 1 <= max_depth`` and the number of visited plus queued URLs stays
    below ``max_pages``. URLs are deduplicated by normalized form, so cycles
    between pages are harmless. Include/exclude patterns apply to discovered
    links only, never to the start URL.

    A failed fetch of any page other than the start URL is recorded in the
    result and the crawl continues. A failed start URL ends the run with
    ``pages_crawled == 0``; this is reported, not raised.

    Args:
        url: Start URL (http or https)
        max_depth: Maximum link depth to follow (default: 3)
        max_pages: Maximum number of pages to fetch (default: 50)
        include_pattern: Regex a discovered link must match to be followed
        exclude_pattern: Regex that excludes a discovered link when matched
        session_id: Remote session to run every fetch in
        provider: Provider override (default: provider for the start URL)

    Returns:
        TraversalResult with per-page outcomes and a text report

    Raises:
        InvalidInputError: On a malformed URL, bad budget or a pattern that
            does not compile; raised before any remote call
    """
    start_url = validate_url(url)
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
        raise InvalidInputError(f"max_depth must be a non-negative integer, got {max_depth!r}")
    if isinstance(max_pages, bool) or not isinstance(max_pages, int) or max_pages < 1:
        raise InvalidInputError(f"max_pages must be a positive integer, got {max_pages!r}")

    include = compile_pattern(include_pattern, "include_pattern")
    exclude = compile_pattern(exclude_pattern, "exclude_pattern")

    start_key = normalize_url(start_url)
    if start_key is None:
        raise InvalidInputError(f"Invalid URL: {url}")

    provider = provider or get_provider(start_url)
    sessions = get_session_manager()
    get_metrics().record_run("crawl_recursive")

    config = FetchConfig(
        session_id=session_id,
        cache_mode=CACHE_BYPASS,
        timeout=get_config("default_timeout"),
        max_retries=get_config("default_max_retries"),
    )
    link_filter = LinkFilter({urlsplit(start_key).hostname or ""}, include, exclude)

    queue: deque[CrawlTarget] = deque([CrawlTarget(start_key, 0)])
    queued: set[str] = {start_key}
    visited: set[str] = set()
    pages: list[CrawledPage] = []
    pages_crawled = 0
    max_depth_reached = 0

    logger.info(
        f"Recursive crawl started at {start_key} (max_depth={max_depth}, max_pages={max_pages})"
    )

    while queue:
        target = queue.popleft()
        queued.discard(target.url)
        visited.add(target.url)

        result = await fetch_page_safe(provider, target.url, config)
        if session_id:
            sessions.touch(session_id)

        if not result.success:
            pages.append(
                CrawledPage(
                    url=target.url,
                    depth=target.depth,
                    parent_url=target.parent_url,
                    success=False,
                    error=result.error,
                )
            )
            if target.depth == 0:
                logger.warning(f"Start URL {target.url} could not be crawled: {result.error}")
                break
            logger.warning(f"Failed to crawl {target.url}: {result.error}")
            continue

        pages_crawled += 1
        max_depth_reached = max(max_depth_reached, target.depth)
        pages.append(
            CrawledPage(
                url=target.url,
                depth=target.depth,
                parent_url=target.parent_url,
                success=True,
                content=pick_content(result) or "",
                internal_links_found=len(result.internal_links),
            )
        )

        if target.depth == 0 and result.url:
            # Follow links on the host the start URL redirected to as well
            final_host = urlsplit(result.url).hostname
            if final_host:
                link_filter.hosts.add(final_host.lower())

        if target.depth + 1 > max_depth:
            continue

        base_url = result.url or target.url
        for href in result.internal_links:
            if len(visited) + len(queued) >= max_pages:
                break

            link = normalize_url(href, base_url)
            if link is None or link in visited or link in queued:
                continue
            if not link_filter.allows(link):
                continue

            queue.append(CrawlTarget(link, target.depth + 1, target.url))
            queued.add(link)

    message = None if pages_crawled else "No pages could be crawled"
    logger.info(
        f"Recursive crawl of {start_key} finished: {pages_crawled} pages crawled, "
        f"{len(visited)} fetched, max depth reached {max_depth_reached}"
    )

    return TraversalResult(
        start_url=start_url,
        pages_crawled=pages_crawled,
        max_depth_reached=max_depth_reached,
        max_depth=max_depth,
        max_pages=max_pages,
        pages=pages,
        message=message,
        report=_build_report(start_url, pages, pages_crawled, max_depth, max_depth_reached),
    )
