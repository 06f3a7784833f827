"""Content-type-aware crawl: probe a URL, classify it, then pick a strategy."""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from crawl4ai_mcp.admin.service import DEFAULT_SMART_MAX_DEPTH, get_config
from crawl4ai_mcp.core.fetching import NO_CONTENT, fetch_many, fetch_page_safe, pick_content
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.crawl.sitemap import parse_sitemap_result
from crawl4ai_mcp.errors import InvalidInputError, format_error
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.models.crawl import ClassificationLabel, DispatchReport
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig, FetchResult
from crawl4ai_mcp.providers.base import CACHE_BYPASS, CACHE_ENABLED
from crawl4ai_mcp.utils import format_url_listing, validate_url

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 10  # seconds
PROBE_FAILED_NOTE = "Content type probe failed; using html strategy"

_FEED_MARKERS = ("rss", "feed", "atom")
_XML_TYPES = ("application/xml", "text/xml")
# Rendered documents and images, never URL listings
_DOCUMENT_XML_SUFFIXES = ("xhtml+xml", "svg+xml")


def classify(
    url: str,
    content_type: str | None = None,
    probe_failed: bool = False,
) -> ClassificationLabel:
    """Classify a resource from its URL and probed Content-Type.

    A failed probe always yields ``html``. Otherwise URL heuristics on the
    path and query win over the probed type, and ``html`` is the default.

    Examples:
        >>> classify("https://example.com/sitemap_index.xml").value
        'sitemap'
        >>> classify("https://example.com/data", "application/json; charset=utf-8").value
        'json'
        >>> classify("https://example.com/sitemap.xml", probe_failed=True).value
        'html'
    """
    if probe_failed:
        return ClassificationLabel.HTML

    parts = urlsplit(url)
    path = parts.path.lower()
    target = f"{path}?{parts.query.lower()}"

    if "sitemap" in target:
        return ClassificationLabel.SITEMAP
    if any(marker in target for marker in _FEED_MARKERS):
        return ClassificationLabel.FEED
    if path.endswith(".xml"):
        return ClassificationLabel.SITEMAP
    if path.endswith(".json"):
        return ClassificationLabel.JSON
    if path.endswith(".txt"):
        return ClassificationLabel.TEXT

    mime = (content_type or "").split(";")[0].strip().lower()
    if mime.endswith(("rss+xml", "atom+xml")):
        return ClassificationLabel.FEED
    if mime in _XML_TYPES:
        return ClassificationLabel.SITEMAP
    if mime.endswith("+xml") and not mime.endswith(_DOCUMENT_XML_SUFFIXES):
        return ClassificationLabel.SITEMAP
    if mime == "application/json" or mime.endswith("+json"):
        return ClassificationLabel.JSON
    if mime == "text/plain":
        return ClassificationLabel.TEXT

    return ClassificationLabel.HTML


@dataclass
class DispatchContext:
    """Everything a strategy needs to process one classified URL."""

    url: str
    label: ClassificationLabel
    provider: CrawlProvider
    config: FetchConfig
    max_depth: int = DEFAULT_SMART_MAX_DEPTH
    follow_links: bool = False
    probed_content_type: str | None = None
    probe_failed: bool = False
    notes: list[str] = field(default_factory=list)

    def header(self) -> list[str]:
        lines = [f"Smart crawl detected content type: {self.label.value}"]
        if self.probe_failed:
            lines.append(PROBE_FAILED_NOTE)
        return lines

    def report(self, body: list[str], **fields) -> DispatchReport:
        text = "\n".join(self.header() + [""] + body)
        return DispatchReport(
            url=self.url,
            content_type=self.label,
            probed_content_type=self.probed_content_type,
            probe_failed=self.probe_failed,
            report=text,
            **fields,
        )


Strategy = Callable[[DispatchContext], Awaitable[DispatchReport]]


def _metadata_section(result: FetchResult) -> list[str]:
    page_metadata = result.metadata.get("page_metadata")
    if not page_metadata:
        return []
    return ["", "---", "Metadata:", json.dumps(page_metadata, indent=2, default=str)]


async def generic_strategy(ctx: DispatchContext) -> DispatchReport:
    """Fetch once and report the best available content."""
    result = await fetch_page_safe(ctx.provider, ctx.url, ctx.config)
    if not result.success:
        return ctx.report([f"Error: {result.error}"], error=result.error)

    body = [pick_content(result) or NO_CONTENT]
    body.extend(_metadata_section(result))
    return ctx.report(body)


async def _expand_sitemaps(
    ctx: DispatchContext, pages: list[str], nested: list[str]
) -> list[str]:
    """Replace nested sitemap entries with their URLs, down to ``ctx.max_depth``.

    At most ``max_nested_sitemaps`` nested sitemaps are fetched per run.
    Nested sitemaps beyond the depth limit or the fetch limit, or that fail
    to fetch, stay in the listing as plain URLs.
    """
    urls = list(pages)
    seen = set(urls)
    expanded = {ctx.url}
    frontier = deque((sitemap_url, 1) for sitemap_url in nested)
    fetch_limit = get_config("max_nested_sitemaps")
    fetched = 0
    skipped = 0

    def keep(url: str) -> None:
        if url not in seen:
            seen.add(url)
            urls.append(url)

    while frontier:
        sitemap_url, depth = frontier.popleft()
        if sitemap_url in expanded:
            continue
        expanded.add(sitemap_url)

        if depth > ctx.max_depth:
            keep(sitemap_url)
            continue
        if fetched >= fetch_limit:
            skipped += 1
            keep(sitemap_url)
            continue

        fetched += 1
        result = await fetch_page_safe(ctx.provider, sitemap_url, ctx.config)
        if not result.success:
            ctx.notes.append(f"Could not expand nested sitemap {sitemap_url}: {result.error}")
            keep(sitemap_url)
            continue

        child_pages, child_sitemaps = parse_sitemap_result(result)
        for page_url in child_pages:
            keep(page_url)
        frontier.extend((child, depth + 1) for child in child_sitemaps)

    if skipped:
        ctx.notes.append(
            f"Skipped expanding {skipped} nested sitemaps (limit: {fetch_limit} per crawl)"
        )
        logger.info(f"Nested sitemap limit reached for {ctx.url}: {skipped} not expanded")
    return urls


async def sitemap_strategy(ctx: DispatchContext) -> DispatchReport:
    """Fetch a sitemap, list its URLs and optionally fetch the first few."""
    result = await fetch_page_safe(ctx.provider, ctx.url, ctx.config)
    if not result.success:
        return ctx.report([f"Error: {result.error}"], error=result.error)

    pages, nested = parse_sitemap_result(result)
    urls = await _expand_sitemaps(ctx, pages, nested)

    body = [f"Total URLs found: {len(urls)}"]
    if urls:
        body.extend(["", "URLs:", format_url_listing(urls, get_config("sitemap_display_limit"))])
    body.extend(ctx.notes)

    if not ctx.follow_links:
        return ctx.report(body, urls_found=len(urls))

    follow_limit = get_config("follow_links_limit")
    to_follow = urls[:follow_limit]
    if not to_follow:
        if urls:
            body.extend(["", f"Link following disabled (follow_links_limit is {follow_limit})."])
        else:
            body.extend(["", "No URLs found to follow."])
        return ctx.report(body, urls_found=len(urls))

    followed = await fetch_many(
        ctx.provider, to_follow, ctx.config, get_config("follow_concurrency")
    )
    succeeded = sum(1 for r in followed if r.success)
    failed = len(followed) - succeeded

    body.extend(["", "---", f"Followed {len(to_follow)} links:"])
    for i, (link, link_result) in enumerate(zip(to_follow, followed), 1):
        if link_result.success:
            content = pick_content(link_result) or ""
            body.append(f"{i}. {link} (ok, {len(content)} chars)")
        else:
            body.append(f"{i}. {link} (failed: {link_result.error})")
    body.extend(["", f"Succeeded: {succeeded}", f"Failed: {failed}"])

    logger.info(f"Followed {len(to_follow)} sitemap links from {ctx.url}: {failed} failed")
    return ctx.report(
        body,
        urls_found=len(urls),
        links_followed=to_follow,
        links_succeeded=succeeded,
        links_failed=failed,
    )


STRATEGIES: dict[ClassificationLabel, Strategy] = {
    ClassificationLabel.SITEMAP: sitemap_strategy,
    ClassificationLabel.HTML: generic_strategy,
    ClassificationLabel.FEED: generic_strategy,
    ClassificationLabel.JSON: generic_strategy,
    ClassificationLabel.TEXT: generic_strategy,
}


async def smart_traverse(
    url: str,
    max_depth: int = DEFAULT_SMART_MAX_DEPTH,
    follow_links: bool = False,
    bypass_cache: bool = False,
    provider: CrawlProvider | None = None,
) -> DispatchReport:
    """Probe a URL, classify it and run the matching strategy.

    Probe failures degrade to the ``html`` strategy and are noted in the
    report. Fetch errors after classification are written into the report
    instead of being raised.

    Args:
        url: Target URL (http or https)
        max_depth: How many levels of nested sitemap indexes to expand
        follow_links: For sitemaps, also fetch the first discovered URLs
        bypass_cache: Skip the local and remote caches
        provider: Provider override (default: provider for the URL)

    Returns:
        DispatchReport that always names the classification label

    Raises:
        InvalidInputError: On a malformed URL or a negative max_depth
    """
    url = validate_url(url)
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
        raise InvalidInputError(f"max_depth must be a non-negative integer, got {max_depth!r}")

    provider = provider or get_provider(url)
    get_metrics().record_run("smart_crawl")

    probed_content_type = None
    probe_failed = False
    try:
        probe = await provider.probe(url, timeout=PROBE_TIMEOUT)
        probed_content_type = probe.content_type
    except Exception as e:
        probe_failed = True
        get_metrics().record_probe_failure()
        logger.debug(f"Content type probe failed for {url}: {format_error(e)}")

    label = classify(url, probed_content_type, probe_failed)
    logger.info(f"Smart crawl of {url} classified as {label.value}")

    ctx = DispatchContext(
        url=url,
        label=label,
        provider=provider,
        config=FetchConfig(
            cache_mode=CACHE_BYPASS if bypass_cache else CACHE_ENABLED,
            timeout=get_config("default_timeout"),
            max_retries=get_config("default_max_retries"),
        ),
        max_depth=max_depth,
        follow_links=follow_links,
        probed_content_type=probed_content_type,
        probe_failed=probe_failed,
    )
    return await STRATEGIES[label](ctx)
