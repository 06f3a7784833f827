"""Concurrent crawl of an explicit list of URLs."""

from __future__ import annotations

import logging

from crawl4ai_mcp.admin.service import get_config
from crawl4ai_mcp.core.fetching import fetch_many, pick_content
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.errors import InvalidInputError
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.models.crawl import BatchCrawlResult, BatchItem
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig
from crawl4ai_mcp.providers.base import CACHE_BYPASS, CACHE_ENABLED
from crawl4ai_mcp.utils import validate_url

logger = logging.getLogger(__name__)

MAX_CONCURRENCY = 20
# Tags dropped by the remote crawler when images are not wanted
IMAGE_TAGS = ["img", "picture", "svg"]


async def crawl_batch(
    urls: list[str],
    max_concurrent: int | None = None,
    remove_images: bool = False,
    bypass_cache: bool = False,
    provider: CrawlProvider | None = None,
) -> BatchCrawlResult:
    """Fetch every URL in ``urls`` with bounded concurrency.

    Every URL is validated before anything is fetched. Failures are
    reported per URL and never abort the batch.

    Args:
        urls: URLs to crawl, at most ``batch_max_urls`` of them
        max_concurrent: Parallel fetches (default: ``follow_concurrency``)
        remove_images: Drop img, picture and svg elements from the content
        bypass_cache: Skip the local and remote caches
        provider: Provider override (default: provider for the first URL)

    Returns:
        BatchCrawlResult with one item per URL, in request order

    Raises:
        InvalidInputError: On an empty or oversized list, a malformed URL or
            an out-of-range ``max_concurrent``
    """
    if not urls:
        raise InvalidInputError("urls must contain at least one URL")
    limit = get_config("batch_max_urls")
    if len(urls) > limit:
        raise InvalidInputError(f"Too many URLs: {len(urls)} (limit: {limit})")
    urls = [validate_url(url) for url in urls]

    if max_concurrent is None:
        max_concurrent = get_config("follow_concurrency")
    if (
        isinstance(max_concurrent, bool)
        or not isinstance(max_concurrent, int)
        or not 1 <= max_concurrent <= MAX_CONCURRENCY
    ):
        raise InvalidInputError(
            f"max_concurrent must be between 1 and {MAX_CONCURRENCY}, got {max_concurrent!r}"
        )

    provider = provider or get_provider(urls[0])
    get_metrics().record_run("batch_crawl")

    config = FetchConfig(
        cache_mode=CACHE_BYPASS if bypass_cache else CACHE_ENABLED,
        timeout=get_config("default_timeout"),
        max_retries=get_config("default_max_retries"),
        extra={"exclude_tags": list(IMAGE_TAGS)} if remove_images else {},
    )
    results = await fetch_many(provider, urls, config, max_concurrent)

    items = []
    lines = []
    for i, (url, result) in enumerate(zip(urls, results), 1):
        content = pick_content(result) if result.success else None
        items.append(
            BatchItem(
                url=url,
                success=result.success,
                content_length=len(content or ""),
                error=result.error,
            )
        )
        status = "Success" if result.success else f"Failed ({result.error})"
        lines.append(f"{i}. {url}: {status}")

    successful = sum(1 for item in items if item.success)
    failed = len(items) - successful
    logger.info(f"Batch crawl of {len(urls)} URLs: {successful} succeeded, {failed} failed")

    report = f"Batch crawl completed. Processed {len(items)} URLs:\n\n" + "\n".join(lines)
    return BatchCrawlResult(
        total=len(items),
        successful=successful,
        failed=failed,
        results=items,
        report=report,
    )
