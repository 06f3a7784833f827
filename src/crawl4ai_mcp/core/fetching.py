"""Shared single-fetch helpers used by every orchestration operation."""

from __future__ import annotations

import asyncio
import logging

from crawl4ai_mcp.errors import format_error
from crawl4ai_mcp.metrics import record_fetch
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig, FetchResult

logger = logging.getLogger(__name__)

NO_CONTENT = "No content extracted"


async def fetch_page_safe(
    provider: CrawlProvider,
    url: str,
    config: FetchConfig | None = None,
) -> FetchResult:
    """Fetch a page, turning every failure into a failed FetchResult.

    Args:
        provider: The crawl provider to use
        url: The URL to fetch
        config: Session, cache and render options

    Returns:
        FetchResult; ``success`` is False and ``error`` is set when the
        remote call raised or the remote crawl reported a failure
    """
    try:
        result = await provider.fetch(url, config)
    except Exception as e:
        error_msg = format_error(e)
        logger.debug(f"Fetch failed for {url}: {error_msg}")
        record_fetch(url=url, success=False, error=error_msg)
        return FetchResult(url=url, success=False, error=error_msg)

    if not result.success and not result.error:
        result.error = "Crawl failed"

    record_fetch(
        url=url,
        success=result.success,
        elapsed_ms=result.metadata.get("elapsed_ms"),
        attempts=result.metadata.get("attempts", 1),
        from_cache=bool(result.metadata.get("from_cache")),
        error=result.error,
    )
    return result


def pick_content(result: FetchResult) -> str | None:
    """Choose the best available content of a fetch result.

    Structured text wins, then raw markup, then the pre-filtered markup;
    the first non-empty candidate is returned.
    """
    for candidate in (result.text_content, result.raw_markup, result.filtered_markup):
        if candidate and candidate.strip():
            return candidate
    return None


async def _fetch_bounded(
    provider: CrawlProvider,
    url: str,
    config: FetchConfig | None,
    semaphore: asyncio.Semaphore,
) -> FetchResult:
    async with semaphore:
        return await fetch_page_safe(provider, url, config)


async def fetch_many(
    provider: CrawlProvider,
    urls: list[str],
    config: FetchConfig | None,
    concurrency: int,
) -> list[FetchResult]:
    """Fetch several URLs concurrently, at most ``concurrency`` at a time.

    Results come back in the order of ``urls``; failures are failed results.
    """
    semaphore = asyncio.Semaphore(concurrency)
    tasks = [_fetch_bounded(provider, url, config, semaphore) for url in urls]
    return list(await asyncio.gather(*tasks))
