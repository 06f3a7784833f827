"""Single-page crawl, optionally inside a registered session."""

from __future__ import annotations

import logging

from crawl4ai_mcp.admin.service import get_config
from crawl4ai_mcp.core.fetching import NO_CONTENT, fetch_page_safe, pick_content
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.errors import InvalidInputError
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.models.crawl import PageCrawlResult
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig
from crawl4ai_mcp.providers.base import (
    BROWSER_TYPES,
    CACHE_BYPASS,
    CACHE_ENABLED,
    DEFAULT_BROWSER_TYPE,
)
from crawl4ai_mcp.sessions.service import get_session_manager
from crawl4ai_mcp.utils import validate_url

logger = logging.getLogger(__name__)


async def crawl_page(
    url: str,
    session_id: str | None = None,
    bypass_cache: bool = False,
    browser_type: str | None = None,
    provider: CrawlProvider | None = None,
) -> PageCrawlResult:
    """Fetch one page and return its best available content.

    When ``session_id`` is given the fetch runs in that remote session and
    the session record, if registered, is touched. The browser type of a
    registered session wins over ``browser_type``.

    Raises:
        InvalidInputError: On a malformed URL or unknown browser type
    """
    url = validate_url(url)
    sessions = get_session_manager()

    record = sessions.get(session_id) if session_id else None
    if record is not None:
        browser_type = record.browser_type
    browser_type = browser_type or DEFAULT_BROWSER_TYPE
    if browser_type not in BROWSER_TYPES:
        raise InvalidInputError(
            f"Invalid browser_type '{browser_type}' (expected one of: {', '.join(BROWSER_TYPES)})"
        )

    provider = provider or get_provider(url)
    get_metrics().record_run("crawl")

    config = FetchConfig(
        session_id=session_id,
        cache_mode=CACHE_BYPASS if bypass_cache else CACHE_ENABLED,
        browser_type=browser_type,
        timeout=get_config("default_timeout"),
        max_retries=get_config("default_max_retries"),
    )
    result = await fetch_page_safe(provider, url, config)
    if session_id:
        if not sessions.touch(session_id):
            logger.debug(f"Crawl used unregistered session id: {session_id}")

    content = pick_content(result) if result.success else None
    return PageCrawlResult(
        url=result.url or url,
        success=result.success,
        session_id=session_id,
        content=content or NO_CONTENT,
        internal_links=len(result.internal_links),
        external_links=len(result.external_links),
        metadata=result.metadata,
        error=result.error,
    )
