"""Link extraction and categorization for a single page."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from crawl4ai_mcp.admin.service import get_config
from crawl4ai_mcp.core.fetching import fetch_page_safe
from crawl4ai_mcp.core.providers import get_provider
from crawl4ai_mcp.errors import RemoteFetchError
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.models.crawl import LinkReport
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig, FetchResult
from crawl4ai_mcp.providers.base import CACHE_BYPASS
from crawl4ai_mcp.utils import extract_anchor_links, same_host, validate_url

logger = logging.getLogger(__name__)

LINK_CATEGORIES = ("internal", "external", "social", "documents", "images", "scripts")
SOCIAL_DOMAINS = ("facebook.com", "twitter.com", "linkedin.com", "instagram.com", "youtube.com")
DOCUMENT_EXTENSIONS = (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp")
SCRIPT_EXTENSIONS = (".js", ".css")

CATEGORY_DISPLAY_LIMIT = 10
LINK_DISPLAY_LIMIT = 50

_JSON_MARKERS = ('"links"', '"url"', '"data"', "application/json")


def _is_social(url: str) -> bool:
    host = (urlsplit(url).hostname or "").lower()
    return any(host == domain or host.endswith(f".{domain}") for domain in SOCIAL_DOMAINS)


def categorize_link(url: str, internal: bool) -> str:
    """Assign a link to one of ``LINK_CATEGORIES``.

    Social networks are only recognized for external links; file types are
    judged by the extension of the URL path.

    Examples:
        >>> categorize_link("https://example.com/report.PDF", internal=True)
        'documents'
        >>> categorize_link("https://www.youtube.com/watch?v=1", internal=False)
        'social'
    """
    if not internal and _is_social(url):
        return "social"

    path = urlsplit(url).path.lower()
    if path.endswith(DOCUMENT_EXTENSIONS):
        return "documents"
    if path.endswith(IMAGE_EXTENSIONS):
        return "images"
    if path.endswith(SCRIPT_EXTENSIONS):
        return "scripts"
    return "internal" if internal else "external"


def _looks_like_json(url: str, result: FetchResult) -> bool:
    if "/api/" in url or "/api." in url:
        return True
    text = (result.text_content or "").strip()
    if (text.startswith("{") and text.endswith("}")) or (
        text.startswith("[") and text.endswith("]")
    ):
        return True
    return any(marker in text for marker in _JSON_MARKERS) or (
        "application/json" in (result.raw_markup or "")
    )


def _split_by_host(url: str, links: list[str]) -> tuple[list[str], list[str]]:
    internal = [link for link in links if same_host(link, url)]
    external = [link for link in links if not same_host(link, url)]
    return internal, external


def _format_categories(url: str, categories: dict[str, list[str]]) -> str:
    sections = []
    for name in LINK_CATEGORIES:
        links = categories[name]
        section = f"{name} ({len(links)}):"
        if links:
            section += "\n" + "\n".join(links[:CATEGORY_DISPLAY_LIMIT])
        if len(links) > CATEGORY_DISPLAY_LIMIT:
            section += "\n..."
        sections.append(section)
    return f"Link analysis for {url}:\n\n" + "\n\n".join(sections)


async def analyze_links(
    url: str,
    categorize: bool = True,
    provider: CrawlProvider | None = None,
) -> LinkReport:
    """Fetch a page and report the links it contains.

    The page is always fetched fresh. Links come from the remote crawl
    result; when it reports none, ``<a href>`` targets are pulled out of
    the raw markup instead. Pages that look like JSON get a note rather
    than an empty listing.

    Args:
        url: The URL to analyze
        categorize: Group links into internal, external, social, documents,
            images and scripts (default: True)
        provider: Provider override (default: provider for the URL)

    Raises:
        InvalidInputError: On a malformed URL
        RemoteFetchError: If the page could not be fetched
    """
    url = validate_url(url)
    provider = provider or get_provider(url)
    get_metrics().record_run("extract_links")

    config = FetchConfig(
        cache_mode=CACHE_BYPASS,
        timeout=get_config("default_timeout"),
        max_retries=get_config("default_max_retries"),
    )
    result = await fetch_page_safe(provider, url, config)
    if not result.success:
        raise RemoteFetchError(f"Could not fetch {url}: {result.error}")

    internal, external = list(result.internal_links), list(result.external_links)
    if not internal and not external:
        if _looks_like_json(url, result):
            report = (
                f"Note: {url} appears to return JSON data rather than HTML. "
                "Link extraction needs HTML pages with <a> tags; parse the JSON "
                "structure directly to get its URLs."
            )
            return LinkReport(url=url, total=0, json_content=True, report=report)
        if result.raw_markup:
            internal, external = _split_by_host(
                url, extract_anchor_links(result.raw_markup, result.url or url)
            )
            logger.debug(f"No remote links for {url}; parsed {len(internal) + len(external)} from markup")

    links = internal + external
    logger.info(f"Extracted {len(links)} links from {url}")

    if not categorize:
        report = f"All links from {url} ({len(links)} total):\n\n" + "\n".join(
            links[:LINK_DISPLAY_LIMIT]
        )
        if len(links) > LINK_DISPLAY_LIMIT:
            report += "\n..."
        return LinkReport(url=url, total=len(links), links=links, report=report)

    categories: dict[str, list[str]] = {name: [] for name in LINK_CATEGORIES}
    for link in internal:
        categories[categorize_link(link, internal=True)].append(link)
    for link in external:
        categories[categorize_link(link, internal=False)].append(link)

    return LinkReport(
        url=url,
        total=len(links),
        links=links,
        categories=categories,
        report=_format_categories(url, categories),
    )
