"""Utility functions for URL handling, link extraction and sitemap parsing."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from crawl4ai_mcp.errors import InvalidInputError

SUPPORTED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

# Default number of URLs shown in a listing before truncation
URL_DISPLAY_LIMIT = 100


def is_supported_url(url: str) -> bool:
    """Check whether a URL is an absolute http(s) URL with a host.

    Args:
        url: The URL to check

    Returns:
        True if the URL can be handed to the crawl service
    """
    try:
        parsed = urlsplit(url)
        return parsed.scheme.lower() in SUPPORTED_SCHEMES and bool(parsed.hostname)
    except ValueError:
        return False


def validate_url(url: str) -> str:
    """Validate a caller-supplied URL.

    Args:
        url: The URL to validate

    Returns:
        The URL, stripped of surrounding whitespace

    Raises:
        InvalidInputError: If the URL is empty, malformed or not http(s)
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError("URL must be a non-empty string")

    url = url.strip()
    if not is_supported_url(url):
        raise InvalidInputError(f"Invalid URL (must be http:// or https://): {url}")
    return url


def normalize_url(href: str, base_url: str | None = None) -> str | None:
    """Resolve and normalize a link for deduplication.

    Relative links are resolved against ``base_url``, the fragment is dropped,
    scheme and host are lowercased, default ports are removed and an empty
    path becomes ``/``.

    Args:
        href: Link as found on the page
        base_url: URL of the page the link was found on

    Returns:
        Normalized absolute URL, or None if the link uses an unsupported
        scheme (javascript:, mailto:, data:, ...) or cannot be parsed
    """
    href = (href or "").strip()
    if not href:
        return None

    try:
        absolute = urljoin(base_url, href) if base_url else href
        parsed = urlsplit(absolute)
        scheme = parsed.scheme.lower()
        if scheme not in SUPPORTED_SCHEMES or not parsed.hostname:
            return None

        host = parsed.hostname.lower()
        port = parsed.port
    except ValueError:
        return None

    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    if parsed.username:
        userinfo = parsed.username
        if parsed.password:
            userinfo += f":{parsed.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parsed.path or "/"
    return urlunsplit((scheme, netloc, path, parsed.query, ""))


def same_host(url: str, other: str) -> bool:
    """Check whether two URLs point at the same hostname."""
    try:
        first = urlsplit(url).hostname
        second = urlsplit(other).hostname
    except ValueError:
        return False
    return first is not None and first.lower() == (second or "").lower()


def compile_pattern(pattern: str | None, name: str = "pattern") -> re.Pattern[str] | None:
    """Compile an optional caller-supplied regular expression.

    Args:
        pattern: Regex source, or None/empty for "no filter"
        name: Parameter name used in the error message

    Returns:
        Compiled pattern, or None when no pattern was given

    Raises:
        InvalidInputError: If the pattern does not compile
    """
    if pattern is None or pattern == "":
        return None

    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidInputError(f"Invalid {name} '{pattern}': {e}") from e


_SITEMAP_ROOT = re.compile(r"<(?:[\w-]+:)?(?:urlset|sitemapindex)\b")
# Parents of <loc> in the sitemap protocol; extensions (image:loc, video:loc) nest elsewhere
_SITEMAP_ENTRY_TAGS = ("url", "sitemap")


def is_sitemap_xml(content: str) -> bool:
    """Check whether markup is served XML rather than a rendered HTML copy."""
    stripped = content.lstrip()
    return stripped.startswith("<?xml") or bool(_SITEMAP_ROOT.match(stripped))


def extract_sitemap_entries(content: str) -> tuple[list[str], list[str]]:
    """Split the ``<loc>`` URLs of sitemap markup into pages and nested sitemaps.

    Served XML is parsed with the XML parser, where only ``<loc>`` elements
    directly under ``<url>`` or ``<sitemap>`` count. Rendered copies are
    parsed as HTML and every ``<loc>`` counts. A ``<loc>`` inside
    ``<sitemap>`` (a sitemap index entry) is a nested sitemap; every other
    one is a page.

    Args:
        content: Sitemap XML or markup containing <loc> elements

    Returns:
        Tuple of (page URLs, nested sitemap URLs), each in document order
        with duplicates and relative entries removed
    """
    pages: list[str] = []
    sitemaps: list[str] = []
    if not content:
        return pages, sitemaps

    as_xml = is_sitemap_xml(content)
    if as_xml:
        soup = BeautifulSoup(content.lstrip(), "xml")
    else:
        soup = BeautifulSoup(content, "lxml")
    seen: set[str] = set()

    for loc in soup.find_all("loc"):
        parent = loc.parent
        parent_name = parent.name if parent is not None else None
        if as_xml and parent_name not in _SITEMAP_ENTRY_TAGS:
            continue

        url = loc.get_text(strip=True)
        if not url.startswith(("http://", "https://")) or url in seen:
            continue
        seen.add(url)

        if parent_name == "sitemap":
            sitemaps.append(url)
        else:
            pages.append(url)

    return pages, sitemaps


def format_url_listing(urls: list[str], limit: int = URL_DISPLAY_LIMIT) -> str:
    """Render a newline-separated URL listing truncated at ``limit`` entries.

    Examples:
        >>> format_url_listing(["https://a.example/1", "https://a.example/2"], limit=1)
        'https://a.example/1\\n... and 1 more'
    """
    listing = "\n".join(urls[:limit])
    if len(urls) > limit:
        listing += f"\n... and {len(urls) - limit} more"
    return listing


def extract_anchor_links(html: str, base_url: str) -> list[str]:
    """Extract the targets of all ``<a href>`` elements in HTML.

    Args:
        html: The HTML content to process
        base_url: URL of the page, for resolving relative links

    Returns:
        Normalized absolute http(s) URLs in document order, without duplicates
    """
    soup = BeautifulSoup(html, "lxml")
    links: list[str] = []
    seen: set[str] = set()

    for anchor in soup.find_all("a", href=True):
        url = normalize_url(anchor["href"], base_url)
        if url is None or url in seen:
            continue
        seen.add(url)
        links.append(url)

    return links
