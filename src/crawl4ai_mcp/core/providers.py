"""Provider initialization for the crawl MCP server."""

from __future__ import annotations

from crawl4ai_mcp.errors import InvalidInputError
from crawl4ai_mcp.providers import Crawl4AIProvider, CrawlProvider

_default_provider: CrawlProvider | None = None


def get_default_provider() -> CrawlProvider:
    """Get or create the shared provider.

    Created lazily so that importing the server does not open the disk cache.
    """
    global _default_provider

    if _default_provider is None:
        _default_provider = Crawl4AIProvider()

    return _default_provider


def set_default_provider(provider: CrawlProvider | None) -> None:
    """Replace the shared provider (None resets to lazy creation)."""
    global _default_provider
    _default_provider = provider


def get_provider(url: str) -> CrawlProvider:
    """Get the appropriate provider for a URL.

    Args:
        url: The URL to crawl

    Returns:
        A crawl provider that supports the URL

    Raises:
        InvalidInputError: If no provider supports the URL
    """
    provider = get_default_provider()
    if provider.supports_url(url):
        return provider

    raise InvalidInputError(f"No provider supports URL: {url}")
