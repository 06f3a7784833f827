"""Core infrastructure shared across the application.

Provides the single source of truth for the remote crawl provider and the
failure-isolating fetch helpers used by the traversal, dispatch and session
modules.
"""

from crawl4ai_mcp.core.fetching import (
    NO_CONTENT,
    fetch_many,
    fetch_page_safe,
    pick_content,
)
from crawl4ai_mcp.core.providers import (
    get_default_provider,
    get_provider,
    set_default_provider,
)

__all__ = [
    "NO_CONTENT",
    "fetch_many",
    "fetch_page_safe",
    "pick_content",
    "get_default_provider",
    "get_provider",
    "set_default_provider",
]
