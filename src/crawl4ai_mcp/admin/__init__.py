"""Operator-facing HTTP API: health, stats, runtime config, cache and sessions.

Handlers in ``router`` are thin JSON wrappers over ``service``.
"""

from crawl4ai_mcp.admin.router import (
    api_cache_clear,
    api_config_get,
    api_config_update,
    api_sessions,
    api_stats,
    health_check,
)
from crawl4ai_mcp.admin.service import (
    clear_cache,
    get_config,
    get_current_config,
    get_stats,
    list_sessions,
    reset_config,
    update_config,
)

__all__ = [
    "api_cache_clear",
    "api_config_get",
    "api_config_update",
    "api_sessions",
    "api_stats",
    "clear_cache",
    "get_config",
    "get_current_config",
    "get_stats",
    "health_check",
    "list_sessions",
    "reset_config",
    "update_config",
]
