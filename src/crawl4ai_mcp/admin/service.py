"""Admin service layer for configuration and stats management."""

from __future__ import annotations

import copy
import logging
from typing import Any

from crawl4ai_mcp.cache_manager import get_cache_manager
from crawl4ai_mcp.metrics import get_metrics
from crawl4ai_mcp.sessions.service import get_session_manager

logger = logging.getLogger(__name__)

# Defaults for orchestration operations
DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_PAGES = 50
DEFAULT_SMART_MAX_DEPTH = 2
FOLLOW_LINKS_LIMIT = 10
FOLLOW_CONCURRENCY = 3
MAX_NESTED_SITEMAPS = 10
BATCH_MAX_URLS = 50

_DEFAULTS: dict[str, Any] = {
    "default_timeout": 60,
    "default_max_retries": 2,
    "follow_links_limit": FOLLOW_LINKS_LIMIT,
    "follow_concurrency": FOLLOW_CONCURRENCY,
    "sitemap_display_limit": 100,
    "max_nested_sitemaps": MAX_NESTED_SITEMAPS,
    "batch_max_urls": BATCH_MAX_URLS,
}

# Runtime configuration overrides (not persisted)
_runtime_config: dict[str, Any] = copy.deepcopy(_DEFAULTS)

# key -> (minimum, maximum), inclusive
_INT_BOUNDS: dict[str, tuple[int, int]] = {
    "default_timeout": (1, 600),
    "default_max_retries": (0, 10),
    "follow_links_limit": (0, 100),
    "follow_concurrency": (1, 20),
    "sitemap_display_limit": (1, 10000),
    "max_nested_sitemaps": (0, 100),
    "batch_max_urls": (1, 500),
}


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value with runtime override support.

    Args:
        key: Configuration key
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    return _runtime_config.get(key, default)


def get_stats() -> dict[str, Any]:
    """Get server statistics and metrics.

    Returns:
        Dictionary with fetch metrics, cache stats and active session count
    """
    stats = get_metrics().to_dict()

    try:
        stats["cache"] = get_cache_manager().get_stats()
    except Exception as e:
        logger.error(f"Cache stats unavailable: {e}")
        stats["cache"] = {"error": "Cache stats unavailable"}

    stats["sessions"] = {"active": get_session_manager().count()}
    return stats


def get_current_config() -> dict[str, Any]:
    """Get current runtime configuration.

    Returns:
        Dictionary with current config, defaults, and note
    """
    return {
        "config": _runtime_config,
        "defaults": _DEFAULTS,
        "note": "Changes are not persisted and will reset on server restart",
    }


def update_config(config_updates: dict[str, Any]) -> dict[str, Any]:
    """Update runtime configuration.

    Unknown keys and out-of-range values are ignored.

    Args:
        config_updates: Dictionary of config key-value pairs to update

    Returns:
        Dictionary with status, message, updated keys, and current config
    """
    updated = []
    for key, value in config_updates.items():
        bounds = _INT_BOUNDS.get(key)
        if bounds is None or isinstance(value, bool) or not isinstance(value, int):
            continue

        minimum, maximum = bounds
        if not minimum <= value <= maximum:
            continue

        _runtime_config[key] = value
        updated.append(key)

    if updated:
        logger.info(f"Runtime config updated: {', '.join(updated)}")

    return {
        "status": "success",
        "message": f"Updated {len(updated)} config value(s)",
        "updated": updated,
        "current_config": _runtime_config,
    }


def reset_config() -> None:
    """Restore all runtime configuration values to their defaults."""
    _runtime_config.clear()
    _runtime_config.update(copy.deepcopy(_DEFAULTS))


def clear_cache() -> dict[str, Any]:
    """Clear all cache entries.

    Returns:
        Dictionary with status, message and number of removed entries
    """
    removed = get_cache_manager().clear()
    return {
        "status": "success",
        "message": "Cache cleared successfully",
        "entries_removed": removed,
    }


def list_sessions() -> dict[str, Any]:
    """Get the session registry contents for the admin API."""
    return get_session_manager().list_sessions().model_dump(mode="json")
