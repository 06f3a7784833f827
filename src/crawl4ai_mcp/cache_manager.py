"""Disk cache of successful crawl results, backed by diskcache.

Entries are plain dicts keyed by a hash of the URL and the render options
that change the output. Each entry expires on its own schedule: sitemaps and
feeds go stale quickly, static assets rarely change.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any

import diskcache

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = "/app/cache"
DEFAULT_SIZE_LIMIT = int(1e9)  # 1GB
SIZE_WARNING_RATIO = 0.9

# TTL values in seconds
DEFAULT_TTL = 3600
INDEX_TTL = 900
STATIC_ASSET_TTL = 86400

# First matching rule wins
_TTL_RULES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("sitemap", "rss", "feed", "atom"), INDEX_TTL),
    (("static", "cdn", "cloudfront"), STATIC_ASSET_TTL),
)


def resolve_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Pick and create the cache directory.

    Uses ``cache_dir`` when given, otherwise ``CACHE_DIR`` (default
    /app/cache). An unwritable environment directory falls back to
    ``./.cache`` so local runs work without a container volume.
    """
    if cache_dir is not None:
        path = Path(cache_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    configured = os.getenv("CACHE_DIR", DEFAULT_CACHE_DIR)
    path = Path(configured)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        path = Path.cwd() / ".cache"
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Could not create cache at {configured}, using fallback: {path}")
    return path


class CacheManager:
    """Process-safe store of crawl results with per-entry expiry and LRU eviction."""

    def __init__(
        self,
        cache_dir: str | Path | None = None,
        size_limit: int = DEFAULT_SIZE_LIMIT,
    ) -> None:
        """Open (or create) the cache.

        Args:
            cache_dir: Directory for cache storage (default: CACHE_DIR env)
            size_limit: Maximum cache size in bytes (default: 1GB)
        """
        self.cache_dir = resolve_cache_dir(cache_dir)
        self.size_limit = size_limit
        self.cache = diskcache.Cache(
            directory=str(self.cache_dir),
            size_limit=size_limit,
            eviction_policy="least-recently-used",
            statistics=True,
            cull_limit=10,
        )
        logger.info(f"Crawl cache opened at {self.cache_dir} ({size_limit / 1e9:.1f}GB limit)")
        self._warn_if_near_limit()

    def make_key(self, url: str, **options: Any) -> str:
        """Hash a URL and its output-affecting options into a cache key.

        Option order does not matter; values that are not JSON-native are
        stringified.
        """
        material = json.dumps({"url": url, **options}, sort_keys=True, default=str)
        return hashlib.sha256(material.encode()).hexdigest()

    def ttl_for(self, url: str) -> int:
        """Seconds an entry for ``url`` stays fresh."""
        lowered = url.lower()
        for markers, ttl in _TTL_RULES:
            if any(marker in lowered for marker in markers):
                return ttl
        return DEFAULT_TTL

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached entry, or None on a miss or backend error."""
        try:
            entry = self.cache.get(key, default=None, retry=True)
        except Exception as e:
            logger.error(f"Cache read failed: {e}")
            return None

        logger.debug(f"Cache {'hit' if entry is not None else 'miss'}: {key[:16]}")
        return entry

    def put(self, key: str, entry: dict[str, Any], ttl: int | None = None) -> bool:
        """Store an entry; ``ttl=None`` keeps it until evicted.

        Returns:
            True if the entry was written
        """
        try:
            return bool(self.cache.set(key, entry, expire=ttl, retry=True))
        except Exception as e:
            logger.error(f"Cache write failed: {e}")
            return False

    def clear(self) -> int:
        """Drop every entry and reset hit/miss counters.

        Returns:
            Number of entries removed
        """
        try:
            removed = self.cache.clear(retry=True)
        except Exception as e:
            logger.error(f"Cache clear failed: {e}")
            return 0

        self.cache.stats(reset=True)
        logger.info(f"Crawl cache cleared ({removed} entries)")
        return removed

    def expire(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        try:
            removed = self.cache.expire(retry=True)
        except Exception as e:
            logger.error(f"Cache expire failed: {e}")
            return 0

        logger.info(f"Removed {removed} expired crawl cache entries")
        return removed

    def get_stats(self) -> dict[str, Any]:
        """Summarize size, utilization and hit rate."""
        try:
            volume = self.cache.volume()
            hits, misses = self.cache.stats()
        except Exception as e:
            logger.error(f"Cache stats failed: {e}")
            return {"error": str(e)}

        lookups = hits + misses
        return {
            "entry_count": len(self.cache),
            "size_mb": round(volume / (1024 * 1024), 2),
            "size_limit_mb": round(self.size_limit / (1024 * 1024), 2),
            "utilization_percent": round(volume / self.size_limit * 100, 2),
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / lookups, 4) if lookups else 0.0,
            "cache_dir": str(self.cache_dir),
        }

    def _warn_if_near_limit(self) -> None:
        try:
            volume = self.cache.volume()
        except Exception as e:
            logger.error(f"Could not read cache size: {e}")
            return

        if volume >= self.size_limit * SIZE_WARNING_RATIO:
            logger.warning(
                f"Crawl cache is at {volume / (1024 * 1024):.0f} MB of "
                f"{self.size_limit / (1024 * 1024):.0f} MB; older entries will be evicted"
            )

    def close(self) -> None:
        self.cache.close()


_cache_manager: CacheManager | None = None


def get_cache_manager() -> CacheManager:
    """Get or create the shared cache manager."""
    global _cache_manager

    if _cache_manager is None:
        _cache_manager = CacheManager()

    return _cache_manager
