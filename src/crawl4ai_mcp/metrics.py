"""In-process counters for remote fetches and orchestration runs.

Nothing here is persisted; counters reset when the server restarts.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

RECENT_FETCHES_KEPT = 50
RECENT_ERRORS_KEPT = 20
RECENT_SHOWN = 10


@dataclass
class FetchRecord:
    """Outcome of one call to the remote crawl service."""

    url: str
    success: bool
    timestamp: datetime = field(default_factory=datetime.now)
    elapsed_ms: float | None = None
    attempts: int = 1
    from_cache: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class FetchCounters:
    total: int = 0
    successful: int = 0
    failed: int = 0
    from_cache: int = 0
    retries: int = 0

    def add(self, record: FetchRecord) -> None:
        self.total += 1
        if record.success:
            self.successful += 1
        else:
            self.failed += 1
        if record.from_cache:
            self.from_cache += 1
        self.retries += max(record.attempts - 1, 0)


def _newest_first(records: deque[FetchRecord]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in reversed(list(records)[-RECENT_SHOWN:])]


@dataclass
class ServerMetrics:
    """Fetch counters, per-operation run counts and recent fetch history."""

    start_time: datetime = field(default_factory=datetime.now)
    fetches: FetchCounters = field(default_factory=FetchCounters)
    probe_failures: int = 0
    runs: Counter[str] = field(default_factory=Counter)
    recent_fetches: deque[FetchRecord] = field(
        default_factory=lambda: deque(maxlen=RECENT_FETCHES_KEPT)
    )
    recent_errors: deque[FetchRecord] = field(
        default_factory=lambda: deque(maxlen=RECENT_ERRORS_KEPT)
    )

    def record_fetch(
        self,
        url: str,
        success: bool,
        elapsed_ms: float | None = None,
        attempts: int = 1,
        from_cache: bool = False,
        error: str | None = None,
    ) -> None:
        """Count a fetch and keep it in the recent history.

        ``attempts`` includes the first try, so a fetch that succeeded on
        its third attempt adds two retries.
        """
        record = FetchRecord(
            url=url,
            success=success,
            elapsed_ms=elapsed_ms,
            attempts=attempts,
            from_cache=from_cache,
            error=error,
        )
        self.fetches.add(record)
        self.recent_fetches.append(record)
        if not success:
            self.recent_errors.append(record)

    def record_run(self, operation: str) -> None:
        self.runs[operation] += 1

    def record_probe_failure(self) -> None:
        self.probe_failures += 1

    def get_uptime_seconds(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def get_success_rate(self) -> float:
        """Percentage of fetches that produced a usable page; 0 before the first fetch."""
        if not self.fetches.total:
            return 0.0
        return self.fetches.successful * 100 / self.fetches.total

    def to_dict(self) -> dict[str, Any]:
        uptime = self.get_uptime_seconds()
        fetches = asdict(self.fetches)
        fetches["success_rate"] = round(self.get_success_rate(), 2)

        return {
            "status": "healthy",
            "uptime": {"seconds": uptime, "formatted": self._format_uptime(uptime)},
            "start_time": self.start_time.isoformat(),
            "fetches": fetches,
            "probe_failures": self.probe_failures,
            "runs": dict(self.runs),
            "recent_fetches": _newest_first(self.recent_fetches),
            "recent_errors": _newest_first(self.recent_errors),
        }

    @staticmethod
    def _format_uptime(seconds: float) -> str:
        """Render the two most significant units, e.g. ``2h 1m``."""
        days, rest = divmod(int(seconds), 86400)
        hours, rest = divmod(rest, 3600)
        minutes, secs = divmod(rest, 60)
        if days:
            return f"{days}d {hours}h"
        if hours:
            return f"{hours}h {minutes}m"
        if minutes:
            return f"{minutes}m {secs}s"
        return f"{secs}s"


_metrics = ServerMetrics()


def get_metrics() -> ServerMetrics:
    return _metrics


def record_fetch(
    url: str,
    success: bool,
    elapsed_ms: float | None = None,
    attempts: int = 1,
    from_cache: bool = False,
    error: str | None = None,
) -> None:
    """Record a remote fetch in the process-wide metrics."""
    _metrics.record_fetch(url, success, elapsed_ms, attempts, from_cache, error)
