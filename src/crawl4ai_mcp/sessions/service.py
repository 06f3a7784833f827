"""Session registry: correlates caller-chosen ids with remote browsing contexts.

The registry is purely a local correlation table. Removing a record does not
release the browser context held by the remote crawler; the remote side
cleans those up on its own schedule (after inactivity or on restart).
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from collections.abc import Callable
from datetime import datetime, timezone

from crawl4ai_mcp.core.fetching import fetch_page_safe
from crawl4ai_mcp.core.providers import get_default_provider
from crawl4ai_mcp.errors import InvalidInputError
from crawl4ai_mcp.models.sessions import (
    SessionClearResponse,
    SessionCreateResponse,
    SessionInfo,
    SessionListResponse,
    SessionRecord,
)
from crawl4ai_mcp.providers import CrawlProvider, FetchConfig
from crawl4ai_mcp.providers.base import BROWSER_TYPES, CACHE_BYPASS, DEFAULT_BROWSER_TYPE
from crawl4ai_mcp.sessions.store import InMemorySessionStore, SessionStore
from crawl4ai_mcp.utils import validate_url

logger = logging.getLogger(__name__)

PRIMING_TIMEOUT = 30  # seconds

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_id() -> str:
    """Generate an id of the form ``session-<epoch ms>-<9 random chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"session-{int(time.time() * 1000)}-{suffix}"


class SessionManager:
    """Create, touch, clear and list session records."""

    def __init__(
        self,
        store: SessionStore | None = None,
        provider: CrawlProvider | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Backing store (default: in-memory)
            provider: Provider used for priming fetches (default: shared provider)
            clock: Source of the current time
        """
        self.store = store if store is not None else InMemorySessionStore()
        self._provider = provider
        self.clock = clock

    @property
    def provider(self) -> CrawlProvider:
        return self._provider or get_default_provider()

    async def create(
        self,
        session_id: str | None = None,
        initial_url: str | None = None,
        browser_type: str | None = None,
    ) -> SessionCreateResponse:
        """Register a new session, optionally priming it with a first fetch.

        The record exists before the priming fetch runs, so a failed priming
        fetch is logged and reported but the session is still created.

        Args:
            session_id: Caller-chosen id (generated when omitted)
            initial_url: URL to load into the new browsing context
            browser_type: chromium, firefox or webkit (default: chromium)

        Returns:
            SessionCreateResponse describing the new session

        Raises:
            InvalidInputError: On a malformed URL or unknown browser type
            SessionExistsError: If ``session_id`` is already registered
        """
        browser_type = browser_type or DEFAULT_BROWSER_TYPE
        if browser_type not in BROWSER_TYPES:
            raise InvalidInputError(
                f"Invalid browser_type '{browser_type}' (expected one of: {', '.join(BROWSER_TYPES)})"
            )
        if initial_url is not None:
            initial_url = validate_url(initial_url)
        if session_id is not None and not session_id.strip():
            raise InvalidInputError("session_id must not be empty")

        session_id = session_id or generate_session_id()
        now = self.clock()
        record = self.store.create(
            SessionRecord(
                id=session_id,
                created_at=now,
                last_used=now,
                initial_url=initial_url,
                browser_type=browser_type,
            )
        )
        logger.info(f"Session created: {session_id} ({browser_type})")

        primed = False
        priming_error = None
        if initial_url:
            config = FetchConfig(
                session_id=session_id,
                cache_mode=CACHE_BYPASS,
                browser_type=browser_type,
                timeout=PRIMING_TIMEOUT,
            )
            result = await fetch_page_safe(self.provider, initial_url, config)
            if result.success:
                primed = True
                self.touch(session_id)
            else:
                priming_error = result.error
                logger.warning(f"Initial crawl failed for session {session_id}: {priming_error}")

        lines = [
            "Session created successfully:",
            f"Session ID: {session_id}",
            f"Browser: {browser_type}",
            f"Pre-warmed with: {initial_url}" if initial_url else "Ready for use",
        ]
        if priming_error:
            lines.append(f"Warning: initial crawl failed: {priming_error}")
        lines.append("")
        lines.append("Use this session_id with the crawl tool to maintain state across requests.")

        return SessionCreateResponse(
            session_id=session_id,
            browser_type=browser_type,
            initial_url=initial_url,
            created_at=record.created_at,
            primed=primed,
            priming_error=priming_error,
            message="\n".join(lines),
        )

    def get(self, session_id: str) -> SessionRecord | None:
        return self.store.get(session_id)

    def touch(self, session_id: str | None) -> bool:
        """Mark a session as used now.

        Returns:
            True if the session is registered
        """
        if not session_id:
            return False
        return self.store.touch(session_id, self.clock())

    def clear(self, session_id: str) -> SessionClearResponse:
        """Remove a session record; clearing an unknown id is not an error."""
        found = self.store.remove(session_id)
        if found:
            logger.info(f"Session cleared: {session_id}")
            message = f"Session cleared successfully: {session_id}"
        else:
            message = f"Session not found: {session_id}"

        return SessionClearResponse(session_id=session_id, found=found, message=message)

    def list_sessions(self) -> SessionListResponse:
        """List all sessions with their age and idle time in whole minutes."""
        now = self.clock()
        sessions = [
            SessionInfo(
                **record.model_dump(),
                age_minutes=int((now - record.created_at).total_seconds() // 60),
                idle_minutes=int((now - record.last_used).total_seconds() // 60),
            )
            for record in self.store.list()
        ]

        if not sessions:
            return SessionListResponse(count=0, sessions=[], message="No active sessions found.")

        listing = "\n".join(
            f"- {s.id} ({s.browser_type}, created {s.age_minutes}m ago, "
            f"last used {s.idle_minutes}m ago)"
            for s in sessions
        )
        return SessionListResponse(
            count=len(sessions),
            sessions=sessions,
            message=f"Active sessions ({len(sessions)}):\n{listing}",
        )

    def count(self) -> int:
        return len(self.store)


_session_manager: SessionManager | None = None


def get_session_manager() -> SessionManager:
    """Get or create the global session manager."""
    global _session_manager

    if _session_manager is None:
        _session_manager = SessionManager()

    return _session_manager


def set_session_manager(manager: SessionManager | None) -> None:
    """Replace the global session manager (None resets to lazy creation)."""
    global _session_manager
    _session_manager = manager
