"""Session registry for persistent remote browsing contexts.

- store.py: Keyed record stores (in-memory by default)
- service.py: SessionManager with create/touch/clear/list
- router.py: The manage_session MCP tool
"""

from crawl4ai_mcp.sessions.service import (
    SessionManager,
    generate_session_id,
    get_session_manager,
    set_session_manager,
)
from crawl4ai_mcp.sessions.store import InMemorySessionStore, SessionStore

__all__ = [
    "InMemorySessionStore",
    "SessionManager",
    "SessionStore",
    "generate_session_id",
    "get_session_manager",
    "set_session_manager",
]
