"""MCP tool definition for session management."""

from __future__ import annotations

from typing import Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from crawl4ai_mcp.errors import CrawlError, InvalidInputError, format_error
from crawl4ai_mcp.models.sessions import (
    SessionClearResponse,
    SessionCreateResponse,
    SessionListResponse,
)
from crawl4ai_mcp.sessions.service import get_session_manager


async def manage_session(
    action: Literal["create", "clear", "list"],
    session_id: str | None = None,
    initial_url: str | None = None,
    browser_type: Literal["chromium", "firefox", "webkit"] | None = None,
) -> SessionCreateResponse | SessionClearResponse | SessionListResponse:
    """Create, clear or list persistent browser sessions.

    Sessions keep browser state (cookies, logins, local storage) across
    crawl calls that pass the same session_id.

    Args:
        action: "create", "clear" or "list"
        session_id: Session to create (generated when omitted) or clear (required)
        initial_url: For "create", a URL to load into the new session
        browser_type: For "create", the browser engine (default: chromium)

    Returns:
        The outcome of the requested action
    """
    sessions = get_session_manager()
    try:
        if action == "create":
            return await sessions.create(session_id, initial_url, browser_type)
        if action == "clear":
            if not session_id:
                raise InvalidInputError("session_id is required for clear action")
            return sessions.clear(session_id)
        if action == "list":
            return sessions.list_sessions()
        raise InvalidInputError(f"Invalid action: {action}")
    except CrawlError as e:
        raise ToolError(format_error(e, f"{action} session")) from e


def register_session_tools(mcp: FastMCP) -> None:
    """Register session tools on the MCP server.

    Args:
        mcp: FastMCP server instance
    """
    mcp.tool()(manage_session)
