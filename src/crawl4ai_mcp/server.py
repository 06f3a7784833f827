"""MCP server exposing crawl orchestration on top of a Crawl4AI service."""

from __future__ import annotations

import os

from mcp.server.fastmcp import FastMCP

from crawl4ai_mcp.admin.router import (
    api_cache_clear,
    api_config_get,
    api_config_update,
    api_sessions,
    api_stats,
    health_check,
)
from crawl4ai_mcp.crawl.router import register_cache_tools, register_crawl_tools
from crawl4ai_mcp.sessions.router import register_session_tools

# Set ENABLE_CACHE_TOOLS=true to expose cache_stats, cache_clear_expired, and cache_clear_all
ENABLE_CACHE_TOOLS = os.getenv("ENABLE_CACHE_TOOLS", "false").lower() in ("true", "1", "yes")

# Stateless mode auto-creates MCP sessions for unknown session IDs, so clients
# survive server restarts. Browser sessions are tracked separately.
mcp = FastMCP(
    "Crawl4AI MCP",
    instructions=(
        "A crawling MCP server backed by a Crawl4AI service. Provides single-page "
        "crawls, recursive crawls of a site's internal links, content-type aware "
        "smart crawls, sitemap parsing, and persistent browser sessions that keep "
        "state across crawl calls."
    ),
    stateless_http=True,
)

register_crawl_tools(mcp)
register_session_tools(mcp)
if ENABLE_CACHE_TOOLS:
    register_cache_tools(mcp)

mcp.custom_route("/healthz", methods=["GET"])(health_check)
mcp.custom_route("/api/stats", methods=["GET"])(api_stats)
mcp.custom_route("/api/cache/clear", methods=["POST"])(api_cache_clear)
mcp.custom_route("/api/config", methods=["GET"])(api_config_get)
mcp.custom_route("/api/config", methods=["POST"])(api_config_update)
mcp.custom_route("/api/sessions", methods=["GET"])(api_sessions)


def run_server(transport: str = "streamable-http", host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the MCP server.

    Args:
        transport: Transport type ('streamable-http' or 'sse')
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
    """
    mcp.settings.host = host
    mcp.settings.port = port

    mcp.run(transport=transport)


if __name__ == "__main__":
    run_server()
