"""Main entry point for the Crawl4AI MCP server.

Usage: ``crawl4ai-mcp [transport] [host] [port]``. Each positional argument
falls back to MCP_TRANSPORT, MCP_HOST and MCP_PORT respectively.
"""

from __future__ import annotations

import logging
import os
import sys


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args = sys.argv[1:]
    transport = args[0] if len(args) > 0 else os.getenv("MCP_TRANSPORT", "streamable-http")
    host = args[1] if len(args) > 1 else os.getenv("MCP_HOST", "0.0.0.0")
    port = int(args[2] if len(args) > 2 else os.getenv("MCP_PORT", "8000"))

    # Imported after logging is configured so startup messages are not lost
    from crawl4ai_mcp.server import run_server

    logging.getLogger(__name__).info(
        f"Starting Crawl4AI MCP server on {host}:{port} with {transport} transport"
    )
    run_server(transport=transport, host=host, port=port)


if __name__ == "__main__":
    main()
