"""HTTP handlers mounted beside the MCP endpoint.

All handlers answer JSON. Mutating handlers report failures as
``{"status": "error", "message": ...}`` with HTTP 500.
"""

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from crawl4ai_mcp.admin.service import (
    clear_cache,
    get_current_config,
    get_stats,
    list_sessions,
    update_config,
)


def _error_response(error: Exception) -> JSONResponse:
    return JSONResponse({"status": "error", "message": str(error)}, status_code=500)


async def _read_config_updates(request: Request) -> dict[str, Any]:
    body = await request.json()
    updates = body.get("config", {}) if isinstance(body, dict) else None
    if not isinstance(updates, dict):
        raise ValueError("Request body must be {\"config\": {...}}")
    return updates


async def health_check(request: Request) -> JSONResponse:
    """Liveness probe; never touches the remote crawl service."""
    return JSONResponse({"status": "healthy"})


async def api_stats(request: Request) -> JSONResponse:
    return JSONResponse(get_stats())


async def api_sessions(request: Request) -> JSONResponse:
    """Registered browser sessions with their age and idle minutes."""
    return JSONResponse(list_sessions())


async def api_config_get(request: Request) -> JSONResponse:
    return JSONResponse(get_current_config())


async def api_config_update(request: Request) -> JSONResponse:
    """Apply runtime overrides; unknown keys and out-of-range values are skipped."""
    try:
        updates = await _read_config_updates(request)
        return JSONResponse(update_config(updates))
    except Exception as e:
        return _error_response(e)


async def api_cache_clear(request: Request) -> JSONResponse:
    try:
        return JSONResponse(clear_cache())
    except Exception as e:
        return _error_response(e)
