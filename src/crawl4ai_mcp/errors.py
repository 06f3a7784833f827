"""Error taxonomy and error-to-message mapping for crawl orchestration."""

from __future__ import annotations

import json
from typing import Any

import requests


class CrawlError(Exception):
    """Base class for all orchestration errors."""


class InvalidInputError(CrawlError, ValueError):
    """Malformed URL, bad budget, or an uncompilable filter pattern.

    Always raised before any remote call is made.
    """


class RemoteFetchError(CrawlError):
    """The remote crawl service could not produce a usable result."""


class SessionExistsError(InvalidInputError):
    """A session with the requested id is already registered."""


def _response_detail(response: requests.Response) -> str | None:
    """Pull the most useful message out of an HTTP error response."""
    try:
        data: Any = response.json()
    except ValueError:
        text = response.text
        return text.strip() or None

    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    if data:
        return data if isinstance(data, str) else json.dumps(data)
    return None


def format_error(error: BaseException, operation: str | None = None) -> str:
    """Convert an exception into a caller-facing message.

    Args:
        error: The exception to describe
        operation: Optional operation name, e.g. "crawl recursively"

    Returns:
        Message such as "Failed to smart crawl: HTTPError: 502 Bad Gateway"
    """
    message: str | None = None

    response = getattr(error, "response", None)
    if isinstance(response, requests.Response):
        message = _response_detail(response)

    if message is None:
        if isinstance(error, CrawlError):
            message = str(error)
        else:
            message = f"{type(error).__name__}: {error}"

    if operation:
        return f"Failed to {operation}: {message}"
    return message
