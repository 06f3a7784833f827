"""Pydantic models for session registry operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SessionRecord(BaseModel):
    """Local bookkeeping entry for a persistent remote browsing context."""

    id: str = Field(description="Caller-visible session identifier")
    created_at: datetime = Field(description="When the session was registered")
    last_used: datetime = Field(description="Last time an operation referenced the session")
    initial_url: str | None = Field(default=None, description="URL used to prime the session")
    browser_type: str = Field(default="chromium", description="Browser engine of the session")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extra bookkeeping data")


class SessionInfo(SessionRecord):
    """Session record with ages derived at listing time."""

    age_minutes: int = Field(description="Whole minutes since creation")
    idle_minutes: int = Field(description="Whole minutes since last use")


class SessionCreateResponse(BaseModel):
    """Response model for session creation."""

    session_id: str = Field(description="Identifier of the new session")
    browser_type: str = Field(description="Browser engine of the session")
    initial_url: str | None = Field(default=None, description="URL used to prime the session")
    created_at: datetime = Field(description="When the session was registered")
    primed: bool = Field(default=False, description="Whether the priming fetch succeeded")
    priming_error: str | None = Field(default=None, description="Priming fetch error, if any")
    message: str = Field(description="Human-readable summary")


class SessionClearResponse(BaseModel):
    """Response model for clearing a session."""

    session_id: str = Field(description="Identifier that was cleared")
    found: bool = Field(description="Whether the session existed")
    message: str = Field(description="Human-readable summary")


class SessionListResponse(BaseModel):
    """Response model for listing sessions."""

    count: int = Field(description="Number of active sessions")
    sessions: list[SessionInfo] = Field(description="Active sessions")
    message: str = Field(description="Human-readable summary")
