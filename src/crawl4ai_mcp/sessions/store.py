"""Keyed stores for session records."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime

from crawl4ai_mcp.errors import SessionExistsError
from crawl4ai_mcp.models.sessions import SessionRecord


class SessionStore(ABC):
    """Abstract keyed store of session records.

    Implementations must keep ids unique and serialize mutations.
    """

    @abstractmethod
    def create(self, record: SessionRecord) -> SessionRecord:
        """Insert a new record.

        Raises:
            SessionExistsError: If a record with the same id exists
        """

    @abstractmethod
    def get(self, session_id: str) -> SessionRecord | None:
        """Return a copy of the record, or None if absent."""

    @abstractmethod
    def touch(self, session_id: str, when: datetime) -> bool:
        """Set ``last_used`` on a record.

        Returns:
            True if the record exists
        """

    @abstractmethod
    def remove(self, session_id: str) -> bool:
        """Delete a record.

        Returns:
            True if the record existed
        """

    @abstractmethod
    def list(self) -> list[SessionRecord]:
        """Return copies of all records in creation order."""

    def __len__(self) -> int:
        return len(self.list())


class InMemorySessionStore(SessionStore):
    """Process-local session store guarded by a lock."""

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: SessionRecord) -> SessionRecord:
        with self._lock:
            if record.id in self._records:
                raise SessionExistsError(f"Session already exists: {record.id}")
            self._records[record.id] = record.model_copy()
        return record

    def get(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            record = self._records.get(session_id)
            return record.model_copy() if record is not None else None

    def touch(self, session_id: str, when: datetime) -> bool:
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return False
            record.last_used = when
            return True

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._records.pop(session_id, None) is not None

    def list(self) -> list[SessionRecord]:
        with self._lock:
            return [record.model_copy() for record in self._records.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
