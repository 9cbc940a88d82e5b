"""
Purpose: Browser-local transcript storage. The entire session set lives as
one JSON array under a fixed key of an injected key-value backend.

Backends:
- InMemoryStorage: plain dict, for tests and single-process use.
- MappingStorage: any mutable mapping, e.g. Streamlit's st.session_state,
  which is scoped to one browser tab session.

No eviction: the array grows until the backend refuses it.
"""

from __future__ import annotations
import json
import logging
from typing import MutableMapping, Optional

from ..interfaces import KeyValueStorage
from ..models import Session, SessionSummary, newest_first

logger = logging.getLogger(__name__)

STORAGE_KEY = "counsel-chat-sessions"


class InMemoryStorage:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class MappingStorage:
    def __init__(self, mapping: MutableMapping) -> None:
        self._mapping = mapping

    def get(self, key: str) -> Optional[str]:
        value = self._mapping.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    def delete(self, key: str) -> None:
        if key in self._mapping:
            del self._mapping[key]


class KeyValueTranscriptStore:
    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key

    def _read_raw(self) -> list:
        """Stored array as-is; elements are not validated here."""
        raw = self.storage.get(self.key)
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored session array under %r is not JSON; treating as empty", self.key)
            return []
        if not isinstance(payload, list):
            logger.warning("Stored value under %r is not a list; treating as empty", self.key)
            return []
        return payload

    def _write_raw(self, items: list) -> None:
        self.storage.set(self.key, json.dumps(items))

    def get_all_sessions(self) -> list[Session]:
        """Every element that parses; malformed elements are skipped, not dropped."""
        sessions: list[Session] = []
        for idx, item in enumerate(self._read_raw()):
            try:
                sessions.append(Session.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed stored session at index %d", idx)
        return sessions

    def load(self, session_id: str) -> Optional[Session]:
        for session in self.get_all_sessions():
            if session.session_id == session_id:
                return session
        return None

    def save(self, session: Session) -> None:
        """Replace the element with this id, or prepend; other elements are kept verbatim."""
        items = self._read_raw()
        for idx, item in enumerate(items):
            if _stored_id(item) == session.session_id:
                items[idx] = session.to_dict()
                break
        else:
            items.insert(0, session.to_dict())
        self._write_raw(items)

    def delete(self, session_id: str) -> None:
        self._write_raw([i for i in self._read_raw() if _stored_id(i) != session_id])

    def list_sessions(self) -> list[SessionSummary]:
        return newest_first(s.summary() for s in self.get_all_sessions())

    def export_all(self) -> str:
        return json.dumps([s.to_dict() for s in self.get_all_sessions()], indent=2)

    def export_session(self, session_id: str) -> Optional[str]:
        session = self.load(session_id)
        if session is None:
            return None
        return json.dumps(session.to_dict(), indent=2)


def _stored_id(item) -> Optional[str]:
    if isinstance(item, dict) and "sessionId" in item:
        return str(item["sessionId"])
    return None
