"""
Purpose: Server-side transcript storage, one pretty-printed JSON document
per session in a flat directory.

File naming: session-<save timestamp, ':' and '.' -> '-'>-<sessionId>.json
e.g. session-2024-05-01T09-30-00-125Z-3f2a....json

Rules:
- save() is idempotent per session id: an existing file for the id is
  overwritten in place, otherwise a new file is minted.
- A directory that was never created means "no sessions", not an error.
- Unparseable documents are skipped when listing and read as not-found on load.
- No locking: concurrent writers on the same id race, last write wins.

Testing: tmp_path fixture; round-trip, overwrite, listing order, corrupt files.
"""

from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Optional, Union

from ..errors import StorageError, ValidationError
from ..models import Session, SessionSummary, newest_first, utc_now_iso
from ..services.security import is_safe_session_id

logger = logging.getLogger(__name__)

FILE_PREFIX = "session-"
FILE_SUFFIX = ".json"
_FILENAME = re.compile(r"^session-.+?Z-(?P<session_id>.+)\.json$")


def transcript_filename(session_id: str, stamp: Optional[str] = None) -> str:
    stamp = (stamp or utc_now_iso()).replace(":", "-").replace(".", "-")
    return f"{FILE_PREFIX}{stamp}-{session_id}{FILE_SUFFIX}"


def read_session(path: Path) -> Session:
    """Strict read; any unreadable or malformed document raises StorageError."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return Session.from_dict(payload)
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Malformed transcript {path.name}: {e}") from e


class FileTranscriptStore:
    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _transcript_files(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(
            p
            for p in self.root.iterdir()
            if p.is_file()
            and p.name.startswith(FILE_PREFIX)
            and p.name.endswith(FILE_SUFFIX)
        )

    def find_path(self, session_id: str) -> Optional[Path]:
        if not is_safe_session_id(session_id):
            return None
        for path in self._transcript_files():
            m = _FILENAME.match(path.name)
            if m and m.group("session_id") == session_id:
                return path
        return None

    def load(self, session_id: str) -> Optional[Session]:
        path = self.find_path(session_id)
        if path is None:
            return None
        try:
            return read_session(path)
        except StorageError:
            logger.warning("Unreadable transcript for session %s at %s", session_id, path)
            return None

    def save(self, session: Session) -> Path:
        if not is_safe_session_id(session.session_id):
            raise ValidationError("Invalid session id")
        path = self.find_path(session.session_id)
        if path is None:
            path = self.root / transcript_filename(session.session_id)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not write transcript {path.name}: {e}") from e
        logger.debug("Saved session %s (%d turns) to %s", session.session_id, len(session.messages), path.name)
        return path

    def list_sessions(self) -> list[SessionSummary]:
        summaries: list[SessionSummary] = []
        for path in self._transcript_files():
            try:
                session = read_session(path)
            except StorageError:
                logger.debug("Skipping unreadable transcript %s", path.name)
                continue
            summaries.append(session.summary(filename=path.name))
        return newest_first(summaries)
