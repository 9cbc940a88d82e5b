"""
Purpose: UI state that does not need Streamlit, so the optimistic-append /
rollback behaviour and the session panel helpers can be unit tested.

ChatPanel mirrors what the browser shows:
- submit(): optimistic human turn -> send -> assistant turn; on failure the
  optimistic turn is removed, the draft restored, and the error re-raised.
- select_session(): replace the visible turns wholesale.
- new_session(): start over with no id.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .models import ChatReply, Session, Turn, parse_iso

SendFn = Callable[[str, Optional[str], list[dict[str, str]]], ChatReply]


@dataclass
class ChatPanel:
    messages: list[Turn] = field(default_factory=list)
    session_id: Optional[str] = None
    started_at: Optional[str] = None
    draft: str = ""
    is_loading: bool = False

    def history_payload(self) -> list[dict[str, str]]:
        return [t.to_history() for t in self.messages]

    def submit(self, text: str, send: SendFn) -> Optional[ChatReply]:
        message = (text or "").strip()
        if not message or self.is_loading:
            return None

        history = self.history_payload()
        optimistic = Turn.human(message)
        self.messages.append(optimistic)
        self.draft = ""
        self.is_loading = True
        try:
            reply = send(message, self.session_id, history)
        except Exception:
            if self.messages and self.messages[-1] is optimistic:
                self.messages.pop()
            self.draft = message
            raise
        finally:
            self.is_loading = False

        if not self.session_id:
            self.session_id = reply.session_id
            self.started_at = optimistic.timestamp
        self.messages.append(reply.to_turn())
        return reply

    def select_session(self, session: Session) -> None:
        self.session_id = session.session_id
        self.started_at = session.started_at
        self.messages = list(session.messages)
        self.draft = ""

    def new_session(self) -> None:
        self.session_id = None
        self.started_at = None
        self.messages = []
        self.draft = ""

    def to_session(self) -> Optional[Session]:
        """Snapshot for browser-local storage; None before the first reply."""
        if not self.session_id:
            return None
        return Session(
            session_id=self.session_id,
            started_at=self.started_at or (self.messages[0].timestamp if self.messages else ""),
            messages=list(self.messages),
        )


def format_started_at(value: str, now: Optional[datetime] = None) -> str:
    """Friendly relative label for the session panel, in now's timezone (local by default)."""
    started = parse_iso(value)
    if started is None:
        return value or "Unknown date"
    now = now or datetime.now().astimezone()
    started = started.astimezone(now.tzinfo or timezone.utc)
    clock = started.strftime("%H:%M")

    diff_days = (now - started) // timedelta(days=1)
    if diff_days == 0:
        return f"Today at {clock}"
    if diff_days == 1:
        return f"Yesterday at {clock}"
    if 1 < diff_days < 7:
        return f"{started.strftime('%A')} {clock}"
    return f"{started.strftime('%b')} {started.day}, {clock}"
