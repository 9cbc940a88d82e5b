"""
Purpose: The single orchestration point for a chat round trip.
Prevents UI and HTTP layers from knowing how prompts/LLM/storage work.

Two deployment modes, one code path:
- store given  -> stateful: prior turns are loaded from the transcript
  store and the finished exchange is written back.
- store absent -> stateless: the caller supplies prior history and nothing
  touches server storage.

Key responsibilities:
- Validate input (security guard), resolve or mint the session id.
- Call the completion gateway with the full ordered history.
- Append the human turn and the assistant turn only after the gateway
  succeeded, then persist. A failed round trip leaves the session untouched.
- Return ChatReply(session_id, content, segments).

Testing: Pure unit tests with fakes: fake LLMClient, in-memory stores.
"""

from __future__ import annotations
import logging
from typing import Any, Iterable, Optional

from .errors import NotFoundError
from .interfaces import CompletionGateway, TranscriptStore
from .models import (
    ChatReply,
    Role,
    Session,
    SessionSummary,
    Turn,
    new_session_id,
)
from .services.security import DefaultSecurity

logger = logging.getLogger(__name__)


def history_to_turns(history: Optional[Iterable[Any]]) -> list[Turn]:
    """Caller-supplied [{role, content}] -> turns. Malformed items are dropped."""
    turns: list[Turn] = []
    for item in history or []:
        if isinstance(item, Turn):
            turns.append(item)
            continue
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if not isinstance(content, str):
            continue
        role = Role.from_wire(str(item.get("role", "")))
        turns.append(Turn(role=role, content=content))
    return turns


class SessionController:
    def __init__(
        self,
        gateway: CompletionGateway,
        store: Optional[TranscriptStore] = None,
    ):
        self.gateway: CompletionGateway = gateway
        self.store: Optional[TranscriptStore] = store
        self.security = DefaultSecurity()

    @property
    def is_stateful(self) -> bool:
        return self.store is not None

    def chat(
        self,
        message: Any,
        *,
        session_id: Optional[str] = None,
        history: Optional[Iterable[Any]] = None,
    ) -> ChatReply:
        """
        One round trip: Idle -> AwaitingCompletion -> Persisted.
        History is ignored in stateful mode; the store is the source of truth.
        """
        text = self.security.validate_user_input(message)
        session_id = self.security.validate_session_id(session_id) or new_session_id()

        if self.store is not None:
            session = self.store.load(session_id) or Session(session_id=session_id)
            prior = list(session.messages)
        else:
            session = None
            prior = history_to_turns(history)

        human = Turn.human(text)
        result = self.gateway.complete(prior, text)
        assistant = Turn(
            role=Role.ASSISTANT,
            content=result.response_text,
            segments=result.segments,
        )

        if session is not None:
            session.append_exchange(human, assistant)
            self.store.save(session)

        logger.info(
            "chat round trip session=%s prior_turns=%d segments=%d stateful=%s",
            session_id,
            len(prior),
            len(result.segments),
            self.is_stateful,
        )
        return ChatReply(
            session_id=session_id,
            content=result.response_text,
            segments=result.segments,
        )

    def list_sessions(self) -> list[SessionSummary]:
        if self.store is None:
            return []
        return self.store.list_sessions()

    def get_session(self, session_id: str) -> Session:
        session = self.store.load(session_id) if self.store is not None else None
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session
