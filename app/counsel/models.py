"""
Canonical data shapes, shared truth for typing/validation between layers.

Typical contents:
- Strategy (the ten annotation labels a reply segment can carry).
- Segment, Turn, Session, SessionSummary (transcript model + wire dicts).
- LLMSettings (model, temperature, top_p, max_tokens, response_format).
- CompletionResult / ChatReply (gateway and controller outputs).

Wire dicts use camelCase keys (sessionId, startedAt) so transcripts stay
readable by the browser client; attributes stay snake_case.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional


def utc_now_iso() -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-05-01T09:30:00.125Z"""
    now = datetime.now(tz=timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_session_id() -> str:
    return uuid.uuid4().hex


def parse_iso(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 string (trailing Z allowed); None if unparseable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Strategy(str, Enum):
    ACTIVE_LISTENING = "active_listening"
    VALIDATION = "validation"
    COGNITIVE_REFRAMING = "cognitive_reframing"
    EMPATHY = "empathy"
    OPEN_ENDED_QUESTIONS = "open_ended_questions"
    REFLECTION = "reflection"
    NORMALIZATION = "normalization"
    PSYCHOEDUCATION = "psychoeducation"
    GROUNDING = "grounding"
    SUMMARIZATION = "summarization"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


STRATEGY_VALUES: tuple[str, ...] = tuple(s.value for s in Strategy)


class Role(str, Enum):
    HUMAN = "user"
    ASSISTANT = "therapist"

    @classmethod
    def from_wire(cls, value: str) -> "Role":
        # history from the browser may say "assistant" instead of "therapist"
        return cls.HUMAN if value == cls.HUMAN.value else cls.ASSISTANT

    @property
    def provider_role(self) -> str:
        return "user" if self is Role.HUMAN else "assistant"


@dataclass(frozen=True)
class Segment:
    text: str
    strategies: tuple[Strategy, ...] = ()

    @classmethod
    def create(cls, text: str, strategies: Iterable[str]) -> "Segment":
        """Build a segment; unknown labels raise ValueError, duplicates collapse."""
        seen: list[Strategy] = []
        for raw in strategies:
            s = Strategy(raw)
            if s not in seen:
                seen.append(s)
        return cls(text=text, strategies=tuple(seen))

    def to_dict(self) -> dict:
        return {"text": self.text, "strategies": [s.value for s in self.strategies]}

    @classmethod
    def from_dict(cls, payload: dict) -> "Segment":
        if not isinstance(payload, dict):
            raise TypeError("Segment must be a JSON object.")
        return cls.create(payload["text"], payload.get("strategies") or [])


def join_segments(segments: Iterable[Segment]) -> str:
    return " ".join(s.text for s in segments)


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str
    timestamp: str = field(default_factory=utc_now_iso)
    segments: Optional[tuple[Segment, ...]] = None

    @classmethod
    def human(cls, content: str) -> "Turn":
        return cls(role=Role.HUMAN, content=content)

    @classmethod
    def assistant(cls, segments: Iterable[Segment]) -> "Turn":
        segs = tuple(segments)
        return cls(role=Role.ASSISTANT, content=join_segments(segs), segments=segs)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.segments is not None:
            data["segments"] = [s.to_dict() for s in self.segments]
        return data

    @classmethod
    def from_dict(cls, payload: dict) -> "Turn":
        if not isinstance(payload, dict):
            raise TypeError("Turn must be a JSON object.")
        if not isinstance(payload.get("content"), str):
            raise TypeError("Turn content must be a string.")
        raw_segments = payload.get("segments")
        segments = None
        if isinstance(raw_segments, list):
            segments = tuple(Segment.from_dict(s) for s in raw_segments)
        return cls(
            role=Role.from_wire(payload["role"]),
            content=payload["content"],
            timestamp=payload.get("timestamp") or utc_now_iso(),
            segments=segments,
        )

    def to_history(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class Session:
    session_id: str = field(default_factory=new_session_id)
    started_at: str = field(default_factory=utc_now_iso)
    messages: list[Turn] = field(default_factory=list)

    def append_exchange(self, human: Turn, assistant: Turn) -> None:
        """One round trip: exactly one human turn then one assistant turn."""
        if human.role is not Role.HUMAN or assistant.role is not Role.ASSISTANT:
            raise ValueError("Exchange must be a human turn followed by an assistant turn.")
        self.messages.extend((human, assistant))

    def summary(self, filename: Optional[str] = None) -> "SessionSummary":
        return SessionSummary(
            session_id=self.session_id,
            started_at=self.started_at,
            message_count=len(self.messages),
            filename=filename,
        )

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "startedAt": self.started_at,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "Session":
        """Strict: missing keys raise KeyError, bad shapes raise TypeError/ValueError."""
        if not isinstance(payload, dict):
            raise TypeError("Session document must be a JSON object.")
        messages = payload["messages"]
        if not isinstance(messages, list):
            raise TypeError("Session messages must be a list.")
        return cls(
            session_id=str(payload["sessionId"]),
            started_at=str(payload["startedAt"]),
            messages=[Turn.from_dict(m) for m in messages],
        )


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    started_at: str
    message_count: int
    filename: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "startedAt": self.started_at,
            "messageCount": self.message_count,
            "filename": self.filename,
        }


def newest_first(summaries: Iterable[SessionSummary]) -> list[SessionSummary]:
    """Sort by startedAt descending; unparseable dates sink to the bottom."""
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        summaries,
        key=lambda s: parse_iso(s.started_at) or floor,
        reverse=True,
    )


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 1024
    response_format: Optional[dict] = None


@dataclass(frozen=True)
class CompletionResult:
    response_text: str
    segments: tuple[Segment, ...]
    meta: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ChatReply:
    session_id: str
    content: str
    segments: tuple[Segment, ...]

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "content": self.content,
            "segments": [s.to_dict() for s in self.segments],
        }

    def to_turn(self) -> Turn:
        return Turn(role=Role.ASSISTANT, content=self.content, segments=self.segments)
