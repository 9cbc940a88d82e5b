"""
Abstractions for pluggable services. Inversion of control: the controller depends
on interfaces, not concrete services. Enables fakes/mocks and future swaps.

Common protocols:
- LLMClient.chat(messages, settings) -> (reply, meta)
- PromptFactory.build_system() -> str & assemble(...) -> list[dict]
- TranscriptStore.load / save / list_sessions
- KeyValueStorage.get / set / delete (browser-local persistence backend)

Testing: Use simple fake implementations to test the controller without network calls.
"""

from __future__ import annotations
from typing import Optional, Protocol

from .models import LLMSettings, Session, SessionSummary, Turn, CompletionResult


class LLMClient(Protocol):
    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
    ) -> tuple[str, dict]: ...


class PromptFactory(Protocol):
    def build_system(self) -> str: ...

    def response_format(self) -> dict: ...

    def assemble(
        self, *, system: str, history: list[Turn], user_text: str
    ) -> list[dict[str, str]]: ...


class CompletionGateway(Protocol):
    def complete(
        self, prior_turns: list[Turn], new_human_text: str
    ) -> CompletionResult: ...


class TranscriptStore(Protocol):
    def load(self, session_id: str) -> Optional[Session]: ...

    def save(self, session: Session) -> object: ...

    def list_sessions(self) -> list[SessionSummary]: ...


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...
