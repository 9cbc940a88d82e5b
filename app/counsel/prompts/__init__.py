"""Facade over the prompt modules; the gateway only talks to DefaultPromptFactory."""

from __future__ import annotations

from ..models import Turn
from . import therapist as _therapist
from .common import assemble as _assemble


class DefaultPromptFactory:
    def build_system(self) -> str:
        return _therapist.build_therapist_system()

    def response_format(self) -> dict:
        return _therapist.response_format()

    def assemble(
        self, *, system: str, history: list[Turn], user_text: str
    ) -> list[dict[str, str]]:
        return _assemble(system=system, history=history, user_text=user_text)
