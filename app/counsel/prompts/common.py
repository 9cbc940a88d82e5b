"""Shared prompt helpers used across prompt modules."""

from __future__ import annotations

from ..models import Turn


def to_provider_messages(history: list[Turn]) -> list[dict[str, str]]:
    """Map stored turns onto the provider's generic user/assistant schema."""
    return [{"role": t.role.provider_role, "content": t.content} for t in history]


def assemble(
    *, system: str, history: list[Turn], user_text: str
) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system},
        *to_provider_messages(history),
        {"role": "user", "content": user_text},
    ]
