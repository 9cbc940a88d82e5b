"""
Purpose: Guardrails for inputs.
Content: early, predictable failures before anything reaches the provider
or the transcript store: missing/oversized messages, unsafe session ids.
"""

from __future__ import annotations
import re
from typing import Any, Optional

from ..errors import ValidationError

MAX_INPUT_CHARS = 8000
SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class DefaultSecurity:
    def validate_user_input(self, text: Any) -> str:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Message is required")
        if len(text) > MAX_INPUT_CHARS:
            raise ValidationError("Message is too long")
        return self.sanitize_for_prompt(text)

    def sanitize_for_prompt(self, text: str) -> str:
        return (text or "").replace("\x00", "").strip()

    def validate_session_id(self, session_id: Optional[str]) -> Optional[str]:
        """Ids end up in filenames; only allow a safe alphabet."""
        if session_id is None or session_id == "":
            return None
        if not isinstance(session_id, str) or not SESSION_ID.match(session_id):
            raise ValidationError("Invalid session id")
        return session_id


def is_safe_session_id(session_id: Any) -> bool:
    return isinstance(session_id, str) and bool(SESSION_ID.match(session_id))
