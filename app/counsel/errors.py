"""
Purpose: One exception family for the whole app so the HTTP layer and the
Streamlit UI can translate failures without knowing which service raised.

Mapping used by counsel.api:
- ValidationError -> 400
- NotFoundError   -> 404
- UpstreamError   -> 500 (generic message, details only in logs)
- StorageError    -> 500 on write; skipped in listings; not-found on load
"""

from __future__ import annotations


class CounselError(Exception):
    status_code: int = 500
    public_message: str = "Failed to process chat message"


class ValidationError(CounselError, ValueError):
    status_code = 400

    @property
    def public_message(self) -> str:
        return str(self) or "Invalid request"


class NotFoundError(CounselError, LookupError):
    status_code = 404
    public_message = "Session not found"


class UpstreamError(CounselError):
    """Provider call failed or returned unusable content."""


class EmptyCompletion(UpstreamError):
    """Provider answered without any content."""


class StorageError(CounselError):
    """Persisted document unreadable or not writable."""
