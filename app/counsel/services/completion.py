"""
Purpose: Completion gateway. Exchanges conversation state for a new
annotated assistant reply via the external text-generation service.

Key responsibilities:
- Assemble system prompt + prior turns (in order) + new human text (last).
- Demand the strict therapist_response JSON schema from the provider.
- Validate the reply: non-empty segments, known strategy labels, no extra fields.
- Translate provider faults into UpstreamError; empty content into EmptyCompletion.

Single attempt per turn. Nothing here retries.

Testing: Fake LLMClient returning canned JSON; assert prompt order and
each rejection path.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Optional

from ..errors import EmptyCompletion, UpstreamError
from ..interfaces import LLMClient, PromptFactory
from ..models import (
    STRATEGY_VALUES,
    CompletionResult,
    LLMSettings,
    Segment,
    Turn,
    join_segments,
)
from ..prompts import DefaultPromptFactory
from ..utils.llm_json import require_object

logger = logging.getLogger(__name__)

_SEGMENT_KEYS = {"text", "strategies"}


def parse_segments(raw: str) -> tuple[Segment, ...]:
    """Validate a provider reply against the therapist_response schema."""
    try:
        data = require_object(raw, "Provider reply is not a JSON object.")
    except ValueError as e:
        raise UpstreamError(str(e)) from e

    if set(data) != {"segments"}:
        raise UpstreamError(f"Unexpected reply fields: {sorted(data)}")
    items = data["segments"]
    if not isinstance(items, list) or not items:
        raise UpstreamError("Reply must contain a non-empty segments list.")

    segments: list[Segment] = []
    for idx, item in enumerate(items):
        segments.append(_parse_segment(idx, item))
    return tuple(segments)


def _parse_segment(idx: int, item: Any) -> Segment:
    if not isinstance(item, dict) or set(item) != _SEGMENT_KEYS:
        raise UpstreamError(f"Segment {idx} must have exactly text and strategies.")
    text, strategies = item["text"], item["strategies"]
    if not isinstance(text, str):
        raise UpstreamError(f"Segment {idx} text must be a string.")
    if not isinstance(strategies, list):
        raise UpstreamError(f"Segment {idx} strategies must be a list.")
    unknown = [s for s in strategies if s not in STRATEGY_VALUES]
    if unknown:
        raise UpstreamError(f"Segment {idx} has unknown strategies: {unknown}")
    return Segment.create(text, strategies)


class OpenAICompletionGateway:
    def __init__(
        self,
        llm: LLMClient,
        settings: LLMSettings,
        prompts: Optional[PromptFactory] = None,
    ):
        self.llm: LLMClient = llm
        self.prompts: PromptFactory = prompts or DefaultPromptFactory()
        if settings.response_format is None:
            settings = replace(settings, response_format=self.prompts.response_format())
        self.settings = settings

    def build_messages(
        self, prior_turns: list[Turn], new_human_text: str
    ) -> list[dict[str, str]]:
        return self.prompts.assemble(
            system=self.prompts.build_system(),
            history=prior_turns,
            user_text=new_human_text,
        )

    def complete(
        self, prior_turns: list[Turn], new_human_text: str
    ) -> CompletionResult:
        messages = self.build_messages(prior_turns, new_human_text)
        try:
            raw, meta = self.llm.chat(messages, self.settings)
        except Exception as e:
            raise UpstreamError(f"Completion request failed: {e}") from e

        if not raw or not raw.strip():
            raise EmptyCompletion("No response from the completion provider.")

        segments = parse_segments(raw)
        logger.debug(
            "completion ok: %d segments, tokens_in=%s tokens_out=%s",
            len(segments),
            meta.get("tokens_in"),
            meta.get("tokens_out"),
        )
        return CompletionResult(
            response_text=join_segments(segments),
            segments=segments,
            meta=meta,
        )
