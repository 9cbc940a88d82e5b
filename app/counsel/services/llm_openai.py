"""
Purpose: Thin client wrapper around OpenAI chat completions.
One place for auth, model options, response/usage normalization.

Contract: exactly one request per call. No retries, no backoff and no
timeout override; SDK errors propagate to the caller unchanged.

Testing: Mock SDK calls; assert it maps usage and the response format.
"""

from __future__ import annotations
import logging
from typing import Optional

from openai import OpenAI

from ..models import LLMSettings

logger = logging.getLogger(__name__)


class OpenAILLMClient:
    def __init__(self, api_key: str, *, client: Optional[OpenAI] = None):
        """An injected client is used as-is; its retry setting is the caller's."""
        self.api_key = api_key
        if client is not None:
            self.client = client
            return
        if not self.api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        # single attempt per turn
        self.client = OpenAI(api_key=self.api_key, max_retries=0)

    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
    ) -> tuple[str, dict]:
        kwargs = dict(
            model=settings.model,
            messages=messages,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
        )
        if settings.response_format:
            kwargs["response_format"] = settings.response_format

        logger.debug("chat.completions.create model=%s messages=%d", settings.model, len(messages))
        cc = self.client.chat.completions.create(**kwargs)

        text = cc.choices[0].message.content if cc.choices else None
        usage = getattr(cc, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
        tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
        return text or "", {
            "model": cc.model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
        }
