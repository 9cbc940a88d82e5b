import json
from typing import Optional

import pytest

from counsel.controller import SessionController
from counsel.models import LLMSettings
from counsel.persistence.session_store import FileTranscriptStore
from counsel.services.completion import OpenAICompletionGateway


def reply_json(*segments) -> str:
    """Canned structured reply: reply_json(("Hi.", ["empathy"]), ...)"""
    return json.dumps(
        {"segments": [{"text": t, "strategies": list(s)} for t, s in segments]}
    )


DEFAULT_REPLY = reply_json(
    ("That sounds really hard.", ["empathy", "validation"]),
    ("What has been weighing on you most?", ["open_ended_questions"]),
)


class FakeLLM:
    """Records every request; replies from a queue, then falls back to DEFAULT_REPLY."""

    def __init__(self, replies=None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[dict] = []

    def chat(self, messages, settings):
        self.calls.append({"messages": messages, "settings": settings})
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if self.replies else DEFAULT_REPLY
        return text, {"model": settings.model, "tokens_in": 10, "tokens_out": 20}


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def gateway(fake_llm):
    return OpenAICompletionGateway(fake_llm, LLMSettings(model="test-model"))


@pytest.fixture
def file_store(tmp_path):
    return FileTranscriptStore(tmp_path / "transcripts")


@pytest.fixture
def controller(gateway, file_store):
    return SessionController(gateway, store=file_store)


@pytest.fixture
def stateless_controller(gateway):
    return SessionController(gateway)
