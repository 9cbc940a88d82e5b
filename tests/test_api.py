import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLM
from counsel.api import create_app
from counsel.controller import SessionController
from counsel.models import LLMSettings
from counsel.services.completion import OpenAICompletionGateway


@pytest.fixture
def client(controller):
    return TestClient(create_app(controller=controller))


@pytest.fixture
def stateless_client(stateless_controller):
    return TestClient(create_app(controller=stateless_controller))


def test_chat_returns_session_content_and_segments(client):
    resp = client.post("/chat", json={"message": "I feel overwhelmed."})
    assert resp.status_code == 200
    data = resp.json()
    assert set(data) == {"sessionId", "content", "segments"}
    assert data["content"] == " ".join(s["text"] for s in data["segments"])
    assert data["segments"][0]["strategies"] == ["empathy", "validation"]


@pytest.mark.parametrize(
    "body",
    [{}, {"message": ""}, {"message": 12}, {"sessionId": "abc"}],
)
def test_missing_message_is_400_without_persistence(client, file_store, body):
    resp = client.post("/chat", json=body)
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert not file_store.root.exists()


def test_non_json_body_is_400(client):
    resp = client.post("/chat", content=b"hello", headers={"content-type": "text/plain"})
    assert resp.status_code == 400


def test_provider_failure_is_500_with_generic_message(file_store):
    llm = FakeLLM(error=RuntimeError("api key sk-secret rejected"))
    controller = SessionController(
        OpenAICompletionGateway(llm, LLMSettings(model="m")), store=file_store
    )
    resp = TestClient(create_app(controller=controller)).post("/chat", json={"message": "hi"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to process chat message"}
    assert file_store.list_sessions() == []


def test_empty_provider_reply_is_500(file_store):
    controller = SessionController(
        OpenAICompletionGateway(FakeLLM(replies=[""]), LLMSettings(model="m")), store=file_store
    )
    resp = TestClient(create_app(controller=controller)).post("/chat", json={"message": "hi"})
    assert resp.status_code == 500


def test_sessions_empty_when_directory_never_created(client, file_store):
    assert not file_store.root.exists()
    resp = client.get("/sessions")
    assert resp.status_code == 200
    assert resp.json() == {"sessions": []}


def test_full_flow_list_and_fetch(client):
    first = client.post("/chat", json={"message": "hello"}).json()
    client.post("/chat", json={"message": "again", "sessionId": first["sessionId"]})
    client.post("/chat", json={"message": "another session"})

    sessions = client.get("/sessions").json()["sessions"]
    assert len(sessions) == 2
    mine = next(s for s in sessions if s["sessionId"] == first["sessionId"])
    assert mine["messageCount"] == 4
    assert mine["filename"].endswith(f"-{first['sessionId']}.json")
    assert set(mine) == {"sessionId", "startedAt", "messageCount", "filename"}

    resp = client.get(f"/sessions/{first['sessionId']}")
    assert resp.status_code == 200
    session = resp.json()["session"]
    assert [m["role"] for m in session["messages"]] == ["user", "therapist", "user", "therapist"]
    assert "segments" in session["messages"][1]
    assert "segments" not in session["messages"][0]


def test_unknown_session_is_404(client):
    resp = client.get("/sessions/doesnotexist")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Session not found"}


def test_stateless_deployment_uses_conversation_history(stateless_client, fake_llm):
    resp = stateless_client.post(
        "/chat",
        json={
            "message": "still here",
            "sessionId": "abc",
            "conversationHistory": [
                {"role": "user", "content": "hi"},
                {"role": "therapist", "content": "Hello."},
            ],
        },
    )
    assert resp.status_code == 200
    assert resp.json()["sessionId"] == "abc"
    assert [m["content"] for m in fake_llm.calls[0]["messages"][1:]] == ["hi", "Hello.", "still here"]
    assert stateless_client.get("/sessions").json() == {"sessions": []}


def test_invalid_session_id_is_400(client):
    resp = client.post("/chat", json={"message": "hi", "sessionId": "../../etc"})
    assert resp.status_code == 400


def test_unreadable_transcript_is_hidden_from_listing_and_404(client, file_store):
    first = client.post("/chat", json={"message": "hello"}).json()
    (file_store.root / "session-2024-01-01T00-00-00-000Z-bad.json").write_text(
        json.dumps({"sessionId": "bad", "startedAt": "2024-01-01T00:00:00.000Z", "messages": ["hi"]})
    )

    sessions = client.get("/sessions").json()["sessions"]
    assert [s["sessionId"] for s in sessions] == [first["sessionId"]]
    assert client.get("/sessions/bad").status_code == 404
