import json

import pytest

from counsel.errors import ValidationError
from counsel.models import Segment, Session, Turn
from counsel.persistence.session_store import FileTranscriptStore, transcript_filename


def make_session(session_id="abc123", started_at="2024-05-01T09:30:00.125Z", exchanges=1):
    session = Session(session_id=session_id, started_at=started_at)
    for i in range(exchanges):
        session.append_exchange(
            Turn.human(f"message {i}"),
            Turn.assistant([Segment.create(f"reply {i}.", ["reflection"])]),
        )
    return session


def test_filename_replaces_colons_and_dots():
    name = transcript_filename("abc123", "2024-05-01T09:30:00.125Z")
    assert name == "session-2024-05-01T09-30-00-125Z-abc123.json"


def test_missing_directory_means_no_sessions(tmp_path):
    store = FileTranscriptStore(tmp_path / "never-created")
    assert store.list_sessions() == []
    assert store.load("abc123") is None
    assert not (tmp_path / "never-created").exists()


def test_save_then_load_round_trip(file_store):
    session = make_session(exchanges=2)
    path = file_store.save(session)

    assert path.name.startswith("session-") and path.name.endswith("-abc123.json")
    loaded = file_store.load("abc123")
    assert loaded == session
    assert len(loaded.messages) == 4
    # pretty-printed
    assert path.read_text(encoding="utf-8").startswith('{\n  "sessionId"')


def test_save_is_idempotent_per_session_id(file_store):
    session = make_session()
    first = file_store.save(session)
    session.append_exchange(Turn.human("again"), Turn.assistant([Segment.create("Yes.", [])]))
    second = file_store.save(session)

    assert first == second
    assert len(list(file_store.root.iterdir())) == 1
    assert len(file_store.load("abc123").messages) == 4


def test_list_sessions_newest_first_with_filename(file_store):
    file_store.save(make_session("old", "2024-01-01T00:00:00.000Z"))
    file_store.save(make_session("new", "2024-06-01T00:00:00.000Z", exchanges=2))

    summaries = file_store.list_sessions()
    assert [s.session_id for s in summaries] == ["new", "old"]
    assert summaries[0].message_count == 4
    assert summaries[0].filename.endswith("-new.json")


def test_malformed_documents_are_skipped_in_listing(file_store):
    file_store.save(make_session("good"))
    (file_store.root / "session-2024-01-01T00-00-00-000Z-broken.json").write_text("{oops")
    (file_store.root / "session-2024-01-01T00-00-00-000Z-partial.json").write_text(
        json.dumps({"sessionId": "partial"})
    )
    (file_store.root / "notes.json").write_text("{}")

    assert [s.session_id for s in file_store.list_sessions()] == ["good"]


def test_malformed_document_loads_as_not_found(file_store):
    file_store.root.mkdir(parents=True)
    (file_store.root / "session-2024-01-01T00-00-00-000Z-broken.json").write_text("{oops")
    assert file_store.load("broken") is None


def test_id_must_match_filename_suffix(file_store):
    file_store.save(make_session("abc123"))
    assert file_store.load("c123") is None
    assert file_store.load("abc") is None


def test_unsafe_ids_are_rejected(file_store):
    with pytest.raises(ValidationError):
        file_store.save(make_session("../escape"))
    assert file_store.load("../escape") is None


@pytest.mark.parametrize("bad_messages", [["hi"], [None], [{"role": "user", "content": 5}], [{"role": "therapist", "content": "x", "segments": ["y"]}]])
def test_non_object_turns_are_skipped_and_load_as_not_found(file_store, bad_messages):
    file_store.save(make_session("good"))
    (file_store.root / "session-2024-01-01T00-00-00-000Z-bad.json").write_text(
        json.dumps({"sessionId": "bad", "startedAt": "2024-01-01T00:00:00.000Z", "messages": bad_messages})
    )

    assert [s.session_id for s in file_store.list_sessions()] == ["good"]
    assert file_store.load("bad") is None
