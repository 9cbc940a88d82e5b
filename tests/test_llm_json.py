import pytest

from counsel.utils.llm_json import extract_json, require_object, strip_code_fences


def test_plain_json():
    assert extract_json('{"segments": []}') == {"segments": []}


def test_fenced_json():
    text = '```json\n{"segments": [{"text": "Hi", "strategies": []}]}\n```'
    assert strip_code_fences(text).startswith("{")
    assert extract_json(text)["segments"][0]["text"] == "Hi"


def test_object_inside_prose():
    assert extract_json('Sure! {"a": 1} Hope that helps.') == {"a": 1}


def test_nothing_parses():
    assert extract_json("") is None
    assert extract_json("no json here") is None


def test_require_object_rejects_arrays():
    with pytest.raises(ValueError):
        require_object("[1, 2]")
