"""Tests for JSON extraction from generated text."""

from media_library.llm.json_extract import extract_json_array, extract_json_object, strip_code_fences


def test_strip_code_fences_with_and_without_language() -> None:
    assert strip_code_fences("```json\n[1]\n```") == "[1]"
    assert strip_code_fences("```\n{}\n```") == "{}"
    assert strip_code_fences("  [1]  ") == "[1]"


def test_array_parse_prefers_whole_response() -> None:
    assert extract_json_array('[{"a": [1, 2]}]') == [{"a": [1, 2]}]


def test_array_found_after_unbalanced_bracket() -> None:
    assert extract_json_array("Items [see below]: [1, 2, 3]") == [1, 2, 3]


def test_array_missing_returns_none() -> None:
    assert extract_json_array("") is None
    assert extract_json_array("no json here") is None
    assert extract_json_array('{"a": 1}') is None


def test_object_extraction() -> None:
    text = 'Here is the data:\n```json\n{"synopsis": "A story", "keywords": ["x"]}\n```'
    assert extract_json_object(text) == {"synopsis": "A story", "keywords": ["x"]}
    assert extract_json_object("[1, 2]") is None
