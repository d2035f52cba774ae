import json

import pytest

from skintrack.analyzers.skin_parsing import decode_analysis, decode_outcome, strip_fences
from skintrack.analyzers.skin_schema import AnalysisResult


_LIST_FIELDS = ("symptoms", "reasons", "precautions", "prevention", "treatments", "medicines")


def _fence(text: str, tag: str = "json") -> str:
    return f"```{tag}\n{text}\n```"


def test_decodes_fenced_eczema_payload():
    text = '```json\n{"isSkin": true, "isHealthy": false, "diseaseName": "Eczema", "symptoms": ["itching"]}\n```'

    result = decode_analysis(text)

    assert result.is_skin is True
    assert result.is_healthy is False
    assert result.disease_name == "Eczema"
    assert result.symptoms == ["itching"]
    for name in ("reasons", "precautions", "prevention", "treatments", "medicines"):
        assert getattr(result, name) == []
    assert result.description is None
    assert result.healing_period is None


def test_not_json_returns_all_default_result():
    result = decode_analysis("not json at all")
    assert result == AnalysisResult()


@pytest.mark.parametrize("text", [None, "", "   ", "```json\n```", "```"])
def test_empty_output_returns_default(text):
    assert decode_analysis(text) == AnalysisResult()


@pytest.mark.parametrize(
    "text",
    [
        '{"isSkin": true, "isHealthy": true}',
        '{"isSkin": true, "isHealthy": false, "diseaseName": "Psoriasis", "treatments": ["emollients"]}',
        '{"isSkin": true, "symptoms": "itching"}',
        "not json at all",
        '{"isSkin": true,',
    ],
)
@pytest.mark.parametrize("tag", ["json", "JSON", ""])
def test_fence_stripping_is_idempotent(text, tag):
    assert decode_analysis(_fence(text, tag)) == decode_analysis(text)
    assert strip_fences(strip_fences(_fence(text, tag))) == strip_fences(_fence(text, tag))


def test_list_field_given_as_scalar_falls_back():
    outcome = decode_outcome('{"isSkin": true, "isHealthy": false, "symptoms": "itching"}')
    assert outcome.decoded is False
    assert outcome.result == AnalysisResult()


def test_non_string_list_items_fall_back():
    assert decode_analysis('{"isSkin": true, "medicines": [1, 2]}') == AnalysisResult()


def test_non_object_top_level_falls_back():
    outcome = decode_outcome("[1, 2, 3]")
    assert outcome.decoded is False
    assert "expected a JSON object" in (outcome.reason or "")


def test_truncated_json_falls_back():
    assert decode_analysis('```json\n{"isSkin": true, "isHealthy": false, "diseaseNa') == AnalysisResult()


def test_nulls_are_treated_as_absent():
    payload = {"isSkin": True, "isHealthy": None, "diseaseName": None, "symptoms": None}
    result = decode_analysis(json.dumps(payload))

    assert result.is_skin is True
    assert result.is_healthy is False
    assert result.disease_name is None
    assert result.symptoms == []


def test_missing_required_booleans_default_to_false():
    outcome = decode_outcome('{"diseaseName": "Acne"}')
    assert outcome.decoded is True
    assert outcome.result.is_skin is False
    assert outcome.result.is_healthy is False
    assert outcome.result.disease_name == "Acne"


def test_json_embedded_in_prose_is_extracted():
    text = 'Here is the result: {"isSkin": true, "isHealthy": true} Hope this helps.'
    outcome = decode_outcome(text)
    assert outcome.decoded is True
    assert outcome.result.is_healthy is True


def test_embedded_json_ignores_braces_in_trailing_prose():
    outcome = decode_outcome('Result: {"isSkin": true, "isHealthy": true} (format {x})')
    assert outcome.decoded is True
    assert outcome.result.is_skin is True
    assert outcome.result.is_healthy is True


def test_embedded_json_skips_braces_in_leading_prose():
    text = 'Using template {name}: {"isSkin": true, "isHealthy": false, "diseaseName": "Acne"} {done}'
    outcome = decode_outcome(text)
    assert outcome.decoded is True
    assert outcome.result.disease_name == "Acne"


def test_unknown_keys_are_ignored():
    result = decode_analysis('{"isSkin": true, "isHealthy": true, "confidence": 0.9}')
    assert result.is_skin is True
    assert not hasattr(result, "confidence")


@pytest.mark.parametrize(
    "text",
    [
        '{"isSkin": "maybe"}',
        '{"diseaseName": 42}',
        '{"isSkin": true, "symptoms": [["nested"]]}',
        "{" * 5000,
        "```python\nprint('hi')\n```",
    ],
)
def test_decoder_never_raises_and_output_is_well_typed(text):
    result = decode_analysis(text)

    assert isinstance(result.is_skin, bool)
    assert isinstance(result.is_healthy, bool)
    for name in _LIST_FIELDS:
        value = getattr(result, name)
        assert isinstance(value, list)
        assert all(isinstance(v, str) for v in value)
    for name in ("disease_name", "description", "healing_period"):
        assert getattr(result, name) is None or isinstance(getattr(result, name), str)
