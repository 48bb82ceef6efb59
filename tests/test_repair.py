"""Tests for model-output repair."""

from __future__ import annotations

import json

import pytest

from sceneviz.core.repair import (
    answer_text,
    balance_brackets,
    fix_common_errors,
    parse_model_output,
    strip_fences,
    trim_to_object,
)
from sceneviz.exceptions import RepairError
from tests.conftest import ANSWER_JSON


class TestHelpers:
    def test_strip_fences(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_trim_to_object(self):
        assert trim_to_object('Sure! {"a": 1} Hope that helps.') == '{"a": 1}'

    def test_fix_bare_keys_and_quotes(self):
        fixed = fix_common_errors("{text: 'hello', count: 2,}")
        assert json.loads(fixed) == {"text": "hello", "count": 2}

    def test_fix_double_commas(self):
        assert json.loads(fix_common_errors('{"a": 1,, "b": 2}')) == {"a": 1, "b": 2}

    def test_fix_fractions(self):
        assert json.loads(fix_common_errors('{"x": 1/3}')) == {"x": 0.333}

    def test_balance_brackets(self):
        assert json.loads(balance_brackets('{"a": [1, 2, {"b": 3')) == {"a": [1, 2, {"b": 3}]}

    def test_balance_ignores_brackets_in_strings(self):
        assert json.loads(balance_brackets('{"a": "x{[", "b": [1')) == {"a": "x{[", "b": [1]}


class TestParseModelOutput:
    def test_clean_json(self):
        assert parse_model_output(ANSWER_JSON)["text"] == "The dot fades in."

    def test_fenced_with_prose(self):
        raw = f"Here is your answer:\n```json\n{ANSWER_JSON}\n```\nEnjoy!"
        assert parse_model_output(raw)["visualization"]["fps"] == 30

    def test_javascript_object_syntax(self):
        raw = "{text: 'Gravity pulls', visualization: null,}"
        assert parse_model_output(raw) == {"text": "Gravity pulls", "visualization": None}

    def test_truncated_output(self):
        raw = ANSWER_JSON[: ANSWER_JSON.index('"animations"')]
        data = parse_model_output(raw)
        assert data["text"] == "The dot fades in."
        assert data["visualization"]["layers"][0]["id"] == "dot"

    def test_prose_becomes_text_only(self):
        raw = "Photosynthesis turns light into chemical energy in plants."
        assert parse_model_output(raw) == {"text": raw, "visualization": None}

    @pytest.mark.parametrize("raw", ["", "   ", "nope"])
    def test_unrecoverable(self, raw):
        with pytest.raises(RepairError):
            parse_model_output(raw)

    def test_garbage_object_raises(self):
        with pytest.raises(RepairError):
            parse_model_output("{{{ :: }}} [[[")


class TestAnswerText:
    def test_prefers_text(self):
        assert answer_text({"text": " hi "}, "q") == "hi"

    def test_falls_back_to_description(self):
        assert answer_text({"description": "desc"}, "q") == "desc"

    def test_generic_sentence(self):
        assert "gravity" in answer_text({}, "gravity")
