"""
Tests for model-output cleanup: fence stripping, extraction, balance checks,
the repair pass and aggressive normalization.
"""

import json

import pytest

from glowfit.errors import TruncatedOutputError, UnparseableOutputError
from glowfit.plans.repair import (
    REPAIR_STEPS,
    check_balance,
    error_context,
    extract_json_object,
    normalize_aggressively,
    repair_json,
    strip_code_fences,
)


class TestStripCodeFences:
    """Tests for Markdown fence removal."""

    def test_returns_fence_body(self):
        text = 'Here is your plan:\n```json\n{"a": 1}\n```\nEnjoy!'
        assert strip_code_fences(text) == '{"a": 1}'

    def test_fence_without_language(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unclosed_fence_marker_is_removed(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_plain_text_unchanged(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestExtractJsonObject:
    """Tests for balanced-object extraction."""

    def test_strips_surrounding_prose(self):
        assert extract_json_object('Sure! {"a": {"b": 2}} Hope this helps') == '{"a": {"b": 2}}'

    def test_braces_inside_strings_are_ignored(self):
        text = '{"note": "use } and { freely", "n": 1} tail'
        assert extract_json_object(text) == '{"note": "use } and { freely", "n": 1}'

    def test_escaped_quotes_inside_strings(self):
        text = '{"note": "say \\"hi}\\"", "n": 1}'
        assert extract_json_object(text) == text

    def test_unclosed_object_returns_tail(self):
        assert extract_json_object('prefix {"a": [1, 2') == '{"a": [1, 2'

    def test_no_object_raises(self):
        with pytest.raises(UnparseableOutputError) as exc_info:
            extract_json_object("I cannot help with that.")
        assert exc_info.value.position == 0
        assert "no JSON object" in str(exc_info.value)


class TestCheckBalance:
    """Tests for the truncation check."""

    def test_balanced_passes(self):
        check_balance('{"a": [1, {"b": []}]}')

    def test_missing_closers_raise(self):
        with pytest.raises(TruncatedOutputError) as exc_info:
            check_balance('{"workout": [{"day": "Monday"')
        error = exc_info.value
        assert (error.open_braces, error.close_braces) == (2, 0)
        assert (error.open_brackets, error.close_brackets) == (1, 0)
        assert error.to_error_message().startswith("truncated:")

    def test_bracket_mismatch_alone_raises(self):
        with pytest.raises(TruncatedOutputError):
            check_balance('{"a": [1, 2}')


class TestErrorContext:
    def test_marks_position(self):
        assert error_context("abcdef", 3, window=2) == "...bc<<HERE>>de..."

    def test_clamps_at_edges(self):
        assert error_context("abc", 0, window=10) == "<<HERE>>abc"
        assert error_context("abc", 99, window=10) == "abc<<HERE>>"


class TestRepairJson:
    """Tests for the ordered repair substitutions."""

    def test_quotes_rep_scheme_words(self):
        repaired = repair_json('{"reps": AMRAP, "sets": 3}')
        assert json.loads(repaired) == {"reps": "AMRAP", "sets": 3}

    def test_quotes_to_failure(self):
        assert json.loads(repair_json('{"reps": to failure}')) == {"reps": "to failure"}

    def test_quotes_intensity_case_insensitive(self):
        assert json.loads(repair_json('{"intensity": Moderate}')) == {"intensity": "Moderate"}

    def test_quotes_unit_values(self):
        repaired = repair_json('{"rest": 2 - 3 min, "cooking_time": 15minutes, "pause": 90 Sec}')
        assert json.loads(repaired) == {
            "rest": "2-3 min",
            "cooking_time": "15 minutes",
            "pause": "90 sec",
        }

    def test_quotes_numeric_ranges(self):
        repaired = repair_json('{"reps": 8-12, "alt": 8 or 10, "span": 8 to 12}')
        assert json.loads(repaired) == {"reps": "8-12", "alt": "8 or 10", "span": "8 to 12"}

    def test_quotes_bareword_values(self):
        repaired = repair_json('{"exercise": Bench Press, "reps": 12 each leg, "sets": 3}')
        assert json.loads(repaired) == {"exercise": "Bench Press", "reps": "12 each leg", "sets": 3}

    def test_json_literals_stay_unquoted(self):
        repaired = repair_json('{"optional": true, "notes": null, "done": false}')
        assert json.loads(repaired) == {"optional": True, "notes": None, "done": False}

    def test_inserts_missing_commas(self):
        repaired = repair_json('{"a": 1\n"b": "x"\n"c": [{"d": 1} {"d": 2}]}')
        assert json.loads(repaired) == {"a": 1, "b": "x", "c": [{"d": 1}, {"d": 2}]}

    def test_removes_trailing_commas(self):
        assert json.loads(repair_json('{"a": [1, 2,], "b": 3,}')) == {"a": [1, 2], "b": 3}

    @pytest.mark.parametrize("text", [
        '{"a": [1, 2,,]}',
        '{"a": [1, 2, ,]}',
        '{"a": {"b": 1,,}}',
        '{"a": [1, 2,\n,\n]}',
    ])
    def test_runs_of_trailing_commas_are_removed_at_once(self, text):
        once = repair_json(text)
        assert repair_json(once) == once
        assert json.loads(once)

    def test_valid_json_passes_through_unchanged(self, valid_plan_text):
        assert repair_json(valid_plan_text) == valid_plan_text

    def test_repair_is_idempotent(self):
        messy = (
            '{"exercise": Squat, "reps": 8-12, "rest": 2 min,\n'
            '"intensity": high\n"sets": 4,,}'
        )
        once = repair_json(messy)
        assert repair_json(once) == once
        assert json.loads(once)["rest"] == "2 min"

    def test_step_order_is_fixed(self):
        names = [name for name, _ in REPAIR_STEPS]
        assert names == [
            "quote_enum_values",
            "quote_unit_values",
            "quote_numeric_ranges",
            "quote_bareword_values",
            "insert_missing_commas",
            "remove_trailing_commas",
        ]


class TestNormalizeAggressively:
    """Tests for the fallback normalization."""

    def test_single_quotes_bare_keys_and_comments(self):
        text = "{'day': 'Monday', // first day\n routine: [] /* none */} trailing words"
        assert json.loads(normalize_aggressively(text)) == {"day": "Monday", "routine": []}

    def test_urls_are_not_treated_as_comments(self):
        text = '{"source": "https://example.com/plan"}'
        assert normalize_aggressively(text) == text
