"""
Tests for category pattern matching and pattern specs.
"""

import pytest

from pid_tagger.services.extraction.patterns import PatternMatcher, compile_category_pattern, match_category
from pid_tagger.shared.exceptions import ConfigurationError
from pid_tagger.shared.models.settings import (
    FunctionNumberPattern, InvalidPattern, PlainPattern, pattern_spec_from_raw, pattern_spec_to_raw,
)
from pid_tagger.shared.models.tags import Category


def test_single_equipment_match():
    matches = match_category("AB-1234", {Category.EQUIPMENT: r"[A-Z]{2}-\d{4}"})

    assert matches == [(Category.EQUIPMENT, "AB-1234")]


def test_matching_is_case_insensitive():
    assert match_category("ab-1234", {Category.EQUIPMENT: r"[A-Z]{2}-\d{4}"}) == [(Category.EQUIPMENT, "ab-1234")]


def test_all_matches_are_returned_left_to_right():
    matches = match_category("AB-1234 / CD-5678", {Category.EQUIPMENT: r"[A-Z]{2}-\d{4}"})

    assert [text for _, text in matches] == ["AB-1234", "CD-5678"]


def test_invalid_pattern_skips_only_its_category():
    matcher = PatternMatcher({
        Category.LINE: r"([unclosed",
        Category.EQUIPMENT: r"[A-Z]{2}-\d{4}",
    })

    assert matcher.match("AB-1234") == [(Category.EQUIPMENT, "AB-1234")]
    assert len(matcher.errors) == 1
    assert matcher.errors[0].category == "Line"
    assert matcher.categories == [Category.EQUIPMENT]


def test_one_run_can_match_several_categories():
    matches = match_category("AB-CD-2001", {
        Category.EQUIPMENT: r"[A-Z]{2}-[A-Z]{2}-\d{4}",
        Category.LINE: r"\d{4}",
    })

    assert matches == [(Category.EQUIPMENT, "AB-CD-2001"), (Category.LINE, "2001")]


def test_explicit_category_order_is_respected():
    matcher = PatternMatcher(
        {Category.LINE: r"\d{4}", Category.EQUIPMENT: r"[A-Z]{2}"},
        categories=[Category.EQUIPMENT, Category.LINE],
    )

    assert matcher.categories == [Category.EQUIPMENT, Category.LINE]


def test_empty_pattern_disables_category_without_error():
    matcher = PatternMatcher({Category.EQUIPMENT: ""})

    assert matcher.categories == []
    assert matcher.errors == []
    assert matcher.match("AB-1234") == []


def test_empty_matches_are_dropped():
    assert match_category("abc", {Category.EQUIPMENT: r"x*"}) == []


def test_function_number_pattern_joins_with_optional_space():
    patterns = {Category.INSTRUMENT: {"func": r"[A-Z]{2,4}", "num": r"\d{3,4}"}}

    assert match_category("PT 1001", patterns) == [(Category.INSTRUMENT, "PT 1001")]
    assert match_category("PT1001", patterns) == [(Category.INSTRUMENT, "PT1001")]


def test_compile_reports_invalid_regex():
    with pytest.raises(ConfigurationError) as exc_info:
        compile_category_pattern(Category.EQUIPMENT, "(")

    assert exc_info.value.category == "Equipment"


def test_compile_reports_unusable_pattern_value():
    spec = InvalidPattern(value=42, reason="Unsupported pattern value for Line: 42")

    with pytest.raises(ConfigurationError) as exc_info:
        compile_category_pattern(Category.LINE, spec)

    assert exc_info.value.category == "Line"


def test_matcher_skips_function_number_pattern_outside_instrument():
    matcher = PatternMatcher({
        Category.EQUIPMENT: {"func": "[A-Z]{2}", "num": r"\d+"},
        Category.LINE: r"\d{4}",
    })

    assert matcher.categories == [Category.LINE]
    assert len(matcher.errors) == 1


def test_compile_returns_none_for_disabled_category():
    assert compile_category_pattern(Category.UNCATEGORIZED, "") is None


class TestPatternSpecs:

    def test_legacy_instrument_string_is_split_at_separator(self):
        spec = pattern_spec_from_raw(Category.INSTRUMENT, r"[A-Z]{2,4}\s?\d{3,4}")

        assert spec == FunctionNumberPattern(func=r"[A-Z]{2,4}", num=r"\d{3,4}")
        assert spec.effective_pattern == r"[A-Z]{2,4}\s?\d{3,4}"

    def test_legacy_instrument_string_without_separator(self):
        spec = pattern_spec_from_raw(Category.INSTRUMENT, r"[A-Z]{2}-\d+")

        assert spec.func == r"[A-Z]{2}-\d+"
        assert spec.num == ""

    def test_plain_string_for_other_categories(self):
        assert pattern_spec_from_raw(Category.LINE, r"\d+") == PlainPattern(pattern=r"\d+")

    def test_tagged_dictionary(self):
        spec = pattern_spec_from_raw(Category.INSTRUMENT, {"kind": "plain", "pattern": r"[A-Z]{2}-\d{4}"})

        assert isinstance(spec, PlainPattern)

    def test_unsupported_value_is_rejected(self):
        with pytest.raises(ValueError):
            pattern_spec_from_raw(Category.EQUIPMENT, 42)

    def test_to_raw_uses_project_file_shapes(self):
        assert pattern_spec_to_raw(PlainPattern(pattern="A")) == "A"
        assert pattern_spec_to_raw(FunctionNumberPattern(func="A", num="1")) == {"func": "A", "num": "1"}
        assert pattern_spec_to_raw(FunctionNumberPattern(func="A", num="1", separator="-")) == {
            "func": "A", "num": "1", "separator": "-",
        }

    def test_function_number_object_is_rejected_outside_instrument(self):
        with pytest.raises(ValueError):
            pattern_spec_from_raw(Category.EQUIPMENT, {"func": "[A-Z]", "num": r"\d"})

    def test_invalid_spec_keeps_its_stored_value(self):
        assert pattern_spec_to_raw(InvalidPattern(value={"func": 1}, reason="bad")) == {"func": 1}
