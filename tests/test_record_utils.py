"""
Unit tests for the shared record utilities.

Covers limit clamping, filter-list normalization, FTS query escaping,
JSON column helpers, date ages and jurisdiction inference.
"""

import math

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from record_utils import (
    age_in_days,
    clean_text,
    encode_json_array,
    encode_json_object,
    escape_fts_query,
    frequency_threshold_days,
    infer_jurisdiction,
    like_pattern,
    normalize_limit,
    normalize_string_list,
    parse_json_array,
    parse_json_field,
    sanitize_for_logging,
)


class TestNormalizeLimit:
    """Tests for result limit clamping."""

    def test_missing_uses_default(self):
        assert normalize_limit(None, 10) == 10

    def test_clamps_to_bounds(self):
        assert normalize_limit(0, 10) == 1
        assert normalize_limit(-5, 10) == 1
        assert normalize_limit(51, 10) == 50
        assert normalize_limit(1000, 10) == 50

    def test_floors_floats(self):
        assert normalize_limit(7.9, 10) == 7

    def test_non_numeric_uses_default(self):
        """Strings (even numeric ones), booleans and NaN fall back."""
        assert normalize_limit("5", 10) == 10
        assert normalize_limit(True, 10) == 10
        assert normalize_limit(float("nan"), 10) == 10

    def test_infinity_is_clamped(self):
        assert normalize_limit(float("inf"), 10) == 50
        assert normalize_limit(float("-inf"), 10) == 1


class TestStringLists:
    """Tests for filter list and text cleanup."""

    def test_normalize_string_list(self):
        values = [" EU ", "US", "", "EU", 7, None, "  "]
        assert normalize_string_list(values) == ["EU", "US"]

    def test_normalize_string_list_empty(self):
        assert normalize_string_list(None) == []
        assert normalize_string_list([]) == []

    def test_clean_text(self):
        assert clean_text("  13694 ") == "13694"
        assert clean_text("   ") is None
        assert clean_text(None) is None

    def test_like_pattern_lowercases(self):
        assert like_pattern("Cyber") == "%cyber%"


class TestEscapeFtsQuery:
    """Tests for FTS5 query escaping."""

    def test_plain_words_pass_through(self):
        assert escape_fts_query("cyber sanctions") == "cyber sanctions"

    def test_operators_are_quoted(self):
        assert escape_fts_query("cyber OR sanctions") == 'cyber "OR" sanctions'
        assert escape_fts_query("NEAR") == '"NEAR"'

    def test_syntax_characters_are_quoted(self):
        assert escape_fts_query("cyber-enabled") == '"cyber-enabled"'
        assert escape_fts_query("title:cyber") == '"title:cyber"'
        assert escape_fts_query("sanc*") == '"sanc*"'

    def test_embedded_quotes_are_doubled(self):
        assert escape_fts_query('say"hi') == '"say""hi"'

    def test_punctuation_only_words_are_dropped(self):
        assert escape_fts_query("( ) * -- cyber") == "cyber"
        assert escape_fts_query("   ") == ""
        assert escape_fts_query('"') == ""

    def test_non_string_is_empty(self):
        assert escape_fts_query(None) == ""


class TestJsonHelpers:
    """Tests for JSON column encode/decode."""

    def test_parse_json_array(self):
        assert parse_json_array('["cyber", "", 3, "guidance"]') == ["cyber", "guidance"]

    def test_parse_json_array_invalid(self):
        assert parse_json_array(None) == []
        assert parse_json_array("not json") == []
        assert parse_json_array('{"a": 1}') == []

    def test_parse_json_field(self):
        assert parse_json_field('{"celex": "32014R0833"}') == {"celex": "32014R0833"}
        assert parse_json_field("") is None
        assert parse_json_field("{broken") is None

    def test_encode_json_array(self):
        assert parse_json_array(encode_json_array(["asset_freeze", "cyber"])) == ["asset_freeze", "cyber"]
        assert encode_json_array(None) == "[]"

    def test_encode_json_object_empty_is_null(self):
        assert encode_json_object(None) is None
        assert encode_json_object({}) is None
        assert encode_json_object({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'


class TestDates:
    """Tests for date age computation."""

    def test_age_in_days(self):
        assert age_in_days("2026-02-12", "2026-02-22") == 10

    def test_age_is_never_negative(self):
        assert age_in_days("2026-03-01", "2026-02-22") == 0

    def test_unparseable_dates_are_infinite(self):
        assert math.isinf(age_in_days("pending", "2026-02-22"))
        assert math.isinf(age_in_days("2026-02-12", "not a date"))

    def test_frequency_thresholds(self):
        assert frequency_threshold_days("daily") == 30
        assert frequency_threshold_days("weekly") == 60
        assert frequency_threshold_days("monthly") == 120
        assert frequency_threshold_days("on_change") == 90
        assert frequency_threshold_days("yearly") == 30
        assert frequency_threshold_days(None) == 30


class TestJurisdictionInference:
    """Tests for source id to jurisdiction mapping."""

    def test_known_prefixes(self):
        assert infer_jurisdiction("UN_SC_SANCTIONS") == "UN"
        assert infer_jurisdiction("EU_RESTRICTIVE_MEASURES") == "EU"
        assert infer_jurisdiction("US_BIS_EAR") == "US"
        assert infer_jurisdiction("UK_OFSI_REGULATIONS") == "UK"

    def test_other_sources_are_international(self):
        assert infer_jurisdiction("CJEU_SANCTIONS_CASE_LAW") == "INTL"
        assert infer_jurisdiction(None) == "INTL"


class TestSanitizeForLogging:
    """Tests for log sanitization."""

    def test_strips_control_characters(self):
        assert "\n" not in sanitize_for_logging("cyber\nFAKE LOG LINE")

    def test_truncates(self):
        assert len(sanitize_for_logging("x" * 500, max_length=50)) <= 60
