"""
Tests for LIKE / regex matching and page scanning.
"""

import pytest

from src.tablesearch.exceptions import PatternInvalid
from src.tablesearch.matching import (
    compile_pattern,
    compile_patterns,
    describe_search,
    is_like_match,
    parse_search_input,
    parse_search_patterns,
    scan_page,
    validate_pattern,
)
from src.tablesearch.models import ColumnDescriptor, MatchRecord, Page, SearchMode, NULL_SENTINEL


class TestLikeMatch:
    """SQL LIKE semantics."""

    @pytest.mark.parametrize("text,pattern,expected", [
        ("AD_Managers", "A%", True),
        ("BD_Managers", "A%", False),
        ("AD_Managers", "%Manager%", True),
        ("Test", "test", True),
        ("Test", "Tes", False),
        ("", "%", True),
        ("", "", True),
        ("abc", "", False),
        ("abc", "a%%c", True),
    ])
    def test_like_cases(self, text, pattern, expected):
        assert is_like_match(text, pattern) is expected

    def test_underscore_consumes_exactly_one_character(self):
        """'_' is a single-character wildcard, never a literal underscore."""
        assert is_like_match("AxManagers", "A_M%") is True
        assert is_like_match("AD_Managers", "A_M%") is False
        assert is_like_match("AB", "A__") is False
        assert is_like_match("ABC", "A__") is True

    def test_regex_metacharacters_are_literal(self):
        assert is_like_match("a.c", "a.c") is True
        assert is_like_match("abc", "a.c") is False
        assert is_like_match("(x)+", "(x)+") is True

    def test_percent_spans_newlines(self):
        assert is_like_match("first line\nsecond line", "%second%") is True


class TestCompilePattern:
    """Pattern compilation per mode."""

    def test_regex_is_case_insensitive_substring_search(self):
        predicate = compile_pattern("manager", SearchMode.REGEX)
        assert predicate("AD_Managers") is True
        assert predicate("AD_Admins") is False

    def test_regex_anchors_are_honored(self):
        predicate = compile_pattern("^ad_", SearchMode.REGEX)
        assert predicate("AD_Managers") is True
        assert predicate("XAD_Managers") is False

    def test_invalid_regex_raises(self):
        with pytest.raises(PatternInvalid) as exc_info:
            compile_pattern("([a-z", SearchMode.REGEX)
        assert exc_info.value.code == "PATTERN_INVALID"
        assert "([a-z" in exc_info.value.message

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            compile_pattern("x", "glob")

    def test_multiple_patterns_require_all(self):
        predicate = compile_patterns(["%AD%", "%Man%"])
        assert predicate("AD_Managers") is True
        assert predicate("AD_Admins") is False


class TestScanPage:
    """Scanning one page of rows."""

    @pytest.fixture
    def page(self):
        return Page(page_number=2, rows=[
            {"id": 1, "name": "AD_Managers", "description": "manages AD"},
            {"id": 2, "name": "user_2", "description": None},
            {"id": None, "name": "AD_Admins", "description": "AD_Managers backup"},
        ])

    @pytest.fixture
    def columns(self):
        return [
            ColumnDescriptor(name="name", data_type="text"),
            ColumnDescriptor(name="description", data_type="text"),
        ]

    def test_matches_in_row_then_column_order(self, page, columns):
        matches = scan_page(page, columns, ["id"], "%AD%")

        assert [(m.row_index, m.column_name) for m in matches] == [
            (0, "name"),
            (0, "description"),
            (2, "name"),
            (2, "description"),
        ]
        assert all(m.page_number == 2 for m in matches)

    def test_key_snapshot_and_null_sentinel(self, page, columns):
        matches = scan_page(page, columns, ["id"], "AD_Admins")

        assert len(matches) == 1
        assert matches[0].key_values == {"id": NULL_SENTINEL}

        first = scan_page(page, columns, ["id"], "AD_Managers")[0]
        assert first.key_values == {"id": "1"}

    def test_missing_key_column_is_omitted(self, page, columns):
        matches = scan_page(page, columns, ["tenant_id"], "user_2")
        assert matches[0].key_values == {}

    def test_null_values_never_match(self, page, columns):
        matches = scan_page(page, columns, ["id"], "%")
        assert all(m.value is not None for m in matches)
        assert len(matches) == 5

    def test_column_names_accepted_as_strings(self, page):
        matches = scan_page(page, ["name"], [], "user%")
        assert [m.value for m in matches] == ["user_2"]

    def test_scan_is_pure(self, page, columns):
        first = scan_page(page, columns, ["id"], "%a%")
        second = scan_page(page, columns, ["id"], "%a%")
        assert first == second

    def test_invalid_regex_yields_no_matches(self, page, columns):
        assert scan_page(page, columns, ["id"], "([", SearchMode.REGEX) == []


class TestSearchInput:
    """Parsing operator input into patterns."""

    def test_comma_separated_like_patterns(self):
        assert parse_search_patterns(" %a% , %b%,, ") == ["%a%", "%b%"]
        assert parse_search_input("%a%,%b%") == (["%a%", "%b%"], SearchMode.LIKE)

    def test_regex_prefix_selects_regex(self):
        patterns, mode = parse_search_input("REGEX:^a{1,3}$")
        assert mode == SearchMode.REGEX
        assert patterns == ["^a{1,3}$"]

    def test_regex_flag(self):
        assert parse_search_input("a|b", use_regex=True) == (["a|b"], SearchMode.REGEX)

    def test_validate_pattern(self):
        assert validate_pattern([], SearchMode.LIKE) == "No search pattern given"
        assert validate_pattern("%x%", SearchMode.LIKE) is None
        assert "Invalid regular expression" in validate_pattern("(", SearchMode.REGEX)

    def test_describe_search(self):
        assert describe_search(["%a%"]) == "Single LIKE pattern: '%a%'"
        assert describe_search(["a", "b"], SearchMode.REGEX) == "Multiple regex patterns (AND logic): 'a' AND 'b'"


class TestMatchRecordDisplay:
    """Display truncation of matched values."""

    def test_long_value_is_truncated(self):
        record = MatchRecord(column_name="name", value="x" * 60)
        shown = record.display_value(50)
        assert len(shown) == 50
        assert shown.endswith("...")

    def test_short_value_is_untouched(self):
        record = MatchRecord(column_name="name", value="short")
        assert record.display_value(50) == "short"
