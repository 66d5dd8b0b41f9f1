"""
In-memory pattern matching over a single page.

Two pattern dialects are supported:

    like  - SQL LIKE: '%' matches any run of characters, '_' exactly one.
            Case-insensitive, anchored to the whole value, no escapes.
    regex - Python regular expression, case-insensitive, substring search
            unless the pattern anchors itself.

A search value may hold several patterns; a column value matches only when
every pattern matches it.
"""
import logging
import re
from functools import lru_cache
from typing import Callable, List, Optional, Sequence, Union

from ..exceptions import PatternInvalid
from ..models import ColumnDescriptor, MatchRecord, Page, SearchMode, NULL_SENTINEL

logger = logging.getLogger(__name__)

REGEX_PREFIX = "REGEX:"

Predicate = Callable[[str], bool]


@lru_cache(maxsize=256)
def _like_regex(pattern: str) -> re.Pattern:
    parts = []
    previous = None
    for char in pattern:
        if char == "%":
            if previous != "%":
                parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
        previous = char
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def is_like_match(text: str, pattern: str) -> bool:
    """True when the whole of text matches the SQL LIKE pattern."""
    return _like_regex(pattern).fullmatch(text) is not None


def compile_pattern(pattern: str, mode: str = SearchMode.LIKE) -> Predicate:
    """
        Build a predicate for one pattern.
        Raises PatternInvalid for a regular expression that does not compile.
    """
    if mode == SearchMode.REGEX:
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise PatternInvalid(pattern, str(e)) from e
        return lambda text: regex.search(text) is not None

    if mode != SearchMode.LIKE:
        raise ValueError(f"Unknown search mode: {mode}")

    like = _like_regex(pattern)
    return lambda text: like.fullmatch(text) is not None


def compile_patterns(patterns: Union[str, Sequence[str]], mode: str = SearchMode.LIKE) -> Predicate:
    """Predicate that requires every pattern to match."""
    if isinstance(patterns, str):
        patterns = [patterns]

    predicates = [compile_pattern(p, mode) for p in patterns]
    if len(predicates) == 1:
        return predicates[0]
    return lambda text: all(predicate(text) for predicate in predicates)


def scan_page(
    page: Page,
    columns: Sequence[Union[ColumnDescriptor, str]],
    key_columns: Sequence[str],
    pattern: Union[str, Sequence[str]],
    mode: str = SearchMode.LIKE
) -> List[MatchRecord]:
    """
        Scan one page for values matching pattern.

        Results come in row order, then column order. An invalid regular
        expression yields no matches.
    """
    try:
        predicate = compile_patterns(pattern, mode)
    except PatternInvalid as e:
        logger.warning(f"{e.message}; no matches for page {page.page_number}")
        return []

    return match_page(page, columns, key_columns, predicate)


def match_page(
    page: Page,
    columns: Sequence[Union[ColumnDescriptor, str]],
    key_columns: Sequence[str],
    predicate: Predicate
) -> List[MatchRecord]:
    """scan_page with an already compiled predicate, for scans spanning many pages."""
    column_names = [c.name if isinstance(c, ColumnDescriptor) else c for c in columns]
    matches = []

    for row_index, row in enumerate(page.rows):
        for column_name in column_names:
            value = row.get(column_name)
            if value is None:
                continue

            text = str(value)
            if not predicate(text):
                continue

            matches.append(MatchRecord(
                column_name=column_name,
                value=text,
                key_values=_key_snapshot(row, key_columns),
                page_number=page.page_number,
                row_index=row_index
            ))

    return matches


def _key_snapshot(row: dict, key_columns: Sequence[str]) -> dict:
    snapshot = {}
    for key in key_columns:
        if key not in row:
            continue
        value = row[key]
        snapshot[key] = NULL_SENTINEL if value is None else str(value)
    return snapshot


def parse_search_patterns(search_value: str) -> List[str]:
    """Split a comma-separated search value into patterns, dropping blanks."""
    return [p.strip() for p in search_value.split(",") if p.strip()]


def parse_search_input(raw: str, use_regex: bool = False) -> tuple:
    """
        Turn operator input into (patterns, mode).
        A leading 'REGEX:' selects regular expressions. Only LIKE input is
        split on commas, since a comma is meaningful inside a regex.
    """
    if raw.startswith(REGEX_PREFIX):
        raw = raw[len(REGEX_PREFIX):]
        use_regex = True

    if use_regex:
        return ([raw] if raw else []), SearchMode.REGEX
    return parse_search_patterns(raw), SearchMode.LIKE


def describe_search(patterns: Sequence[str], mode: str = SearchMode.LIKE) -> str:
    kind = "regex" if mode == SearchMode.REGEX else "LIKE"
    if len(patterns) == 1:
        return f"Single {kind} pattern: '{patterns[0]}'"
    joined = " AND ".join(f"'{p}'" for p in patterns)
    return f"Multiple {kind} patterns (AND logic): {joined}"


def validate_pattern(patterns: Union[str, Sequence[str]], mode: str) -> Optional[str]:
    """Error message for an unusable pattern set, else None."""
    if isinstance(patterns, str):
        patterns = [patterns]
    if not patterns:
        return "No search pattern given"
    try:
        compile_patterns(patterns, mode)
    except PatternInvalid as e:
        return e.message
    return None
