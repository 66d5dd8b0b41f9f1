from .matcher import (
    scan_page,
    match_page,
    is_like_match,
    compile_pattern,
    compile_patterns,
    parse_search_patterns,
    parse_search_input,
    describe_search,
    validate_pattern,
)

__all__ = [
    "scan_page",
    "match_page",
    "is_like_match",
    "compile_pattern",
    "compile_patterns",
    "parse_search_patterns",
    "parse_search_input",
    "describe_search",
    "validate_pattern",
]
