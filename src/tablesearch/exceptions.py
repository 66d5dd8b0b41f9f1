"""
Error taxonomy for the table search engine.

A cache miss is not an error and has no exception: stores return None.
"""

from typing import Any, Dict, List, Optional


class TableSearchError(Exception):
    """Base exception for the table search engine."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class SourceUnavailable(TableSearchError):
    """Raised when a connection or query against the source database fails."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(
            code="SOURCE_UNAVAILABLE",
            message=message,
            details={"operation": operation} if operation else None,
        )


class CacheCorrupt(TableSearchError):
    """Raised when a stored artifact cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code="CACHE_CORRUPT",
            message=f"Unreadable cache artifact {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class PatternInvalid(TableSearchError):
    """Raised when a regular expression does not compile."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(
            code="PATTERN_INVALID",
            message=f"Invalid regular expression '{pattern}': {reason}",
            details={"pattern": pattern},
        )


class ConfigInvalid(TableSearchError):
    """Raised at startup when settings are missing or unparseable."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(
            code="CONFIG_INVALID",
            message=message,
            details={"errors": errors} if errors else None,
        )
