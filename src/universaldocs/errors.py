from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    NETWORK_FAILURE = "NETWORK_FAILURE"
    NAVIGATION_FAILED = "NAVIGATION_FAILED"
    EXTRACTION_EMPTY = "EXTRACTION_EMPTY"
    MALFORMED_REMOTE_DATA = "MALFORMED_REMOTE_DATA"
    STORAGE_CONSTRAINT_VIOLATION = "STORAGE_CONSTRAINT_VIOLATION"
    INVALID_INPUT = "INVALID_INPUT"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    RENDERER_UNAVAILABLE = "RENDERER_UNAVAILABLE"


class UniversalDocsError(Exception):
    """Raised for all expected failure conditions.

    Per-page codes (NAVIGATION_FAILED, STORAGE_CONSTRAINT_VIOLATION) are
    caught by the crawler and only skip the page in question.
    RENDERER_UNAVAILABLE and INVALID_INPUT travel up to server.py, which
    serialises them into the MCP error response.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
