"""
app/errors.py

Exception hierarchy shared by the aggregation and analysis flows.
"""

from __future__ import annotations


class InsightError(Exception):
    """Base exception for BA cluster insight failures."""


class ParseError(InsightError):
    """Raised when the uploaded CSV is empty, malformed, or lacks a BA column."""


class AnalysisError(InsightError):
    """
    Raised when the external analysis step fails.

    Attributes:
        stage: Which step failed ("credential", "request", "empty",
            "json_parse", "schema" or "coverage").
        errors: Human-readable error details.
        raw_response: The raw payload returned by the service, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        errors: list[str] | None = None,
        raw_response: str | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.errors = list(errors or [])
        self.raw_response = raw_response


class UnexpectedError(InsightError):
    """Raised for failures outside parsing and analysis."""


class FileReadError(UnexpectedError):
    """Raised when an uploaded file cannot be read or decoded."""
