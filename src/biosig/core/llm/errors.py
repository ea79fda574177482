"""Exceptions raised around calls to the external completion service."""

from __future__ import annotations


class CompletionClientError(Exception):
    """Base exception for completion service errors."""


class CompletionConfigError(CompletionClientError):
    """The service cannot be called at all (credential or provider setup).

    Never retried. ``hint`` tells the operator how to fix it.
    """

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(f"{message} ({hint})" if hint else message)
        self.hint = hint


class CompletionTransportError(CompletionClientError):
    """Network failure, timeout, non-2xx status or unusable response envelope."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = 0


class StructuredOutputError(Exception):
    """Base exception for structured-result extraction errors."""


class StructuredParseError(StructuredOutputError):
    """No parseable structured block was found in the response text."""


class StructuredValidationError(StructuredOutputError):
    """A structured block parsed but lacks required fields."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(missing)}")
        self.missing = missing
