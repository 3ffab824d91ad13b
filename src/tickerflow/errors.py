"""Exceptions surfaced to callers of the resolution pipeline.

Only request-level problems are raised. Upstream failures are absorbed by the
resolver and reported through ``ResolutionResult.origin`` and ``is_stale``.
"""

from typing import Any


class TickerflowError(Exception):
    """Base class for all tickerflow errors."""


class InvalidRequestError(TickerflowError):
    """Raised when a symbol, kind, interval or limit cannot be served."""

    def __init__(self, message: str, field: str | None = None, value: Any = None) -> None:
        """Initialize the error.

        Args:
            message: Human readable description
            field: Name of the offending request field
            value: The rejected value
        """
        self.field = field
        self.value = value
        super().__init__(message)


class ConfigError(TickerflowError):
    """Raised when configuration cannot be loaded or validated."""

    def __init__(self, message: str, file_path: str | None = None) -> None:
        self.file_path = file_path
        full_message = f"Configuration error: {message}"
        if file_path:
            full_message += f" (file: {file_path})"
        super().__init__(full_message)
