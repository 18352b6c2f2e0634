"""
Module: core.errors

Purpose:
    Exception hierarchy shared by the API client, storage layer and engines.
    Engines convert fetch errors into an ERROR session state; storage errors
    are logged and swallowed by their callers.

Key Classes:
    - QuizError: Base class for all package errors
    - NetworkError: Transport failure or timeout
    - ApiError: Non-success HTTP status
    - DataError: Response body could not be parsed
    - StorageError: Local persistence failed or held malformed data
"""

from __future__ import annotations

from typing import Optional


class QuizError(Exception):
    """Base class for errors raised by sat_quiz."""

    def __init__(self, message: str, *, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class NetworkError(QuizError):
    """Network connection failed or timed out."""
    pass


class ApiError(QuizError):
    """The question-bank API answered with an unexpected status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class DataError(QuizError):
    """A response or record could not be parsed."""
    pass


class StorageError(QuizError):
    """Reading or writing local state failed."""
    pass
