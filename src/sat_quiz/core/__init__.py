"""Core models and errors."""

from .errors import ApiError, DataError, NetworkError, QuizError, StorageError

__all__ = [
    "ApiError",
    "DataError",
    "NetworkError",
    "QuizError",
    "StorageError",
]
