"""
Module: api

Purpose:
    Question-bank access: the QuestionSource interface, its httpx
    implementation, and the record parsers both rely on.
"""

from .client import QuestionBankClient
from .source import QuestionSource
from .parsing import extract_metadata, identifier_from_record

__all__ = [
    "QuestionBankClient",
    "QuestionSource",
    "extract_metadata",
    "identifier_from_record",
]
