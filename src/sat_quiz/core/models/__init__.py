"""
Core Models Package

Immutable data models shared by the API client, storage and engines.
All models are frozen dataclasses so identifiers can live in sets and be
shared between the filter engine and a quiz session without copying.
"""

from .identifiers import (
    Difficulty,
    IdType,
    QuestionIdentifier,
    QuestionMetadata,
    SubjectPreference,
    SubjectType,
)
from .questions import AnswerOption, LiveQuestionList, QuestionDetail
from .mistakes import Mistake

__all__ = [
    "Difficulty",
    "IdType",
    "QuestionIdentifier",
    "QuestionMetadata",
    "SubjectPreference",
    "SubjectType",
    "AnswerOption",
    "LiveQuestionList",
    "QuestionDetail",
    "Mistake",
]
