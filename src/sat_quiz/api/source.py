"""
Module: api.source

Purpose:
    Interface the quiz engine uses to obtain identifiers and content.
    QuestionBankClient is the production implementation; tests substitute
    in-memory fakes.
"""

from __future__ import annotations

from typing import List, Protocol

from sat_quiz.config import SubjectTest
from sat_quiz.core.models import LiveQuestionList, QuestionDetail, QuestionIdentifier


class QuestionSource(Protocol):
    """Async provider of question identifiers and content."""

    async def fetch_identifiers(self, subject_test: SubjectTest) -> List[QuestionIdentifier]:
        ...

    async def fetch_live_identifiers(self) -> LiveQuestionList:
        ...

    async def fetch_question_content(self, identifier: QuestionIdentifier) -> QuestionDetail:
        ...
