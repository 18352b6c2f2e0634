"""
Module: questions

Purpose:
    Full question content fetched for a drawn identifier, and the list of
    questions currently live elsewhere.

Key Classes:
    - AnswerOption: One selectable answer
    - QuestionDetail: Question content with answer key and rationale
    - LiveQuestionList: Identifiers of live/active questions per subject

Used By:
    - api.client: Returned by fetch_question_content / fetch_live_identifiers
    - engine.quiz: Current question of a session
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set, Tuple

from .identifiers import QuestionIdentifier, QuestionMetadata


@dataclass(frozen=True)
class AnswerOption:
    id: str
    content: str


@dataclass(frozen=True)
class QuestionDetail:
    """
    Question content (immutable).

    Attributes:
        external_id: Unique content ID, recorded as seen once answered
        stimulus: Passage or figure HTML, may be empty
        stem: Question prompt HTML
        answer_options: Choices for multiple-choice questions, empty for
            student-produced responses
        correct_key: ID of the correct option (or the literal answer)
        rationale: Explanation HTML
        question_type: "mcq", "spr", ...
        metadata: Classification, possibly copied from the identifier
    """

    external_id: str
    stimulus: str = ""
    stem: str = ""
    answer_options: Tuple[AnswerOption, ...] = ()
    correct_key: str = ""
    rationale: str = "No rationale provided."
    question_type: str = "mcq"
    metadata: Optional[QuestionMetadata] = None

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == "mcq"

    def is_correct(self, answer_id: Optional[str]) -> bool:
        """Compare an answer against the key, ignoring case and surrounding space."""
        if answer_id is None or not self.correct_key:
            return False
        return answer_id.strip().lower() == self.correct_key.strip().lower()

    def option(self, answer_id: str) -> Optional[AnswerOption]:
        for opt in self.answer_options:
            if opt.id == answer_id:
                return opt
        return None


@dataclass(frozen=True)
class LiveQuestionList:
    """Questions currently in production use, split by subject."""

    math_ids: Tuple[QuestionIdentifier, ...] = field(default_factory=tuple)
    english_ids: Tuple[QuestionIdentifier, ...] = field(default_factory=tuple)

    @property
    def all_ids(self) -> Set[str]:
        return {q.id for q in self.math_ids} | {q.id for q in self.english_ids}

    def __len__(self) -> int:
        return len(self.math_ids) + len(self.english_ids)
