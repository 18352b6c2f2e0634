"""
Module: mistakes

Purpose:
    Record of a wrongly answered question, kept for later review.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class Mistake:
    """
    A wrong answer (immutable).

    Attributes:
        question_id: Identifier of the question
        id_type: "external" or "ibn"
        subject: "english" or "math"
        category: User-facing category name
        difficulty: Normalized difficulty code
        stem: Question prompt HTML
        user_answer: Answer the user submitted
        correct_answer: Correct answer key
        rationale: Explanation HTML
        timestamp: ISO-8601 UTC time the mistake was recorded
    """

    question_id: str
    id_type: str
    subject: str
    category: str
    difficulty: str
    stem: str
    user_answer: str
    correct_answer: str
    rationale: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            object.__setattr__(self, "timestamp", _now_iso())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "id_type": self.id_type,
            "subject": self.subject,
            "category": self.category,
            "difficulty": self.difficulty,
            "stem": self.stem,
            "user_answer": self.user_answer,
            "correct_answer": self.correct_answer,
            "rationale": self.rationale,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Mistake"]:
        """Parse a stored record; returns None if the question ID is missing."""
        question_id = data.get("question_id")
        if not question_id:
            return None
        return cls(
            question_id=str(question_id),
            id_type=str(data.get("id_type") or "external"),
            subject=str(data.get("subject") or ""),
            category=str(data.get("category") or ""),
            difficulty=str(data.get("difficulty") or ""),
            stem=str(data.get("stem") or ""),
            user_answer=str(data.get("user_answer") or ""),
            correct_answer=str(data.get("correct_answer") or ""),
            rationale=str(data.get("rationale") or ""),
            timestamp=str(data.get("timestamp") or ""),
        )
