"""
Module: storage.mistakes

Purpose:
    Append-only log of wrongly answered questions for later review.
    Stored as a JSON object holding a list of Mistake records, newest last.

Key Classes:
    - MistakeLog: Load, append, list and clear mistakes

Used By:
    - engine.quiz.QuizSelector: Records a mistake on each wrong answer
"""

import logging
from pathlib import Path
from typing import List

from sat_quiz.core.errors import StorageError
from sat_quiz.core.models import Mistake

from .json_file import read_json_object, write_json_atomic

logger = logging.getLogger(__name__)


class MistakeLog:
    """JSON-backed list of Mistake records."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._mistakes: List[Mistake] = []
        self._load()

    def _load(self) -> None:
        try:
            data = read_json_object(self.path)
        except StorageError as e:
            logger.warning(f"Mistake log unreadable, starting empty: {e}")
            return

        records = data.get("mistakes", [])
        if not isinstance(records, list):
            logger.warning("Mistake log has no mistake list, starting empty")
            return

        skipped = 0
        for record in records:
            mistake = Mistake.from_dict(record) if isinstance(record, dict) else None
            if mistake is None:
                skipped += 1
                continue
            self._mistakes.append(mistake)
        if skipped:
            logger.warning(f"Skipped {skipped} malformed mistake records")

    def _save(self) -> bool:
        return write_json_atomic(
            self.path, {"mistakes": [m.to_dict() for m in self._mistakes]}
        )

    def add(self, mistake: Mistake) -> None:
        self._mistakes.append(mistake)
        self._save()
        logger.debug(f"Recorded mistake for question {mistake.question_id}")

    def list(self) -> List[Mistake]:
        return list(self._mistakes)

    def clear(self) -> None:
        self._mistakes.clear()
        self._save()

    def __len__(self) -> int:
        return len(self._mistakes)
