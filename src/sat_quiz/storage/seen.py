"""
Persistent record of question IDs the user has already been shown.

The filter engine excludes these IDs from every pool, so a question is never
offered twice until the history is cleared. Recording can be switched off
without forgetting what was already recorded.
"""
import logging
from pathlib import Path
from typing import Dict, Set

from sat_quiz.core.errors import StorageError

from .json_file import read_json_object, write_json_atomic

logger = logging.getLogger(__name__)


class SeenQuestionCache:
    """JSON-backed set of seen question IDs."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._seen: Set[str] = set()
        self._caching_enabled = True
        self._load()

    def _load(self) -> None:
        try:
            data = read_json_object(self.path)
        except StorageError as e:
            logger.warning(f"Seen-question cache unreadable, starting empty: {e}")
            return

        ids = data.get("seen_question_ids", [])
        if isinstance(ids, list):
            self._seen = {str(i) for i in ids if i}
        self._caching_enabled = bool(data.get("caching_enabled", True))
        logger.debug(f"Loaded {len(self._seen)} seen question IDs")

    def _save(self) -> bool:
        data: Dict[str, object] = {
            "seen_question_ids": sorted(self._seen),
            "caching_enabled": self._caching_enabled,
        }
        return write_json_atomic(self.path, data)

    @property
    def caching_enabled(self) -> bool:
        return self._caching_enabled

    def set_caching_enabled(self, enabled: bool) -> None:
        if self._caching_enabled == enabled:
            return
        self._caching_enabled = enabled
        self._save()

    def get_seen_ids(self) -> Set[str]:
        """Return a copy of the seen IDs."""
        return set(self._seen)

    def add_seen_id(self, question_id: str) -> None:
        """Record ``question_id`` as seen. Ignored while caching is disabled."""
        if not self._caching_enabled or not question_id or question_id in self._seen:
            return
        self._seen.add(question_id)
        self._save()

    def clear_all(self) -> None:
        """Forget every seen ID."""
        count = len(self._seen)
        self._seen.clear()
        self._save()
        logger.info(f"Cleared {count} seen question IDs")

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._seen
