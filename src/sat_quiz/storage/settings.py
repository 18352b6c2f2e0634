"""
Settings persistence for the quiz core.

Holds the subject preference, the exclude-active-questions flag and the
persisted filter selections in one JSON file. Malformed data falls back to
defaults; it never raises out of a preference getter.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from sat_quiz.core.errors import StorageError
from sat_quiz.core.models import SubjectPreference

from .json_file import read_json_object, write_json_atomic

logger = logging.getLogger(__name__)

CATEGORY_FILTERS_KEY = "active_filters"
DIFFICULTY_FILTERS_KEY = "active_difficulty_filters"


class SettingsStore(QObject):
    """Lightweight JSON-backed store for user preferences and filter state."""

    subjectPreferenceChanged = Signal(object)
    excludeActiveChanged = Signal(bool)
    CURRENT_VERSION = 1

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self.data: Dict[str, object] = {}
        self._load_error: Optional[str] = None

        try:
            self.data = read_json_object(self.path)
        except StorageError as e:
            logger.warning(f"Settings could not be loaded, using defaults: {e}")
            self._load_error = str(e)
            self.data = {}

        # Ensure version is set for new files
        if "version" not in self.data:
            self.data["version"] = self.CURRENT_VERSION

    @property
    def load_error(self) -> Optional[str]:
        """Message describing why the settings file was ignored, if it was."""
        return self._load_error

    def reset(self) -> None:
        """Discard all settings and write an empty file."""
        self.data = {"version": self.CURRENT_VERSION}
        self._load_error = None
        self._save()

    # ─────────────────────────────────────────────────────────────────────
    # Preferences
    # ─────────────────────────────────────────────────────────────────────

    def get_subject_preference(self) -> SubjectPreference:
        prefs = self._get_section("preferences")
        raw = prefs.get("subject_preference")
        try:
            return SubjectPreference(raw)
        except ValueError:
            return SubjectPreference.ENGLISH

    def set_subject_preference(self, value: SubjectPreference) -> None:
        if self.get_subject_preference() is value:
            return
        self._get_section("preferences")["subject_preference"] = value.value
        self._save()
        self.subjectPreferenceChanged.emit(value)

    def get_exclude_active(self) -> bool:
        prefs = self._get_section("preferences")
        return bool(prefs.get("exclude_active_questions", False))

    def set_exclude_active(self, enabled: bool) -> None:
        if self.get_exclude_active() == enabled:
            return
        self._get_section("preferences")["exclude_active_questions"] = bool(enabled)
        self._save()
        self.excludeActiveChanged.emit(bool(enabled))

    # ─────────────────────────────────────────────────────────────────────
    # Filter state
    # ─────────────────────────────────────────────────────────────────────

    def load_filter_state(self) -> Tuple[List[str], List[str]]:
        """
        Return the persisted (categories, difficulties) lists.

        Raises:
            StorageError: If the settings file was unreadable or the stored
                filter values are not lists of strings.
        """
        if self._load_error:
            raise StorageError(self._load_error)
        filters = self._get_dict().get("filters", {})
        if not isinstance(filters, dict):
            raise StorageError("Stored filter state is not an object")
        return (
            self._string_list(filters.get(CATEGORY_FILTERS_KEY, []), CATEGORY_FILTERS_KEY),
            self._string_list(filters.get(DIFFICULTY_FILTERS_KEY, []), DIFFICULTY_FILTERS_KEY),
        )

    def save_filter_state(self, categories: Iterable[str], difficulties: Iterable[str]) -> None:
        """
        Persist filter selections.

        Raises:
            StorageError: If the file could not be written.
        """
        self._get_dict()["filters"] = {
            CATEGORY_FILTERS_KEY: list(categories),
            DIFFICULTY_FILTERS_KEY: list(difficulties),
        }
        if not self._save():
            raise StorageError("Failed to save filter state")

    def clear_filter_state(self) -> None:
        """Remove persisted filter selections."""
        self._get_dict().pop("filters", None)
        if not self._save():
            raise StorageError("Failed to clear filter state")

    @staticmethod
    def _string_list(value: Any, key: str) -> List[str]:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise StorageError(f"Stored {key} is not a list of strings")
        return list(value)

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _get_dict(self) -> Dict[str, object]:
        if not isinstance(self.data, dict):
            self.data = {}
        return self.data

    def _get_section(self, name: str) -> Dict[str, object]:
        section = self._get_dict().get(name)
        if not isinstance(section, dict):
            section = {}
            self._get_dict()[name] = section
        return section  # type: ignore[return-value]

    def _save(self) -> bool:
        if not write_json_atomic(self.path, self._get_dict()):
            return False
        # The file on disk now reflects self.data
        self._load_error = None
        return True
