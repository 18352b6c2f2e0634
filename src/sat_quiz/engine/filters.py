"""
Module: engine.filters

Purpose:
    Own the question universe and the user's category/difficulty filter
    selections, and derive the filtered subset a quiz draws from.

Filtering order (every recompute):
    1. Restrict to the subject preference unless it is BOTH
    2. Drop live question IDs when exclude-active is set
    3. total_question_count = identifiers with metadata
    4. No category or difficulty filters -> filtered = step 3 set
    5. Otherwise match (no categories OR category in set) AND
       (no difficulties OR difficulty in set)
    6. filtered_question_count = size of the step 5 result

Key Classes:
    - FilterStateStore: Persistence interface for filter selections
    - FilterEngine: Filter state, universe and derived subset

Dependencies:
    - PySide6.QtCore: ``changed`` signal for observers
    - common.categories: Category validation and code -> name mapping

Used By:
    - engine.quiz.QuizSelector: Adopts filtered_identifiers as its pool
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Protocol, Set, Tuple

from PySide6.QtCore import QObject, Signal

from sat_quiz.common.categories import CategoryMapping, default_category_mapping
from sat_quiz.core.errors import StorageError
from sat_quiz.core.models import Difficulty, QuestionIdentifier, SubjectPreference, SubjectType

logger = logging.getLogger(__name__)


class FilterStateStore(Protocol):
    """Durable storage for the two filter selection lists."""

    def load_filter_state(self) -> Tuple[List[str], List[str]]:
        ...

    def save_filter_state(self, categories: Iterable[str], difficulties: Iterable[str]) -> None:
        ...

    def clear_filter_state(self) -> None:
        ...


class FilterEngine(QObject):
    """
    Filter selections plus the universe they apply to.

    Mutations persist first, then recompute, then emit ``changed``, so an
    observer always sees persisted state. Storage failures are logged and
    never raised; the in-memory selections stay authoritative.
    """

    changed = Signal()

    def __init__(
        self,
        store: FilterStateStore,
        category_mapping: Optional[CategoryMapping] = None,
    ) -> None:
        super().__init__()
        self._store = store
        self._mapping = category_mapping or default_category_mapping()
        self._loaded = False

        self._active_categories: Set[str] = set()
        self._active_difficulties: Set[str] = set()

        self._universe: List[QuestionIdentifier] = []
        self._live_ids: FrozenSet[str] = frozenset()
        self._seen_ids: FrozenSet[str] = frozenset()
        self._subject_preference = SubjectPreference.BOTH
        self._exclude_active = False

        self._base: List[QuestionIdentifier] = []
        self._filtered: List[QuestionIdentifier] = []

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def initialize(self) -> None:
        """Load persisted selections once. Later calls do nothing."""
        if self._loaded:
            return
        self._loaded = True

        try:
            categories, difficulties = self._store.load_filter_state()
        except (StorageError, OSError, ValueError) as e:
            logger.warning(f"Error loading filters, starting with none: {e}")
            self._active_categories = set()
            self._active_difficulties = set()
            return

        self._active_categories = set()
        for name in categories:
            if self._mapping.is_valid_category(name):
                self._active_categories.add(name)
            else:
                logger.warning(f"Dropping unknown persisted category filter: {name}")

        self._active_difficulties = set()
        for code in difficulties:
            level = Difficulty.from_code(code)
            if level is None:
                logger.warning(f"Dropping unknown persisted difficulty filter: {code}")
            else:
                self._active_difficulties.add(level.value)

        logger.debug(
            f"Loaded filters: {len(self._active_categories)} categories, "
            f"{len(self._active_difficulties)} difficulties"
        )
        self._recompute()

    def set_universe(
        self,
        identifiers: Iterable[QuestionIdentifier],
        live_ids: Iterable[str],
        seen_ids: Iterable[str],
        subject_preference: SubjectPreference,
        exclude_active: bool,
    ) -> None:
        """Replace the universe and exclusion parameters, then recompute."""
        # Duplicates collapse on (id_type, id); first occurrence wins
        self._universe = list(dict.fromkeys(identifiers))
        self._live_ids = frozenset(live_ids)
        self._seen_ids = frozenset(seen_ids)
        self._subject_preference = subject_preference
        self._exclude_active = bool(exclude_active)
        self._recompute()
        logger.info(
            f"Universe set: {len(self._universe)} identifiers, "
            f"{self.total_question_count} eligible, {self.filtered_question_count} after filters"
        )
        self.changed.emit()

    def update_subject_preference(self, preference: SubjectPreference) -> None:
        if preference is self._subject_preference:
            return
        self._subject_preference = preference
        self._recompute()
        self.changed.emit()

    def update_exclude_active(self, exclude_active: bool) -> None:
        if bool(exclude_active) == self._exclude_active:
            return
        self._exclude_active = bool(exclude_active)
        self._recompute()
        self.changed.emit()

    def reset_filter_state(self) -> None:
        """
        Clear selections and the universe, and forget persisted filters.

        The next initialize() reloads from storage.
        """
        self._active_categories.clear()
        self._active_difficulties.clear()
        self._universe = []
        self._base = []
        self._filtered = []
        self._loaded = False
        try:
            self._store.clear_filter_state()
        except (StorageError, OSError) as e:
            logger.warning(f"Error clearing filter preferences: {e}")
        self.changed.emit()

    # ─────────────────────────────────────────────────────────────────────
    # Category filters
    # ─────────────────────────────────────────────────────────────────────

    def add_filter_category(self, name: str) -> None:
        if not self._mapping.is_valid_category(name):
            logger.warning(f"Invalid filter category: {name}")
            return
        if name in self._active_categories:
            return
        self._active_categories.add(name)
        self._commit()

    def remove_filter_category(self, name: str) -> None:
        if name not in self._active_categories:
            return
        self._active_categories.discard(name)
        self._commit()

    def toggle_filter_category(self, name: str) -> None:
        if name in self._active_categories:
            self.remove_filter_category(name)
        else:
            self.add_filter_category(name)

    def is_category_active(self, name: str) -> bool:
        return name in self._active_categories

    # ─────────────────────────────────────────────────────────────────────
    # Difficulty filters
    # ─────────────────────────────────────────────────────────────────────

    def add_difficulty_filter(self, code: str) -> None:
        level = Difficulty.from_code(code)
        if level is None:
            logger.warning(f"Invalid difficulty filter: {code}")
            return
        if level.value in self._active_difficulties:
            return
        self._active_difficulties.add(level.value)
        self._commit()

    def remove_difficulty_filter(self, code: str) -> None:
        level = Difficulty.from_code(code)
        if level is None or level.value not in self._active_difficulties:
            return
        self._active_difficulties.discard(level.value)
        self._commit()

    def toggle_difficulty_filter(self, code: str) -> None:
        if self.is_difficulty_active(code):
            self.remove_difficulty_filter(code)
        else:
            self.add_difficulty_filter(code)

    def is_difficulty_active(self, code: str) -> bool:
        level = Difficulty.from_code(code)
        return level is not None and level.value in self._active_difficulties

    def clear_all_filters(self) -> None:
        """Empty both selections with a single persist and notification."""
        if not self.has_active_filters:
            return
        self._active_categories.clear()
        self._active_difficulties.clear()
        self._commit()

    # ─────────────────────────────────────────────────────────────────────
    # Derived state
    # ─────────────────────────────────────────────────────────────────────

    @property
    def filtered_identifiers(self) -> Tuple[QuestionIdentifier, ...]:
        return tuple(self._filtered)

    @property
    def universe(self) -> Tuple[QuestionIdentifier, ...]:
        return tuple(self._universe)

    @property
    def active_categories(self) -> FrozenSet[str]:
        return frozenset(self._active_categories)

    @property
    def active_difficulties(self) -> FrozenSet[str]:
        return frozenset(self._active_difficulties)

    @property
    def has_active_filters(self) -> bool:
        return bool(self._active_categories or self._active_difficulties)

    @property
    def active_filter_count(self) -> int:
        return len(self._active_categories) + len(self._active_difficulties)

    @property
    def total_question_count(self) -> int:
        """Eligible questions after subject and live exclusion, before filters."""
        return len(self._base)

    @property
    def filtered_question_count(self) -> int:
        return len(self._filtered)

    @property
    def displayed_question_count(self) -> int:
        if self.has_active_filters:
            return self.filtered_question_count
        return self.total_question_count

    @property
    def has_no_results(self) -> bool:
        return not self._filtered and bool(self._universe)

    @property
    def unseen_count(self) -> int:
        return sum(1 for i in self._filtered if i.id not in self._seen_ids)

    def question_count_text(self) -> str:
        if self.has_active_filters:
            return f"{self.filtered_question_count} of {self.total_question_count} questions"
        return f"{self.total_question_count} questions"

    def available_categories(self, subject: Optional[SubjectType] = None) -> List[str]:
        """
        Categories with at least one eligible question.

        Sorted alphabetically, or in the mapping's display order when a
        subject is given.
        """
        present = set(self.category_counts())
        if subject is None:
            return sorted(present)
        return [name for name in self._mapping.filterable_categories(subject) if name in present]

    def available_difficulties(self) -> List[str]:
        """Difficulty codes with at least one eligible question, Easy to Hard."""
        present = set(self.difficulty_counts())
        return [level.value for level in Difficulty.ordered() if level.value in present]

    def category_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for identifier in self._base:
            name = self._category_of(identifier)
            if name is not None and self._mapping.is_valid_category(name):
                counts[name] = counts.get(name, 0) + 1
        return counts

    def difficulty_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for identifier in self._base:
            code = identifier.difficulty_code
            if code is not None:
                counts[code] = counts.get(code, 0) + 1
        return counts

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _category_of(self, identifier: QuestionIdentifier) -> Optional[str]:
        if identifier.metadata is None:
            return None
        return self._mapping.to_user_friendly_category(identifier.metadata.primary_class_code)

    def _matches(self, identifier: QuestionIdentifier) -> bool:
        if self._active_categories and self._category_of(identifier) not in self._active_categories:
            return False
        if self._active_difficulties and identifier.difficulty_code not in self._active_difficulties:
            return False
        return True

    def _recompute(self) -> None:
        working: Iterable[QuestionIdentifier] = self._universe

        if self._subject_preference is not SubjectPreference.BOTH:
            working = [i for i in working if self._subject_preference.includes(i.subject_type)]

        if self._exclude_active:
            working = [i for i in working if i.id not in self._live_ids]

        self._base = [i for i in working if i.metadata is not None]

        if not self.has_active_filters:
            self._filtered = list(self._base)
        else:
            self._filtered = [i for i in self._base if self._matches(i)]

    def _persist(self) -> None:
        try:
            self._store.save_filter_state(
                sorted(self._active_categories),
                [d.value for d in Difficulty.ordered() if d.value in self._active_difficulties],
            )
        except (StorageError, OSError) as e:
            logger.warning(f"Error saving filters: {e}")

    def _commit(self) -> None:
        self._persist()
        self._recompute()
        self.changed.emit()
