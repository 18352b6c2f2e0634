"""
Module: engine.quiz

Purpose:
    Run one quiz session: build the pool from the filter engine, draw
    questions with a balanced subject mix, track the selected answer, and
    refresh the pool when filters change.

State machine:
    UNINITIALIZED -> LOADING          initialize_quiz()
    LOADING -> READY                  question drawn and content fetched
    LOADING -> COMPLETE               pool empty at draw time, or nothing
                                      matches the active filters
    LOADING -> ERROR                  identifier or content fetch failed
    READY -> ANSWERED                 submit_answer() with a selection
    READY/ANSWERED/ERROR -> LOADING   next_question()
    COMPLETE -> LOADING               next_question() once a refresh refilled the pool
    COMPLETE -> READY/ANSWERED        update_question_pool() refilling the pool while
                                      the kept current question still matches
    any active state -> LOADING       update_question_pool() needing a draw

Key Classes:
    - QuizState: Session states
    - QuizSelector: Session owner

Dependencies:
    - PySide6.QtCore: ``stateChanged`` signal
    - asyncio: Concurrent identifier fetches, scheduled pool refreshes

Used By:
    - UI shell (binds stateChanged, calls the async operations)
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import List, Optional, Set, Tuple

from PySide6.QtCore import QObject, Signal

from sat_quiz.api.source import QuestionSource
from sat_quiz.common.categories import CategoryMapping, default_category_mapping
from sat_quiz.config import QuizConfig
from sat_quiz.core.errors import QuizError
from sat_quiz.core.models import IdType, Mistake, QuestionDetail, QuestionIdentifier
from sat_quiz.storage.mistakes import MistakeLog
from sat_quiz.storage.seen import SeenQuestionCache
from sat_quiz.storage.settings import SettingsStore

from .filters import FilterEngine
from .selection import draw_balanced

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = "No questions match the selected filters."
EXHAUSTED_MESSAGE = "You've seen every available question. Clear your history to start over."
INIT_FAILED_MESSAGE = "Could not start the quiz. Please check your connection."
LOAD_FAILED_MESSAGE = "Failed to load the next question."
REFRESH_FAILED_MESSAGE = "Failed to refresh question pool."


class QuizState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ANSWERED = "answered"
    COMPLETE = "complete"
    ERROR = "error"


_ADVANCE_STATES = (QuizState.READY, QuizState.ANSWERED, QuizState.ERROR)


class QuizSelector(QObject):
    """
    Owner of one quiz session.

    Every fetch captures the session generation; a result arriving after a
    newer initialize_quiz() has started is discarded. Fetch failures never
    escape: they become QuizState.ERROR with ``error_message`` set.

    Example:
        >>> selector = QuizSelector(client, engine, settings, seen)
        >>> await selector.initialize_quiz()
        >>> selector.select_answer("A")
        >>> selector.submit_answer()
        >>> await selector.next_question()
    """

    stateChanged = Signal(object)

    def __init__(
        self,
        source: QuestionSource,
        filter_engine: FilterEngine,
        settings: SettingsStore,
        seen_cache: SeenQuestionCache,
        config: Optional[QuizConfig] = None,
        mistake_log: Optional[MistakeLog] = None,
        category_mapping: Optional[CategoryMapping] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__()
        self.source = source
        self.filter_engine = filter_engine
        self.settings = settings
        self.seen_cache = seen_cache
        self.config = config or QuizConfig()
        self.mistake_log = mistake_log
        self._mapping = category_mapping or default_category_mapping()
        self._rng = rng or random.Random()

        self._state = QuizState.UNINITIALIZED
        self._generation = 0
        self._universe_loaded = False
        self._pool: List[QuestionIdentifier] = []
        self._seen_ids: Set[str] = set()
        self._drawn: Set[Tuple[IdType, str]] = set()
        self._current_identifier: Optional[QuestionIdentifier] = None
        self._current_question: Optional[QuestionDetail] = None
        self._selected_answer_id: Optional[str] = None
        self._submitted = False
        self._error_message: Optional[str] = None
        self._refresh_tasks: Set[asyncio.Task] = set()

    # ─────────────────────────────────────────────────────────────────────
    # Read-only state
    # ─────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> QuizState:
        return self._state

    @property
    def current_question(self) -> Optional[QuestionDetail]:
        return self._current_question

    @property
    def current_identifier(self) -> Optional[QuestionIdentifier]:
        return self._current_identifier

    @property
    def selected_answer_id(self) -> Optional[str]:
        return self._selected_answer_id

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def remaining_question_count(self) -> int:
        return len(self._pool)

    @property
    def is_answer_correct(self) -> Optional[bool]:
        """Whether the submitted answer was right; None until answered."""
        if self._state is not QuizState.ANSWERED or self._current_question is None:
            return None
        return self._current_question.is_correct(self._selected_answer_id)

    # ─────────────────────────────────────────────────────────────────────
    # Session operations
    # ─────────────────────────────────────────────────────────────────────

    async def initialize_quiz(self) -> None:
        """
        Start a new session.

        Identifiers for every configured subject are fetched regardless of
        the subject preference; subject filtering happens in the filter
        engine.
        """
        self._generation += 1
        generation = self._generation
        self._universe_loaded = False
        self._pool = []
        self._drawn = set()
        self._current_identifier = None
        self._current_question = None
        self._selected_answer_id = None
        self._submitted = False
        self._error_message = None
        self._set_state(QuizState.LOADING)

        try:
            results = await asyncio.gather(
                *(self.source.fetch_identifiers(subject) for subject in self.config.subjects)
            )
            live = await self.source.fetch_live_identifiers()
        except Exception as e:
            if generation != self._generation:
                return
            self._log_failure("Quiz initialization failed", e)
            self._fail(INIT_FAILED_MESSAGE)
            return

        if generation != self._generation:
            logger.debug(f"Discarding identifiers from superseded session {generation}")
            return

        identifiers = [identifier for batch in results for identifier in batch]
        self._seen_ids = self.seen_cache.get_seen_ids()

        self.filter_engine.initialize()
        self.filter_engine.set_universe(
            identifiers,
            live.all_ids,
            self._seen_ids,
            self.settings.get_subject_preference(),
            self.settings.get_exclude_active(),
        )
        self._universe_loaded = True
        self._pool = self._adopt_pool()
        logger.info(
            f"Quiz initialized: {len(identifiers)} identifiers, {len(self._pool)} in pool"
        )

        if not self._pool and self.filter_engine.has_active_filters:
            self._complete(NO_MATCH_MESSAGE)
            return

        self._rng.shuffle(self._pool)
        await self._draw_next(generation)

    async def next_question(self) -> None:
        """
        Advance to another question.

        The current question's ID is recorded as seen first. From an ERROR
        raised before any identifiers loaded, this retries initialization.
        COMPLETE is left only when a refresh has put questions back in the
        pool.
        """
        refilled = self._state is QuizState.COMPLETE and bool(self._pool)
        if self._state not in _ADVANCE_STATES and not refilled:
            logger.debug(f"next_question ignored in state {self._state.name}")
            return
        if not self._universe_loaded:
            await self.initialize_quiz()
            return

        if self._current_identifier is not None:
            self.seen_cache.add_seen_id(self._current_identifier.id)
        await self._draw_next(self._generation)

    def select_answer(self, answer_id: str) -> None:
        if self._state is not QuizState.READY:
            return
        self._selected_answer_id = answer_id
        self.stateChanged.emit(self._state)

    def submit_answer(self) -> None:
        if self._state is not QuizState.READY or self._selected_answer_id is None:
            return
        self._submitted = True
        self._set_state(QuizState.ANSWERED)
        if self.is_answer_correct is False:
            self._record_mistake()

    async def update_question_pool(self) -> None:
        """
        Rebuild the pool from the filter engine's current subset.

        Ignored while UNINITIALIZED or LOADING, or before any identifiers
        have loaded. A current question that no longer matches is replaced
        by a fresh draw; one that still matches stays on screen. Either way
        the session completes if nothing else remains to draw.
        """
        if self._state in (QuizState.UNINITIALIZED, QuizState.LOADING) or not self._universe_loaded:
            return
        generation = self._generation

        try:
            pool = self._adopt_pool()
            current = self._current_identifier
            still_valid = current is not None and any(
                i.key == current.key for i in self.filter_engine.filtered_identifiers
            )
            self._rng.shuffle(pool)
            self._pool = pool
        except Exception as e:
            self._log_failure("Question pool refresh failed", e)
            self._fail(REFRESH_FAILED_MESSAGE)
            return

        logger.debug(f"Pool refreshed: {len(pool)} remaining, current valid={still_valid}")

        if still_valid:
            if not pool:
                # Current question stays set; the caller decides whether to keep showing it
                self._complete(NO_MATCH_MESSAGE)
            elif self._state is QuizState.COMPLETE:
                self._error_message = None
                self._set_state(QuizState.ANSWERED if self._submitted else QuizState.READY)
            return

        if not pool:
            self._current_identifier = None
            self._current_question = None
            self._selected_answer_id = None
            self._complete(NO_MATCH_MESSAGE)
            return

        await self._draw_next(generation)

    # ─────────────────────────────────────────────────────────────────────
    # Filter engine subscription
    # ─────────────────────────────────────────────────────────────────────

    def follow(self, filter_engine: Optional[FilterEngine] = None) -> None:
        """Refresh the pool whenever ``filter_engine`` (default: our own) changes."""
        engine = filter_engine or self.filter_engine
        engine.changed.connect(self._on_filters_changed)

    async def drain_refreshes(self) -> None:
        """Wait for every refresh scheduled by follow() to finish."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks))

    def _on_filters_changed(self) -> None:
        if self._state in (QuizState.UNINITIALIZED, QuizState.LOADING):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Filters changed outside an event loop; pool not refreshed")
            return
        task = loop.create_task(self.update_question_pool())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    # ─────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────

    def _adopt_pool(self) -> List[QuestionIdentifier]:
        current_key = self._current_identifier.key if self._current_identifier else None
        return [
            i for i in self.filter_engine.filtered_identifiers
            if i.id not in self._seen_ids and i.key not in self._drawn and i.key != current_key
        ]

    async def _draw_next(self, generation: int) -> None:
        self._current_identifier = None
        self._current_question = None
        self._selected_answer_id = None
        self._submitted = False

        if not self._pool:
            self._complete(
                NO_MATCH_MESSAGE if self.filter_engine.has_active_filters else EXHAUSTED_MESSAGE
            )
            return

        self._error_message = None
        if self._state is not QuizState.LOADING:
            self._set_state(QuizState.LOADING)
        identifier = draw_balanced(self._pool, self._rng)
        self._drawn.add(identifier.key)

        try:
            question = await self.source.fetch_question_content(identifier)
        except Exception as e:
            if generation != self._generation:
                return
            self._log_failure(f"Failed to load question {identifier.id}", e)
            self._fail(LOAD_FAILED_MESSAGE)
            return

        if generation != self._generation:
            logger.debug(f"Discarding question {identifier.id} from superseded session")
            return

        self._current_identifier = identifier
        self._current_question = question
        self._set_state(QuizState.READY)

    def _record_mistake(self) -> None:
        if self.mistake_log is None:
            return
        identifier = self._current_identifier
        question = self._current_question
        if identifier is None or question is None:
            return

        metadata = question.metadata or identifier.metadata
        category = ""
        difficulty = ""
        if metadata is not None:
            category = self._mapping.to_user_friendly_category(metadata.primary_class_code)
            difficulty = metadata.difficulty_code

        try:
            self.mistake_log.add(
                Mistake(
                    question_id=identifier.id,
                    id_type=identifier.id_type.value,
                    subject=identifier.subject_type.value,
                    category=category,
                    difficulty=difficulty,
                    stem=question.stem,
                    user_answer=self._selected_answer_id or "",
                    correct_answer=question.correct_key,
                    rationale=question.rationale,
                )
            )
        except (OSError, QuizError) as e:
            logger.warning(f"Failed to record mistake for {identifier.id}: {e}")

    def _set_state(self, state: QuizState) -> None:
        self._state = state
        self.stateChanged.emit(state)

    def _complete(self, message: str) -> None:
        self._error_message = message
        self._set_state(QuizState.COMPLETE)

    def _fail(self, message: str) -> None:
        self._error_message = message
        self._set_state(QuizState.ERROR)

    @staticmethod
    def _log_failure(context: str, error: Exception) -> None:
        if isinstance(error, QuizError):
            logger.error(f"{context}: {error}")
        else:
            logger.error(f"{context}: {error}", exc_info=True)
