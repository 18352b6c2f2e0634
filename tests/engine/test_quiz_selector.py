"""
Unit Tests for QuizSelector

Sessions run against an in-memory source; storage goes to tmp_path.
"""

import asyncio
import random
from pathlib import Path

import pytest

from conftest import FakeSource, MemoryFilterStore, make_identifier
from sat_quiz.common.categories import default_category_mapping
from sat_quiz.config import QuizConfig
from sat_quiz.core.models import SubjectPreference, SubjectType
from sat_quiz.engine.filters import FilterEngine
from sat_quiz.engine.quiz import (
    EXHAUSTED_MESSAGE,
    INIT_FAILED_MESSAGE,
    LOAD_FAILED_MESSAGE,
    NO_MATCH_MESSAGE,
    QuizSelector,
    QuizState,
)
from sat_quiz.storage.mistakes import MistakeLog
from sat_quiz.storage.seen import SeenQuestionCache
from sat_quiz.storage.settings import SettingsStore


@pytest.fixture
def build_selector(qapp, tmp_path: Path):
    """Factory for a selector wired to fresh stores under tmp_path."""

    def _build(
        identifiers,
        *,
        preference=SubjectPreference.BOTH,
        live=(),
        seen=(),
        store=None,
        source=None,
        seed=1,
    ) -> QuizSelector:
        settings = SettingsStore(tmp_path / "settings.json")
        settings.set_subject_preference(preference)
        seen_cache = SeenQuestionCache(tmp_path / "seen.json")
        for question_id in seen:
            seen_cache.add_seen_id(question_id)
        return QuizSelector(
            source or FakeSource(identifiers, live),
            FilterEngine(store or MemoryFilterStore()),
            settings,
            seen_cache,
            QuizConfig(data_dir=tmp_path),
            mistake_log=MistakeLog(tmp_path / "mistakes.json"),
            rng=random.Random(seed),
        )

    return _build


def _category_name(identifier) -> str:
    return default_category_mapping().to_user_friendly_category(identifier.metadata.primary_class_code)


class TestInitialize:
    @pytest.mark.asyncio
    async def test_initialize_when_questions_available_then_ready(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        states = []
        selector.stateChanged.connect(states.append)

        await selector.initialize_quiz()

        assert states == [QuizState.LOADING, QuizState.READY]
        assert selector.current_question is not None
        assert selector.current_identifier.id == selector.current_question.external_id
        assert selector.remaining_question_count == 4
        assert selector.source.identifier_requests == [1, 2]

    @pytest.mark.asyncio
    async def test_initialize_when_preference_english_then_math_still_fetched(self, build_selector, sample_universe):
        """Subject filtering happens in the filter engine, not at fetch time."""
        selector = build_selector(sample_universe.values(), preference=SubjectPreference.ENGLISH)

        await selector.initialize_quiz()

        assert selector.source.identifier_requests == [1, 2]
        assert selector.filter_engine.total_question_count == 3
        assert selector.current_identifier.subject_type is SubjectType.ENGLISH

    @pytest.mark.asyncio
    async def test_initialize_when_filters_match_nothing_then_complete_without_draw(self, build_selector):
        selector = build_selector(
            [make_identifier("e1", SubjectType.ENGLISH, "INI")],
            store=MemoryFilterStore(categories=["Algebra"]),
        )

        await selector.initialize_quiz()

        assert selector.state is QuizState.COMPLETE
        assert selector.error_message == NO_MATCH_MESSAGE
        assert selector.source.content_requests == []

    @pytest.mark.asyncio
    async def test_initialize_when_everything_seen_then_complete_exhausted(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values(), seen=list(sample_universe))

        await selector.initialize_quiz()

        assert selector.state is QuizState.COMPLETE
        assert selector.error_message == EXHAUSTED_MESSAGE

    @pytest.mark.asyncio
    async def test_initialize_when_seen_ids_then_excluded_from_pool(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values(), seen=["e1", "e2", "m1"])

        await selector.initialize_quiz()

        assert selector.current_identifier.id in {"e3", "m2"}
        assert selector.remaining_question_count == 1

    @pytest.mark.asyncio
    async def test_initialize_when_fetch_fails_then_error_and_retry_recovers(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        selector.source.fail_identifiers = True

        await selector.initialize_quiz()
        assert selector.state is QuizState.ERROR
        assert selector.error_message == INIT_FAILED_MESSAGE

        selector.source.fail_identifiers = False
        await selector.next_question()
        assert selector.state is QuizState.READY
        assert selector.error_message is None


class TestDraw:
    @pytest.mark.asyncio
    async def test_next_when_pool_of_two_then_second_is_remaining_then_complete(self, build_selector):
        english = make_identifier("e1", SubjectType.ENGLISH)
        math = make_identifier("m1", SubjectType.MATH, "H")
        selector = build_selector([english, math])

        await selector.initialize_quiz()
        first = selector.current_identifier
        assert selector.remaining_question_count == 1

        await selector.next_question()
        second = selector.current_identifier
        assert {first, second} == {english, math}
        assert selector.remaining_question_count == 0

        await selector.next_question()
        assert selector.state is QuizState.COMPLETE
        assert selector.error_message == EXHAUSTED_MESSAGE
        assert selector.seen_cache.get_seen_ids() == {"e1", "m1"}

    @pytest.mark.asyncio
    async def test_next_when_content_fails_then_error_and_next_draws_again(self, build_selector):
        selector = build_selector([make_identifier("e1"), make_identifier("e2")])
        selector.source.fail_content_for = {"e1", "e2"}

        await selector.initialize_quiz()
        assert selector.state is QuizState.ERROR
        assert selector.error_message == LOAD_FAILED_MESSAGE
        assert selector.current_identifier is None

        selector.source.fail_content_for = set()
        await selector.next_question()

        assert selector.state is QuizState.READY
        assert selector.seen_cache.get_seen_ids() == set()

    @pytest.mark.asyncio
    async def test_next_when_uninitialized_then_ignored(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())

        await selector.next_question()

        assert selector.state is QuizState.UNINITIALIZED
        assert selector.source.content_requests == []


class TestAnswers:
    @pytest.mark.asyncio
    async def test_select_answer_when_not_ready_then_ignored(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        selector.select_answer("A")
        assert selector.selected_answer_id is None

    @pytest.mark.asyncio
    async def test_submit_when_no_selection_then_stays_ready(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        await selector.initialize_quiz()

        selector.submit_answer()

        assert selector.state is QuizState.READY
        assert selector.is_answer_correct is None

    @pytest.mark.asyncio
    async def test_submit_when_correct_then_answered_and_no_mistake(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        await selector.initialize_quiz()

        selector.select_answer("a")
        selector.submit_answer()

        assert selector.state is QuizState.ANSWERED
        assert selector.is_answer_correct is True
        assert len(selector.mistake_log) == 0

    @pytest.mark.asyncio
    async def test_submit_when_wrong_then_mistake_recorded(self, build_selector):
        identifier = make_identifier("e1", SubjectType.ENGLISH, "CAS", "H")
        selector = build_selector([identifier])
        await selector.initialize_quiz()

        selector.select_answer("B")
        selector.submit_answer()

        assert selector.is_answer_correct is False
        mistakes = selector.mistake_log.list()
        assert len(mistakes) == 1
        assert mistakes[0].question_id == "e1"
        assert mistakes[0].category == "Craft and Structure"
        assert mistakes[0].difficulty == "H"
        assert mistakes[0].user_answer == "B"
        assert mistakes[0].correct_answer == "A"

    @pytest.mark.asyncio
    async def test_select_when_answered_then_ignored(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        await selector.initialize_quiz()
        selector.select_answer("A")
        selector.submit_answer()

        selector.select_answer("B")
        assert selector.selected_answer_id == "A"


class TestUpdateQuestionPool:
    @pytest.mark.asyncio
    async def test_update_when_uninitialized_then_no_op(self, build_selector, sample_universe):
        selector = build_selector(sample_universe.values())
        await selector.update_question_pool()
        assert selector.state is QuizState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_update_when_current_filtered_out_then_new_question_drawn(self, build_selector, sample_universe):
        """Filter change excludes the displayed question: LOADING then READY."""
        selector = build_selector(sample_universe.values())
        selector.follow()
        await selector.initialize_quiz()
        old = selector.current_identifier
        other = next(i for i in sample_universe.values() if i != old)

        states = []
        selector.stateChanged.connect(states.append)
        selector.filter_engine.add_filter_category(_category_name(other))
        await selector.drain_refreshes()

        assert states == [QuizState.LOADING, QuizState.READY]
        assert selector.current_identifier == other
        assert selector.remaining_question_count == 0

    @pytest.mark.asyncio
    async def test_update_when_current_still_valid_then_kept_and_pool_replaced(self, build_selector):
        universe = [make_identifier(f"e{i}", SubjectType.ENGLISH, "INI") for i in range(3)]
        universe.append(make_identifier("m1", SubjectType.MATH, "H"))
        selector = build_selector(universe, preference=SubjectPreference.ENGLISH)
        await selector.initialize_quiz()
        current = selector.current_identifier

        selector.filter_engine.add_filter_category("Information and Ideas")
        await selector.update_question_pool()

        assert selector.state is QuizState.READY
        assert selector.current_identifier == current
        assert selector.remaining_question_count == 2

    @pytest.mark.asyncio
    async def test_update_when_only_current_matches_then_complete_and_current_kept(self, build_selector):
        selector = build_selector(
            [make_identifier("e1", SubjectType.ENGLISH, "INI"), make_identifier("e2", SubjectType.ENGLISH, "CAS")]
        )
        await selector.initialize_quiz()
        current = selector.current_identifier

        selector.filter_engine.add_filter_category(_category_name(current))
        await selector.update_question_pool()

        assert selector.state is QuizState.COMPLETE
        assert selector.error_message == NO_MATCH_MESSAGE
        assert selector.current_identifier == current
        assert selector.current_question is not None

    @pytest.mark.asyncio
    async def test_update_when_filters_loosened_after_current_kept_then_ready_and_next_draws(self, build_selector):
        """Narrowing to the shown question completes; clearing filters resumes the session."""
        selector = build_selector(
            [make_identifier("e1", SubjectType.ENGLISH, "INI"), make_identifier("e2", SubjectType.ENGLISH, "CAS")]
        )
        selector.follow()
        await selector.initialize_quiz()
        current = selector.current_identifier

        selector.filter_engine.add_filter_category(_category_name(current))
        await selector.drain_refreshes()
        assert selector.state is QuizState.COMPLETE

        selector.filter_engine.clear_all_filters()
        await selector.drain_refreshes()

        assert selector.state is QuizState.READY
        assert selector.error_message is None
        assert selector.current_identifier == current
        assert selector.remaining_question_count == 1

        await selector.next_question()

        assert selector.state is QuizState.READY
        assert selector.current_identifier != current
        assert current.id in selector.seen_cache

    @pytest.mark.asyncio
    async def test_update_when_answered_question_kept_through_complete_then_answered_restored(self, build_selector):
        selector = build_selector(
            [make_identifier("e1", SubjectType.ENGLISH, "INI"), make_identifier("e2", SubjectType.ENGLISH, "CAS")]
        )
        await selector.initialize_quiz()
        current = selector.current_identifier
        selector.select_answer("A")
        selector.submit_answer()

        selector.filter_engine.add_filter_category(_category_name(current))
        await selector.update_question_pool()
        assert selector.state is QuizState.COMPLETE

        selector.filter_engine.clear_all_filters()
        await selector.update_question_pool()

        assert selector.state is QuizState.ANSWERED
        assert selector.is_answer_correct is True

    @pytest.mark.asyncio
    async def test_next_when_complete_and_pool_empty_then_ignored(self, build_selector):
        selector = build_selector([make_identifier("e1")])
        await selector.initialize_quiz()
        await selector.next_question()
        assert selector.state is QuizState.COMPLETE

        await selector.next_question()

        assert selector.state is QuizState.COMPLETE
        assert selector.source.content_requests == ["e1"]

    @pytest.mark.asyncio
    async def test_update_when_nothing_matches_then_complete_and_current_cleared(self, build_selector):
        selector = build_selector([make_identifier("e1"), make_identifier("e2")])
        await selector.initialize_quiz()

        selector.filter_engine.add_filter_category("Algebra")
        await selector.update_question_pool()

        assert selector.state is QuizState.COMPLETE
        assert selector.error_message == NO_MATCH_MESSAGE
        assert selector.current_question is None

    @pytest.mark.asyncio
    async def test_update_when_filters_cleared_after_complete_then_draws_again(self, build_selector):
        selector = build_selector([make_identifier("e1"), make_identifier("e2")])
        selector.follow()
        await selector.initialize_quiz()

        selector.filter_engine.add_filter_category("Algebra")
        await selector.drain_refreshes()
        assert selector.state is QuizState.COMPLETE

        selector.filter_engine.clear_all_filters()
        await selector.drain_refreshes()
        assert selector.state is QuizState.READY

    @pytest.mark.asyncio
    async def test_session_when_refreshed_midway_then_no_identifier_repeats(self, build_selector):
        universe = [make_identifier(f"e{i}", SubjectType.ENGLISH, "INI") for i in range(4)]
        universe += [make_identifier(f"m{i}", SubjectType.MATH, "H") for i in range(3)]
        selector = build_selector(universe, seed=5)
        selector.follow()
        await selector.initialize_quiz()

        drawn = [selector.current_identifier]
        await selector.next_question()
        drawn.append(selector.current_identifier)

        # Refresh with a filter every question matches; already drawn ones must not return
        selector.filter_engine.add_difficulty_filter("M")
        await selector.drain_refreshes()

        assert selector.current_identifier == drawn[-1]
        while True:
            await selector.next_question()
            if selector.state is not QuizState.READY:
                break
            drawn.append(selector.current_identifier)

        assert selector.state is QuizState.COMPLETE
        assert len(drawn) == len(set(drawn)) == 7


class _GatedSource(FakeSource):
    """Holds the first content fetch until released."""

    def __init__(self, identifiers):
        super().__init__(identifiers)
        self.release_first = asyncio.Event()
        self._first_held = False

    async def fetch_question_content(self, identifier):
        if not self._first_held:
            self._first_held = True
            self.content_requests.append(identifier.id)
            await self.release_first.wait()
            return await FakeSource.fetch_question_content(self, identifier)
        return await super().fetch_question_content(identifier)


class TestStaleResults:
    @pytest.mark.asyncio
    async def test_initialize_when_superseded_then_old_result_dropped(self, build_selector, sample_universe):
        source = _GatedSource(sample_universe.values())
        selector = build_selector((), source=source)

        first = asyncio.get_running_loop().create_task(selector.initialize_quiz())
        for _ in range(50):
            if source.content_requests:
                break
            await asyncio.sleep(0)
        assert source.content_requests, "first session never reached its content fetch"

        await selector.initialize_quiz()
        current = selector.current_identifier
        assert selector.state is QuizState.READY

        late_states = []
        selector.stateChanged.connect(late_states.append)
        source.release_first.set()
        await first

        assert late_states == []
        assert selector.state is QuizState.READY
        assert selector.current_identifier == current
