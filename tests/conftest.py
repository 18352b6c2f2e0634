import os
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

# QObject tests need a QApplication but no display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add src to sys.path so we can import sat_quiz
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from sat_quiz.config import QuizConfig, SubjectTest  # noqa: E402
from sat_quiz.core.errors import NetworkError, StorageError  # noqa: E402
from sat_quiz.core.models import (  # noqa: E402
    AnswerOption,
    IdType,
    LiveQuestionList,
    QuestionDetail,
    QuestionIdentifier,
    QuestionMetadata,
    SubjectType,
)


def make_identifier(
    ident: str,
    subject: SubjectType = SubjectType.ENGLISH,
    category_code: Optional[str] = "INI",
    difficulty: str = "M",
    id_type: IdType = IdType.EXTERNAL,
) -> QuestionIdentifier:
    """Build an identifier; category_code=None gives one without metadata."""
    metadata = None
    if category_code is not None:
        metadata = QuestionMetadata(
            skill_description="Skill",
            primary_class_description="Category",
            difficulty=difficulty,
            skill_code="SK",
            primary_class_code=category_code,
        )
    return QuestionIdentifier(ident, id_type, subject, metadata)


def make_question(identifier: QuestionIdentifier, correct: str = "A") -> QuestionDetail:
    return QuestionDetail(
        external_id=identifier.id,
        stem=f"<p>Stem for {identifier.id}</p>",
        answer_options=(AnswerOption("A", "a"), AnswerOption("B", "b")),
        correct_key=correct,
        rationale="Because.",
    )


class FakeSource:
    """In-memory QuestionSource with switchable failures."""

    def __init__(
        self,
        identifiers: Iterable[QuestionIdentifier] = (),
        live_ids: Iterable[str] = (),
    ) -> None:
        self.identifiers: List[QuestionIdentifier] = list(identifiers)
        self.live_ids = list(live_ids)
        self.fail_identifiers = False
        self.fail_content_for: set = set()
        self.content_requests: List[str] = []
        self.identifier_requests: List[int] = []

    async def fetch_identifiers(self, subject_test: SubjectTest) -> List[QuestionIdentifier]:
        self.identifier_requests.append(subject_test.test)
        if self.fail_identifiers:
            raise NetworkError("offline")
        return [i for i in self.identifiers if i.subject_type is subject_test.subject]

    async def fetch_live_identifiers(self) -> LiveQuestionList:
        return LiveQuestionList(
            english_ids=tuple(
                QuestionIdentifier(i, IdType.EXTERNAL, SubjectType.ENGLISH) for i in self.live_ids
            )
        )

    async def fetch_question_content(self, identifier: QuestionIdentifier) -> QuestionDetail:
        self.content_requests.append(identifier.id)
        if identifier.id in self.fail_content_for:
            raise NetworkError("content unavailable")
        return make_question(identifier)


class MemoryFilterStore:
    """FilterStateStore kept in memory, optionally failing."""

    def __init__(self, categories=(), difficulties=(), fail_load=False, fail_save=False) -> None:
        self.categories = list(categories)
        self.difficulties = list(difficulties)
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.save_calls = 0
        self.cleared = False

    def load_filter_state(self):
        if self.fail_load:
            raise StorageError("disk unreadable")
        return list(self.categories), list(self.difficulties)

    def save_filter_state(self, categories, difficulties) -> None:
        self.save_calls += 1
        if self.fail_save:
            raise StorageError("disk full")
        self.categories = list(categories)
        self.difficulties = list(difficulties)

    def clear_filter_state(self) -> None:
        self.cleared = True
        self.categories = []
        self.difficulties = []


@pytest.fixture
def quiz_config(tmp_path: Path) -> QuizConfig:
    return QuizConfig(data_dir=tmp_path)


@pytest.fixture
def filter_store() -> MemoryFilterStore:
    return MemoryFilterStore()


@pytest.fixture
def sample_universe() -> Dict[str, QuestionIdentifier]:
    """3 English + 2 Math identifiers with mixed categories and difficulties."""
    items = [
        make_identifier("e1", SubjectType.ENGLISH, "INI", "E"),
        make_identifier("e2", SubjectType.ENGLISH, "CAS", "M"),
        make_identifier("e3", SubjectType.ENGLISH, "SEC", "H"),
        make_identifier("m1", SubjectType.MATH, "H", "M"),
        make_identifier("m2", SubjectType.MATH, "P", "E"),
    ]
    return {i.id: i for i in items}
