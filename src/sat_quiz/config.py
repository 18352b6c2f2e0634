"""
Module: config

Purpose:
    Immutable configuration for the question-bank client and local storage.
    Validated on construction.

Key Classes:
    - SubjectTest: Fetch parameters for one subject
    - QuizConfig: Endpoints, timeouts, subjects and data directory

Used By:
    - api.client: Endpoints and timeouts
    - engine.quiz: Subject fetch parameters
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from sat_quiz.core.models import SubjectType

DEFAULT_QBANK_URL = "https://qbank-api.collegeboard.org/msreportingquestionbank-prod/questionbank"
DEFAULT_DISCLOSED_URL = "https://saic.collegeboard.org/disclosed"


@dataclass(frozen=True)
class SubjectTest:
    """
    Question-bank parameters for fetching one subject's identifiers.

    Attributes:
        subject: Subject the fetched identifiers belong to
        test: Numeric test selector sent to the API
        domains: Comma-separated domain codes
    """

    subject: SubjectType
    test: int
    domains: str

    def __post_init__(self) -> None:
        if self.test <= 0:
            raise ValueError(f"test must be positive: {self.test}")
        if not self.domains.strip():
            raise ValueError("domains must be non-empty")


ENGLISH_TEST = SubjectTest(SubjectType.ENGLISH, 1, "INI,CAS,EOI,SEC")
MATH_TEST = SubjectTest(SubjectType.MATH, 2, "H,P,Q,S")


@dataclass(frozen=True)
class QuizConfig:
    """
    Configuration for the quiz core (immutable).

    Attributes:
        qbank_url: Base URL of the question-bank API
        disclosed_url: Base URL of the disclosed-item (IBN) endpoint
        identifiers_timeout: Seconds allowed for the identifier list request
        request_timeout: Seconds allowed for every other request
        assessment_event_id: asmtEventId sent with identifier requests
        subjects: Subjects fetched at quiz start, all of them every time
        data_dir: Directory for settings, seen cache and mistake log

    Invariants:
        - timeouts > 0
        - subjects is non-empty
    """

    qbank_url: str = DEFAULT_QBANK_URL
    disclosed_url: str = DEFAULT_DISCLOSED_URL
    identifiers_timeout: float = 45.0
    request_timeout: float = 30.0
    assessment_event_id: int = 99
    subjects: Tuple[SubjectTest, ...] = (ENGLISH_TEST, MATH_TEST)
    data_dir: Optional[Path] = field(default=None)

    def __post_init__(self) -> None:
        if self.identifiers_timeout <= 0:
            raise ValueError(f"identifiers_timeout must be positive: {self.identifiers_timeout}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive: {self.request_timeout}")
        if not self.subjects:
            raise ValueError("subjects must not be empty")

    @classmethod
    def from_env(cls) -> "QuizConfig":
        """
        Build a config, overriding defaults from the environment.

        Reads SAT_QUIZ_QBANK_URL, SAT_QUIZ_DISCLOSED_URL and SAT_QUIZ_DATA_DIR.
        """
        data_dir = os.environ.get("SAT_QUIZ_DATA_DIR")
        return cls(
            qbank_url=os.environ.get("SAT_QUIZ_QBANK_URL", DEFAULT_QBANK_URL).rstrip("/"),
            disclosed_url=os.environ.get("SAT_QUIZ_DISCLOSED_URL", DEFAULT_DISCLOSED_URL).rstrip("/"),
            data_dir=Path(data_dir) if data_dir else None,
        )

    def resolve_data_dir(self) -> Path:
        """Return data_dir, falling back to the platform app-data directory."""
        if self.data_dir is not None:
            return self.data_dir
        from sat_quiz.utils.paths import get_app_data_dir
        return get_app_data_dir()

    @property
    def settings_path(self) -> Path:
        return self.resolve_data_dir() / "settings.json"

    @property
    def seen_cache_path(self) -> Path:
        return self.resolve_data_dir() / "seen_questions.json"

    @property
    def mistakes_path(self) -> Path:
        return self.resolve_data_dir() / "mistakes.json"
