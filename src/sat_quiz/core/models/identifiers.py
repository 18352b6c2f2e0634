"""
Module: identifiers

Purpose:
    Lightweight references to questions and their classification metadata.
    An identifier carries no question content; content is fetched on demand
    when the identifier is drawn.

Key Classes:
    - IdType: Identifier namespace (external ID or IBN)
    - SubjectType: English or Math
    - SubjectPreference: User setting (English, Math or both)
    - Difficulty: Normalized difficulty with fixed Easy -> Hard order
    - QuestionMetadata: Classification labels and codes
    - QuestionIdentifier: Question reference with (id_type, id) identity

Used By:
    - api.parsing: Built from raw API records
    - engine.filters: Filtering predicates
    - engine.quiz: Pool contents
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class IdType(Enum):
    """Identifier namespace used by the question bank."""

    EXTERNAL = "external"
    IBN = "ibn"


class SubjectType(Enum):
    """Subject a question belongs to."""

    ENGLISH = "english"
    MATH = "math"


class SubjectPreference(Enum):
    """Which subjects the user wants to practise."""

    ENGLISH = "english"
    MATH = "math"
    BOTH = "both"

    def includes(self, subject: SubjectType) -> bool:
        """Return True if questions of ``subject`` are allowed."""
        if self is SubjectPreference.BOTH:
            return True
        return self.value == subject.value


class Difficulty(Enum):
    """
    Normalized question difficulty.

    Declaration order is the display order: Easy, Medium, Hard.
    """

    EASY = "E"
    MEDIUM = "M"
    HARD = "H"

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def rank(self) -> int:
        return list(Difficulty).index(self)

    @classmethod
    def from_code(cls, value: Optional[str]) -> Optional["Difficulty"]:
        """
        Parse a difficulty code or word, returning None if unrecognized.

        Accepts "E"/"M"/"H" and "easy"/"medium"/"hard" in any case.
        """
        if value is None:
            return None
        text = str(value).strip().upper()
        if not text:
            return None
        for member in cls:
            if text == member.value or text == member.name:
                return member
        return None

    @classmethod
    def normalize(cls, value: Optional[str]) -> "Difficulty":
        """Parse a raw difficulty value, defaulting to MEDIUM."""
        return cls.from_code(value) or cls.MEDIUM

    @classmethod
    def ordered(cls) -> Tuple["Difficulty", ...]:
        return tuple(cls)


# Source field name -> (attribute, default). Null or missing fields take the default.
METADATA_FIELDS: Dict[str, Tuple[str, str]] = {
    "skill_desc": ("skill_description", "Unknown Skill"),
    "primary_class_cd_desc": ("primary_class_description", "Unknown Category"),
    "difficulty": ("difficulty", Difficulty.MEDIUM.value),
    "skill_cd": ("skill_code", ""),
    "primary_class_cd": ("primary_class_code", ""),
}


@dataclass(frozen=True)
class QuestionMetadata:
    """
    Classification attached to a question (immutable).

    Attributes:
        skill_description: Human-readable skill label
        primary_class_description: Human-readable category label
        difficulty: Raw difficulty value as supplied by the source
        skill_code: Raw skill code, empty if absent
        primary_class_code: Raw category code, empty if absent

    Invariants:
        - difficulty_level is always one of the three Difficulty members;
          unrecognized raw values are kept in ``difficulty`` for display only
    """

    skill_description: str = "Unknown Skill"
    primary_class_description: str = "Unknown Category"
    difficulty: str = "M"
    skill_code: str = ""
    primary_class_code: str = ""

    @property
    def difficulty_level(self) -> Difficulty:
        return Difficulty.normalize(self.difficulty)

    @property
    def difficulty_code(self) -> str:
        return self.difficulty_level.value

    @property
    def has_recognized_difficulty(self) -> bool:
        return Difficulty.from_code(self.difficulty) is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the question-bank field names."""
        return {
            "skill_desc": self.skill_description,
            "primary_class_cd_desc": self.primary_class_description,
            "difficulty": self.difficulty,
            "skill_cd": self.skill_code,
            "primary_class_cd": self.primary_class_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionMetadata":
        """
        Build metadata from a source record.

        Missing or null fields take the defaults in METADATA_FIELDS;
        non-string values are converted with str().
        """
        kwargs: Dict[str, str] = {}
        for source_key, (attr, default) in METADATA_FIELDS.items():
            value = data.get(source_key)
            kwargs[attr] = default if value is None else str(value)
        return cls(**kwargs)


@dataclass(frozen=True)
class QuestionIdentifier:
    """
    Reference to a question without its content (immutable).

    Attributes:
        id: Identifier string, unique within its id_type
        id_type: Namespace of the identifier
        subject_type: Subject derived from the fetch parameters
        metadata: Classification, None when the source supplied none

    Invariants:
        - id is non-empty
        - Equality and hashing use (id_type, id) only

    Example:
        >>> a = QuestionIdentifier("abc", IdType.EXTERNAL, SubjectType.MATH)
        >>> b = QuestionIdentifier("abc", IdType.IBN, SubjectType.MATH)
        >>> a == b
        False
    """

    id: str
    id_type: IdType
    subject_type: SubjectType = field(compare=False)
    metadata: Optional[QuestionMetadata] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("QuestionIdentifier.id must be non-empty")

    @property
    def key(self) -> Tuple[IdType, str]:
        return (self.id_type, self.id)

    @property
    def has_metadata(self) -> bool:
        return self.metadata is not None

    @property
    def difficulty_code(self) -> Optional[str]:
        if self.metadata is None:
            return None
        return self.metadata.difficulty_code
