"""
Module: common.categories

Purpose:
    Mapping between question-bank primary class codes and the category
    names shown to users, grouped by subject.

Key Classes:
    - CategoryMapping: Code <-> name lookups and category validation

Key Functions:
    - default_category_mapping(): Shared mapping for the SAT domains

Used By:
    - engine.filters: Category filtering and option lists
    - engine.quiz: Category label for recorded mistakes
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Sequence

from sat_quiz.core.models import SubjectType

__all__ = [
    "CategoryMapping",
    "default_category_mapping",
    "SAT_CATEGORIES",
]


# Subject -> ordered (code, name) pairs
SAT_CATEGORIES: Dict[SubjectType, Sequence[tuple[str, str]]] = {
    SubjectType.ENGLISH: (
        ("INI", "Information and Ideas"),
        ("CAS", "Craft and Structure"),
        ("EOI", "Expression of Ideas"),
        ("SEC", "Standard English Conventions"),
    ),
    SubjectType.MATH: (
        ("H", "Algebra"),
        ("P", "Advanced Math"),
        ("Q", "Problem-Solving and Data Analysis"),
        ("S", "Geometry and Trigonometry"),
    ),
}


class CategoryMapping:
    """
    Bidirectional code/name lookup.

    Unknown codes map to themselves so that a category the mapping does not
    know about still has a stable label; such labels fail is_valid_category().
    """

    def __init__(self, categories: Mapping[SubjectType, Sequence[tuple[str, str]]]) -> None:
        self._by_subject: Dict[SubjectType, List[str]] = {}
        self._code_to_name: Dict[str, str] = {}
        self._name_to_code: Dict[str, str] = {}
        self._name_to_subject: Dict[str, SubjectType] = {}
        for subject, pairs in categories.items():
            names: List[str] = []
            for code, name in pairs:
                self._code_to_name[code] = name
                self._name_to_code[name] = code
                self._name_to_subject[name] = subject
                names.append(name)
            self._by_subject[subject] = names

    def to_user_friendly_category(self, code: str) -> str:
        """Return the category name for a code, or the code itself if unmapped."""
        return self._code_to_name.get(code, code)

    def to_api_code(self, name: str) -> str:
        """Return the code for a category name, or the name itself if unmapped."""
        return self._name_to_code.get(name, name)

    def is_valid_category(self, name: str) -> bool:
        return name in self._name_to_code

    def is_valid_code(self, code: str) -> bool:
        return code in self._code_to_name

    def filterable_categories(self, subject: Optional[SubjectType] = None) -> List[str]:
        """
        Category names for a subject in display order.

        Args:
            subject: Subject to list, or None for every subject (English first).
        """
        if subject is None:
            names: List[str] = []
            for subject_names in self._by_subject.values():
                names.extend(subject_names)
            return names
        return list(self._by_subject.get(subject, []))

    def subject_for_category(self, name: str) -> Optional[SubjectType]:
        return self._name_to_subject.get(name)

    def subject_types(self) -> List[SubjectType]:
        return list(self._by_subject.keys())


@lru_cache(maxsize=None)
def default_category_mapping() -> CategoryMapping:
    """Return the shared mapping for the SAT reading/writing and math domains."""
    return CategoryMapping(SAT_CATEGORIES)
