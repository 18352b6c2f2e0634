"""
Module: engine.selection

Purpose:
    Subject-balanced random draw from a question pool. Each draw is
    independent: a fair coin picks English or Math whenever both are
    available, so the long-run mix approaches 1:1 without tracking history.

Key Functions:
    - draw_balanced(): Remove and return one identifier from the pool

Used By:
    - engine.quiz.QuizSelector
"""

from __future__ import annotations

import random
from typing import List, MutableSequence

from sat_quiz.core.models import QuestionIdentifier, SubjectType


def draw_balanced(
    pool: MutableSequence[QuestionIdentifier],
    rng: random.Random,
) -> QuestionIdentifier:
    """
    Remove one identifier from ``pool`` and return it.

    The pool is partitioned into index lists per subject before anything is
    removed; the chosen element is then deleted by its index.

    Args:
        pool: Working pool, modified in place
        rng: Random source (seed it for reproducible draws)

    Raises:
        IndexError: If the pool is empty
    """
    if not pool:
        raise IndexError("draw from an empty question pool")

    if len(pool) == 1:
        return pool.pop()

    english: List[int] = []
    math: List[int] = []
    for index, identifier in enumerate(pool):
        if identifier.subject_type is SubjectType.ENGLISH:
            english.append(index)
        else:
            math.append(index)

    if not english:
        candidates = math
    elif not math:
        candidates = english
    else:
        candidates = english if rng.random() < 0.5 else math

    return pool.pop(candidates[rng.randrange(len(candidates))])
