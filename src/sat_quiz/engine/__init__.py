"""
Quiz engines: filter state over the question universe, and the session
selector that draws from the filtered pool.
"""

from .filters import FilterEngine, FilterStateStore
from .quiz import QuizSelector, QuizState
from .selection import draw_balanced

__all__ = [
    "FilterEngine",
    "FilterStateStore",
    "QuizSelector",
    "QuizState",
    "draw_balanced",
]
