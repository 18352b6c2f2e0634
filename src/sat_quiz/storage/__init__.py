"""
Local persistence: user settings, seen-question history and the mistake log.
"""

from .mistakes import MistakeLog
from .seen import SeenQuestionCache
from .settings import SettingsStore

__all__ = ["MistakeLog", "SeenQuestionCache", "SettingsStore"]
