"""
Path utilities for locating the directory that holds local quiz state.

Override: SAT_QUIZ_DATA_DIR environment variable
Default: Qt's writable app-local data location, ~/.sat_quiz if Qt reports none
"""
from __future__ import annotations

import os
from pathlib import Path

from PySide6.QtCore import QStandardPaths

APP_DIR_NAME = "SAT Quiz"


def get_app_data_dir() -> Path:
    """
    Get the application data directory for settings and caches.

    The directory is created if missing.
    """
    override = os.environ.get("SAT_QUIZ_DATA_DIR")
    if override:
        app_data = Path(override)
    else:
        location = QStandardPaths.writableLocation(
            QStandardPaths.StandardLocation.AppLocalDataLocation
        )
        app_data = Path(location) / APP_DIR_NAME if location else Path.home() / ".sat_quiz"
    app_data.mkdir(parents=True, exist_ok=True)
    return app_data


def get_settings_path() -> Path:
    """Get the path for storing user settings and filter state."""
    return get_app_data_dir() / "settings.json"
