"""
JSON file helpers shared by the local stores.

Writes go to a temp file first and are renamed over the target, so an
interrupted write never leaves a truncated file behind.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from sat_quiz.core.errors import StorageError

logger = logging.getLogger(__name__)


def read_json_object(path: Path) -> Dict[str, Any]:
    """
    Read a JSON object from ``path``.

    Returns an empty dict if the file does not exist.

    Raises:
        StorageError: If the file cannot be read, is not valid JSON, or
            does not hold an object.
    """
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise StorageError(f"{path.name} is corrupted: {e}", original_error=e) from e
    except OSError as e:
        raise StorageError(f"Failed to read {path.name}: {e}", original_error=e) from e
    if not isinstance(data, dict):
        raise StorageError(f"{path.name} does not contain a JSON object")
    return data


def write_json_atomic(path: Path, data: Dict[str, Any]) -> bool:
    """
    Write ``data`` to ``path`` with atomic replacement.

    Returns:
        True on success. Failures are logged and reported as False.
    """
    temp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temp file first
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

        # Atomic rename (overwrites existing)
        temp_path.replace(path)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning(f"Failed to save {path.name}: {e}")
        if temp_path:
            try:
                if temp_path.exists():
                    temp_path.unlink()
            except OSError:
                pass
        return False
