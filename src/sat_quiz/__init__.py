"""Top-level package for the SAT practice quiz core.

Provides subpackages:
- sat_quiz.core – immutable models and the error hierarchy
- sat_quiz.api – question-bank client and record parsing
- sat_quiz.storage – JSON-backed settings, seen cache and mistake log
- sat_quiz.engine – filter engine and quiz session selector
"""
import logging

from sat_quiz.utils.logging_utils import PACKAGE_LOGGER

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    try:
        from importlib.metadata import version as pkg_version
        return pkg_version("sat-quiz")
    except Exception:
        return "0.0.0"

__version__ = _get_version()
__all__: list[str] = ["__version__"]
