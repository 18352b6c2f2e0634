"""Common helpers shared across the package."""

from __future__ import annotations

from .categories import CategoryMapping, SAT_CATEGORIES, default_category_mapping

__all__ = [
    "CategoryMapping",
    "SAT_CATEGORIES",
    "default_category_mapping",
]
