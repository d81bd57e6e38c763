"""Effective category set used to constrain and validate model output."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Food & Drink",
    "Groceries",
    "Travel",
    "Shopping",
    "Utilities",
    "Entertainment",
    "Health & Fitness",
    "Housing",
    "Transportation",
    "Education",
    "Personal Care",
    "Other",
)


@dataclass(frozen=True)
class CategorySchema:
    categories: tuple[str, ...]
    is_custom: bool


def build_category_schema(hints: Sequence[str] = ()) -> CategorySchema:
    """Caller hints verbatim (order kept) when given, else the built-in defaults."""
    if hints:
        return CategorySchema(categories=tuple(hints), is_custom=True)
    return CategorySchema(categories=DEFAULT_CATEGORIES, is_custom=False)
