"""Adapter for the external ingredient import payload."""

from __future__ import annotations

from .schema import (
    CATEGORY_ALIASES,
    DISPLAY_ALIASES,
    NAME_ALIASES,
    IngredientPayload,
    NotePayload,
    SectionPayload,
    TestPayload,
    resolve_alias,
)
from .translator import (
    DEFAULT_CATEGORY,
    extract_batch,
    notes_to_sections,
    translate_ingredient,
)

__all__ = [
    "CATEGORY_ALIASES",
    "DEFAULT_CATEGORY",
    "DISPLAY_ALIASES",
    "NAME_ALIASES",
    "IngredientPayload",
    "NotePayload",
    "SectionPayload",
    "TestPayload",
    "extract_batch",
    "notes_to_sections",
    "resolve_alias",
    "translate_ingredient",
]
