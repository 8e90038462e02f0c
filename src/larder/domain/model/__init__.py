"""Public domain model surface."""

from __future__ import annotations

from larder.domain.model.enums import (
    CompareStatus,
    MatchKind,
    MergeAction,
    SectionType,
    ValidationStatus,
)
from larder.domain.model.records import (
    BaselineSnapshot,
    CanonicalRecord,
    IngredientDraft,
    Revision,
    Section,
    TestCase,
    WorkingCopy,
    renumber_sections,
)
from larder.domain.model.results import (
    BaselineDifferences,
    CompareResult,
    DuplicateEntry,
    DuplicateReport,
    FieldDiff,
    ImportAnalysisResult,
    ImportMatch,
    ImportProgress,
    ImportResult,
    ImportSummary,
    MergeDecision,
    match_id_for,
)

__all__ = [
    "BaselineDifferences",
    "BaselineSnapshot",
    "CanonicalRecord",
    "CompareResult",
    "CompareStatus",
    "DuplicateEntry",
    "DuplicateReport",
    "FieldDiff",
    "ImportAnalysisResult",
    "ImportMatch",
    "ImportProgress",
    "ImportResult",
    "ImportSummary",
    "IngredientDraft",
    "MatchKind",
    "MergeAction",
    "MergeDecision",
    "Revision",
    "Section",
    "SectionType",
    "TestCase",
    "ValidationStatus",
    "WorkingCopy",
    "match_id_for",
    "renumber_sections",
]
