"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SectionType(StrEnum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class ValidationStatus(StrEnum):
    UNTESTED = "untested"
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


class CompareStatus(StrEnum):
    """Working copy state relative to its baseline snapshot."""

    NEW = "NEW"
    DELETED = "DELETED"
    CLEAN = "CLEAN"
    MODIFIED = "MODIFIED"


class MergeAction(StrEnum):
    USE_EXISTING = "use-existing"
    CREATE_NEW = "create-new"
    MERGE = "merge"


class MatchKind(StrEnum):
    """Bucket an incoming record lands in after analysis."""

    EXACT = "exact"
    NEAR = "near"
    UNIQUE = "unique"
