"""Import reconciliation stages: analysis, storage and merge execution."""

from __future__ import annotations

from .analyze import ImportAnalyzer, best_match, field_differences
from .merge import MergeExecutor
from .store import ReconciliationStore, same_content, utc_now

__all__ = [
    "ImportAnalyzer",
    "MergeExecutor",
    "ReconciliationStore",
    "best_match",
    "field_differences",
    "same_content",
    "utc_now",
]
