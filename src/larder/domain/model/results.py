"""Analysis, decision and outcome types exchanged with callers.

Every result exposes ``to_payload()`` returning a JSON-serializable mapping using the
camelCase keys consumers of the import API expect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from larder.domain.model.enums import CompareStatus, MatchKind, MergeAction

if TYPE_CHECKING:
    from larder.domain.model.records import CanonicalRecord, IngredientDraft, Section


def match_id_for(index: int) -> str:
    """Stable match id for the record at ``index`` of an import batch."""

    return f"match-{index}"


@dataclass(frozen=True, slots=True)
class FieldDiff:
    field: str
    old_value: object
    new_value: object

    def to_payload(self) -> dict[str, object]:
        return {"field": self.field, "oldValue": self.old_value, "newValue": self.new_value}


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportMatch:
    index: int
    incoming: IngredientDraft
    kind: MatchKind = MatchKind.UNIQUE
    matched: CanonicalRecord | None = None
    similarity: int = 0
    differences: tuple[FieldDiff, ...] = ()

    @property
    def match_id(self) -> str:
        return match_id_for(self.index)

    @property
    def matched_record_id(self) -> str | None:
        return self.matched.id if self.matched is not None else None

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.match_id,
            "kind": self.kind.value,
            "ingredient": self.incoming.to_payload(),
            "matchedRecordId": self.matched_record_id,
            "similarityScore": self.similarity,
            "differences": [diff.to_payload() for diff in self.differences],
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportSummary:
    total: int
    exact: int
    near: int
    unique: int
    skipped: int
    total_checked: int
    estimated_data_saved: str
    size_before: int
    size_after: int

    def to_payload(self) -> dict[str, object]:
        return {
            "totalIngredients": self.total,
            "exactMatchCount": self.exact,
            "nearMatchCount": self.near,
            "uniqueCount": self.unique,
            "skippedCount": self.skipped,
            "totalChecked": self.total_checked,
            "estimatedDataSaved": self.estimated_data_saved,
            "estimatedSizeReduction": {"before": self.size_before, "after": self.size_after},
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportAnalysisResult:
    exact_matches: tuple[ImportMatch, ...]
    near_matches: tuple[ImportMatch, ...]
    unique_ingredients: tuple[ImportMatch, ...]
    summary: ImportSummary

    def matches(self) -> tuple[ImportMatch, ...]:
        """All classified matches ordered by their position in the batch."""

        combined = (*self.exact_matches, *self.near_matches, *self.unique_ingredients)
        return tuple(sorted(combined, key=lambda match: match.index))

    def to_payload(self) -> dict[str, object]:
        return {
            "exactMatches": [match.to_payload() for match in self.exact_matches],
            "nearMatches": [match.to_payload() for match in self.near_matches],
            "uniqueIngredients": [match.to_payload() for match in self.unique_ingredients],
            "summary": self.summary.to_payload(),
        }


@dataclass(frozen=True, slots=True)
class MergeDecision:
    action: MergeAction
    target_id: str | None = None

    @classmethod
    def use_existing(cls, target_id: str | None = None) -> MergeDecision:
        return cls(MergeAction.USE_EXISTING, target_id)

    @classmethod
    def create_new(cls) -> MergeDecision:
        return cls(MergeAction.CREATE_NEW)

    @classmethod
    def merge(cls, target_id: str) -> MergeDecision:
        return cls(MergeAction.MERGE, target_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportProgress:
    current: int
    total: int
    current_item: str
    percentage: int


@dataclass(slots=True, kw_only=True)
class ImportResult:
    created: int = 0
    skipped: int = 0
    merged: int = 0
    errors: list[str] = field(default_factory=list[str])
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.errors

    def to_payload(self) -> dict[str, object]:
        return {
            "success": self.success,
            "created": self.created,
            "skipped": self.skipped,
            "merged": self.merged,
            "errors": list(self.errors),
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class BaselineDifferences:
    baseline: tuple[Section, ...]
    working: tuple[Section, ...]

    def to_payload(self) -> dict[str, object]:
        return {
            "baseline": [section.to_payload() for section in self.baseline],
            "working": [section.to_payload() for section in self.working],
        }


@dataclass(frozen=True, slots=True)
class CompareResult:
    status: CompareStatus
    differences: BaselineDifferences | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "differences": None if self.differences is None else self.differences.to_payload(),
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateEntry:
    """An incoming record whose slug id already exists in the canonical store."""

    name: str
    record_id: str
    incoming_hash: str
    existing_hash: str


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateReport:
    identical: tuple[DuplicateEntry, ...]
    variations: tuple[DuplicateEntry, ...]
    within_batch: dict[str, tuple[str, ...]]
    total_checked: int
