"""Classify an import batch against the canonical population.

Every incoming record is compared with every canonical record. The best score decides
the bucket: ``100`` is an exact match, scores at or above the near-match threshold are
near matches carrying field differences, and everything else is unique.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from larder.config import EXACT_MATCH_SCORE, AnalysisConfig
from larder.domain.errors import FetchError, ValidationError
from larder.domain.fingerprint import find_duplicates, hash_sections
from larder.domain.identity import slugify_record_id
from larder.domain.model import (
    DuplicateEntry,
    DuplicateReport,
    FieldDiff,
    ImportAnalysisResult,
    ImportMatch,
    ImportSummary,
    MatchKind,
)
from larder.domain.similarity import record_similarity, round_half_up

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from larder.domain.model import CanonicalRecord, IngredientDraft
    from larder.domain.ports import PopulationFetcher, RecordTranslator

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportAnalyzer:
    """Compare incoming records with the canonical population fetched per call."""

    fetch_population: PopulationFetcher
    translate: RecordTranslator
    config: AnalysisConfig = field(default_factory=AnalysisConfig)

    def analyze(self, batch: Sequence[Mapping[str, object]]) -> ImportAnalysisResult:
        population = self._fetch()
        exact: list[ImportMatch] = []
        near: list[ImportMatch] = []
        unique: list[ImportMatch] = []
        skipped = 0

        for index, payload in enumerate(batch):
            draft = self._translate(payload, index)
            if draft is None:
                skipped += 1
                continue
            classified = self.classify(index, draft, population)
            match classified.kind:
                case MatchKind.EXACT:
                    exact.append(classified)
                case MatchKind.NEAR:
                    near.append(classified)
                case MatchKind.UNIQUE:
                    unique.append(classified)

        summary = self._summarize(
            exact=len(exact), near=len(near), unique=len(unique), skipped=skipped
        )
        log.info(
            "Analyzed import batch: total=%s, exact=%s, near=%s, unique=%s, skipped=%s",
            summary.total,
            summary.exact,
            summary.near,
            summary.unique,
            summary.skipped,
        )
        return ImportAnalysisResult(
            exact_matches=tuple(exact),
            near_matches=tuple(near),
            unique_ingredients=tuple(unique),
            summary=summary,
        )

    def classify(
        self,
        index: int,
        draft: IngredientDraft,
        population: Sequence[CanonicalRecord],
    ) -> ImportMatch:
        """Bucket one translated record by its best score against ``population``."""

        best, score = best_match(draft, population)
        if best is None or score < self.config.near_match_threshold:
            return ImportMatch(index=index, incoming=draft)
        if score == EXACT_MATCH_SCORE:
            return ImportMatch(
                index=index,
                incoming=draft,
                kind=MatchKind.EXACT,
                matched=best,
                similarity=score,
            )
        return ImportMatch(
            index=index,
            incoming=draft,
            kind=MatchKind.NEAR,
            matched=best,
            similarity=score,
            differences=field_differences(best, draft),
        )

    def detect_duplicates(self, batch: Sequence[Mapping[str, object]]) -> DuplicateReport:
        """Report which incoming records already exist under their slug id.

        Existing records with the same fingerprint are ``identical``; the rest are
        ``variations``. Groups of identical content inside the batch itself are keyed by
        fingerprint.
        """

        existing = {record.id: record for record in self._fetch()}
        drafts = [
            draft
            for index, payload in enumerate(batch)
            if (draft := self._translate(payload, index)) is not None
        ]
        identical: list[DuplicateEntry] = []
        variations: list[DuplicateEntry] = []
        for draft in drafts:
            record_id = slugify_record_id(draft.keyname)
            record = existing.get(record_id)
            if record is None:
                continue
            entry = DuplicateEntry(
                name=draft.label,
                record_id=record_id,
                incoming_hash=hash_sections(draft.sections),
                existing_hash=hash_sections(record.sections),
            )
            if entry.incoming_hash == entry.existing_hash:
                identical.append(entry)
            else:
                variations.append(entry)
        within_batch = {
            digest: tuple(draft.label for draft in group)
            for digest, group in find_duplicates(drafts).items()
        }
        return DuplicateReport(
            identical=tuple(identical),
            variations=tuple(variations),
            within_batch=within_batch,
            total_checked=len(batch),
        )

    def _fetch(self) -> Sequence[CanonicalRecord]:
        try:
            return self.fetch_population()
        except FetchError:
            raise
        except Exception as exc:
            raise FetchError(f"Failed to load canonical records: {exc}") from exc

    def _translate(self, payload: Mapping[str, object], index: int) -> IngredientDraft | None:
        try:
            return self.translate(payload, index=index)
        except ValidationError as exc:
            log.warning("Skipping import record %s: %s", index, exc)
            return None

    def _summarize(self, *, exact: int, near: int, unique: int, skipped: int) -> ImportSummary:
        total = exact + near + unique
        record_bytes = self.config.average_record_bytes
        size_before = total * record_bytes
        saved = exact * record_bytes + near * record_bytes * self.config.near_match_savings
        percentage = round_half_up(saved / size_before * 100) if size_before else 0
        return ImportSummary(
            total=total,
            exact=exact,
            near=near,
            unique=unique,
            skipped=skipped,
            total_checked=total + skipped,
            estimated_data_saved=f"{percentage}%",
            size_before=size_before,
            size_after=size_before - round_half_up(saved),
        )


def best_match(
    draft: IngredientDraft, population: Sequence[CanonicalRecord]
) -> tuple[CanonicalRecord | None, int]:
    """Highest scoring record (first one on ties); stops early on a perfect score."""

    best: CanonicalRecord | None = None
    best_score = 0
    for record in population:
        score = record_similarity(draft, record)
        if best is None or score > best_score:
            best, best_score = record, score
        if best_score == EXACT_MATCH_SCORE:
            break
    return best, best_score


def field_differences(
    existing: CanonicalRecord, incoming: IngredientDraft
) -> tuple[FieldDiff, ...]:
    diffs: list[FieldDiff] = []
    if existing.display_name != incoming.display_name:
        diffs.append(FieldDiff("displayName", existing.display_name, incoming.display_name))
    if existing.category != incoming.category:
        diffs.append(FieldDiff("category", existing.category, incoming.category))
    if hash_sections(existing.sections) != hash_sections(incoming.sections):
        diffs.append(
            FieldDiff(
                "sections",
                f"{len(existing.sections)} sections",
                f"{len(incoming.sections)} sections",
            )
        )
    if len(existing.tests) != len(incoming.tests):
        diffs.append(
            FieldDiff("tests", f"{len(existing.tests)} tests", f"{len(incoming.tests)} tests")
        )
    return tuple(diffs)
