"""Apply per-record merge decisions to the reconciliation store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Final

from larder.domain.errors import NotFoundError, ReconciliationError, ValidationError
from larder.domain.model import (
    ImportProgress,
    ImportResult,
    MergeAction,
    MergeDecision,
    match_id_for,
    renumber_sections,
)
from larder.domain.similarity import round_half_up

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from larder.domain.model import IngredientDraft
    from larder.domain.ports import RecordTranslator

    from .store import ReconciliationStore

log = logging.getLogger(__name__)

_DEFAULT_DECISION: Final[MergeDecision] = MergeDecision.create_new()


@dataclass(slots=True)
class MergeExecutor:
    """Commit an analyzed batch record by record.

    Failures are collected per record and never abort the batch; each record commits
    in its own unit of work.
    """

    store: ReconciliationStore
    translate: RecordTranslator

    def execute_import(
        self,
        batch: Sequence[Mapping[str, object]],
        decisions: Mapping[str, MergeDecision],
        *,
        on_progress: Callable[[ImportProgress], None] | None = None,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> ImportResult:
        result = ImportResult()
        total = len(batch)
        for index, payload in enumerate(batch):
            if is_cancelled is not None and is_cancelled():
                result.cancelled = True
                log.info("Import cancelled after %s of %s records", index, total)
                break

            decision = decisions.get(match_id_for(index), _DEFAULT_DECISION)
            label = f"Record {index}"
            try:
                draft = self.translate(payload, index=index)
                label = draft.label
                self._apply(draft, decision, result)
            except ReconciliationError as exc:
                log.warning("Failed to import %s: %s", label, exc)
                result.errors.append(f"{label}: {exc}")

            if on_progress is not None:
                on_progress(
                    ImportProgress(
                        current=index + 1,
                        total=total,
                        current_item=label,
                        percentage=round_half_up((index + 1) / total * 100),
                    )
                )

        log.info(
            "Finished import: created=%s, skipped=%s, merged=%s, errors=%s, cancelled=%s",
            result.created,
            result.skipped,
            result.merged,
            len(result.errors),
            result.cancelled,
        )
        return result

    def _apply(self, draft: IngredientDraft, decision: MergeDecision, result: ImportResult) -> None:
        match decision.action:
            case MergeAction.USE_EXISTING:
                result.skipped += 1
            case MergeAction.CREATE_NEW:
                record_id = self.store.mint_record_id(draft.keyname)
                self.store.save_record(record_id, draft, expected_version=0)
                result.created += 1
            case MergeAction.MERGE:
                self._merge_into(draft, decision.target_id)
                result.merged += 1

    def _merge_into(self, draft: IngredientDraft, target_id: str | None) -> None:
        if not target_id:
            raise ValidationError(f"Merge of {draft.label} has no target record")
        working = self.store.working_copy(target_id)
        if working is None:
            raise NotFoundError(target_id)
        merged = replace(
            draft,
            sections=renumber_sections((*working.sections, *draft.sections)),
            tests=(*working.tests, *draft.tests),
        )
        self.store.save_record(
            target_id,
            merged,
            expected_version=working.version,
            message=f"Merged import of {draft.label}",
        )
