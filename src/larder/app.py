"""Application entry points wiring the reconciliation core to its adapters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from larder.adapters.payload import extract_batch, translate_ingredient
from larder.adapters.sqlalchemy import sqlalchemy_unit_of_work_factory, startup
from larder.config import get_analysis_config
from larder.domain.reconciliation import ImportAnalyzer, MergeExecutor, ReconciliationStore
from larder.domain.similarity import suggest_merges, variation_stats

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from sqlalchemy.engine import Engine

    from larder.config import AnalysisConfig
    from larder.domain.model import (
        CanonicalRecord,
        CompareResult,
        DuplicateReport,
        ImportAnalysisResult,
        ImportProgress,
        ImportResult,
        MergeDecision,
        WorkingCopy,
    )
    from larder.domain.ports import UnitOfWorkFactory
    from larder.domain.similarity import MergeSuggestion, VariationStats

log = logging.getLogger(__name__)


def build_store(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    engine: Engine | None = None,
    database_uri: str | None = None,
) -> ReconciliationStore:
    """Return a store over ``unit_of_work_factory`` or a freshly started database."""

    if unit_of_work_factory is None:
        session_factory = startup(engine=engine, database_uri=database_uri)
        unit_of_work_factory = sqlalchemy_unit_of_work_factory(session_factory)
    return ReconciliationStore(unit_of_work_factory)


def build_analyzer(
    store: ReconciliationStore, *, config: AnalysisConfig | None = None
) -> ImportAnalyzer:
    return ImportAnalyzer(
        fetch_population=store.list_records,
        translate=translate_ingredient,
        config=config or get_analysis_config(),
    )


def build_executor(store: ReconciliationStore) -> MergeExecutor:
    return MergeExecutor(store=store, translate=translate_ingredient)


def analyze_import(
    payload: object,
    *,
    store: ReconciliationStore,
    config: AnalysisConfig | None = None,
) -> ImportAnalysisResult:
    """Classify the records of an import payload against the stored population."""

    batch = extract_batch(payload)
    log.info("Analyzing import payload with %s records", len(batch))
    return build_analyzer(store, config=config).analyze(batch)


def detect_duplicates(
    payload: object,
    *,
    store: ReconciliationStore,
    config: AnalysisConfig | None = None,
) -> DuplicateReport:
    return build_analyzer(store, config=config).detect_duplicates(extract_batch(payload))


def execute_import(
    payload: object,
    decisions: Mapping[str, MergeDecision],
    *,
    store: ReconciliationStore,
    on_progress: Callable[[ImportProgress], None] | None = None,
    is_cancelled: Callable[[], bool] | None = None,
) -> ImportResult:
    """Apply ``decisions`` (keyed by match id) to the records of an import payload."""

    batch = extract_batch(payload)
    log.info("Executing import of %s records with %s decisions", len(batch), len(decisions))
    return build_executor(store).execute_import(
        batch,
        decisions,
        on_progress=on_progress,
        is_cancelled=is_cancelled,
    )


def compare_record(record_id: str, *, store: ReconciliationStore) -> CompareResult:
    return store.compare(record_id)


def revert_record(record_id: str, *, store: ReconciliationStore) -> WorkingCopy:
    return store.revert(record_id)


def merge_suggestions(
    *,
    store: ReconciliationStore,
    config: AnalysisConfig | None = None,
) -> list[MergeSuggestion[CanonicalRecord]]:
    """Clusters of stored records similar enough to be merged."""

    effective = config or get_analysis_config()
    return suggest_merges(store.list_records(), effective.merge_threshold)


def library_variation_stats(
    *,
    store: ReconciliationStore,
    config: AnalysisConfig | None = None,
) -> VariationStats:
    effective = config or get_analysis_config()
    return variation_stats(
        store.list_records(),
        variation_threshold=effective.variation_threshold,
        merge_threshold=effective.merge_threshold,
    )
