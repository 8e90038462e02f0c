from __future__ import annotations

from typing import TYPE_CHECKING

from larder.app import (
    analyze_import,
    build_store,
    compare_record,
    detect_duplicates,
    execute_import,
    library_variation_stats,
    merge_suggestions,
    revert_record,
)
from larder.config import AnalysisConfig
from larder.domain.model import CompareStatus, MergeDecision
from tests.helpers.records import IRON_TEXT, make_payload

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from larder.domain.reconciliation import ReconciliationStore

CONFIG = AnalysisConfig()


def test_import_round_trip_against_sqlite(sqlite_engine: Engine) -> None:
    store = build_store(engine=sqlite_engine)
    payload = {
        "INGREDIENT": [
            make_payload("Sodium"),
            make_payload("Iron", category="Minerals", contents=(IRON_TEXT,)),
        ]
    }

    first = execute_import(payload, {}, store=store)
    assert (first.created, first.skipped, first.merged) == (2, 0, 0)

    analysis = analyze_import(payload, store=store, config=CONFIG)
    assert analysis.summary.exact == 2
    decisions = {
        match.match_id: MergeDecision.use_existing(match.matched_record_id)
        for match in analysis.matches()
    }
    second = execute_import(payload, decisions, store=store)
    assert second.to_payload() == {
        "success": True,
        "created": 0,
        "skipped": 2,
        "merged": 0,
        "errors": [],
        "cancelled": False,
    }

    report = detect_duplicates(payload, store=store, config=CONFIG)
    assert {entry.record_id for entry in report.identical} == {"sodium", "iron"}


def test_compare_and_revert_entry_points(memory_store: ReconciliationStore) -> None:
    execute_import([make_payload("Sodium")], {}, store=memory_store)
    execute_import(
        [make_payload("Sodium", contents=("Extra",))],
        {"match-0": MergeDecision.merge("sodium")},
        store=memory_store,
    )
    assert compare_record("sodium", store=memory_store).status is CompareStatus.MODIFIED

    working = revert_record("sodium", store=memory_store)

    assert working.status is CompareStatus.CLEAN
    assert compare_record("sodium", store=memory_store).status is CompareStatus.CLEAN


def test_library_reports(memory_store: ReconciliationStore) -> None:
    batch = [
        make_payload("Iron", category="Minerals", contents=(IRON_TEXT,)),
        make_payload("Iron 2", category="Minerals", contents=(IRON_TEXT,)),
        make_payload("Sodium"),
    ]
    execute_import(batch, {}, store=memory_store)

    stats = library_variation_stats(store=memory_store, config=CONFIG)
    suggestions = merge_suggestions(store=memory_store, config=CONFIG)

    assert stats.total == 3
    assert stats.variation_clusters == 1
    assert [suggestion.cluster.primary.id for suggestion in suggestions] == ["iron"]
