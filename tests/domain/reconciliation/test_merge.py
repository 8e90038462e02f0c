from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import text

from larder.adapters.payload import translate_ingredient
from larder.adapters.sqlalchemy import sqlalchemy_unit_of_work_factory
from larder.domain.errors import ConflictError
from larder.domain.model import (
    CanonicalRecord,
    IngredientDraft,
    MergeAction,
    MergeDecision,
    Section,
    TestCase,
    match_id_for,
)
from larder.domain.reconciliation import MergeExecutor, ReconciliationStore
from tests.helpers.racing import RivalWrite, racing_unit_of_work_factory
from tests.helpers.records import (
    IRON_TEXT,
    SODIUM_TEXT,
    SteppingClock,
    make_draft,
    make_payload,
    make_sections,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session, sessionmaker

    from larder.domain.model import ImportProgress

BATCH = [
    make_payload("Sodium"),
    make_payload("Iron", category="Minerals", contents=(IRON_TEXT,)),
]


def _executor(store: ReconciliationStore) -> MergeExecutor:
    return MergeExecutor(store=store, translate=translate_ingredient)


@pytest.fixture
def sqlite_store(
    sqlite_session_factory: sessionmaker[Session], clock: SteppingClock
) -> ReconciliationStore:
    return ReconciliationStore(sqlalchemy_unit_of_work_factory(sqlite_session_factory), clock=clock)


def test_missing_decisions_create_new_records(store: ReconciliationStore) -> None:
    result = _executor(store).execute_import(BATCH, {})

    assert result.to_payload() == {
        "success": True,
        "created": 2,
        "skipped": 0,
        "merged": 0,
        "errors": [],
        "cancelled": False,
    }
    assert [record.id for record in store.list_records()] == ["iron", "sodium"]
    sodium = store.get("sodium")
    assert sodium is not None
    assert sodium.keyname == "Sodium"
    baseline = store.baseline("sodium")
    assert baseline is not None
    assert baseline.raw["KEYNAME"] == "Sodium"


def test_reimport_with_use_existing_skips_everything(store: ReconciliationStore) -> None:
    executor = _executor(store)
    executor.execute_import(BATCH, {})

    decisions = {
        match_id_for(0): MergeDecision.use_existing("sodium"),
        match_id_for(1): MergeDecision.use_existing("iron"),
    }
    result = executor.execute_import(BATCH, decisions)

    assert (result.created, result.skipped, result.merged) == (0, 2, 0)
    assert result.success
    assert len(store.list_records()) == 2


def test_create_new_mints_a_fresh_id_for_existing_names(store: ReconciliationStore) -> None:
    store.save_record("sodium", make_draft())

    result = _executor(store).execute_import(
        [make_payload("Sodium")], {"match-0": MergeDecision.create_new()}
    )

    assert result.created == 1
    assert store.exists("sodium-2")


def test_merge_appends_sections_and_tests(store: ReconciliationStore) -> None:
    store.save_record(
        "sodium",
        make_draft(tests=(TestCase(name="existing"),)),
    )
    payload = make_payload(
        "Sodium",
        contents=("Extra note",),
        tests=({"name": "incoming", "expected": "140"},),
    )

    result = _executor(store).execute_import([payload], {"match-0": MergeDecision.merge("sodium")})

    assert result.merged == 1
    assert result.success
    record = store.get("sodium")
    assert record is not None
    assert record.version == 2
    assert record.sections == (
        Section(type="static", content=SODIUM_TEXT, order=0),
        Section(type="static", content="Extra note", order=1),
    )
    assert [test.name for test in record.tests] == ["existing", "incoming"]
    working = store.working_copy("sodium")
    assert working is not None
    assert working.sections == record.sections
    (revision,) = store.history("sodium")
    assert revision.message == "Merged import of Sodium"


def test_merge_failures_are_collected(store: ReconciliationStore) -> None:
    decisions = {
        "match-0": MergeDecision.merge("missing"),
        "match-1": MergeDecision(MergeAction.MERGE),
    }

    result = _executor(store).execute_import(BATCH, decisions)

    assert not result.success
    assert result.errors == [
        "Sodium: Canonical record not found: missing",
        "Iron: Merge of Iron has no target record",
    ]
    assert (result.created, result.merged) == (0, 0)


def test_untranslatable_record_is_reported_and_loop_continues(store: ReconciliationStore) -> None:
    batch = [{"category": "Electrolytes"}, make_payload("Sodium")]

    result = _executor(store).execute_import(batch, {})

    assert result.created == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Record 0: Record 0 has no resolvable name")


class _ConflictingStore(ReconciliationStore):
    def save_record(
        self,
        record_id: str,
        draft: IngredientDraft,
        *,
        expected_version: int | None = None,
        message: str | None = None,
    ) -> CanonicalRecord:
        if record_id == "potassium":
            raise ConflictError(record_id, expected=0, actual=1)
        return super().save_record(
            record_id, draft, expected_version=expected_version, message=message
        )


def test_conflicting_record_fails_alone(memory_store: ReconciliationStore) -> None:
    store = _ConflictingStore(memory_store.unit_of_work_factory, clock=memory_store.clock)
    store.save_record("iron", make_draft("iron", category="Minerals", contents=(IRON_TEXT,)))
    batch = [
        make_payload("Sodium"),
        make_payload("Potassium", contents=("K 4.5 mmol/L",)),
        make_payload("Iron", category="Minerals", contents=("Transferrin",)),
    ]

    result = _executor(store).execute_import(batch, {"match-2": MergeDecision.merge("iron")})

    assert not result.success
    assert len(result.errors) == 1
    assert "Version conflict for potassium" in result.errors[0]
    assert (result.created, result.merged) == (1, 1)
    assert store.exists("sodium")
    assert not store.exists("potassium")


def test_progress_is_reported_after_each_record(memory_store: ReconciliationStore) -> None:
    events: list[ImportProgress] = []
    batch = [*BATCH, make_payload("Zinc", contents=("Zn",))]

    _executor(memory_store).execute_import(batch, {}, on_progress=events.append)

    assert [(event.current, event.total) for event in events] == [(1, 3), (2, 3), (3, 3)]
    assert [event.percentage for event in events] == [33, 67, 100]
    assert [event.current_item for event in events] == ["Sodium", "Iron", "Zinc"]


@pytest.mark.parametrize("stop_after", [0, 1])
def test_cancellation_stops_before_next_record(
    memory_store: ReconciliationStore, stop_after: int
) -> None:
    processed: list[ImportProgress] = []

    result = _executor(memory_store).execute_import(
        BATCH,
        {},
        on_progress=processed.append,
        is_cancelled=lambda: len(processed) >= stop_after,
    )

    assert result.cancelled
    assert result.created == stop_after
    assert len(memory_store.list_records()) == stop_after


def test_merge_target_bumped_after_read_conflicts(store: ReconciliationStore) -> None:
    store.save_record("sodium", make_draft())
    rival = RivalWrite(lambda: store.save_record("sodium", make_draft(contents=("Rival",))))
    racing = ReconciliationStore(
        racing_unit_of_work_factory(
            store.unit_of_work_factory, rival, repository="working_copies"
        ),
        clock=store.clock,
    )
    batch = [
        make_payload("Sodium", contents=("Extra note",)),
        make_payload("Iron", category="Minerals", contents=(IRON_TEXT,)),
    ]

    result = _executor(racing).execute_import(batch, {"match-0": MergeDecision.merge("sodium")})

    assert rival.fired
    assert result.errors == ["Sodium: Version conflict for sodium: expected version 1, found 2"]
    assert (result.created, result.merged) == (1, 0)
    record = store.get("sodium")
    assert record is not None
    assert record.version == 2
    assert record.sections == make_sections("Rival")
    assert store.exists("iron")


def test_unstorable_payload_fails_alone(sqlite_store: ReconciliationStore) -> None:
    batch = [
        {**make_payload("Sodium"), "exportedAt": datetime(2024, 1, 1, tzinfo=UTC)},
        make_payload("Iron", category="Minerals", contents=(IRON_TEXT,)),
    ]

    result = _executor(sqlite_store).execute_import(batch, {})

    assert result.created == 1
    (error,) = result.errors
    assert error.startswith("Sodium: Database error (StatementError)")
    assert "not JSON serializable" in error
    assert not sqlite_store.exists("sodium")
    assert sqlite_store.baseline("sodium") is None
    assert sqlite_store.exists("iron")


def test_database_failure_during_merge_fails_alone(
    sqlite_store: ReconciliationStore, sqlite_engine: Engine
) -> None:
    sqlite_store.save_record("sodium", make_draft())
    with sqlite_engine.begin() as connection:
        connection.execute(text("DROP TABLE ingredient_revision"))
    batch = [
        make_payload("Sodium", contents=("Extra note",)),
        make_payload("Iron", category="Minerals", contents=(IRON_TEXT,)),
    ]

    result = _executor(sqlite_store).execute_import(
        batch, {"match-0": MergeDecision.merge("sodium")}
    )

    assert (result.created, result.merged) == (1, 0)
    (error,) = result.errors
    assert error.startswith("Sodium: Database error (OperationalError)")
    assert "no such table" in error
    record = sqlite_store.get("sodium")
    assert record is not None
    assert record.version == 1
    assert record.sections == make_sections(SODIUM_TEXT)
    assert sqlite_store.exists("iron")
