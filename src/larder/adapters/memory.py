"""In-process persistence adapter.

Each unit of work stages its writes and only publishes them on ``commit``, where the
versions it based its writes on are re-checked under the shared state's lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Literal

from larder.domain.errors import ConflictError
from larder.domain.ports import ReconciliationRepositories

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from larder.domain.model import BaselineSnapshot, CanonicalRecord, Revision, WorkingCopy
    from larder.domain.ports import ReconciliationUnitOfWork, UnitOfWorkFactory


@dataclass(slots=True)
class InMemoryState:
    """Committed data shared by every unit of work built on it."""

    records: dict[str, CanonicalRecord] = field(default_factory=dict)
    baselines: dict[str, BaselineSnapshot] = field(default_factory=dict)
    working_copies: dict[str, WorkingCopy] = field(default_factory=dict)
    revisions: dict[str, tuple[Revision, ...]] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class _StagedTable[TValue]:
    """Uncommitted view over one committed mapping."""

    __slots__ = ("_changes", "_committed", "_expected", "_insert_only", "_lock")

    def __init__(
        self,
        committed: dict[str, TValue],
        lock: threading.Lock,
        *,
        insert_only: bool = False,
    ) -> None:
        self._committed = committed
        self._lock = lock
        self._insert_only = insert_only
        self._changes: dict[str, TValue | None] = {}
        self._expected: dict[str, int] = {}

    def get(self, key: str) -> TValue | None:
        if key in self._changes:
            return self._changes[key]
        with self._lock:
            return self._committed.get(key)

    def values(self) -> list[TValue]:
        with self._lock:
            keys = dict.fromkeys([*self._committed, *self._changes])
        return [value for key in keys if (value := self.get(key)) is not None]

    def put(self, key: str, value: TValue) -> None:
        self._changes[key] = value

    def discard(self, key: str) -> bool:
        existed = self.get(key) is not None
        self._changes[key] = None
        return existed

    def expect(self, key: str, version: int) -> None:
        self._expected.setdefault(key, version)

    def verify(self, version_of: Callable[[TValue], int]) -> None:
        for key, expected in self._expected.items():
            committed = self._committed.get(key)
            actual = version_of(committed) if committed is not None else 0
            if actual != expected:
                raise ConflictError(key, expected=expected, actual=actual)

    def apply(self) -> None:
        for key, value in self._changes.items():
            if value is None:
                self._committed.pop(key, None)
            elif not self._insert_only or key not in self._committed:
                self._committed[key] = value
        self.reset()

    def reset(self) -> None:
        self._changes.clear()
        self._expected.clear()


def _version_of(value: CanonicalRecord | WorkingCopy) -> int:
    return value.version


def _write_versioned[TValue: CanonicalRecord | WorkingCopy](
    table: _StagedTable[TValue], key: str, value: TValue, expected_version: int
) -> None:
    current = table.get(key)
    actual = current.version if current is not None else 0
    if actual != expected_version:
        raise ConflictError(key, expected=expected_version, actual=actual)
    table.expect(key, expected_version)
    table.put(key, value)


class InMemoryCanonicalStore:
    def __init__(self, table: _StagedTable[CanonicalRecord]) -> None:
        self._table = table

    def list_all(self) -> Sequence[CanonicalRecord]:
        return sorted(self._table.values(), key=lambda record: record.id)

    def get(self, record_id: str) -> CanonicalRecord | None:
        return self._table.get(record_id)

    def write_versioned(self, record: CanonicalRecord, *, expected_version: int) -> None:
        _write_versioned(self._table, record.id, record, expected_version)

    def delete(self, record_id: str) -> bool:
        return self._table.discard(record_id)


class InMemoryBaselineRepository:
    def __init__(self, table: _StagedTable[BaselineSnapshot]) -> None:
        self._table = table

    def get(self, record_id: str) -> BaselineSnapshot | None:
        return self._table.get(record_id)

    def add_if_absent(self, snapshot: BaselineSnapshot) -> bool:
        if self._table.get(snapshot.record_id) is not None:
            return False
        self._table.put(snapshot.record_id, snapshot)
        return True

    def delete(self, record_id: str) -> bool:
        return self._table.discard(record_id)


class InMemoryWorkingCopyRepository:
    def __init__(self, table: _StagedTable[WorkingCopy]) -> None:
        self._table = table

    def get(self, record_id: str) -> WorkingCopy | None:
        return self._table.get(record_id)

    def write_versioned(self, working_copy: WorkingCopy, *, expected_version: int) -> None:
        _write_versioned(self._table, working_copy.record_id, working_copy, expected_version)

    def delete(self, record_id: str) -> bool:
        return self._table.discard(record_id)


class InMemoryRevisionRepository:
    def __init__(self, table: _StagedTable[tuple[Revision, ...]]) -> None:
        self._table = table

    def append(self, revision: Revision) -> None:
        history = self._table.get(revision.record_id) or ()
        self._table.put(revision.record_id, (*history, revision))

    def history(self, record_id: str) -> Sequence[Revision]:
        return sorted(self._table.get(record_id) or (), key=lambda revision: revision.version)

    def delete_all(self, record_id: str) -> int:
        removed = len(self._table.get(record_id) or ())
        self._table.discard(record_id)
        return removed


class InMemoryUnitOfWork:
    """Unit of work over an :class:`InMemoryState`."""

    def __init__(self, state: InMemoryState | None = None) -> None:
        self.state = state if state is not None else InMemoryState()
        self._records: _StagedTable[CanonicalRecord] | None = None
        self._baselines: _StagedTable[BaselineSnapshot] | None = None
        self._working_copies: _StagedTable[WorkingCopy] | None = None
        self._revisions: _StagedTable[tuple[Revision, ...]] | None = None
        self._repositories: ReconciliationRepositories | None = None

    def __enter__(self) -> InMemoryUnitOfWork:
        if self._repositories is not None:
            raise RuntimeError("Unit of work already entered")
        self._records = _StagedTable(self.state.records, self.state.lock)
        self._baselines = _StagedTable(self.state.baselines, self.state.lock, insert_only=True)
        self._working_copies = _StagedTable(self.state.working_copies, self.state.lock)
        self._revisions = _StagedTable(self.state.revisions, self.state.lock)
        self._repositories = ReconciliationRepositories(
            records=InMemoryCanonicalStore(self._records),
            baselines=InMemoryBaselineRepository(self._baselines),
            working_copies=InMemoryWorkingCopyRepository(self._working_copies),
            revisions=InMemoryRevisionRepository(self._revisions),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.rollback()
        self._repositories = None
        return False

    @property
    def repositories(self) -> ReconciliationRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._repositories

    def commit(self) -> None:
        records, baselines, working_copies, revisions = self._tables()
        with self.state.lock:
            records.verify(_version_of)
            working_copies.verify(_version_of)
            records.apply()
            baselines.apply()
            working_copies.apply()
            revisions.apply()

    def rollback(self) -> None:
        if self._repositories is None:
            return
        for table in self._tables():
            table.reset()

    def _tables(
        self,
    ) -> tuple[
        _StagedTable[CanonicalRecord],
        _StagedTable[BaselineSnapshot],
        _StagedTable[WorkingCopy],
        _StagedTable[tuple[Revision, ...]],
    ]:
        if (
            self._records is None
            or self._baselines is None
            or self._working_copies is None
            or self._revisions is None
        ):
            raise RuntimeError("Unit of work used outside of its context")
        return self._records, self._baselines, self._working_copies, self._revisions


def in_memory_unit_of_work_factory(state: InMemoryState | None = None) -> UnitOfWorkFactory:
    """Return a factory whose units of work all share ``state``."""

    return partial(InMemoryUnitOfWork, state if state is not None else InMemoryState())


if TYPE_CHECKING:
    _uow_check: ReconciliationUnitOfWork = InMemoryUnitOfWork()
