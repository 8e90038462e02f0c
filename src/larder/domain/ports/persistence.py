"""Ports for persisting canonical records, baselines, working copies and revisions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from larder.domain.model import BaselineSnapshot, CanonicalRecord, Revision, WorkingCopy


@runtime_checkable
class CanonicalStore(Protocol):
    """Persistence contract for canonical records.

    ``write_versioned`` must raise :class:`larder.domain.errors.ConflictError` when the
    stored version differs from ``expected_version`` (``0`` means "must not exist").
    """

    def list_all(self) -> Sequence[CanonicalRecord]: ...

    def get(self, record_id: str) -> CanonicalRecord | None: ...

    def write_versioned(self, record: CanonicalRecord, *, expected_version: int) -> None: ...

    def delete(self, record_id: str) -> bool: ...


@runtime_checkable
class BaselineRepository(Protocol):
    """Persistence contract for immutable baseline snapshots."""

    def get(self, record_id: str) -> BaselineSnapshot | None: ...

    def add_if_absent(self, snapshot: BaselineSnapshot) -> bool: ...

    def delete(self, record_id: str) -> bool: ...


@runtime_checkable
class WorkingCopyRepository(Protocol):
    """Persistence contract for versioned working copies."""

    def get(self, record_id: str) -> WorkingCopy | None: ...

    def write_versioned(self, working_copy: WorkingCopy, *, expected_version: int) -> None: ...

    def delete(self, record_id: str) -> bool: ...


@runtime_checkable
class RevisionRepository(Protocol):
    """Append-only archive of superseded canonical states."""

    def append(self, revision: Revision) -> None: ...

    def history(self, record_id: str) -> Sequence[Revision]: ...

    def delete_all(self, record_id: str) -> int: ...
