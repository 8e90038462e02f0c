"""Baseline snapshots and versioned working copies per canonical record.

The first save of an id writes the canonical record, seeds its immutable baseline and
creates working copy v1 in one unit of work. Every later change archives the current
canonical state as a :class:`Revision` and bumps the canonical record and the working
copy to the same next version.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from larder.domain.errors import ConflictError, NotFoundError
from larder.domain.fingerprint import hash_sections
from larder.domain.identity import slugify_record_id
from larder.domain.model import (
    BaselineDifferences,
    BaselineSnapshot,
    CanonicalRecord,
    CompareResult,
    CompareStatus,
    Revision,
    WorkingCopy,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from larder.domain.model import IngredientDraft, Section, TestCase, ValidationStatus
    from larder.domain.ports import ReconciliationRepositories, UnitOfWorkFactory

log = logging.getLogger(__name__)

FALLBACK_RECORD_ID = "ingredient"
REVERT_MESSAGE = "Revert to baseline"


def utc_now() -> datetime:
    return datetime.now(UTC)


def same_content(first: Iterable[Section], second: Iterable[Section]) -> bool:
    """Whether both section lists carry the same ``(type, content)`` pairs in list order.

    List position is what the content hash sees, so ``order`` fields are ignored.
    """

    def pairs(sections: Iterable[Section]) -> list[tuple[str, str]]:
        return [(str(section.type), section.content) for section in sections]

    return pairs(first) == pairs(second)


@dataclass(slots=True)
class ReconciliationStore:
    unit_of_work_factory: UnitOfWorkFactory
    clock: Callable[[], datetime] = utc_now

    # Reads -------------------------------------------------------------------

    def get(self, record_id: str) -> CanonicalRecord | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.records.get(record_id)

    def list_records(self) -> Sequence[CanonicalRecord]:
        with self.unit_of_work_factory() as uow:
            return tuple(uow.repositories.records.list_all())

    def exists(self, record_id: str) -> bool:
        return self.get(record_id) is not None

    def working_copy(self, record_id: str) -> WorkingCopy | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.working_copies.get(record_id)

    def baseline(self, record_id: str) -> BaselineSnapshot | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.baselines.get(record_id)

    def history(self, record_id: str) -> Sequence[Revision]:
        with self.unit_of_work_factory() as uow:
            return tuple(uow.repositories.revisions.history(record_id))

    def mint_record_id(self, name: str) -> str:
        """Slug of ``name``, suffixed ``-2``, ``-3``, ... until no record uses it."""

        base = slugify_record_id(name) or FALLBACK_RECORD_ID
        with self.unit_of_work_factory() as uow:
            records = uow.repositories.records
            candidate = base
            suffix = 1
            while records.get(candidate) is not None:
                suffix += 1
                candidate = f"{base}-{suffix}"
            return candidate

    def compare(self, record_id: str) -> CompareResult:
        with self.unit_of_work_factory() as uow:
            baseline = uow.repositories.baselines.get(record_id)
            working = uow.repositories.working_copies.get(record_id)
        if baseline is None:
            return CompareResult(CompareStatus.NEW)
        if working is None:
            return CompareResult(CompareStatus.DELETED)
        if same_content(baseline.sections, working.sections):
            return CompareResult(CompareStatus.CLEAN)
        return CompareResult(
            CompareStatus.MODIFIED,
            BaselineDifferences(baseline=baseline.sections, working=working.sections),
        )

    # Writes ------------------------------------------------------------------

    def save_record(
        self,
        record_id: str,
        draft: IngredientDraft,
        *,
        expected_version: int | None = None,
        message: str | None = None,
    ) -> CanonicalRecord:
        """Create or update ``record_id`` from ``draft``.

        ``expected_version`` is the canonical version the caller read (``0`` for "must
        not exist yet"); ``None`` writes on top of whatever is current.
        """

        now = self.clock()
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            current = repositories.records.get(record_id)
            _check_expected(record_id, current, expected_version)
            if current is None:
                record = self._create(repositories, record_id, draft, now)
            else:
                record, _ = self._advance(
                    repositories,
                    current,
                    sections=draft.sections,
                    tests=draft.tests,
                    now=now,
                    message=message,
                )
            uow.commit()
        return record

    def revert(self, record_id: str) -> WorkingCopy:
        """Replace the working content with the baseline's and mark it clean."""

        now = self.clock()
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            baseline = repositories.baselines.get(record_id)
            if baseline is None:
                raise NotFoundError(record_id, what="Baseline")
            current = _require_record(repositories, record_id)
            _, working = self._advance(
                repositories,
                current,
                sections=baseline.sections,
                tests=baseline.tests,
                now=now,
                message=REVERT_MESSAGE,
                reverted_at=now,
            )
            uow.commit()
        log.info("Reverted %s to baseline at version %s", record_id, working.version)
        return working

    def set_validation(
        self,
        record_id: str,
        status: ValidationStatus,
        *,
        notes: str = "",
        expected_version: int | None = None,
    ) -> WorkingCopy:
        now = self.clock()
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            current = _require_record(repositories, record_id)
            _check_expected(record_id, current, expected_version)
            _, working = self._advance(
                repositories,
                current,
                sections=current.sections,
                tests=current.tests,
                now=now,
                message=f"Validation {status}",
                validation_status=status,
                validation_notes=notes,
            )
            uow.commit()
        return working

    def delete(self, record_id: str) -> bool:
        """Remove the working copy, baseline, revisions and canonical record together."""

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            removed_working = repositories.working_copies.delete(record_id)
            removed_baseline = repositories.baselines.delete(record_id)
            repositories.revisions.delete_all(record_id)
            removed_record = repositories.records.delete(record_id)
            uow.commit()
        return removed_record or removed_working or removed_baseline

    # Internals ---------------------------------------------------------------

    def _create(
        self,
        repositories: ReconciliationRepositories,
        record_id: str,
        draft: IngredientDraft,
        now: datetime,
    ) -> CanonicalRecord:
        record = CanonicalRecord(
            id=record_id,
            keyname=draft.keyname,
            display_name=draft.display_name,
            category=draft.category,
            sections=draft.sections,
            tests=draft.tests,
            content_hash=hash_sections(draft.sections),
            created_at=now,
            updated_at=now,
        )
        repositories.records.write_versioned(record, expected_version=0)
        seeded = repositories.baselines.add_if_absent(
            BaselineSnapshot(
                record_id=record_id,
                raw=dict(draft.raw),
                sections=draft.sections,
                tests=draft.tests,
                imported_at=now,
            )
        )
        if not seeded:
            log.debug("Baseline for %s already present, keeping the original", record_id)
        working = WorkingCopy(
            record_id=record_id,
            sections=draft.sections,
            tests=draft.tests,
            version=record.version,
            updated_at=now,
        )
        previous = repositories.working_copies.get(record_id)
        repositories.working_copies.write_versioned(
            working, expected_version=previous.version if previous else 0
        )
        return record

    def _advance(
        self,
        repositories: ReconciliationRepositories,
        current: CanonicalRecord,
        *,
        sections: tuple[Section, ...],
        tests: tuple[TestCase, ...],
        now: datetime,
        message: str | None,
        **working_changes: object,
    ) -> tuple[CanonicalRecord, WorkingCopy]:
        record = replace(
            current,
            sections=sections,
            tests=tests,
            version=current.version + 1,
            content_hash=hash_sections(sections),
            updated_at=now,
        )
        repositories.records.write_versioned(record, expected_version=current.version)
        repositories.revisions.append(
            Revision(
                record_id=current.id,
                version=current.version,
                sections=current.sections,
                tests=current.tests,
                content_hash=current.content_hash,
                archived_at=now,
                message=message,
            )
        )

        baseline = repositories.baselines.get(current.id)
        status = (
            CompareStatus.CLEAN
            if baseline is not None and same_content(baseline.sections, sections)
            else CompareStatus.MODIFIED
        )
        previous = repositories.working_copies.get(current.id)
        if previous is None:
            working = WorkingCopy(
                record_id=current.id,
                sections=sections,
                tests=tests,
                version=record.version,
                status=status,
                updated_at=now,
            )
        else:
            working = replace(
                previous,
                sections=sections,
                tests=tests,
                version=record.version,
                status=status,
                updated_at=now,
            )
        working = replace(working, **working_changes)
        repositories.working_copies.write_versioned(
            working, expected_version=previous.version if previous else 0
        )
        return record, working


def _check_expected(
    record_id: str, current: CanonicalRecord | None, expected_version: int | None
) -> None:
    if expected_version is None:
        return
    actual = current.version if current is not None else 0
    if actual != expected_version:
        raise ConflictError(record_id, expected=expected_version, actual=actual)


def _require_record(repositories: ReconciliationRepositories, record_id: str) -> CanonicalRecord:
    record = repositories.records.get(record_id)
    if record is None:
        raise NotFoundError(record_id)
    return record
