"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from larder.adapters.sqlalchemy.mappings import (
    ingredient_baseline_table,
    ingredient_revision_table,
    ingredient_table,
    working_copy_table,
)
from larder.domain.errors import ConflictError, StoreError
from larder.domain.model import BaselineSnapshot, CanonicalRecord, Revision, WorkingCopy

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import CursorResult, Executable, Result, Row, Table
    from sqlalchemy.orm import Session


def _rowcount(result: object) -> int:
    return cast("CursorResult[Any]", result).rowcount


def _store_error(exc: SQLAlchemyError) -> StoreError:
    cause = getattr(exc, "orig", None) or exc
    return StoreError(f"Database error ({type(exc).__name__}): {cause}")


def _execute(session: Session, stmt: Executable) -> Result[Any]:
    try:
        return session.execute(stmt)
    except SQLAlchemyError as exc:
        raise _store_error(exc) from exc


class _VersionedRows:
    """Optimistic ``UPDATE ... WHERE version = :expected`` writes for one table."""

    def __init__(self, session: Session, table: Table, key: str) -> None:
        self.session = session
        self._table = table
        self._key = table.c[key]

    def current_version(self, key: str) -> int:
        stmt = select(self._table.c.version).where(self._key == key)
        version = _execute(self.session, stmt).scalar_one_or_none()
        return int(version) if version is not None else 0

    def write(self, key: str, values: Mapping[str, object], *, expected_version: int) -> None:
        if expected_version == 0:
            self._insert(key, values)
            return
        stmt = (
            update(self._table)
            .where(self._key == key)
            .where(self._table.c.version == expected_version)
            .values(**values)
        )
        if _rowcount(_execute(self.session, stmt)) != 1:
            raise ConflictError(
                key, expected=expected_version, actual=self.current_version(key)
            )

    def delete(self, key: str) -> bool:
        stmt = delete(self._table).where(self._key == key)
        return _rowcount(_execute(self.session, stmt)) > 0

    def _insert(self, key: str, values: Mapping[str, object]) -> None:
        actual = self.current_version(key)
        if actual:
            raise ConflictError(key, expected=0, actual=actual)
        try:
            self.session.execute(insert(self._table).values(**values))
        except IntegrityError as exc:
            raise ConflictError(key, expected=0, actual=self.current_version(key)) from exc
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc


def _record_from_row(row: Row[Any]) -> CanonicalRecord:
    return CanonicalRecord(
        id=row.id,
        keyname=row.keyname,
        display_name=row.display_name,
        category=row.category,
        sections=row.sections,
        tests=row.tests,
        version=row.version,
        content_hash=row.content_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyCanonicalStore:
    def __init__(self, session: Session) -> None:
        self.session = session
        self._rows = _VersionedRows(session, ingredient_table, "id")

    def list_all(self) -> Sequence[CanonicalRecord]:
        stmt = select(ingredient_table).order_by(ingredient_table.c.id)
        return [_record_from_row(row) for row in _execute(self.session, stmt)]

    def get(self, record_id: str) -> CanonicalRecord | None:
        stmt = select(ingredient_table).where(ingredient_table.c.id == record_id)
        row = _execute(self.session, stmt).one_or_none()
        return _record_from_row(row) if row is not None else None

    def write_versioned(self, record: CanonicalRecord, *, expected_version: int) -> None:
        values = {
            "id": record.id,
            "keyname": record.keyname,
            "display_name": record.display_name,
            "category": record.category,
            "sections": record.sections,
            "tests": record.tests,
            "version": record.version,
            "content_hash": record.content_hash,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
        self._rows.write(record.id, values, expected_version=expected_version)

    def delete(self, record_id: str) -> bool:
        return self._rows.delete(record_id)


class SqlAlchemyBaselineRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, record_id: str) -> BaselineSnapshot | None:
        stmt = select(ingredient_baseline_table).where(
            ingredient_baseline_table.c.record_id == record_id
        )
        row = _execute(self.session, stmt).one_or_none()
        if row is None:
            return None
        return BaselineSnapshot(
            record_id=row.record_id,
            raw=cast(dict[str, object], row.raw or {}),
            sections=row.sections,
            tests=row.tests,
            imported_at=row.imported_at,
        )

    def add_if_absent(self, snapshot: BaselineSnapshot) -> bool:
        if self.get(snapshot.record_id) is not None:
            return False
        _execute(
            self.session,
            insert(ingredient_baseline_table).values(
                record_id=snapshot.record_id,
                raw=dict(snapshot.raw),
                sections=snapshot.sections,
                tests=snapshot.tests,
                imported_at=snapshot.imported_at,
            ),
        )
        return True

    def delete(self, record_id: str) -> bool:
        stmt = delete(ingredient_baseline_table).where(
            ingredient_baseline_table.c.record_id == record_id
        )
        return _rowcount(_execute(self.session, stmt)) > 0


class SqlAlchemyWorkingCopyRepository:
    def __init__(self, session: Session) -> None:
        self.session = session
        self._rows = _VersionedRows(session, working_copy_table, "record_id")

    def get(self, record_id: str) -> WorkingCopy | None:
        stmt = select(working_copy_table).where(working_copy_table.c.record_id == record_id)
        row = _execute(self.session, stmt).one_or_none()
        if row is None:
            return None
        return WorkingCopy(
            record_id=row.record_id,
            sections=row.sections,
            tests=row.tests,
            version=row.version,
            validation_status=row.validation_status,
            validation_notes=row.validation_notes or "",
            status=row.status,
            reverted_at=row.reverted_at,
            updated_at=row.updated_at,
        )

    def write_versioned(self, working_copy: WorkingCopy, *, expected_version: int) -> None:
        values = {
            "record_id": working_copy.record_id,
            "sections": working_copy.sections,
            "tests": working_copy.tests,
            "version": working_copy.version,
            "validation_status": working_copy.validation_status,
            "validation_notes": working_copy.validation_notes,
            "status": working_copy.status,
            "reverted_at": working_copy.reverted_at,
            "updated_at": working_copy.updated_at,
        }
        self._rows.write(working_copy.record_id, values, expected_version=expected_version)

    def delete(self, record_id: str) -> bool:
        return self._rows.delete(record_id)


class SqlAlchemyRevisionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, revision: Revision) -> None:
        stmt = insert(ingredient_revision_table).values(
            record_id=revision.record_id,
            version=revision.version,
            sections=revision.sections,
            tests=revision.tests,
            content_hash=revision.content_hash,
            archived_at=revision.archived_at,
            message=revision.message,
        )
        try:
            self.session.execute(stmt)
        except IntegrityError as exc:
            # this version was already archived by a writer that committed first
            raise ConflictError(
                revision.record_id, expected=revision.version, actual=revision.version + 1
            ) from exc
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc

    def history(self, record_id: str) -> Sequence[Revision]:
        stmt = (
            select(ingredient_revision_table)
            .where(ingredient_revision_table.c.record_id == record_id)
            .order_by(ingredient_revision_table.c.version)
        )
        return [
            Revision(
                record_id=row.record_id,
                version=row.version,
                sections=row.sections,
                tests=row.tests,
                content_hash=row.content_hash,
                archived_at=row.archived_at,
                message=row.message,
            )
            for row in _execute(self.session, stmt)
        ]

    def delete_all(self, record_id: str) -> int:
        stmt = delete(ingredient_revision_table).where(
            ingredient_revision_table.c.record_id == record_id
        )
        return _rowcount(_execute(self.session, stmt))
