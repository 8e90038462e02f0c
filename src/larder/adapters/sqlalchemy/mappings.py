"""SQLAlchemy table metadata for canonical records and their reconciliation state."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)

from larder.domain.model import CompareStatus, Section, TestCase, ValidationStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _load_list(value: str | None) -> list[dict[str, Any]]:
    if value is None:
        return []
    loaded = json.loads(value)
    if not isinstance(loaded, list):
        return []
    items = cast(list[Any], loaded)
    return [cast(dict[str, Any], item) for item in items if isinstance(item, dict)]


class SectionListType(TypeDecorator[tuple[Section, ...]]):
    """Ordered sections stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: tuple[Section, ...] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([section.to_payload() for section in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[Section, ...]:
        _ = dialect
        return tuple(
            Section(
                type=str(item.get("type", "")),
                content=str(item.get("content", "")),
                order=int(item.get("order", position)),
            )
            for position, item in enumerate(_load_list(value))
        )


class TestCaseListType(TypeDecorator[tuple[TestCase, ...]]):
    """Test cases stored as a JSON array."""

    __test__ = False

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: tuple[TestCase, ...] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([test.to_payload() for test in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[TestCase, ...]:
        _ = dialect
        tests: list[TestCase] = []
        for item in _load_list(value):
            expected = item.get("expected")
            variables = item.get("variables")
            tests.append(
                TestCase(
                    name=str(item.get("name", "")),
                    variables=cast(dict[str, object], variables)
                    if isinstance(variables, dict)
                    else {},
                    expected=None if expected is None else str(expected),
                )
            )
        return tuple(tests)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

ingredient_table = Table(
    "ingredient",
    metadata,
    Column("id", String, primary_key=True),
    Column("keyname", String, nullable=False),
    Column("display_name", String, nullable=False),
    Column("category", String, nullable=False),
    Column("sections", SectionListType, nullable=False),
    Column("tests", TestCaseListType, nullable=False),
    Column("version", Integer, nullable=False),
    Column("content_hash", String(64), nullable=False, index=True),
    Column("created_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=True),
)

ingredient_baseline_table = Table(
    "ingredient_baseline",
    metadata,
    Column("record_id", String, ForeignKey("ingredient.id"), primary_key=True),
    Column("raw", JSON, nullable=False),
    Column("sections", SectionListType, nullable=False),
    Column("tests", TestCaseListType, nullable=False),
    Column("imported_at", UTCDateTime, nullable=False),
)

working_copy_table = Table(
    "working_copy",
    metadata,
    Column("record_id", String, ForeignKey("ingredient.id"), primary_key=True),
    Column("sections", SectionListType, nullable=False),
    Column("tests", TestCaseListType, nullable=False),
    Column("version", Integer, nullable=False),
    Column("validation_status", Enum(ValidationStatus, native_enum=False), nullable=False),
    Column("validation_notes", Text, nullable=False, default=""),
    Column("status", Enum(CompareStatus, native_enum=False), nullable=False),
    Column("reverted_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=True),
)

ingredient_revision_table = Table(
    "ingredient_revision",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("record_id", String, ForeignKey("ingredient.id"), nullable=False, index=True),
    Column("version", Integer, nullable=False),
    Column("sections", SectionListType, nullable=False),
    Column("tests", TestCaseListType, nullable=False),
    Column("content_hash", String(64), nullable=False),
    Column("archived_at", UTCDateTime, nullable=False),
    Column("message", Text, nullable=True),
    UniqueConstraint("record_id", "version"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the reconciliation metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
