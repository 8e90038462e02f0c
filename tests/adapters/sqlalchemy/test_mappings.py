from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy import inspect, insert, select

from larder.adapters.sqlalchemy import create_all_tables, ingredient_revision_table
from larder.domain.model import Section, TestCase

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def test_create_all_tables_creates_reconciliation_schema(sqlite_engine: Engine) -> None:
    create_all_tables(sqlite_engine)

    tables = set(inspect(sqlite_engine).get_table_names())
    assert {"ingredient", "ingredient_baseline", "working_copy", "ingredient_revision"} <= tables


def test_json_and_datetime_columns_round_trip(sqlite_engine: Engine) -> None:
    create_all_tables(sqlite_engine)
    archived_at = datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    sections = (
        Section(type="static", content="text", order=0),
        Section(type="dynamic", content="a + b", order=1),
    )
    tests = (TestCase(name="t", variables={"a": 1, "b": [2, 3]}, expected="3"),)

    with sqlite_engine.begin() as connection:
        connection.execute(
            insert(ingredient_revision_table).values(
                record_id="sodium",
                version=1,
                sections=sections,
                tests=tests,
                content_hash="abc",
                archived_at=archived_at,
            )
        )
        row = connection.execute(select(ingredient_revision_table)).one()

    assert row.sections == sections
    assert row.tests == tests
    assert row.archived_at == archived_at
    assert row.archived_at.tzinfo is not None
    assert row.message is None
