from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from larder.adapters.memory import InMemoryState, in_memory_unit_of_work_factory
from larder.adapters.sqlalchemy import sqlalchemy_unit_of_work_factory, startup
from larder.domain.reconciliation import ReconciliationStore
from tests.helpers.records import SteppingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from larder.domain.ports import UnitOfWorkFactory


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return startup(engine=sqlite_engine)


@pytest.fixture
def memory_state() -> InMemoryState:
    return InMemoryState()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture(params=["memory", "sqlite"])
def unit_of_work_factory(
    request: pytest.FixtureRequest,
    memory_state: InMemoryState,
) -> UnitOfWorkFactory:
    if request.param == "memory":
        return in_memory_unit_of_work_factory(memory_state)
    session_factory = request.getfixturevalue("sqlite_session_factory")
    return sqlalchemy_unit_of_work_factory(session_factory)


@pytest.fixture
def store(unit_of_work_factory: UnitOfWorkFactory, clock: SteppingClock) -> ReconciliationStore:
    return ReconciliationStore(unit_of_work_factory, clock=clock)


@pytest.fixture
def memory_store(memory_state: InMemoryState, clock: SteppingClock) -> ReconciliationStore:
    return ReconciliationStore(in_memory_unit_of_work_factory(memory_state), clock=clock)
