"""SQLAlchemy-backed units of work for reconciliation writes."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from larder.adapters.sqlalchemy.mappings import create_all_tables
from larder.adapters.sqlalchemy.repositories import (
    SqlAlchemyBaselineRepository,
    SqlAlchemyCanonicalStore,
    SqlAlchemyRevisionRepository,
    SqlAlchemyWorkingCopyRepository,
)
from larder.config import DatabaseConfig, get_database_config
from larder.domain.errors import StoreError
from larder.domain.ports import ReconciliationRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from larder.domain.ports import UnitOfWorkFactory

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is misused or misconfigured."""


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
) -> sessionmaker[Session]:
    """Create the schema and return a session factory bound to the engine.

    Without arguments the database URI comes from :func:`larder.config.get_database_config`.
    """

    if engine is not None and database_uri is not None:
        raise StartupError("Pass either an engine or a database URI, not both")
    if engine is None:
        config = get_database_config() if database_uri is None else DatabaseConfig(database_uri)
        engine = create_engine(config.uri, echo=config.echo, future=True)
    log.info("Starting SQLAlchemy adapter on %s", engine.url)
    create_all_tables(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            log.warning("Commit failed, rolling back: %s", exc)
            self.session.rollback()
            raise StoreError(f"Database error ({type(exc).__name__}): {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyReconciliationUnitOfWork(BaseSqlAlchemyUnitOfWork[ReconciliationRepositories]):
    """Unit of work managing SQLAlchemy sessions for reconciliation writes."""

    def _build_repositories(self, session: Session) -> ReconciliationRepositories:
        return ReconciliationRepositories(
            records=SqlAlchemyCanonicalStore(session),
            baselines=SqlAlchemyBaselineRepository(session),
            working_copies=SqlAlchemyWorkingCopyRepository(session),
            revisions=SqlAlchemyRevisionRepository(session),
        )


def sqlalchemy_unit_of_work_factory(session_factory: sessionmaker[Session]) -> UnitOfWorkFactory:
    """Return a factory producing units of work bound to ``session_factory``."""

    return partial(SqlAlchemyReconciliationUnitOfWork, session_factory)


if TYPE_CHECKING:
    from larder.domain.ports import ReconciliationUnitOfWork

    _uow_check: ReconciliationUnitOfWork = SqlAlchemyReconciliationUnitOfWork(
        sessionmaker[Session]()
    )
