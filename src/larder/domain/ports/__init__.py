"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    BaselineRepository,
    CanonicalStore,
    RevisionRepository,
    WorkingCopyRepository,
)
from .translation import PopulationFetcher, RecordTranslator
from .unit_of_work import (
    ReconciliationRepositories,
    ReconciliationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "BaselineRepository",
    "CanonicalStore",
    "PopulationFetcher",
    "ReconciliationRepositories",
    "ReconciliationUnitOfWork",
    "RecordTranslator",
    "RepositoryCollection",
    "RevisionRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "WorkingCopyRepository",
]
