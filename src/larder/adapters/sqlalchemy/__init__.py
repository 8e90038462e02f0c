"""SQLAlchemy adapter package for larder."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    ingredient_baseline_table,
    ingredient_revision_table,
    ingredient_table,
    metadata,
    working_copy_table,
)
from .repositories import (
    SqlAlchemyBaselineRepository,
    SqlAlchemyCanonicalStore,
    SqlAlchemyRevisionRepository,
    SqlAlchemyWorkingCopyRepository,
)
from .unit_of_work import (
    BaseSqlAlchemyUnitOfWork,
    SqlAlchemyReconciliationUnitOfWork,
    StartupError,
    sqlalchemy_unit_of_work_factory,
    startup,
)

__all__ = [
    "BaseSqlAlchemyUnitOfWork",
    "SqlAlchemyBaselineRepository",
    "SqlAlchemyCanonicalStore",
    "SqlAlchemyReconciliationUnitOfWork",
    "SqlAlchemyRevisionRepository",
    "SqlAlchemyWorkingCopyRepository",
    "StartupError",
    "create_all_tables",
    "ingredient_baseline_table",
    "ingredient_revision_table",
    "ingredient_table",
    "metadata",
    "working_copy_table",
    "sqlalchemy_unit_of_work_factory",
    "startup",
]
