"""Error taxonomy for import reconciliation.

Pure computation (hashing, similarity) never raises these; they originate at the
payload and persistence boundaries and are translated into per-record error strings
by the merge executor. Only :class:`FetchError` aborts a whole analysis.
"""

from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for reconciliation failures."""


class ValidationError(ReconciliationError, ValueError):
    """Raised when an incoming record is malformed (e.g. no resolvable name)."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        self.index = index
        super().__init__(message)


class NotFoundError(ReconciliationError, LookupError):
    """Raised when a referenced canonical record no longer exists."""

    def __init__(self, record_id: str, *, what: str = "Canonical record") -> None:
        self.record_id = record_id
        super().__init__(f"{what} not found: {record_id}")


class ConflictError(ReconciliationError):
    """Raised when a versioned write does not observe the latest version."""

    def __init__(self, record_id: str, *, expected: int, actual: int) -> None:
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict for {record_id}: expected version {expected}, found {actual}"
        )


class FetchError(ReconciliationError):
    """Raised when the canonical population cannot be read."""


class StoreError(ReconciliationError):
    """Raised when the persistence backend fails for a reason other than a conflict."""
