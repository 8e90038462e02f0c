"""Ports for turning loosely-typed import payloads into domain drafts."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from larder.domain.model import CanonicalRecord, IngredientDraft


@runtime_checkable
class RecordTranslator(Protocol):
    """Map one external record onto an :class:`IngredientDraft`.

    Implementations raise :class:`larder.domain.errors.ValidationError` when no name
    variant resolves.
    """

    def __call__(
        self, payload: Mapping[str, object], *, index: int | None = None
    ) -> IngredientDraft: ...


type PopulationFetcher = Callable[[], Sequence[CanonicalRecord]]
