"""
Record types: sections, test cases, incoming drafts, and the canonical store's
record, baseline, working-copy and revision shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from larder.domain.model.enums import CompareStatus, SectionType, ValidationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class Section:
    """One ordered block of ingredient content; order is part of identity."""

    type: str
    content: str
    order: int = 0

    @property
    def is_dynamic(self) -> bool:
        return self.type == SectionType.DYNAMIC

    def to_payload(self) -> dict[str, object]:
        return {"type": self.type, "content": self.content, "order": self.order}


@dataclass(frozen=True, slots=True)
class TestCase:
    __test__ = False  # not a pytest class

    name: str
    variables: Mapping[str, object] = field(default_factory=dict[str, object])
    expected: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {"name": self.name, "variables": dict(self.variables), "expected": self.expected}


def renumber_sections(sections: Iterable[Section]) -> tuple[Section, ...]:
    """Return ``sections`` with ``order`` reassigned to their position."""

    return tuple(
        section if section.order == index else replace(section, order=index)
        for index, section in enumerate(sections)
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class IngredientDraft:
    """An incoming record after translation from the external payload shape."""

    keyname: str
    display_name: str
    category: str
    sections: tuple[Section, ...] = ()
    tests: tuple[TestCase, ...] = ()
    raw: Mapping[str, object] = field(default_factory=dict[str, object])

    @property
    def label(self) -> str:
        return self.display_name or self.keyname

    def to_payload(self) -> dict[str, object]:
        return {
            "keyname": self.keyname,
            "displayName": self.display_name,
            "category": self.category,
            "sections": [section.to_payload() for section in self.sections],
            "tests": [test.to_payload() for test in self.tests],
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class CanonicalRecord:
    """The single accepted representation of an ingredient."""

    id: str
    keyname: str
    display_name: str
    category: str
    sections: tuple[Section, ...] = ()
    tests: tuple[TestCase, ...] = ()
    version: int = 1
    content_hash: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.keyname

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "keyname": self.keyname,
            "displayName": self.display_name,
            "category": self.category,
            "sections": [section.to_payload() for section in self.sections],
            "tests": [test.to_payload() for test in self.tests],
            "version": self.version,
            "contentHash": self.content_hash,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class BaselineSnapshot:
    """Immutable original import data for a canonical id, captured once."""

    record_id: str
    raw: Mapping[str, object]
    sections: tuple[Section, ...]
    tests: tuple[TestCase, ...]
    imported_at: datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkingCopy:
    """Current editable state of a canonical record's content."""

    record_id: str
    sections: tuple[Section, ...]
    tests: tuple[TestCase, ...]
    version: int = 1
    validation_status: ValidationStatus = ValidationStatus.UNTESTED
    validation_notes: str = ""
    status: CompareStatus = CompareStatus.CLEAN
    reverted_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Revision:
    """Archived canonical state at ``version``, written when it is superseded."""

    record_id: str
    version: int
    sections: tuple[Section, ...]
    tests: tuple[TestCase, ...]
    content_hash: str
    archived_at: datetime
    message: str | None = None
