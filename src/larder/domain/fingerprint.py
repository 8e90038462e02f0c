"""Deterministic content fingerprints for ingredient sections.

The fingerprint only looks at the ordered ``(type, content)`` pairs of a record's
sections, so ids, timestamps and display metadata never affect it, while reordering
sections always does.
"""

from __future__ import annotations

import hashlib
import re
from collections import defaultdict
from typing import TYPE_CHECKING, Final, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from larder.domain.model import Section

RECORD_SEPARATOR: Final[str] = "\x1e"
_WHITESPACE = re.compile(r"\s+")


class HasSections(Protocol):
    @property
    def sections(self) -> Sequence[Section]: ...


def normalize_content(text: str) -> str:
    """Collapse whitespace variations so cosmetic edits do not change the hash."""

    if not text:
        return ""
    return _WHITESPACE.sub(" ", text.replace("\r\n", "\n")).strip()


def normalize_sections(sections: Iterable[Section]) -> str:
    return RECORD_SEPARATOR.join(
        f"{section.type}:{normalize_content(section.content)}" for section in sections
    )


def hash_sections(sections: Sequence[Section]) -> str:
    """Return the SHA-256 hex digest of ``sections``, or ``""`` when there is no content."""

    if not sections:
        return ""
    normalized = normalize_sections(sections)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def content_hash(record: HasSections) -> str:
    return hash_sections(record.sections)


def are_identical(first: HasSections, second: HasSections) -> bool:
    """Whether both records carry content and that content fingerprints equally."""

    first_hash = content_hash(first)
    second_hash = content_hash(second)
    if not first_hash or not second_hash:
        return False
    return first_hash == second_hash


def find_duplicates[TRecord: HasSections](records: Iterable[TRecord]) -> dict[str, list[TRecord]]:
    """Group records sharing a fingerprint; records without content are ignored."""

    by_hash: defaultdict[str, list[TRecord]] = defaultdict(list)
    for record in records:
        digest = content_hash(record)
        if digest:
            by_hash[digest].append(record)
    return {digest: group for digest, group in by_hash.items() if len(group) > 1}
