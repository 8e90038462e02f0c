"""Edit-distance based similarity between strings and ingredient records.

Scores are integers in ``[0, 100]``. Record similarity is a fixed weighted sum of
content (60), display name (20) and structural properties (20); weights are never
renormalized per record. Scores are rounded half-up before anyone compares them
against a threshold, so ``100`` always means the rendered inputs are identical.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Literal, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from larder.domain.model import Section

CONTENT_WEIGHT: Final[float] = 0.6
NAME_WEIGHT: Final[float] = 0.2
PROPERTIES_WEIGHT: Final[float] = 0.2

IDENTICAL_SCORE: Final[int] = 100
MAX_VARIATION_SCORE: Final[int] = 99
NEARLY_IDENTICAL_SCORE: Final[int] = 95
DEFAULT_VARIATION_THRESHOLD: Final[int] = 70
DEFAULT_MERGE_THRESHOLD: Final[int] = 85
DEFAULT_NAME_THRESHOLD: Final[int] = 80

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class SimilarityRecord(Protocol):
    """Structural view shared by incoming drafts and canonical records."""

    @property
    def keyname(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    @property
    def category(self) -> str: ...

    @property
    def sections(self) -> Sequence[Section]: ...


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def edit_distance(first: str, second: str) -> int:
    """Levenshtein distance keeping only one DP row of the shorter string."""

    if first == second:
        return 0
    if len(first) < len(second):
        first, second = second, first
    if not second:
        return len(first)

    previous = list(range(len(second) + 1))
    for i, first_char in enumerate(first, start=1):
        current = [i]
        for j, second_char in enumerate(second, start=1):
            if first_char == second_char:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def text_similarity(first: str, second: str) -> int:
    if first == second:
        return IDENTICAL_SCORE
    if not first or not second:
        return 0
    distance = edit_distance(first, second)
    return round_half_up((1 - distance / max(len(first), len(second))) * 100)


def render_content(sections: Iterable[Section]) -> str:
    ordered = sorted(sections, key=lambda section: section.order)
    return "\n".join(f"{section.type}:{section.content}" for section in ordered)


def _name_of(record: SimilarityRecord) -> str:
    return record.display_name or record.keyname or ""


def _properties_of(record: SimilarityRecord) -> str:
    return f"{record.category or ''}|{record.keyname or ''}"


def record_similarity(first: SimilarityRecord, second: SimilarityRecord) -> int:
    content = text_similarity(render_content(first.sections), render_content(second.sections))
    name = text_similarity(_name_of(first), _name_of(second))
    properties = text_similarity(_properties_of(first), _properties_of(second))
    return round_half_up(
        content * CONTENT_WEIGHT + name * NAME_WEIGHT + properties * PROPERTIES_WEIGHT
    )


def _identity(record: object) -> object:
    record_id = getattr(record, "id", None)
    return record_id if record_id else id(record)


@dataclass(frozen=True)
class Variation[TRecord: SimilarityRecord]:
    record: TRecord
    similarity: int


@dataclass(frozen=True, kw_only=True)
class VariationCluster[TRecord: SimilarityRecord]:
    cluster_id: str
    primary: TRecord
    variations: tuple[Variation[TRecord], ...]

    @property
    def total_count(self) -> int:
        return len(self.variations) + 1


@dataclass(frozen=True, kw_only=True)
class MergeSuggestion[TRecord: SimilarityRecord]:
    cluster: VariationCluster[TRecord]
    reason: str


def find_variations[TRecord: SimilarityRecord](
    target: SimilarityRecord,
    population: Iterable[TRecord],
    threshold: int = DEFAULT_VARIATION_THRESHOLD,
) -> list[Variation[TRecord]]:
    """Records scoring within ``[threshold, 99]`` against ``target``, best first.

    A score of 100 signals identity rather than variation and is excluded.
    """

    target_identity = _identity(target)
    variations: list[Variation[TRecord]] = []
    for candidate in population:
        if _identity(candidate) == target_identity:
            continue
        score = record_similarity(target, candidate)
        if threshold <= score <= MAX_VARIATION_SCORE:
            variations.append(Variation(candidate, score))
    variations.sort(key=lambda variation: variation.similarity, reverse=True)
    return variations


def cluster_variations[TRecord: SimilarityRecord](
    population: Sequence[TRecord],
    threshold: int = DEFAULT_VARIATION_THRESHOLD,
) -> list[VariationCluster[TRecord]]:
    """Greedy single-pass grouping of similar records, largest clusters first.

    Not transitively closed: a record similar only to a variation of an earlier
    primary is not folded into that primary's cluster.
    """

    clusters: list[VariationCluster[TRecord]] = []
    assigned: set[object] = set()
    for record in population:
        identity = _identity(record)
        if identity in assigned:
            continue
        variations = find_variations(record, population, threshold)
        if not variations:
            continue
        clusters.append(
            VariationCluster(
                cluster_id=f"cluster-{len(clusters) + 1}",
                primary=record,
                variations=tuple(variations),
            )
        )
        assigned.add(identity)
        assigned.update(_identity(variation.record) for variation in variations)
    clusters.sort(key=lambda cluster: cluster.total_count, reverse=True)
    return clusters


def suggest_merges[TRecord: SimilarityRecord](
    population: Sequence[TRecord],
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD,
) -> list[MergeSuggestion[TRecord]]:
    return [
        MergeSuggestion(
            cluster=cluster,
            reason=(
                "Nearly identical content"
                if any(v.similarity > NEARLY_IDENTICAL_SCORE for v in cluster.variations)
                else "Highly similar content"
            ),
        )
        for cluster in cluster_variations(population, merge_threshold)
    ]


def _normalize_name(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


def find_name_variations[TRecord: SimilarityRecord](
    name: str,
    population: Iterable[TRecord],
    threshold: int = DEFAULT_NAME_THRESHOLD,
) -> list[Variation[TRecord]]:
    """Records whose (alphanumeric, lowercased) names are close to ``name``."""

    if not name:
        return []
    normalized_target = _normalize_name(name)
    variations: list[Variation[TRecord]] = []
    for candidate in population:
        score = text_similarity(normalized_target, _normalize_name(_name_of(candidate)))
        if threshold <= score <= MAX_VARIATION_SCORE:
            variations.append(Variation(candidate, score))
    variations.sort(key=lambda variation: variation.similarity, reverse=True)
    return variations


type WordMark = Literal["match", "added", "removed"]


@dataclass(frozen=True, slots=True)
class WordDiff:
    text: str
    mark: WordMark


def highlight_differences(first: str, second: str) -> tuple[list[WordDiff], list[WordDiff]]:
    """Positional word-by-word comparison; no alignment search is attempted."""

    first_words = first.split()
    second_words = second.split()
    first_marks: list[WordDiff] = []
    second_marks: list[WordDiff] = []
    for index in range(max(len(first_words), len(second_words))):
        left = first_words[index] if index < len(first_words) else None
        right = second_words[index] if index < len(second_words) else None
        if left is not None and left == right:
            first_marks.append(WordDiff(left, "match"))
            second_marks.append(WordDiff(right, "match"))
            continue
        if left is not None:
            first_marks.append(WordDiff(left, "removed"))
        if right is not None:
            second_marks.append(WordDiff(right, "added"))
    return first_marks, second_marks


@dataclass(frozen=True, slots=True, kw_only=True)
class VariationStats:
    total: int
    variation_clusters: int
    high_similarity_groups: int
    merge_candidates: int
    potential_reduction: int


def variation_stats(
    population: Sequence[SimilarityRecord],
    *,
    variation_threshold: int = DEFAULT_VARIATION_THRESHOLD,
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD,
) -> VariationStats:
    clusters = cluster_variations(population, variation_threshold)
    merges = suggest_merges(population, merge_threshold)
    return VariationStats(
        total=len(population),
        variation_clusters=len(clusters),
        high_similarity_groups=len(merges),
        merge_candidates=len(merges),
        potential_reduction=sum(len(suggestion.cluster.variations) for suggestion in merges),
    )
