from __future__ import annotations

import logging

import pytest

from larder.adapters.payload import translate_ingredient
from larder.config import AnalysisConfig
from larder.domain.errors import FetchError
from larder.domain.model import CanonicalRecord, FieldDiff, MatchKind
from larder.domain.reconciliation import ImportAnalyzer
from tests.helpers.records import IRON_TEXT, SODIUM_TEXT, make_payload, make_record

SODIUM = make_record("sodium")
IRON = make_record("iron", category="Minerals", contents=(IRON_TEXT,))


def _analyzer(*population: CanonicalRecord) -> ImportAnalyzer:
    return ImportAnalyzer(fetch_population=lambda: population, translate=translate_ingredient)


def test_identical_record_is_an_exact_match() -> None:
    result = _analyzer(SODIUM, IRON).analyze([make_payload("sodium", display="Sodium")])

    assert len(result.exact_matches) == 1
    match = result.exact_matches[0]
    assert match.kind is MatchKind.EXACT
    assert match.similarity == 100
    assert match.matched == SODIUM
    assert match.differences == ()
    assert match.match_id == "match-0"


def test_display_name_only_difference_is_a_near_match() -> None:
    result = _analyzer(SODIUM).analyze([make_payload("sodium", display="Sodium (serum)")])

    assert result.exact_matches == ()
    assert len(result.near_matches) == 1
    match = result.near_matches[0]
    assert 70 <= match.similarity < 100
    assert match.matched_record_id == "sodium"
    assert match.differences == (FieldDiff("displayName", "Sodium", "Sodium (serum)"),)


def test_near_match_reports_section_and_test_count_differences() -> None:
    payload = make_payload(
        "sodium",
        display="Sodium",
        contents=(SODIUM_TEXT, "Low"),
        tests=({"name": "baseline", "variables": {"x": 1}},),
    )

    result = _analyzer(SODIUM).analyze([payload])

    (match,) = result.near_matches
    assert match.similarity == 83
    assert match.differences == (
        FieldDiff("sections", "1 sections", "2 sections"),
        FieldDiff("tests", "0 tests", "1 tests"),
    )


def test_unrelated_record_is_unique_without_match() -> None:
    payload = make_payload("zinc", display="Zinc", category="Trace", contents=("Zn 12 umol",))

    result = _analyzer(SODIUM).analyze([payload])

    (match,) = result.unique_ingredients
    assert match.kind is MatchKind.UNIQUE
    assert match.matched is None
    assert match.similarity == 0


def test_empty_population_classifies_everything_unique() -> None:
    result = _analyzer().analyze([make_payload("sodium"), make_payload("iron")])

    assert [match.match_id for match in result.unique_ingredients] == ["match-0", "match-1"]
    assert result.summary.unique == 2


def test_records_without_name_are_skipped_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    batch = [{"category": "Electrolytes"}, make_payload("sodium", display="Sodium")]

    with caplog.at_level(logging.WARNING):
        result = _analyzer(SODIUM).analyze(batch)

    assert result.summary.skipped == 1
    assert result.summary.total == 1
    assert result.summary.total_checked == 2
    assert result.exact_matches[0].match_id == "match-1"
    assert "Skipping import record 0" in caplog.text


def test_summary_estimates_savings() -> None:
    batch = [
        make_payload("sodium", display="Sodium"),
        make_payload("sodium", display="Sodium (serum)"),
        make_payload("zinc", display="Zinc", category="Trace", contents=("Zn 12 umol",)),
    ]

    summary = _analyzer(SODIUM).analyze(batch).summary

    assert (summary.exact, summary.near, summary.unique) == (1, 1, 1)
    assert summary.size_before == 3072
    assert summary.size_after == 1280
    assert summary.estimated_data_saved == "58%"


def test_matches_are_ordered_by_batch_position() -> None:
    batch = [
        make_payload("zinc", display="Zinc", category="Trace", contents=("Zn 12 umol",)),
        make_payload("sodium", display="Sodium"),
    ]

    result = _analyzer(SODIUM).analyze(batch)

    assert [match.match_id for match in result.matches()] == ["match-0", "match-1"]


def test_payload_uses_camel_case_keys() -> None:
    payload = _analyzer(SODIUM).analyze([make_payload("sodium", display="Sodium")]).to_payload()

    assert set(payload) == {"exactMatches", "nearMatches", "uniqueIngredients", "summary"}
    exact = payload["exactMatches"]
    assert isinstance(exact, list)
    assert exact[0]["matchedRecordId"] == "sodium"
    assert exact[0]["similarityScore"] == 100


def test_population_failure_raises_fetch_error() -> None:
    def broken() -> list[CanonicalRecord]:
        raise RuntimeError("database is gone")

    analyzer = ImportAnalyzer(fetch_population=broken, translate=translate_ingredient)

    with pytest.raises(FetchError, match="database is gone"):
        analyzer.analyze([make_payload("sodium")])


def test_population_is_fetched_once_per_call() -> None:
    calls: list[int] = []

    def fetch() -> list[CanonicalRecord]:
        calls.append(1)
        return [SODIUM]

    analyzer = ImportAnalyzer(fetch_population=fetch, translate=translate_ingredient)
    analyzer.analyze([make_payload("sodium"), make_payload("iron"), make_payload("zinc")])

    assert len(calls) == 1


def test_stricter_near_threshold_turns_near_matches_unique() -> None:
    analyzer = ImportAnalyzer(
        fetch_population=lambda: [SODIUM],
        translate=translate_ingredient,
        config=AnalysisConfig(near_match_threshold=95),
    )

    result = analyzer.analyze([make_payload("sodium", display="Sodium (serum)")])

    assert result.near_matches == ()
    assert len(result.unique_ingredients) == 1


def test_detect_duplicates_reports_identical_variations_and_batch_groups() -> None:
    batch = [
        make_payload("sodium", display="Sodium"),
        make_payload("iron", category="Minerals", contents=("Ferritin changed",)),
        make_payload("Potassium", contents=("K 4.5 mmol/L",)),
        make_payload("Potassium copy", contents=("K 4.5 mmol/L",)),
        {"category": "no name"},
    ]

    report = _analyzer(SODIUM, IRON).detect_duplicates(batch)

    assert [entry.record_id for entry in report.identical] == ["sodium"]
    assert [entry.record_id for entry in report.variations] == ["iron"]
    assert list(report.within_batch.values()) == [("Potassium", "Potassium copy")]
    assert report.total_checked == 5
