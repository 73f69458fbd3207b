# tests/test_labels.py
"""
Tests for the US/UK section crosswalk and the label comparator.

Tests cover:
- Crosswalk filtering by topic substring and exact section code
- One comparison row per mapping, absent sides left empty
- Partial failure keeps the surviving side and records the reason
- Both sides failing raises AggregateFailure with per-side reasons
"""
from __future__ import annotations

import pytest

from pubcrawl.errors import AggregateFailure, NotFoundError, SourceError
from pubcrawl.labels.compare import Outcome, compare_labels, pair_sections
from pubcrawl.labels.crosswalk import SECTION_MAP, filter_section_map
from pubcrawl.schemas import LabelRecord, Section


def _us_label(*codes: str) -> LabelRecord:
    return LabelRecord(
        jurisdiction="us",
        drug_name="METFORMIN",
        identifier="abc-123",
        url="https://dailymed.example/abc-123",
        sections=[Section(code=c, title=c, content=f"us {c}") for c in codes],
    )


def _uk_label(*codes: str) -> LabelRecord:
    return LabelRecord(
        jurisdiction="uk",
        drug_name="Metformin",
        identifier="1234",
        url="https://emc.example/1234",
        sections=[Section(code=c, title=c, content=f"uk {c}") for c in codes],
    )


# =============================================================================
# Crosswalk
# =============================================================================


class TestFilterSectionMap:

    def test_everything_when_no_topics(self):
        assert filter_section_map() == list(SECTION_MAP)
        assert filter_section_map([]) == list(SECTION_MAP)

    @pytest.mark.parametrize("topics,expected", [
        (["dosing"], ["Dosing"]),
        (["Adverse"], ["Adverse Reactions"]),
        (["4.8"], ["Adverse Reactions"]),
        (["34067-9"], ["Indications"]),
        (["pregnancy", "overdosage"], ["Pregnancy", "Overdosage"]),
        (["Pregnancy and lactation"], ["Pregnancy"]),
        (["nonsense"], []),
        (["  "], []),
    ])
    def test_topic_and_code_matching(self, topics, expected):
        assert [row.topic for row in filter_section_map(topics)] == expected

    def test_indications_matches_contraindications_too(self):
        """Topic matching is by substring, so the broader word catches both rows."""
        topics = [row.topic for row in filter_section_map(["indications"])]
        assert topics == ["Indications", "Contraindications"]

    def test_table_order_preserved(self):
        rows = filter_section_map(["overdosage", "dosing"])
        assert [row.topic for row in rows] == ["Dosing", "Overdosage"]


# =============================================================================
# Outcome
# =============================================================================


class TestOutcome:

    def test_value(self):
        outcome = Outcome.settle(_us_label("34067-9"))
        assert outcome.ok
        assert outcome.error is None

    def test_domain_error_becomes_reason(self):
        outcome = Outcome.settle(SourceError("HTTP 404", source="dailymed", status=404))
        assert not outcome.ok
        assert outcome.error == "HTTP 404 (source=dailymed, status=404)"

    def test_unexpected_error_propagates(self):
        with pytest.raises(KeyError):
            Outcome.settle(KeyError("bug"))

    def test_none_is_not_ok(self):
        assert not Outcome.settle(None).ok


# =============================================================================
# Comparison
# =============================================================================


class TestPairSections:

    def test_one_row_per_mapping(self):
        rows = pair_sections(_us_label("34067-9"), _uk_label("4.1", "4.8"))
        assert len(rows) == len(SECTION_MAP)
        assert [r.topic for r in rows] == [m.topic for m in SECTION_MAP]

    def test_absent_sides_are_none(self):
        rows = {r.topic: r for r in pair_sections(_us_label("34067-9"), _uk_label("4.8"))}
        assert rows["Indications"].us_section.content == "us 34067-9"
        assert rows["Indications"].uk_section is None
        assert rows["Adverse Reactions"].us_section is None
        assert rows["Adverse Reactions"].uk_section.content == "uk 4.8"
        assert rows["Warnings"].us_section is None and rows["Warnings"].uk_section is None

    def test_missing_label(self):
        rows = pair_sections(None, _uk_label("4.1"))
        assert all(r.us_section is None for r in rows)


class TestCompareLabels:

    def test_both_sides(self):
        mappings = filter_section_map(["dosing", "adverse"])
        record = compare_labels(
            "metformin",
            Outcome(value=_us_label("34068-7", "34084-4")),
            Outcome(value=_uk_label("4.2")),
            mappings,
        )
        assert len(record.comparisons) == 2
        assert record.us_source == "https://dailymed.example/abc-123"
        assert record.uk_source == "https://emc.example/1234"
        assert record.errors == {}
        assert record.comparisons[1].uk_section is None

    def test_one_side_failed(self):
        record = compare_labels(
            "metformin",
            Outcome(value=_us_label("34067-9")),
            Outcome(error="HTTP 404 (source=emc, status=404)"),
        )
        assert len(record.comparisons) == len(SECTION_MAP)
        assert record.uk_source is None
        assert record.errors == {"uk": "HTTP 404 (source=emc, status=404)"}
        assert all(r.uk_section is None for r in record.comparisons)

    def test_both_failed_raises_with_reasons(self):
        with pytest.raises(AggregateFailure) as exc:
            compare_labels(
                "metformin",
                Outcome(error=str(NotFoundError("No US label found", "metformin"))),
                Outcome(error="timeout"),
            )
        assert exc.value.reasons == {"us": "No US label found (id=metformin)", "uk": "timeout"}
        assert "metformin" in str(exc.value)

    def test_empty_labels_count_as_failure(self):
        """Labels that exist but carry no sections are not a usable comparison."""
        with pytest.raises(AggregateFailure) as exc:
            compare_labels("metformin", Outcome(value=_us_label()), Outcome(value=_uk_label()))
        assert exc.value.reasons == {"us": "no sections found", "uk": "no sections found"}
