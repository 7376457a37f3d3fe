"""
Tests for the PatternService orchestration, filtering and readiness helpers.
"""

import datetime as dt
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../backend"))

from checkpoint import AnalysisAborted
from clusterer import AgglomerativeClusterer
from extractor import SourceExtractor
from models import Category, DiscoveryMethod, Pattern
from pattern_service import PatternService, data_readiness, filter_patterns
from settings import PatternSettings

BIKE_PHRASES = ["bike ride", "morning bike ride", "bike ride home", "long bike ride", "bike ride outside"]
WORK_PHRASES = ["work deadline", "urgent work deadline", "work deadline tomorrow", "looming work deadline", "missed work deadline"]


def _day(i):
    return (dt.date(2024, 1, 1) + dt.timedelta(days=i)).isoformat()


def _entries(texts, field="energy_sources"):
    return [{"date": _day(i), field: text} for i, text in enumerate(texts)]


def _scenario_a():
    return _entries(["morning bike ride", "bike ride with friend", "cycling today", "project deadline", "deadline pressure"])


def _two_vocabularies(n=150):
    texts = []
    for i in range(n):
        phrases = BIKE_PHRASES if i % 2 == 0 else WORK_PHRASES
        texts.append(phrases[(i // 2) % len(phrases)])
    return _entries(texts)


def _pattern(pattern_id, frequency):
    return Pattern(
        id=pattern_id,
        label=pattern_id.title(),
        emoji="📊",
        frequency=frequency,
        percentage=0,
        avg_impact=5.0,
        sub_patterns=[],
        examples=[],
        dates=[],
        sources=[],
    )


class FailingExtractor(SourceExtractor):
    def extract(self, entries, category, context=None):
        raise RuntimeError("storage unavailable")


class FailingClusterer(AgglomerativeClusterer):
    def cluster(self, mentions, similarity, context=None, **kwargs):
        raise RuntimeError("matrix exploded")


class TestFilterPatterns:
    def test_min_frequency_for_small_corpus(self):
        patterns = [_pattern("a", 1), _pattern("b", 4), _pattern("c", 2)]
        assert [p.id for p in filter_patterns(patterns, 50)] == ["b", "c"]

    def test_min_frequency_for_large_corpus(self):
        patterns = [_pattern("a", 2), _pattern("b", 3)]
        assert [p.id for p in filter_patterns(patterns, 101)] == ["b"]

    def test_falls_back_to_top_three(self):
        patterns = [_pattern(name, 1) for name in ("garden", "piano", "taxes", "laundry")]
        assert [p.id for p in filter_patterns(patterns, 4)] == ["garden", "piano", "taxes"]

    def test_caps_output(self):
        patterns = [_pattern(f"p{i}", 5) for i in range(25)]
        kept = filter_patterns(patterns, 125)
        assert len(kept) == 20
        assert kept[0].id == "p0"

    def test_nothing_to_filter(self):
        assert filter_patterns([], 10) == []


class TestPatternService:
    """Test suite for PatternService.run."""

    def setup_method(self):
        self.service = PatternService()

    def test_empty_input(self):
        result = self.service.run([], Category.ENERGY)

        assert result.total_mentions == 0
        assert result.main_patterns == []
        assert result.discovery_method == DiscoveryMethod.TFIDF

        grouped = self.service.run(None, "stress", algorithm="phrase_grouping")
        assert grouped.discovery_method == DiscoveryMethod.PHRASE_GROUPING

    def test_invalid_entries_only(self):
        result = self.service.run([None, {"date": "2024-01-01", "energy_sources": 7}], Category.ENERGY)
        assert result.total_mentions == 0

    def test_phrase_grouping_scenario(self):
        result = self.service.run(_scenario_a(), Category.ENERGY, algorithm="phrase_grouping")

        assert result.discovery_method == DiscoveryMethod.PHRASE_GROUPING
        assert result.total_mentions == 5
        assert [(p.label, p.frequency) for p in result.main_patterns] == [("Morning Bike", 2), ("Project Deadline", 2)]

    def test_phrase_grouping_keeps_short_mentions(self):
        repeated = self.service.run(_entries(["work", "work", "work"], field="stress_sources"), "stress", algorithm="phrase_grouping")

        assert repeated.total_mentions == 3
        assert [(p.label, p.frequency) for p in repeated.main_patterns] == [("Work", 3)]

        distinct = self.service.run(_entries(["work", "gym", "kids"]), Category.ENERGY, algorithm="phrase_grouping")

        assert [(p.label, p.frequency) for p in distinct.main_patterns] == [("Work", 1), ("Gym", 1), ("Kids", 1)]

    def test_unknown_algorithm_uses_phrase_grouping(self):
        result = self.service.run(_scenario_a(), Category.ENERGY, algorithm="kmeans")
        assert result.discovery_method == DiscoveryMethod.PHRASE_GROUPING

    def test_single_mention(self):
        result = self.service.run(_entries(["bike ride"]), Category.ENERGY)

        assert result.discovery_method == DiscoveryMethod.TFIDF
        assert len(result.main_patterns) == 1
        pattern = result.main_patterns[0]
        assert (pattern.label, pattern.frequency, pattern.percentage) == ("Bike Ride", 1, 100)
        assert pattern.id == "tfidf_0"

    def test_unrelated_singletons_keep_top_three(self):
        result = self.service.run(_entries(["garden", "piano", "taxes", "laundry"]), Category.ENERGY)

        assert [p.label for p in result.main_patterns] == ["Garden", "Piano", "Taxes"]

    def test_stress_category_reads_stress_sources(self):
        entries = _entries(["work deadline", "work deadline"], field="stress_sources")

        assert self.service.run(entries, Category.ENERGY).total_mentions == 0
        assert self.service.run(entries, Category.STRESS).total_mentions == 2

    def test_two_vocabularies_stay_apart(self):
        result = self.service.run(_two_vocabularies(), Category.ENERGY)

        assert result.discovery_method == DiscoveryMethod.TFIDF
        assert result.total_mentions == 150
        assert result.main_patterns
        for pattern in result.main_patterns:
            kinds = {m.text in BIKE_PHRASES for m in pattern.sources}
            assert len(kinds) == 1
        assert sum(p.frequency for p in result.main_patterns) <= 100

    def test_two_vocabularies_reach_target_bounds(self):
        service = PatternService(settings=PatternSettings(iteration_cap=200, min_frequency_large=1))
        result = service.run(_two_vocabularies(), Category.ENERGY)

        assert 6 <= len(result.main_patterns) <= 12
        assert sum(p.frequency for p in result.main_patterns) == 100

    def test_sources_are_disjoint(self):
        result = self.service.run(_two_vocabularies(60), Category.ENERGY)

        seen = [id(m) for p in result.main_patterns for m in p.sources]
        assert len(seen) == len(set(seen))

    def test_deterministic(self):
        first = self.service.run(_two_vocabularies(60), Category.ENERGY)
        second = self.service.run(_two_vocabularies(60), Category.ENERGY)

        assert [(p.label, p.frequency) for p in first.main_patterns] == [
            (p.label, p.frequency) for p in second.main_patterns
        ]

    def test_progress_is_monotonic(self):
        updates = []
        self.service.run(_scenario_a(), Category.ENERGY, on_progress=updates.append)

        fractions = [u.fraction for u in updates]
        assert updates[0].stage == "preparing"
        assert fractions == sorted(fractions)
        assert (updates[-1].stage, updates[-1].fraction) == ("complete", 1.0)

    def test_abort_immediately(self):
        with pytest.raises(AnalysisAborted):
            self.service.run(_scenario_a(), Category.ENERGY, should_abort=lambda: True)

    def test_abort_mid_run(self):
        calls = []

        def should_abort():
            calls.append(1)
            return len(calls) >= 4

        with pytest.raises(AnalysisAborted):
            self.service.run(_two_vocabularies(60), Category.ENERGY, should_abort=should_abort)
        assert len(calls) == 4

    def test_extraction_failure_reports_error(self):
        service = PatternService(extractor=FailingExtractor())
        result = service.run(_scenario_a(), Category.ENERGY)

        assert result.discovery_method == DiscoveryMethod.ERROR
        assert result.total_mentions == 0
        assert result.main_patterns == []

    def test_clustering_failure_falls_back(self):
        service = PatternService(clusterer=FailingClusterer())
        result = service.run(_scenario_a(), Category.ENERGY)

        assert result.discovery_method == DiscoveryMethod.PHRASE_GROUPING
        assert [p.label for p in result.main_patterns] == ["Morning Bike", "Project Deadline"]

    def test_analyze_all(self):
        entries = [
            {"date": "2024-01-01", "energy_sources": "bike ride", "stress_sources": "work deadline"},
            {"date": "2024-01-02", "energy_sources": "bike ride", "stress_sources": "work deadline"},
        ]
        updates = []
        results = self.service.analyze_all(entries, on_progress=updates.append)

        assert set(results) == {Category.STRESS, Category.ENERGY}
        assert results[Category.STRESS].main_patterns[0].label == "Deadline"
        assert results[Category.ENERGY].main_patterns[0].label == "Ride"
        fractions = [u.fraction for u in updates]
        assert fractions == sorted(fractions)
        assert fractions[-1] == pytest.approx(1.0)
        assert max(u.fraction for u in updates[: len(updates) // 2]) <= 0.5


@pytest.mark.unit
def test_data_readiness():
    entries = _entries(["bike ride", "", "piano"]) + [
        {"date": "2024-02-01", "stress_sources": "traffic"},
        None,
    ]
    readiness = data_readiness(entries)

    assert readiness["days_with_sources"] == 3
    assert readiness["total_days"] == 5
    assert readiness["progress_percentage"] == pytest.approx(30.0)
    assert readiness["days_remaining"] == 7
    assert readiness["has_enough_data"] is False


@pytest.mark.unit
def test_data_readiness_caps_progress():
    readiness = data_readiness(_entries([f"entry {i}" for i in range(12)]))

    assert readiness["progress_percentage"] == 100.0
    assert readiness["days_remaining"] == 0
    assert readiness["has_enough_data"] is True
