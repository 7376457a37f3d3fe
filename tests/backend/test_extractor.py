"""
Unit tests for the SourceExtractor module.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../backend"))

from checkpoint import RunContext
from extractor import SourceExtractor, average_level, entry_field
from models import Category, DailyEntry


class TestSourceExtractor:
    """Test suite for the SourceExtractor class."""

    def setup_method(self):
        self.extractor = SourceExtractor()

    def test_extract_empty_entries(self):
        assert self.extractor.extract([], Category.STRESS) == []
        assert self.extractor.extract(None, Category.STRESS) == []

    def test_splits_on_comma_and_semicolon(self):
        entries = [{"date": "2024-03-01", "stress_sources": "Work Deadline, traffic; noisy neighbours"}]
        mentions = self.extractor.extract(entries, Category.STRESS)

        assert [m.text for m in mentions] == ["work deadline", "traffic", "noisy neighbours"]
        assert mentions[0].original_text == "Work Deadline"
        assert all(m.full_entry_text == "Work Deadline, traffic; noisy neighbours" for m in mentions)
        assert all(m.entry_id == "2024-03-01" for m in mentions)
        assert all(m.date == "2024-03-01" for m in mentions)

    def test_drops_short_fragments(self):
        entries = [{"date": "2024-03-01", "energy_sources": "ok, a, sleep,  ,gym"}]
        mentions = self.extractor.extract(entries, Category.ENERGY)

        assert [m.text for m in mentions] == ["sleep", "gym"]

    def test_intensity_is_mean_of_non_null_levels(self):
        entries = [
            {
                "date": "2024-03-01",
                "stress_sources": "meeting",
                "stress_levels": {"morning": 2, "afternoon": None, "evening": 6},
            }
        ]
        mentions = self.extractor.extract(entries, Category.STRESS)

        assert mentions[0].intensity == pytest.approx(4.0)

    def test_intensity_defaults_to_five(self):
        entries = [{"date": "2024-03-01", "stress_sources": "meeting", "stress_levels": {"morning": None}}]
        mentions = self.extractor.extract(entries, Category.STRESS)

        assert mentions[0].intensity == 5.0

    def test_reads_camel_case_and_dataclass_entries(self):
        entries = [
            {"date": "2024-03-01", "energySources": "bike ride", "energyLevels": {"morning": 8}},
            DailyEntry(date="2024-03-02", energy_sources="long walk", energy_levels={"morning": 6}),
        ]
        mentions = self.extractor.extract(entries, Category.ENERGY)

        assert [(m.text, m.intensity) for m in mentions] == [("bike ride", 8.0), ("long walk", 6.0)]

    def test_malformed_entries_are_skipped(self):
        entries = [
            None,
            "not an entry",
            {"stress_sources": "no date here"},
            {"date": "2024-03-01", "stress_sources": 42},
            {"date": "2024-03-02", "stress_sources": "bad levels", "stress_levels": {"morning": "high"}},
            {"date": "2024-03-03", "stress_sources": "   "},
            {"date": "2024-03-04", "stress_sources": "valid one"},
        ]
        mentions = self.extractor.extract(entries, Category.STRESS)

        assert [m.text for m in mentions] == ["valid one"]

    def test_other_category_is_ignored(self):
        entries = [{"date": "2024-03-01", "energy_sources": "bike ride"}]
        assert self.extractor.extract(entries, Category.STRESS) == []

    def test_checkpoints_once_per_batch(self):
        entries = [{"date": f"2024-03-{i + 1:02d}", "stress_sources": "work"} for i in range(12)]
        updates = []
        context = RunContext(on_progress=updates.append)

        self.extractor.extract(entries, Category.STRESS, context)

        assert len(updates) == 3
        assert all(u.stage == "extracting" for u in updates)
        assert updates[-1].fraction == pytest.approx(0.2)


@pytest.mark.unit
def test_entry_field_prefers_snake_case():
    entry = {"energy_sources": "snake", "energySources": "camel"}
    assert entry_field(entry, "energy_sources") == "snake"


@pytest.mark.unit
def test_average_level_rejects_non_mapping():
    assert average_level([1, 2], 5.0) is None
    assert average_level(None, 5.0) == 5.0
