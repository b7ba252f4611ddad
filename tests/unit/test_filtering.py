"""
Unit tests for structural matching and threshold stages
"""

from datetime import date

import numpy as np
import pytest

pytestmark = pytest.mark.unit
from taskrank.config import RankingConfig
from taskrank.filtering import (
    ADAPTIVE_RATIO,
    add_months,
    finalize_diagnostics,
    matches_due_spec,
    matches_structural,
    quality_threshold,
    relevance_threshold,
    suppress_stop_words,
)
from taskrank.models import DateRange, FilterDiagnostics, PropertyFilters, QueryIntent, TaskRecord
from task_factory import TODAY


def _intent(keywords=None, vague=False, **filters):
    keywords = keywords or []
    return QueryIntent(
        original_query="",
        core_keywords=list(keywords),
        keywords=list(keywords),
        filters=PropertyFilters(**filters),
        vague=vague,
    )


class TestDueSpecs:
    """Test due-date specs against TODAY (Wednesday 2025-03-12)"""

    @pytest.mark.parametrize("spec,due,expected", [
        ("today", date(2025, 3, 12), True),
        ("tomorrow", date(2025, 3, 13), True),
        ("yesterday", date(2025, 3, 11), True),
        ("overdue", date(2025, 3, 11), True),
        ("overdue", date(2025, 3, 12), False),
        ("future", date(2025, 3, 13), True),
        ("week", date(2025, 3, 10), True),
        ("week", date(2025, 3, 16), True),
        ("week", date(2025, 3, 17), False),
        ("next-week", date(2025, 3, 17), True),
        ("next-week", date(2025, 3, 23), True),
        ("last-week", date(2025, 3, 9), True),
        ("last-week", date(2025, 3, 2), False),
        ("month", date(2025, 3, 31), True),
        ("next-month", date(2025, 4, 1), True),
        ("last-month", date(2025, 2, 28), True),
        ("year", date(2025, 12, 31), True),
        ("next-year", date(2026, 1, 1), True),
        ("+3d", date(2025, 3, 15), True),
        ("+3d", date(2025, 3, 14), False),
        ("+1w", date(2025, 3, 19), True),
        ("+1m", date(2025, 4, 12), True),
        ("2025-03-20", date(2025, 3, 20), True),
        ("2025-03-20", date(2025, 3, 21), False),
        ("any", date(1999, 1, 1), True),
    ])
    def test_specs(self, spec, due, expected):
        assert matches_due_spec(due, spec, TODAY) is expected

    def test_missing_due_date(self):
        """Test only 'none' matches a task without due date"""
        assert matches_due_spec(None, "none", TODAY)
        assert not matches_due_spec(None, "any", TODAY)
        assert not matches_due_spec(None, "week", TODAY)
        assert not matches_due_spec(TODAY, "none", TODAY)

    def test_add_months_clamps_day(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


class TestStructuralMatch:
    """Test matches_structural()"""

    def test_and_across_or_within(self):
        """Test categories combine with AND, values with OR"""
        task = TaskRecord(text="Pay rent", priority=2, status="open", due_date=TODAY)
        assert matches_structural(task, _intent(priorities=[1, 2], due_dates=["today"]), TODAY)
        assert not matches_structural(task, _intent(priorities=[1], due_dates=["today"]), TODAY)

    def test_priority_modes(self):
        with_priority = TaskRecord(text="a", priority=3)
        without = TaskRecord(text="b")
        assert matches_structural(with_priority, _intent(priority_mode="all"), TODAY)
        assert not matches_structural(without, _intent(priority_mode="all"), TODAY)
        assert matches_structural(without, _intent(priority_mode="none"), TODAY)
        assert not matches_structural(with_priority, _intent(priority_mode="none"), TODAY)

    def test_status_separator_insensitive(self):
        task = TaskRecord(text="a", status="in-progress")
        assert matches_structural(task, _intent(statuses=["inProgress"]), TODAY)
        assert not matches_structural(task, _intent(statuses=["open"]), TODAY)

    def test_due_range_inclusive(self):
        intent = _intent(due_range=DateRange(date(2025, 3, 1), date(2025, 3, 31)))
        assert matches_structural(TaskRecord(text="a", due_date=date(2025, 3, 31)), intent, TODAY)
        assert not matches_structural(TaskRecord(text="a", due_date=date(2025, 4, 1)), intent, TODAY)
        assert not matches_structural(TaskRecord(text="a"), intent, TODAY)

    def test_folder_prefix(self):
        """Test folder filter matches subfolders but not name prefixes"""
        intent = _intent(folders=["Work"])
        assert matches_structural(TaskRecord(text="a", folder="Work/Projects"), intent, TODAY)
        assert matches_structural(TaskRecord(text="a", source_path="work/inbox.md"), intent, TODAY)
        assert not matches_structural(TaskRecord(text="a", folder="Workshop"), intent, TODAY)

    def test_nested_tags(self):
        intent = _intent(tags=["work"])
        assert matches_structural(TaskRecord(text="a", tags=("work/urgent",)), intent, TODAY)
        assert matches_structural(TaskRecord(text="a", note_tags=("Work",)), intent, TODAY)
        assert not matches_structural(TaskRecord(text="a", tags=("workshop",)), intent, TODAY)

    def test_note_name(self):
        intent = _intent(notes=["inbox"])
        assert matches_structural(TaskRecord(text="a", source_path="Work/Inbox.md"), intent, TODAY)
        assert not matches_structural(TaskRecord(text="a", source_path="Inbox/Other.md"), intent, TODAY)

    def test_keyword_presence(self):
        """Test at least one keyword must be contained when keywords are active"""
        intent = _intent(keywords=["fix", "repair"])
        assert matches_structural(TaskRecord(text="Repair the fence"), intent, TODAY)
        assert not matches_structural(TaskRecord(text="Buy milk"), intent, TODAY)

    def test_vague_filtered_query_ignores_keywords(self):
        """Test vague queries with filters match on properties alone"""
        intent = _intent(keywords=["tasks", "work"], vague=True, due_dates=["today"])
        assert matches_structural(TaskRecord(text="Buy milk", due_date=TODAY), intent, TODAY)


class TestThresholds:
    """Test quality and relevance thresholds"""

    def test_explicit_with_keywords(self):
        config = RankingConfig(quality_filter=0.5)
        threshold, mode = quality_threshold(np.array([1.0]), _intent(keywords=["fix"]), config)
        assert mode == "explicit"
        assert threshold == pytest.approx(16.0)

    def test_explicit_without_keywords(self):
        """Test the relevance term is not part of the maximum for keyword-free queries"""
        config = RankingConfig(quality_filter=0.5)
        threshold, _ = quality_threshold(np.array([1.0]), _intent(priorities=[1]), config)
        assert threshold == pytest.approx(4.0)

    def test_adaptive(self, config):
        threshold, mode = quality_threshold(np.array([8.0, 4.0, 1.0]), _intent(), config)
        assert mode == "adaptive"
        assert threshold == pytest.approx(8.0 * ADAPTIVE_RATIO)

    def test_adaptive_empty(self, config):
        assert quality_threshold(np.zeros(0), _intent(), config) == (0.0, "adaptive")

    def test_relevance_threshold(self):
        config = RankingConfig(min_relevance=0.5)
        assert relevance_threshold(_intent(keywords=["fix"]), config) == pytest.approx(0.6)
        assert relevance_threshold(_intent(), config) is None
        assert relevance_threshold(_intent(keywords=["fix"]), RankingConfig()) is None


class TestStopWordsAndDiagnostics:
    """Test stop-word suppression and elimination stage"""

    def test_suppress_both_sets(self):
        config = RankingConfig(stop_words=["repair"])
        intent = _intent(keywords=["fix", "the"])
        intent.keywords.append("repair")
        cleaned = suppress_stop_words(intent, config)
        assert cleaned.core_keywords == ["fix"]
        assert cleaned.keywords == ["fix"]
        assert intent.keywords == ["fix", "the", "repair"]

    @pytest.mark.parametrize("counts,stage", [
        ((0, 0, 0, 0), "input"),
        ((5, 0, 0, 0), "structural"),
        ((5, 3, 0, 0), "quality"),
        ((5, 3, 2, 0), "relevance"),
        ((5, 3, 2, 1), None),
    ])
    def test_eliminated_by(self, counts, stage):
        diagnostics = FilterDiagnostics(*counts)
        assert finalize_diagnostics(diagnostics).eliminated_by == stage
        assert diagnostics.describe()
