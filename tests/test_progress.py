"""
Tests for status-to-progress mapping and the per-job progress tracker.
"""

import pytest
from hypothesis import given, strategies as st

from docucast.app.controller import ProgressTracker
from docucast.app.events import JobPhase
from docucast.app.progress import (
    INITIAL_UPDATE,
    PHASE_TABLE,
    PhaseRule,
    PhaseUpdate,
    ProgressMapper,
)


@pytest.fixture
def mapper():
    return ProgressMapper()


class TestProgressMapper:
    @pytest.mark.parametrize("raw, phase, progress, eta", [
        ("processing", JobPhase.PROCESSING, 0.30, 240.0),
        ("generating", JobPhase.GENERATING, 0.60, 180.0),
        ("finalizing", JobPhase.FINALIZING, 0.90, 60.0),
        ("complete", JobPhase.COMPLETE, 1.00, None),
    ])
    def test_table_rows(self, mapper, raw, phase, progress, eta):
        assert mapper.map(raw) == PhaseUpdate(phase, progress, eta)

    def test_case_insensitive_substring(self, mapper):
        assert mapper.map("Generating Audio...").phase is JobPhase.GENERATING
        assert mapper.map("COMPLETED").phase is JobPhase.COMPLETE

    def test_most_advanced_keyword_wins(self, mapper):
        assert mapper.map("processing complete").phase is JobPhase.COMPLETE
        assert mapper.map("generating, then finalizing").phase is JobPhase.FINALIZING

    def test_unknown_without_previous_is_initial(self, mapper):
        assert mapper.map("banana") == INITIAL_UPDATE
        assert INITIAL_UPDATE.phase is JobPhase.QUEUED
        assert INITIAL_UPDATE.progress == 0.0

    @pytest.mark.parametrize("raw", ["", None, "   "])
    def test_empty_status(self, mapper, raw):
        assert mapper.map(raw) == INITIAL_UPDATE

    def test_unknown_keeps_previous(self, mapper):
        previous = mapper.map("generating")
        assert mapper.map("banana", previous) is previous

    def test_custom_table(self):
        table = PHASE_TABLE + (PhaseRule("uploading", JobPhase.PROCESSING, 0.10, 300.0),)
        custom = ProgressMapper(tuple(sorted(table, key=lambda r: r.progress)))
        assert custom.map("uploading").progress == 0.10
        assert custom.map("uploading complete").phase is JobPhase.COMPLETE

    def test_table_is_ordered(self):
        progress = [rule.progress for rule in PHASE_TABLE]
        assert progress == sorted(progress)


class TestProgressTracker:
    def test_regression_is_clamped(self):
        tracker = ProgressTracker()
        emitted = [tracker.update(s).progress for s in ["processing", "generating", "processing", "finalizing"]]
        assert emitted == [0.30, 0.60, 0.60, 0.90]

    def test_starts_at_zero(self):
        tracker = ProgressTracker()
        assert tracker.progress == 0.0
        assert tracker.last is None

    def test_unknown_status_keeps_last(self):
        tracker = ProgressTracker()
        tracker.update("generating")
        assert tracker.update("waiting").phase is JobPhase.GENERATING


KNOWN = [rule.keyword for rule in PHASE_TABLE]


@pytest.mark.property
class TestProgressProperties:
    @given(st.text())
    def test_mapper_is_total(self, raw):
        update = ProgressMapper().map(raw)
        assert 0.0 <= update.progress <= 1.0

    @given(st.lists(st.one_of(st.sampled_from(KNOWN), st.text(max_size=12)), max_size=30))
    def test_tracker_never_decreases(self, statuses):
        tracker = ProgressTracker()
        last = 0.0
        for raw in statuses:
            progress = tracker.update(raw).progress
            assert progress >= last
            last = progress
