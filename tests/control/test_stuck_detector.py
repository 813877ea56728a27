"""Tests for no-progress detection."""

import pytest

from mapbot_app.control.stuck import StuckDetector
from mapbot_app.game.models import Position

ORIGIN = Position(0.0, 0.0)


class TestStuckDetector:
    """Test StuckDetector counting semantics."""

    def test_first_update_only_sets_baseline(self):
        detector = StuckDetector(threshold=3)
        assert detector.update(ORIGIN) is False
        assert detector.count == 0
        assert detector.state.baseline == ORIGIN

    def test_stuck_exactly_on_threshold_update(self):
        """Returns True on the threshold-th consecutive no-movement update, not before."""
        detector = StuckDetector(threshold=10, minimum_movement_distance=5.0)
        detector.update(ORIGIN)

        results = [detector.update(Position(1.0, 1.0)) for _ in range(10)]

        assert results == [False] * 9 + [True]
        assert detector.state.is_stuck

    def test_movement_resets_counter(self):
        detector = StuckDetector(threshold=3, minimum_movement_distance=5.0)
        detector.update(ORIGIN)
        detector.update(ORIGIN)
        detector.update(ORIGIN)
        assert detector.count == 2

        assert detector.update(Position(10.0, 0.0)) is False
        assert detector.count == 0

    def test_movement_exactly_at_minimum_distance_counts_as_progress(self):
        detector = StuckDetector(threshold=2, minimum_movement_distance=5.0)
        detector.update(ORIGIN)
        detector.update(Position(3.0, 4.0))
        assert detector.count == 0

    def test_immobilizing_condition_resets_counter(self):
        """A frozen subject is not stuck; the counter restarts at zero."""
        detector = StuckDetector(threshold=3)
        detector.update(ORIGIN)
        detector.update(ORIGIN)
        detector.update(ORIGIN)
        assert detector.count == 2

        assert detector.update(ORIGIN, status_flags={"Frozen"}) is False
        assert detector.count == 0

    def test_unrelated_status_does_not_reset(self):
        detector = StuckDetector(threshold=5)
        detector.update(ORIGIN)
        detector.update(ORIGIN, status_flags={"hasted"})
        assert detector.count == 1

    def test_custom_immobilizing_conditions(self):
        detector = StuckDetector(threshold=5, immobilizing_conditions=("rooted",))
        detector.update(ORIGIN)
        detector.update(ORIGIN)
        detector.update(ORIGIN, status_flags={"frozen"})
        assert detector.count == 2
        detector.update(ORIGIN, status_flags={"ROOTED"})
        assert detector.count == 0

    def test_stuck_return_keeps_baseline_until_reset(self):
        """Further stalled updates keep reporting stuck until reset."""
        detector = StuckDetector(threshold=2)
        detector.update(ORIGIN)
        detector.update(Position(1.0, 0.0))
        assert detector.update(Position(2.0, 0.0)) is True
        assert detector.state.baseline == Position(1.0, 0.0)
        assert detector.update(Position(2.0, 0.0)) is True

        detector.reset()
        assert detector.state.baseline is None
        assert detector.count == 0
        assert detector.update(ORIGIN) is False

    def test_slow_drift_is_measured_from_latest_baseline(self):
        """Baseline moves every update, so small steps never add up to progress."""
        detector = StuckDetector(threshold=4, minimum_movement_distance=5.0)
        detector.update(ORIGIN)
        results = [detector.update(Position(float(step * 2), 0.0)) for step in range(1, 5)]
        assert results[-1] is True

    def test_rejects_zero_threshold(self):
        with pytest.raises(ValueError):
            StuckDetector(threshold=0)
