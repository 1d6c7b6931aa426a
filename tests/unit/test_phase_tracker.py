"""Tests for phase ordering and duration inference."""

from __future__ import annotations

from enforceauth_deploy.polling.phase_tracker import PhaseTracker

T0 = "2024-01-01T00:00:00Z"
T1 = "2024-01-01T00:00:01Z"
T3 = "2024-01-01T00:00:03Z"
T6 = "2024-01-01T00:00:06Z"


class TestPhaseTracker:
    def test_empty(self) -> None:
        tracker = PhaseTracker()
        assert tracker.phases == []
        assert tracker.current_phase is None
        assert tracker.finalize(T1) == {}

    def test_first_observation_only(self) -> None:
        tracker = PhaseTracker()
        assert tracker.observe_phase("plan", T0) is True
        assert tracker.observe_phase("plan", T1) is False
        assert tracker.phases == ["plan"]
        assert tracker.timing("plan").started_at == T0  # type: ignore[union-attr]

    def test_previous_phase_closed_by_next(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", T0)
        tracker.observe_phase("apply", T1)
        assert tracker.timing("plan").duration_ms == 1000  # type: ignore[union-attr]
        assert tracker.timing("apply").duration_ms is None  # type: ignore[union-attr]

    def test_finalize_closes_last_phase(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", T0)
        tracker.observe_phase("apply", T1)
        tracker.observe_phase("verify", T3)
        timings = tracker.finalize(T6)

        assert tracker.phases == ["plan", "apply", "verify"]
        assert timings["plan"].duration_ms == 1000
        assert timings["apply"].duration_ms == 2000
        assert timings["verify"].duration_ms == 3000

    def test_finalize_without_boundary_leaves_last_unknown(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", T0)
        tracker.observe_phase("apply", T1)
        timings = tracker.finalize(None)
        assert timings["plan"].duration_ms == 1000
        assert timings["apply"].duration_ms is None

    def test_duration_never_recomputed(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", T0)
        tracker.finalize(T1)
        timings = tracker.finalize(T6)
        assert timings["plan"].duration_ms == 1000

    def test_unparseable_instant_is_unknown(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", "not-a-time")
        tracker.observe_phase("apply", T1)
        assert tracker.timing("plan").duration_ms is None  # type: ignore[union-attr]

    def test_boundary_before_start_is_unknown(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", T3)
        assert tracker.finalize(T0)["plan"].duration_ms is None

    def test_phases_is_a_copy(self) -> None:
        tracker = PhaseTracker()
        tracker.observe_phase("plan", T0)
        tracker.phases.append("bogus")
        assert tracker.phases == ["plan"]
