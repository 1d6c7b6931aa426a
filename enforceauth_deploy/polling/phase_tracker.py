"""Phase tracking for a deployment run.

Pipeline phases strictly progress forward and never repeat, so the tracker
records each phase name once, in first-observed order, together with the
instant it was first seen. Durations are inferred from boundaries:

- phase *i* lasts from its own start to the start of phase *i + 1*;
- the last phase lasts until the end boundary given to ``finalize()``
  (completion or failure instant), or stays unknown on timeout.

A duration, once computed, is never recomputed. Instants that cannot be
parsed, or a boundary that precedes the phase start, leave the duration
unknown instead of raising.
"""

from __future__ import annotations

import dataclasses
import logging

from enforceauth_deploy.models.polling import PhaseTiming
from enforceauth_deploy.utils.helpers import elapsed_ms

logger = logging.getLogger(__name__)


class PhaseTracker:
    """Ordered phase list plus per-phase timing, scoped to one poll session."""

    def __init__(self) -> None:
        self._phases: list[str] = []
        self._timings: dict[str, PhaseTiming] = {}
        self._closed: set[str] = set()

    @property
    def phases(self) -> list[str]:
        """Distinct phase names in first-observed order (copy)."""
        return list(self._phases)

    @property
    def current_phase(self) -> str | None:
        """The most recently started phase, if any."""
        return self._phases[-1] if self._phases else None

    def timing(self, phase: str) -> PhaseTiming | None:
        return self._timings.get(phase)

    def observe_phase(self, phase: str, at: str) -> bool:
        """Record that *phase* started at instant *at*.

        Returns:
            ``True`` if this is the first observation of *phase*; ``False``
            (and no state change) if it was already observed.
        """
        if phase in self._timings:
            return False

        previous = self.current_phase
        if previous is not None:
            self._close(previous, at)

        self._phases.append(phase)
        self._timings[phase] = PhaseTiming(started_at=at)
        logger.debug("Phase observed | phase=%s | at=%s | index=%d", phase, at, len(self._phases))
        return True

    def finalize(self, completed_at: str | None = None) -> dict[str, PhaseTiming]:
        """Apply the end boundary to the last phase and return all timings.

        Args:
            completed_at: Completion or failure instant; ``None`` on timeout,
                which leaves the last phase's duration unset.

        Returns:
            A copy of the timing map, keyed by phase name.
        """
        last = self.current_phase
        if last is not None and completed_at is not None:
            self._close(last, completed_at)
        return dict(self._timings)

    def _close(self, phase: str, end: str) -> None:
        """Set *phase*'s duration from its start to *end*, at most once."""
        if phase in self._closed:
            return
        self._closed.add(phase)
        timing = self._timings[phase]
        duration = elapsed_ms(timing.started_at, end)
        if duration is None:
            logger.debug(
                "Phase duration unknown | phase=%s | start=%s | end=%s",
                phase,
                timing.started_at,
                end,
            )
        self._timings[phase] = dataclasses.replace(timing, duration_ms=duration)
