"""
Progress Mapping
================
Maps free-text remote status into a conversion phase, a fractional
progress anchor and a default ETA.

The phase table is data: add a row to recognise a new phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from docucast.app.events import JobPhase


@dataclass(frozen=True)
class PhaseRule:
    """One row of the phase table."""
    keyword: str
    phase: JobPhase
    progress: float
    eta_seconds: Optional[float]


@dataclass(frozen=True)
class PhaseUpdate:
    """Result of mapping one raw status."""
    phase: JobPhase
    progress: float
    eta_seconds: Optional[float] = None


# Ordered from least to most advanced.
PHASE_TABLE: tuple[PhaseRule, ...] = (
    PhaseRule("processing", JobPhase.PROCESSING, 0.30, 240.0),
    PhaseRule("generating", JobPhase.GENERATING, 0.60, 180.0),
    PhaseRule("finalizing", JobPhase.FINALIZING, 0.90, 60.0),
    PhaseRule("complete", JobPhase.COMPLETE, 1.00, None),
)

INITIAL_UPDATE = PhaseUpdate(phase=JobPhase.QUEUED, progress=0.0, eta_seconds=None)


class ProgressMapper:
    """
    Pure, total classifier for raw status strings.

    Matching is a case-insensitive substring test. When a status names
    several phases, the most advanced one wins, so "processing complete"
    maps to COMPLETE.

    Example:
        mapper = ProgressMapper()
        update = mapper.map("Generating audio...")
        # PhaseUpdate(phase=JobPhase.GENERATING, progress=0.6, eta_seconds=180.0)
    """

    def __init__(self, table: tuple[PhaseRule, ...] = PHASE_TABLE):
        self.table = table

    def classify(self, raw_status: Optional[str]) -> Optional[PhaseRule]:
        """Return the most advanced matching rule, or None."""
        text = (raw_status or "").lower()
        if not text:
            return None
        for rule in reversed(self.table):
            if rule.keyword in text:
                return rule
        return None

    def map(
        self,
        raw_status: Optional[str],
        previous: Optional[PhaseUpdate] = None
    ) -> PhaseUpdate:
        """
        Map a raw status to a phase update.

        Args:
            raw_status: Status text as reported by the remote service
            previous: Last update for this job; returned unchanged when
                the status is not recognised

        Returns:
            PhaseUpdate (never raises)
        """
        rule = self.classify(raw_status)
        if rule is None:
            return previous if previous is not None else INITIAL_UPDATE
        return PhaseUpdate(
            phase=rule.phase,
            progress=rule.progress,
            eta_seconds=rule.eta_seconds,
        )
