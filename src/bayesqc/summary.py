# bayesqc/summary.py
"""
Window statistics: the aggregates a dashboard shows next to the live chart.

All values are plain reductions over a window snapshot. An empty snapshot
yields zeros everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from .generator import MeasurementRecord, Outcome


@dataclass
class WindowSummary:
    count: int = 0
    flagged: int = 0
    avg_measured: float = 0.0
    avg_posterior: float = 0.0
    min_measured: float = 0.0
    max_measured: float = 0.0
    flagged_production_errors: int = 0          # flagged and truly out of spec
    measurement_error_only: int = 0             # inflated noise, good unit
    flagged_measurement_error_only: int = 0     # ... and flagged anyway
    outcome_counts: Dict[Outcome, int] = field(
        default_factory=lambda: {o: 0 for o in Outcome}
    )

    @property
    def flagged_rate(self) -> float:
        return self.flagged / self.count if self.count else 0.0


def summarize(records: Sequence[MeasurementRecord]) -> WindowSummary:
    if not records:
        return WindowSummary()

    measured = np.array([r.measured_x for r in records], dtype=float)
    post = np.array([r.post_mean for r in records], dtype=float)
    flagged = np.array([r.flagged for r in records], dtype=bool)
    prod_err = np.array([r.has_production_error for r in records], dtype=bool)
    meas_err = np.array([r.has_measurement_error for r in records], dtype=bool)
    meas_only = meas_err & ~prod_err

    outcome_counts = {o: 0 for o in Outcome}
    for r in records:
        outcome_counts[r.outcome] += 1

    return WindowSummary(
        count=len(records),
        flagged=int(flagged.sum()),
        avg_measured=float(measured.mean()),
        avg_posterior=float(post.mean()),
        min_measured=float(measured.min()),
        max_measured=float(measured.max()),
        flagged_production_errors=int((flagged & prod_err).sum()),
        measurement_error_only=int(meas_only.sum()),
        flagged_measurement_error_only=int((meas_only & flagged).sum()),
        outcome_counts=outcome_counts,
    )


def format_summary(summary: WindowSummary) -> str:
    """
    Multi-line statistics block.

    Example layout:

    Window: 60 records, 4 flagged (6.7%)
      measured   avg=185.12  min=171.40  max=203.55
      posterior  avg=185.10
      flagged production errors         3
      measurement-error only            11
      flagged measurement-error only    1
      outcomes   CAUGHT=3  FALSE_ALARM=1  MISSED=2  PASSED=54
    """
    s = summary
    lines: List[str] = [
        f"Window: {s.count} records, {s.flagged} flagged ({s.flagged_rate:.1%})",
        f"  measured   avg={s.avg_measured:.2f}  min={s.min_measured:.2f}  "
        f"max={s.max_measured:.2f}",
        f"  posterior  avg={s.avg_posterior:.2f}",
        f"  {'flagged production errors':<34}{s.flagged_production_errors}",
        f"  {'measurement-error only':<34}{s.measurement_error_only}",
        f"  {'flagged measurement-error only':<34}{s.flagged_measurement_error_only}",
        "  outcomes   " + "  ".join(f"{o.value}={n}" for o, n in s.outcome_counts.items()),
    ]
    return "\n".join(lines)
