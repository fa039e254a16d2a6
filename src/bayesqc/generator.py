# bayesqc/generator.py
"""
Measurement event generator for the Bayesian QC simulator.

Responsibilities:
- Draw a true value for one simulated unit, optionally forcing it out of
  spec (production error).
- Observe it with the instrument, optionally with inflated noise
  (measurement error).
- Compute the posterior belief about the true value from the observation
  under the fixed prior and the *nominal* instrument noise.
- Flag the unit when P(in spec | X) < alpha.

The posterior model is deliberately blind to both injected errors: it never
sees the inflated noise or the forced excursion. That mismatch is what
produces missed flags and false alarms in the stream.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .settings import SimulationSettings
from .stats import UniformSource, posterior, prob_in_range, sample_normal

# Forced production errors land this far outside the spec interval, plus
# |N(0, _EXCURSION_STD²)|.
_EXCURSION_OFFSET = 5.0
_EXCURSION_STD = 3.0


class Outcome(str, Enum):
    """How the flag decision compares with the injected production error."""

    CAUGHT = "CAUGHT"               # flagged, production error present
    FALSE_ALARM = "FALSE_ALARM"     # flagged, no production error
    MISSED = "MISSED"               # not flagged, production error present
    PASSED = "PASSED"               # not flagged, no production error


@dataclass(frozen=True)
class MeasurementRecord:
    """One simulated unit, created once per tick and never mutated."""

    id: int
    timestamp: float             # epoch seconds
    true_y: float
    has_production_error: bool
    measured_x: float
    has_measurement_error: bool
    post_mean: float
    post_std: float
    p_in_spec: float
    flagged: bool

    @property
    def outcome(self) -> Outcome:
        if self.flagged:
            return Outcome.CAUGHT if self.has_production_error else Outcome.FALSE_ALARM
        return Outcome.MISSED if self.has_production_error else Outcome.PASSED

    def credible_band(self, k: float = 2.0) -> Tuple[float, float]:
        """(post_mean - k·post_std, post_mean + k·post_std)."""
        return self.post_mean - k * self.post_std, self.post_mean + k * self.post_std


# ---------------------------------------------------------------------------
# Per-tick steps
# ---------------------------------------------------------------------------


def _draw_true_value(settings: SimulationSettings, rng: UniformSource) -> Tuple[float, bool]:
    """Return (true_y, has_production_error)."""
    true_y = sample_normal(settings.production_mean, settings.production_std, rng)

    if rng.random() < settings.production_error_rate:
        low_side = rng.random() < 0.5
        excursion = _EXCURSION_OFFSET + abs(sample_normal(0.0, _EXCURSION_STD, rng))
        if low_side:
            return settings.spec_lower - excursion, True
        return settings.spec_upper + excursion, True

    return true_y, False


def _draw_noise_std(settings: SimulationSettings, rng: UniformSource) -> Tuple[float, bool]:
    """Return (noise std actually used this tick, has_measurement_error)."""
    if rng.random() < settings.measurement_error_rate:
        return settings.measurement_std * settings.measurement_error_magnitude, True
    return settings.measurement_std, False


def generate_measurement(
    settings: SimulationSettings,
    rng: UniformSource,
    record_id: int,
    timestamp: float | None = None,
) -> MeasurementRecord:
    """
    Produce exactly one MeasurementRecord.

    Draw order from ``rng``: true value (2 uniforms), production-error
    check, [side choice, excursion (2 uniforms)], measurement-error check,
    observation (2 uniforms).

    Args:
        settings: current (validated) simulation settings.
        rng: uniform source, e.g. numpy.random.default_rng(seed).
        record_id: identity assigned by the caller.
        timestamp: creation instant in epoch seconds; defaults to now.
    """
    if timestamp is None:
        timestamp = time.time()

    true_y, has_production_error = _draw_true_value(settings, rng)
    used_std, has_measurement_error = _draw_noise_std(settings, rng)
    measured_x = sample_normal(true_y, used_std, rng)

    # nominal noise, not used_std
    post_mean, post_std = posterior(
        measured_x,
        settings.prior_mean,
        settings.prior_std,
        settings.measurement_std,
    )
    p_in_spec = prob_in_range(post_mean, post_std, settings.spec_lower, settings.spec_upper)

    return MeasurementRecord(
        id=record_id,
        timestamp=timestamp,
        true_y=true_y,
        has_production_error=has_production_error,
        measured_x=measured_x,
        has_measurement_error=has_measurement_error,
        post_mean=post_mean,
        post_std=post_std,
        p_in_spec=p_in_spec,
        flagged=p_in_spec < settings.alpha,
    )


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


RECORD_HEADER = "{id:>6} {time:>8} {true:>8} {prod:>5} {meas:>8} {merr:>5} {post:>15} {p:>7}  {status}".format(
    id="id",
    time="time",
    true="true Y",
    prod="prod?",
    meas="meas X",
    merr="meas?",
    post="posterior",
    p="P(in)",
    status="status",
)


def format_record(record: MeasurementRecord) -> str:
    """One measurement-log row, values rounded to 2 decimals for display."""
    r = record
    return "{id:>6} {time:>8} {true:>8.2f} {prod:>5} {meas:>8.2f} {merr:>5} {post:>15} {p:>7.3f}  {status}".format(
        id=r.id,
        time=time.strftime("%H:%M:%S", time.localtime(r.timestamp)),
        true=r.true_y,
        prod="yes" if r.has_production_error else "no",
        meas=r.measured_x,
        merr="yes" if r.has_measurement_error else "no",
        post=f"{r.post_mean:.2f} ± {r.post_std:.2f}",
        p=r.p_in_spec,
        status="OUT OF SPEC" if r.flagged else "OK",
    )
