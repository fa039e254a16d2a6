# bayesqc/stats.py
"""
Numeric kernels for the Bayesian QC simulator.

Responsibilities:
- Draw Gaussian samples from a uniform source (Box–Muller).
- Approximate the standard normal CDF (Abramowitz–Stegun 26.2.17).
- Closed-form Gaussian posterior for a Gaussian prior + Gaussian noise.
- Posterior probability that the true value lies inside a spec interval.

All functions are pure; the only state is whatever the caller's random
source carries.
"""

from __future__ import annotations

import math
from typing import Protocol, Tuple

import numpy as np


class UniformSource(Protocol):
    """Anything with a ``random()`` returning a float in [0, 1)."""

    def random(self) -> float:  # pragma: no cover - protocol
        ...


# ---------------------------------------------------------------------------
# Random normal generator
# ---------------------------------------------------------------------------


def _nonzero_uniform(rng: UniformSource) -> float:
    u = float(rng.random())
    while u == 0.0:
        u = float(rng.random())
    return u


def sample_normal(mean: float, std: float, rng: UniformSource) -> float:
    """
    Draw one sample from N(mean, std²) with the Box–Muller transform.

    Two uniforms are consumed per call (u, then v). A uniform that comes
    back as exactly 0 is re-drawn so that log(u) stays finite.
    """
    u = _nonzero_uniform(rng)
    v = _nonzero_uniform(rng)
    z = math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
    return mean + std * z


# ---------------------------------------------------------------------------
# Normal CDF approximation
# ---------------------------------------------------------------------------

# Abramowitz–Stegun polynomial coefficients
_P = 0.2315419
_D = 0.3989423
_B1 = 0.3193815
_B2 = -0.3565638
_B3 = 1.781478
_B4 = -1.821256
_B5 = 1.330274


def normal_cdf(z: float) -> float:
    """Approximate Φ(z) to ~1e-7. Saturates toward 0 / 1 for large |z|."""
    t = 1.0 / (1.0 + _P * abs(z))
    d = _D * math.exp(-z * z / 2.0)
    p = d * t * (_B1 + t * (_B2 + t * (_B3 + t * (_B4 + _B5 * t))))
    if z > 0:
        return 1.0 - p
    return p


# ---------------------------------------------------------------------------
# Posterior + spec probability
# ---------------------------------------------------------------------------


def posterior(
    measured_x: float,
    prior_mean: float,
    prior_std: float,
    meas_std: float,
) -> Tuple[float, float]:
    """
    Gaussian-conjugate update.

    Model:
        Y     ~ N(prior_mean, prior_std²)
        X | Y ~ N(Y, meas_std²)

    Returns:
        (post_mean, post_std) of Y | X = measured_x. The mean is the
        precision-weighted average of the prior mean and the measurement.

    Computed in variance (gain) form so that a std whose square underflows
    to 0 gives the exact limit: a point-mass prior returns
    (prior_mean, 0.0), a noiseless measurement returns (measured_x, 0.0).
    """
    if prior_std <= 0 or meas_std <= 0:
        raise ValueError(
            f"prior_std and meas_std must be > 0 (got {prior_std}, {meas_std})"
        )

    prior_var = prior_std * prior_std
    meas_var = meas_std * meas_std
    if prior_var == 0.0:
        return prior_mean, 0.0
    if meas_var == 0.0:
        return measured_x, 0.0
    if math.isinf(prior_var):
        return measured_x, meas_std
    if math.isinf(meas_var):
        return prior_mean, prior_std

    gain = prior_var / (prior_var + meas_var)
    mean_post = prior_mean + gain * (measured_x - prior_mean)
    var_post = gain * meas_var
    return mean_post, math.sqrt(var_post)


def prob_in_range(mean: float, std: float, lower: float, upper: float) -> float:
    """
    P(lower <= Y <= upper) for Y ~ N(mean, std²), clipped into [0, 1].

    std == 0 is the point-mass limit: 1.0 if mean is inside the closed
    interval, else 0.0.
    """
    if std == 0:
        return 1.0 if lower <= mean <= upper else 0.0
    z_lower = (lower - mean) / std
    z_upper = (upper - mean) / std
    p = normal_cdf(z_upper) - normal_cdf(z_lower)
    return float(np.clip(p, 0.0, 1.0))
