# tests/test_stats.py
"""
Tests for the numeric kernels: Box–Muller sampling, normal CDF,
Gaussian posterior and P(in spec).
"""
from __future__ import annotations

import math

import numpy as np
import pytest

from bayesqc.stats import normal_cdf, posterior, prob_in_range, sample_normal
from conftest import ScriptedUniforms


# ---------------------------------------------------------------------------
# Random normal generator
# ---------------------------------------------------------------------------


def test_sample_normal_converges_to_requested_moments():
    rng = np.random.default_rng(123)
    n = 20_000
    samples = np.array([sample_normal(10.0, 2.0, rng) for _ in range(n)])

    # tolerances are ~5 standard errors
    assert abs(samples.mean() - 10.0) < 5 * 2.0 / math.sqrt(n)
    assert abs(samples.std(ddof=1) - 2.0) < 5 * 2.0 / math.sqrt(2 * n)


def test_sample_normal_zero_std_returns_mean():
    rng = np.random.default_rng(0)
    assert sample_normal(42.0, 0.0, rng) == 42.0


def test_sample_normal_redraws_zero_uniforms():
    # u=0 and v=0 are both redrawn; u=0.5, v=0.25 gives cos(pi/2) ~ 0
    rng = ScriptedUniforms([0.0, 0.5, 0.0, 0.25])
    assert sample_normal(7.0, 3.0, rng) == pytest.approx(7.0, abs=1e-9)
    assert rng.consumed == 4


def test_sample_normal_box_muller_value():
    # sqrt(-2 ln e^-2) = 2, cos(pi) = -1  ->  z = -2
    rng = ScriptedUniforms([math.exp(-2.0), 0.5])
    assert sample_normal(1.0, 3.0, rng) == pytest.approx(-5.0)


# ---------------------------------------------------------------------------
# Normal CDF
# ---------------------------------------------------------------------------


def test_cdf_at_zero_is_half():
    assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-6)


def test_cdf_is_monotonic():
    values = [normal_cdf(z) for z in np.linspace(-6.0, 6.0, 1201)]
    assert all(b >= a for a, b in zip(values, values[1:]))


@pytest.mark.parametrize("z", [0.1, 0.5, 1.0, 1.96, 2.5, 4.0])
def test_cdf_is_symmetric(z):
    assert normal_cdf(-z) == pytest.approx(1.0 - normal_cdf(z), abs=1e-6)


@pytest.mark.parametrize("z", [-3.0, -1.5, -0.3, 0.0, 0.7, 1.645, 3.3])
def test_cdf_matches_erf(z):
    exact = 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))
    assert normal_cdf(z) == pytest.approx(exact, abs=1e-6)


def test_cdf_saturates():
    assert normal_cdf(40.0) == pytest.approx(1.0)
    assert normal_cdf(-40.0) == pytest.approx(0.0, abs=1e-12)


# ---------------------------------------------------------------------------
# Posterior
# ---------------------------------------------------------------------------


def test_posterior_closed_form():
    mean, std = posterior(190.0, prior_mean=185.0, prior_std=10.0, meas_std=2.0)
    # precision weights 1/100 and 1/4
    assert mean == pytest.approx((185.0 * 4 + 190.0 * 100) / 104)
    assert std == pytest.approx(math.sqrt(1.0 / (0.01 + 0.25)))


def test_posterior_follows_measurement_as_noise_vanishes():
    mean, _ = posterior(190.0, prior_mean=185.0, prior_std=10.0, meas_std=1e-4)
    assert mean == pytest.approx(190.0, abs=1e-6)


def test_posterior_follows_prior_as_prior_narrows():
    mean, _ = posterior(190.0, prior_mean=185.0, prior_std=1e-4, meas_std=2.0)
    assert mean == pytest.approx(185.0, abs=1e-6)


@pytest.mark.parametrize(
    "prior_std, meas_std",
    [(10.0, 2.0), (2.0, 10.0), (1.0, 1.0), (0.3, 50.0)],
)
def test_posterior_std_below_both_inputs(prior_std, meas_std):
    _, std = posterior(0.0, 0.0, prior_std, meas_std)
    assert std <= min(prior_std, meas_std)


@pytest.mark.parametrize("prior_std, meas_std", [(0.0, 1.0), (1.0, 0.0), (-1.0, 2.0)])
def test_posterior_rejects_non_positive_std(prior_std, meas_std):
    with pytest.raises(ValueError):
        posterior(0.0, 0.0, prior_std, meas_std)


def test_posterior_point_mass_prior_when_variance_underflows():
    # 1e-200 squared is 0.0 in double precision
    assert posterior(190.0, prior_mean=185.0, prior_std=1e-200, meas_std=2.0) == (185.0, 0.0)


def test_posterior_noiseless_measurement_when_variance_underflows():
    assert posterior(190.0, prior_mean=185.0, prior_std=10.0, meas_std=1e-200) == (190.0, 0.0)


def test_posterior_huge_prior_std_defers_to_measurement():
    mean, std = posterior(190.0, prior_mean=185.0, prior_std=1e200, meas_std=2.0)
    assert (mean, std) == (190.0, 2.0)


# ---------------------------------------------------------------------------
# Probability in spec
# ---------------------------------------------------------------------------


def test_prob_in_range_wide_interval_is_one():
    mean, std = 185.0, 1.96
    assert prob_in_range(mean, std, mean - 10 * std, mean + 10 * std) == pytest.approx(
        1.0, abs=1e-6
    )


def test_prob_in_range_empty_interval_is_zero():
    assert prob_in_range(185.0, 2.0, 185.0, 185.0) == pytest.approx(0.0, abs=1e-12)


def test_prob_in_range_narrowing_never_increases():
    wide = prob_in_range(185.0, 2.0, 175.0, 195.0)
    narrow = prob_in_range(185.0, 2.0, 180.0, 190.0)
    narrower = prob_in_range(185.0, 2.0, 183.0, 187.0)
    assert wide >= narrow >= narrower


def test_prob_in_range_small_std_limits():
    assert prob_in_range(187.0, 1e-6, 180.0, 195.0) == pytest.approx(1.0)
    assert prob_in_range(170.0, 1e-6, 180.0, 195.0) == pytest.approx(0.0, abs=1e-12)


def test_prob_in_range_zero_std_is_point_mass():
    assert prob_in_range(190.0, 0.0, 180.0, 195.0) == 1.0
    assert prob_in_range(180.0, 0.0, 180.0, 195.0) == 1.0
    assert prob_in_range(170.0, 0.0, 180.0, 195.0) == 0.0
    assert prob_in_range(195.5, 0.0, 180.0, 195.0) == 0.0


def test_prob_in_range_stays_in_unit_interval():
    rng = np.random.default_rng(5)
    for _ in range(500):
        mean = rng.uniform(150, 220)
        std = rng.uniform(0.01, 20)
        lower = rng.uniform(150, 220)
        upper = lower + rng.uniform(0, 30)
        p = prob_in_range(mean, std, lower, upper)
        assert 0.0 <= p <= 1.0
