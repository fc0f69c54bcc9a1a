from __future__ import annotations

import numpy as np
import pytest

from lvgrowth.fit.config import LVFitConfig
from lvgrowth.fit.errors import FitTimeout, InvalidSeries, StartingValueUndefined
from lvgrowth.fit.pipeline import fit_lotka_volterra, prepare_series
from lvgrowth.fit.types import (
    FLAG_DEGENERATE_COVARIANCE,
    FLAG_DEGENERATE_SIGMA,
    FLAG_NOT_CONVERGED,
)
from lvgrowth.synthetic.logistic_data import logistic_solution, simulate_logistic

TIGHT = LVFitConfig(rtol=1e-10, atol=1e-12)


def test_noiseless_series_recovers_parameters():
    t = np.arange(0.0, 25.0, 1.0)
    x = logistic_solution(t, 0.5, 0.005, 5.0)
    fit = fit_lotka_volterra(t, x, TIGHT)

    assert fit.converged
    assert fit.mu == pytest.approx(0.5, rel=1e-6)
    assert fit.A == pytest.approx(0.005, rel=1e-6)
    assert fit.carrying_capacity == pytest.approx(100.0, rel=1e-5)
    assert np.max(np.abs(fit.residuals)) < 1e-5
    assert fit.fitted.shape == t.shape


def test_noisy_series_gives_reasonable_fit():
    rng = np.random.default_rng(1)
    t = np.arange(0.0, 24.5, 0.5)
    x = simulate_logistic(t, 0.5, 0.005, 10.0, noise_sd=0.5, rng=rng)
    fit = fit_lotka_volterra(t, x)

    assert fit.converged
    assert fit.mu == pytest.approx(0.5, rel=0.1)
    assert fit.A == pytest.approx(0.005, rel=0.1)
    assert 0.3 < fit.sigma < 0.8
    assert fit.flags == ()

    se_mu = fit.standard_errors["mu"][1]
    se_A = fit.standard_errors["A"][1]
    assert np.isfinite(se_mu) and se_mu > 0
    assert np.isfinite(se_A) and se_A > 0

    assert np.isfinite(fit.log_likelihood)
    assert fit.aic == pytest.approx(-2.0 * fit.log_likelihood + 6.0)
    # same sigma for both, and the optimizer only accepts improving steps
    assert fit.initial_log_likelihood <= fit.log_likelihood


def test_coefficient_table():
    rng = np.random.default_rng(3)
    t = np.arange(0.0, 24.5, 0.5)
    x = simulate_logistic(t, 0.4, 0.004, 10.0, noise_sd=0.5, rng=rng)
    fit = fit_lotka_volterra(t, x)
    table = fit.coefficient_table()

    assert table["parameter"].tolist() == ["mu", "A"]
    row = table.set_index("parameter").loc["mu"]
    assert row["estimate"] == pytest.approx(fit.mu)
    assert row["t_value"] == pytest.approx(fit.mu / fit.standard_errors["mu"][1])
    assert 0.0 <= row["p_value"] < 0.05


def test_trajectory_frame_aligned_with_observations():
    t = np.array([0.0, 2.0, 4.0, 6.0, 8.0, 10.0])
    x = logistic_solution(t, 0.6, 0.02, 1.0)
    fit = fit_lotka_volterra(t, x, TIGHT)
    frame = fit.trajectory_frame()
    assert frame.columns.tolist() == ["Time", "X", "X_pred"]
    assert frame["Time"].tolist() == t.tolist()
    assert frame["X"].to_numpy() == pytest.approx(x)


def test_same_input_twice_gives_identical_result():
    rng = np.random.default_rng(11)
    t = np.arange(0.0, 20.0, 1.0)
    x = simulate_logistic(t, 0.45, 0.006, 4.0, noise_sd=0.3, rng=rng)

    a = fit_lotka_volterra(t, x)
    b = fit_lotka_volterra(t, x)
    assert a.mu == b.mu
    assert a.A == b.A
    assert a.sigma == b.sigma
    assert a.log_likelihood == b.log_likelihood
    assert np.array_equal(a.fitted, b.fitted)
    assert a.standard_errors == b.standard_errors
    assert a.nfev == b.nfev


def test_unsorted_input_is_sorted_and_nan_dropped():
    t = np.array([3.0, 0.0, np.nan, 1.0, 2.0])
    x = np.array([4.0, 1.0, 7.0, 1.8, 3.0])
    ts, xs = prepare_series(t, x)
    assert ts.tolist() == [0.0, 1.0, 2.0, 3.0]
    assert xs.tolist() == [1.0, 1.8, 3.0, 4.0]


@pytest.mark.parametrize(
    "t, x",
    [
        ([0.0, 1.0, 1.0], [1.0, 2.0, 3.0]),
        ([0.0, 1.0, 2.0], [1.0, -2.0, 3.0]),
        ([0.0, 1.0], [1.0, 2.0, 3.0]),
        ([np.nan], [1.0]),
    ],
)
def test_invalid_series_rejected(t, x):
    with pytest.raises(InvalidSeries):
        fit_lotka_volterra(np.array(t), np.array(x))


def test_single_observation_cannot_start():
    with pytest.raises(StartingValueUndefined):
        fit_lotka_volterra(np.array([0.0]), np.array([5.0]))


def test_constant_series_has_undefined_standard_errors():
    t = np.arange(0.0, 8.0, 1.0)
    x = np.full(t.size, 10.0)
    fit = fit_lotka_volterra(t, x)

    assert fit.mu == pytest.approx(0.0, abs=1e-12)
    assert fit.A == pytest.approx(0.0, abs=1e-12)
    assert np.isnan(fit.standard_errors["mu"][1])
    assert np.isnan(fit.standard_errors["A"][1])
    assert fit.has_flag(FLAG_DEGENERATE_COVARIANCE)
    assert fit.has_flag(FLAG_DEGENERATE_SIGMA)
    assert np.isnan(fit.log_likelihood)


def test_iteration_limit_flags_non_convergence():
    t = np.arange(0.0, 25.0, 1.0)
    x = logistic_solution(t, 0.5, 0.005, 5.0)
    fit = fit_lotka_volterra(t, x, LVFitConfig(max_nfev=1))
    assert not fit.converged
    assert fit.has_flag(FLAG_NOT_CONVERGED)
    assert np.isfinite(fit.mu)


def test_decaying_series_keeps_A_in_bounds():
    t = np.linspace(0.0, 10.0, 11)
    x = 100.0 * np.exp(-0.3 * t)
    fit = fit_lotka_volterra(t, x, TIGHT)
    assert fit.start[0] < 0
    assert fit.A >= TIGHT.lower_A
    assert fit.mu == pytest.approx(-0.3, rel=1e-4)


def test_exponential_series_finishes_despite_diverging_trial_points():
    t = np.arange(0.0, 25.0, 1.0)
    x = 5.0 * np.exp(0.9 * t)
    cfg = LVFitConfig(timeout=120.0)
    fit = fit_lotka_volterra(t, x, cfg)
    assert fit.A >= cfg.lower_A
    assert np.isfinite(fit.mu)
    assert fit.log_likelihood >= fit.initial_log_likelihood


def test_zero_budget_times_out():
    t = np.arange(0.0, 25.0, 1.0)
    x = logistic_solution(t, 0.5, 0.005, 5.0)
    with pytest.raises(FitTimeout) as err:
        fit_lotka_volterra(t, x, LVFitConfig(timeout=0.0))
    assert err.value.params is not None


def test_standard_errors_cannot_be_modified():
    t = np.arange(0.0, 25.0, 1.0)
    fit = fit_lotka_volterra(t, logistic_solution(t, 0.5, 0.005, 5.0), TIGHT)
    with pytest.raises(TypeError):
        fit.standard_errors["mu"] = (0.0, 0.0)
