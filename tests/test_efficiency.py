import math

import numpy as np
import pytest

from statdemos.efficiency import (
    Efficiency,
    FitMethod,
    efficiency_curve,
    log_binomial,
    log_chi2,
    log_poisson,
)


def test_curve_is_half_at_threshold():
    assert efficiency_curve(3.0, 0.9, 3.0, 1.0) == pytest.approx(0.45)


def test_curve_approaches_asymptote():
    assert efficiency_curve(20.0, 0.9, 3.0, 1.0) == pytest.approx(0.9)
    values = efficiency_curve(np.arange(1, 21), 0.9, 3.0, 1.0)
    assert np.all(np.diff(values) > 0.0)


def test_curve_rejects_bad_sigma():
    with pytest.raises(ValueError):
        efficiency_curve(3.0, 0.9, 3.0, 0.0)


def test_log_binomial_peaks_at_observed_fraction():
    grid = np.linspace(0.01, 0.99, 99)
    values = log_binomial(30, 100, grid)
    assert grid[int(np.argmax(values))] == pytest.approx(0.3)


def test_log_binomial_full_efficiency_edge():
    assert log_binomial(100, 100, 1.0) == 0.0
    assert log_binomial(90, 100, 1.0) == -math.inf


def test_log_poisson_peaks_at_count():
    grid = np.linspace(1.0, 20.0, 191)
    values = log_poisson(7, grid)
    assert grid[int(np.argmax(values))] == pytest.approx(7.0)


def test_log_poisson_rejects_negative_mean():
    with pytest.raises(ValueError):
        log_poisson(3, -1.0)


def test_log_chi2_decreases_away_from_mean():
    mu = 50.0
    assert log_chi2(50.0, mu) > log_chi2(55.0, mu) > log_chi2(65.0, mu)


def test_log_chi2_rejects_non_positive_mean():
    with pytest.raises(ValueError):
        log_chi2(3.0, 0.0)


def test_generated_counts():
    model = Efficiency("eff", 500, 0.9, np.random.default_rng(3))
    assert list(model.counts) == list(range(1, 21))
    assert all(0 <= k <= 500 for k in model.counts.values())
    assert model.counts[20] / 500 == pytest.approx(0.9, abs=0.06)
    assert model.method is FitMethod.POISSON


def test_same_seed_same_data():
    a = Efficiency("a", 200, 0.9, np.random.default_rng(7))
    b = Efficiency("b", 200, 0.9, np.random.default_rng(7))
    assert a.counts == b.counts


def test_parameter_ranges_clipped_at_one():
    model = Efficiency("eff", 10, 1.0, np.random.default_rng(0))
    names = [p.name for p in model.parameters]
    assert names == ["Efficiency", "Threshold", "Sigma"]
    assert model.parameters[0].upper == 1.0


def test_rejects_bad_efficiency():
    with pytest.raises(ValueError):
        Efficiency("eff", 10, 1.5, np.random.default_rng(0))


@pytest.mark.parametrize("method", list(FitMethod))
def test_truth_beats_far_point(method):
    model = Efficiency("eff", 1000, 0.9, np.random.default_rng(11))
    model.method = method
    truth = model.log_likelihood([0.9, 3.0, 1.0])
    far = model.log_likelihood([model.parameters[0].lower, 3.3, 1.1])
    assert truth > far


@pytest.mark.parametrize("method", list(FitMethod))
def test_find_mode_near_truth(method):
    model = Efficiency("eff", 1000, 0.9, np.random.default_rng(5))
    model.method = method
    best = model.find_mode()
    assert best[0] == pytest.approx(0.9, abs=0.02)
    assert np.all(np.isfinite(model.best_fit_errors))
    assert np.all(model.best_fit_errors > 0.0)
    assert all(p.lower <= v <= p.upper for p, v in zip(model.parameters, best))


def test_marginal_efficiency_is_normalised():
    model = Efficiency("eff", 1000, 0.9, np.random.default_rng(9))
    model.method = FitMethod.BINOMIAL
    model.marginalize(2000, np.random.default_rng(10))
    density, edges = model.marginal_histogram("Efficiency")
    assert len(density) == 300
    assert np.sum(density * np.diff(edges)) == pytest.approx(1.0)