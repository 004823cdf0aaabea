import math

import numpy as np
import pytest
from scipy import stats

from statdemos.ordering_rules import (
    ONE_SIGMA,
    Interval,
    central_interval,
    equal_areas_interval,
    log_factorial,
    main,
    poisson_posterior,
    shortest_interval,
    smart_poisson,
)


@pytest.fixture(scope="module")
def posterior():
    return poisson_posterior(3.0, 0.0, 15.0, 3000)


def test_log_factorial():
    assert log_factorial(0.0) == 0.0
    assert log_factorial(1.0) == 0.0
    assert log_factorial(6.0) == pytest.approx(math.lgamma(7.0))


def test_smart_poisson_matches_scipy():
    assert smart_poisson(3.0, 3.0) == pytest.approx(stats.poisson.pmf(3, 3.0))
    assert smart_poisson(2.0, 1.5, 4.0) == pytest.approx(4.0 * stats.poisson.pmf(2, 1.5))


def test_smart_poisson_rejects_non_positive_lambda():
    with pytest.raises(ValueError):
        smart_poisson(3.0, 0.0)


def test_posterior_normalised_with_mode_at_n(posterior):
    centers, weights = posterior
    assert weights.sum() == pytest.approx(1.0)
    assert abs(centers[np.argmax(weights)] - 3.0) < 0.01


@pytest.mark.parametrize("rule", [central_interval, equal_areas_interval, shortest_interval])
def test_intervals_reach_quantile(posterior, rule):
    _, weights = posterior
    interval = rule(weights)
    assert interval.coverage >= ONE_SIGMA - 1e-9
    assert interval.low <= interval.mode <= interval.high


def test_shortest_is_not_wider(posterior):
    _, weights = posterior
    shortest = shortest_interval(weights)
    assert shortest.width_bins <= central_interval(weights).width_bins
    assert shortest.width_bins <= equal_areas_interval(weights).width_bins


def test_central_is_symmetric(posterior):
    _, weights = posterior
    interval = central_interval(weights)
    assert interval.low + interval.high == 2 * interval.mode


def test_shortest_worked_example():
    interval = shortest_interval([0.1, 0.2, 0.4, 0.2, 0.1], 0.5)
    assert (interval.low, interval.high, interval.mode) == (1, 3, 2)
    assert interval.coverage == pytest.approx(0.8)


def test_equal_areas_full_quantile_takes_everything():
    weights = [0.1, 0.3, 0.4, 0.2]
    interval = equal_areas_interval(weights, 1.0)
    assert (interval.low, interval.high) == (0, len(weights) - 1)
    assert interval.coverage == pytest.approx(1.0)


@pytest.mark.parametrize("quantile", [0.0, 1.5])
def test_unreachable_quantile_raises(quantile):
    with pytest.raises(ValueError):
        shortest_interval([0.25, 0.5, 0.25], quantile)


def test_interval_errors():
    interval = Interval(low=2, high=7, mode=4, coverage=0.5)
    assert interval.errors(0.5) == (1.0, 1.5)
    assert interval.width_bins == 6


def test_main_writes_figure(tmp_path, capsys):
    output = tmp_path / "rules.png"
    assert main(["--bins", "1500", "--output", str(output)]) == 0
    assert output.stat().st_size > 0
    assert "Mode:" in capsys.readouterr().out