import math

import numpy as np
import pytest

from statdemos.feldman_cousins import (
    belt_limits,
    feldman_cousins_belt,
    fmax,
    katrin_limit,
    likelihood_ratio,
    toy_coverage,
    upper_limit,
)
from statdemos.flip_flopping import coverage, gaussian_pdf, neyman_grid

DX = 0.02


@pytest.fixture(scope="module")
def fc():
    x, mu = neyman_grid(-3.0, 11.0, DX, 0.0, 7.0, DX)
    pdf = gaussian_pdf(x[None, :], mu[:, None], 1.0)
    ratio = likelihood_ratio(pdf, x)
    belt = feldman_cousins_belt(pdf, ratio, 0.9)
    return x, mu, pdf, ratio, belt


def _edges(centres, width):
    return np.append(centres - 0.5 * width, centres[-1] + 0.5 * width)


def test_fmax_values():
    assert fmax(-1.0) == pytest.approx(math.exp(-0.5) / math.sqrt(2.0 * math.pi))
    assert fmax(2.0) == pytest.approx(1.0 / math.sqrt(2.0 * math.pi))
    values = fmax(np.array([-2.0, 0.0, 3.0]))
    assert values.shape == (3,)
    assert values[1] == pytest.approx(values[2])


def test_ratio_never_exceeds_one(fc):
    x, _, _, ratio, _ = fc
    assert ratio.max() <= 1.0 + 1e-9
    inside = (x >= 0.0) & (x <= 7.0)
    assert np.allclose(ratio.max(axis=0)[inside], 1.0, atol=1e-3)


def test_belt_rows_contiguous(fc):
    _, _, _, _, belt = fc
    for row in belt:
        accepted = np.flatnonzero(row)
        assert accepted.size > 0
        assert np.all(np.diff(accepted) == 1)


def test_belt_reaches_quantile(fc):
    _, _, pdf, _, belt = fc
    cov = coverage(belt, pdf, DX)
    assert cov.min() >= 0.9 - 0.005


def test_upper_limit_at_zero(fc):
    x, mu, _, _, belt = fc
    x_index = int(np.argmin(np.abs(x)))
    assert upper_limit(belt, x_index, _edges(mu, DX)) == pytest.approx(1.64, abs=0.05)


def test_belt_limits_ordered(fc):
    _, mu, _, _, belt = fc
    low, high = belt_limits(belt, mu)
    finite = np.isfinite(low)
    assert finite.any()
    assert np.all(low[finite] <= high[finite])
    assert np.all(low[finite] >= mu[0])


def test_toy_coverage_close_to_quantile(fc):
    x, mu, _, _, belt = fc
    rng = np.random.default_rng(7)
    cov = toy_coverage(belt, _edges(x, DX), mu, 1.0, 2000, rng)
    middle = (mu > 1.0) & (mu < 5.0)
    assert cov.shape == mu.shape
    assert 0.87 < cov[middle].mean() < 0.93


def test_upper_limit_edge_cases():
    edges = np.array([0.0, 1.0, 2.0, 3.0])
    assert upper_limit(np.ones((3, 2), dtype=bool), 0, edges) == 3.0
    assert upper_limit(np.zeros((3, 2), dtype=bool), 1, edges) == 0.0
    with pytest.raises(IndexError):
        upper_limit(np.ones((3, 2), dtype=bool), 5, edges)


def test_belt_rejects_bad_input(fc):
    _, _, pdf, ratio, _ = fc
    with pytest.raises(ValueError):
        feldman_cousins_belt(pdf, ratio, 1.5)
    with pytest.raises(ValueError):
        feldman_cousins_belt(pdf, ratio[:, :-1], 0.9)


def test_katrin_limit():
    limit = katrin_limit(-1.0, 0.9)
    assert 0.9 < limit < 1.3
    assert katrin_limit(-2.0, 0.9) <= limit


def test_katrin_limit_rejects_out_of_range():
    with pytest.raises(ValueError):
        katrin_limit(50.0, 0.9)