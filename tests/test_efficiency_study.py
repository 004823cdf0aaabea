import numpy as np
import pytest

from statdemos.efficiency import FitMethod
from statdemos.efficiency_study import StudyResult, run_study


@pytest.fixture(scope="module")
def single_case():
    return run_study([1000], [0.9], toys=2, rng=np.random.default_rng(11))


def test_one_result_per_case(single_case):
    assert len(single_case) == 1
    result = single_case[0]
    assert result.n == 1000
    assert result.p == pytest.approx(0.9)


def test_estimates_have_one_row_per_toy(single_case):
    result = single_case[0]
    for method in FitMethod:
        assert result.estimates[method].shape == (2, 3)
        assert result.errors[method].shape == (2, 3)


def test_efficiency_estimates_lie_in_parameter_range(single_case):
    result = single_case[0]
    for method in FitMethod:
        eff = result.estimates[method][:, 0]
        assert eff.min() >= 0.95 * 0.9 - 1e-12
        assert eff.max() <= 1.05 * 0.9 + 1e-12


def test_weighted_mean_between_extremes(single_case):
    result = single_case[0]
    for method in FitMethod:
        eff = result.estimates[method][:, 0]
        mean = result.weighted_mean(method)
        assert eff.min() - 1e-12 <= mean <= eff.max() + 1e-12


def test_histogram_is_normalised(single_case):
    result = single_case[0]
    contents, edges = result.efficiency_histogram(FitMethod.POISSON)
    assert len(edges) == len(contents) + 1
    assert contents.sum() == pytest.approx(1.0)


def test_case_ordering():
    results = run_study([100, 200], [0.9, 0.95], toys=1, rng=np.random.default_rng(3))
    assert [(r.n, r.p) for r in results] == [(100, 0.9), (100, 0.95), (200, 0.9), (200, 0.95)]


def test_empty_input_gives_no_results():
    assert run_study([], [0.9], toys=1, rng=np.random.default_rng(0)) == []


def test_zero_toys_rejected():
    with pytest.raises(ValueError):
        run_study([100], [0.9], toys=0)


def test_unusable_errors_are_reported():
    result = StudyResult(
        n=10,
        p=0.9,
        estimates={FitMethod.BINOMIAL: np.array([[0.9, 3.0, 1.0]])},
        errors={FitMethod.BINOMIAL: np.array([[np.nan, 0.1, 0.1]])},
    )
    assert np.isnan(result.weights(FitMethod.BINOMIAL)[0])
    with pytest.raises(ValueError):
        result.weighted_mean(FitMethod.BINOMIAL)