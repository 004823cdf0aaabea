import math

import numpy as np
import pytest

from statdemos.flip_flopping import gaussian_pdf
from statdemos.simultaneous_fit import SimultaneousFit, main


def _model(seed=1, **kwargs):
    params = dict(n_injected=1000, efficiency=0.9, signal=20, background=20)
    params.update(kwargs)
    return SimultaneousFit("SimultaneousFit", rng=np.random.default_rng(seed), **params)


def test_pulser_counts_cover_energies_and_bounds():
    model = _model()
    assert sorted(model.counts) == list(range(1, 21))
    assert all(0 <= k <= 1000 for k in model.counts.values())


def test_physics_events_within_range_and_not_more_than_generated():
    model = _model()
    assert model.energies.size <= 40
    background = model.energies[(model.energies < 10.0) | (model.energies > 20.0)]
    # Only Gaussian tails may leave the window; none can come from the background.
    assert background.size <= 20


def test_gaussian_pdf_matches_event_energies():
    model = _model()
    expected = gaussian_pdf(model.energies, 15.0, 1.2)
    assert np.allclose(model.gaussian_pdf, expected)
    assert model.bkg_pdf == pytest.approx(0.1)


def test_parameter_names_and_ranges():
    model = _model()
    names = [p.name for p in model.parameters]
    assert names == ["S", "B", "Efficiency", "Threshold_eff", "Sigma_eff"]
    eff = model.parameters[2]
    assert eff.lower == pytest.approx(0.855)
    assert eff.upper == pytest.approx(0.945)
    assert all(p.bins == 100 for p in model.parameters)


def test_same_seed_gives_same_data():
    a = _model(seed=7)
    b = _model(seed=7)
    assert a.counts == b.counts
    assert np.array_equal(a.energies, b.energies)


def test_likelihood_prefers_true_threshold():
    model = _model()
    truth = [20.0, 20.0, 0.9, 3.0, 1.0]
    shifted = [20.0, 20.0, 0.9, 3.3, 1.0]
    assert math.isfinite(model.log_likelihood(truth))
    assert model.log_likelihood(truth) > model.log_likelihood(shifted)


def test_likelihood_is_minus_infinity_without_rates():
    model = _model()
    if model.energies.size == 0:
        model = _model(seed=2)
    assert model.energies.size > 0
    assert model.log_likelihood([0.0, 0.0, 0.9, 3.0, 1.0]) == -math.inf


def test_find_mode_recovers_efficiency():
    model = _model(seed=3)
    best = model.find_mode()
    assert abs(best[2] - 0.9) < 0.02
    assert abs(best[3] - 3.0) < 0.2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_injected": 0},
        {"efficiency": 0.0},
        {"efficiency": 1.5},
        {"signal": -1},
        {"signal": 0, "background": 0},
    ],
)
def test_invalid_arguments_raise(kwargs):
    with pytest.raises(ValueError):
        _model(**kwargs)


def test_main_writes_plot(tmp_path):
    output = tmp_path / "fit.png"
    code = main(["--steps", "300", "--seed", "4", "--n-injected", "200", "--output", str(output)])
    assert code == 0
    assert output.stat().st_size > 0