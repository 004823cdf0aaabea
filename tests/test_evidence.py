import math

import numpy as np
import pytest
from scipy.integrate import quad

from statdemos.evidence import Evidence, Hypothesis


def make_model(seed=7, signal=5, background=25):
    return Evidence("Evidence", signal, background, np.random.default_rng(seed))


def test_event_counts_and_ranges():
    model = make_model()
    assert model.energies.shape == (30,)
    sig = model.energies[:5]
    bkg = model.energies[5:]
    assert np.all(np.abs(sig - model.mu) < 10 * model.sigma)
    assert np.all((bkg >= model.min_energy) & (bkg <= model.max_energy))
    assert model.gaussian_pdf.shape == (30,)


def test_parameters_and_model_switch():
    model = make_model()
    assert [p.name for p in model.parameters] == ["B", "S"]
    assert model.parameters[1].fixed
    model.set_model(Hypothesis.SGN_PLUS_BKG)
    assert not model.parameters[1].fixed
    model.set_model(Hypothesis.BKG_ONLY)
    assert model.parameters[1].fixed_value == 0.0


def test_zero_signal_likelihoods_agree():
    model = make_model()
    for b in (10.0, 25.0, 40.0):
        assert model.log_likelihood_sgn_plus_bkg([b, 0.0]) == pytest.approx(
            model.log_likelihood_bkg_only([b, 0.0])
        )


def test_dispatch_follows_model():
    model = make_model()
    assert model.log_likelihood([20.0, 3.0]) == model.log_likelihood_bkg_only([20.0, 3.0])
    model.set_model(Hypothesis.SGN_PLUS_BKG)
    assert model.log_likelihood([20.0, 3.0]) == model.log_likelihood_sgn_plus_bkg([20.0, 3.0])


def test_zero_background_is_impossible_without_signal():
    model = make_model()
    assert model.log_likelihood_bkg_only([0.0, 0.0]) == -math.inf


def test_prior_counts_free_parameters():
    model = make_model()
    b_width = model.parameters[0].range_width
    s_width = model.parameters[1].range_width
    assert model.log_prior([20.0, 0.0]) == pytest.approx(-math.log(b_width))
    model.set_model(Hypothesis.SGN_PLUS_BKG)
    assert model.log_prior([20.0, 3.0]) == pytest.approx(-math.log(b_width) - math.log(s_width))
    assert model.log_prior([-1.0, 3.0]) == -math.inf


def test_background_only_mode_at_event_count():
    model = make_model()
    best = model.find_mode()
    assert best[0] == pytest.approx(30.0, abs=0.05)
    assert best[1] == 0.0


def test_integral_needs_mode():
    model = make_model()
    with pytest.raises(ValueError):
        model.compute_integral(100)


def test_bayes_factor_needs_both_integrals():
    model = make_model()
    with pytest.raises(ValueError):
        model.bayes_factor()


def test_background_only_integral_matches_quadrature():
    model = make_model()
    model.find_mode()
    integral = model.compute_integral(200_000)
    lower, upper = model.parameters[0].lower, model.parameters[0].upper
    expected, _ = quad(
        lambda b: math.exp(model.log_posterior([b, 0.0])), lower, upper, points=[30.0], limit=200
    )
    assert integral == pytest.approx(expected, rel=0.05)
    assert 0.0 < model.acceptance[Hypothesis.BKG_ONLY] <= 1.0


def test_bayes_factor_is_ratio_of_integrals():
    model = make_model()
    model.find_mode()
    bkg = model.compute_integral(50_000)
    model.reset_results()
    model.set_model(Hypothesis.SGN_PLUS_BKG)
    model.find_mode()
    sgn = model.compute_integral(50_000)
    assert bkg > 0.0 and sgn > 0.0
    assert model.bayes_factor() == pytest.approx(sgn / bkg)


def test_empty_data_rejected():
    with pytest.raises(ValueError):
        Evidence("Evidence", 0, 0)