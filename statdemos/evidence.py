"""Bayesian evidence of a background-only and a signal-plus-background model."""

from __future__ import annotations

import argparse
import enum
import math
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure
from scipy.special import xlogy

from statdemos.bayes import BayesModel
from statdemos.flip_flopping import gaussian_pdf
from statdemos.ordering_rules import log_factorial

_CHUNK = 100_000


class Hypothesis(enum.Enum):
    BKG_ONLY = "BkgOnly"
    SGN_PLUS_BKG = "SgnPlusBkg"


class Evidence(BayesModel):
    """Gaussian peak on a flat background; evidence integrals by hit-and-miss sampling."""

    def __init__(
        self,
        name: str = "Evidence",
        signal: int = 5,
        background: int = 25,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(name)
        if signal < 0 or background < 0 or signal + background == 0:
            raise ValueError("need non-negative signal and background with at least one event")
        self.rng = rng if rng is not None else np.random.default_rng()
        self.signal = int(signal)
        self.background = int(background)
        self.n_events = self.signal + self.background

        self.min_energy = 2000.0
        self.max_energy = 2080.0
        self.delta_energy = self.max_energy - self.min_energy
        self.mu = 2039.0
        self.sigma = 1.5
        self.log_fact_n = log_factorial(self.n_events)

        self.energies = np.concatenate(
            [
                self.rng.normal(self.mu, self.sigma, self.signal),
                self.rng.uniform(self.min_energy, self.max_energy, self.background),
            ]
        )
        self.gaussian_pdf = np.asarray(gaussian_pdf(self.energies, self.mu, self.sigma))
        self.bkg_pdf = 1.0 / self.delta_energy

        err = math.sqrt(self.n_events)
        n_err = 7.0
        self.add_parameter(
            "B", max(0.0, self.background - n_err * err), self.background + n_err * err,
            "B", "[counts]", 300,
        )
        self.add_parameter(
            "S", max(0.0, self.signal - n_err * err), self.signal + n_err * err,
            "S", "[counts]", 300,
        )

        self.integrals: dict[Hypothesis, float] = {}
        self.acceptance: dict[Hypothesis, float] = {}
        self.model = Hypothesis.BKG_ONLY
        self.set_model(Hypothesis.BKG_ONLY)

    def set_model(self, model: Hypothesis) -> None:
        """Select the hypothesis; the background-only one fixes S at zero."""
        self.model = Hypothesis(model)
        if self.model is Hypothesis.BKG_ONLY:
            self.parameters[1].fix(0.0)
        else:
            self.parameters[1].unfix()

    def _bkg_only_batch(self, b: np.ndarray) -> np.ndarray:
        n = self.n_events
        return -b + xlogy(n, b) - self.log_fact_n + n * math.log(self.bkg_pdf)

    def _sgn_plus_bkg_batch(self, b: np.ndarray, s: np.ndarray) -> np.ndarray:
        density = s[:, None] * self.gaussian_pdf[None, :] + b[:, None] * self.bkg_pdf
        with np.errstate(divide="ignore", invalid="ignore"):
            log_terms = np.log(density).sum(axis=1)
        return -(s + b) - self.log_fact_n + log_terms

    def _log_likelihood_batch(self, points: np.ndarray) -> np.ndarray:
        if self.model is Hypothesis.BKG_ONLY:
            return self._bkg_only_batch(points[:, 0])
        return self._sgn_plus_bkg_batch(points[:, 0], points[:, 1])

    def log_likelihood(self, pars: Sequence[float]) -> float:
        """Log-likelihood under the selected hypothesis."""
        if self.model is Hypothesis.BKG_ONLY:
            return self.log_likelihood_bkg_only(pars)
        return self.log_likelihood_sgn_plus_bkg(pars)

    def log_likelihood_bkg_only(self, pars: Sequence[float]) -> float:
        """Extended likelihood of all events as flat background with b expected counts."""
        return float(self._bkg_only_batch(np.array([float(pars[0])]))[0])

    def log_likelihood_sgn_plus_bkg(self, pars: Sequence[float]) -> float:
        """Extended likelihood of b background and s signal expected counts."""
        b = np.array([float(pars[0])])
        s = np.array([float(pars[1])])
        return float(self._sgn_plus_bkg_batch(b, s)[0])

    def log_prior(self, pars: Sequence[float]) -> float:
        """Flat prior normalised over the ranges of the free parameters."""
        total = 0.0
        for parameter, value in zip(self.parameters, pars):
            if parameter.fixed:
                continue
            if not parameter.lower <= value <= parameter.upper:
                return -math.inf
            total -= math.log(parameter.range_width)
        return total

    def compute_integral(self, samples: int = 1_000_000) -> float:
        """Integrate likelihood times prior by acceptance-rejection below its maximum.

        Needs a best fit, which sets the height of the sampling box.
        """
        if samples < 1:
            raise ValueError("need at least one sample")
        if self.best_fit is None:
            raise ValueError("find the mode before computing the integral")
        max_p = math.exp(self.log_posterior(self.best_fit))
        if not max_p > 0.0:
            raise ValueError("posterior vanishes at the best fit")
        free = [p for p in self.parameters if not p.fixed]
        log_prior = -sum(math.log(p.range_width) for p in free)

        accepted = 0
        for start in range(0, samples, _CHUNK):
            size = min(_CHUNK, samples - start)
            points = np.empty((size, len(self.parameters)))
            for column, parameter in enumerate(self.parameters):
                if parameter.fixed:
                    points[:, column] = parameter.fixed_value
                else:
                    points[:, column] = self.rng.uniform(parameter.lower, parameter.upper, size)
            p = np.exp(self._log_likelihood_batch(points) + log_prior)
            r = self.rng.uniform(0.0, max_p, size)
            accepted += int(np.count_nonzero(p >= r))

        volume = max_p * math.prod(p.range_width for p in free)
        acceptance = accepted / samples
        integral = acceptance * volume
        self.acceptance[self.model] = acceptance
        self.integrals[self.model] = integral
        self.max_posterior = max_p
        return integral

    def bayes_factor(self) -> float:
        """Posterior odds of signal-plus-background against background only, equal priors."""
        missing = [h.value for h in Hypothesis if h not in self.integrals]
        if missing:
            raise ValueError(f"integral not computed for: {', '.join(missing)}")
        prior_bkg = prior_sgn = 0.5
        bkg = self.integrals[Hypothesis.BKG_ONLY]
        if bkg == 0.0:
            raise ZeroDivisionError("background-only integral is zero")
        return self.integrals[Hypothesis.SGN_PLUS_BKG] * prior_sgn / bkg / prior_bkg


def _save_marginals(model: Evidence, output: str) -> None:
    free = [p for p in model.parameters if not p.fixed]
    fig = Figure(figsize=(8 * len(free), 6))
    axes = np.atleast_1d(fig.subplots(1, len(free)))
    for ax, parameter in zip(axes, free):
        density, edges = model.marginal_histogram(parameter.name)
        ax.stairs(density, edges, color="black")
        ax.set_xlabel(f"{parameter.name} {parameter.unit}")
    fig.savefig(output)


def main(argv: Sequence[str] | None = None) -> int:
    """Fit both hypotheses, integrate their posteriors and print the Bayes factor."""
    parser = argparse.ArgumentParser(description="Bayesian evidence and Bayes factor.")
    parser.add_argument("--signal", type=int, default=5)
    parser.add_argument("--background", type=int, default=25)
    parser.add_argument("--steps", type=int, default=100_000, help="Markov chain length")
    parser.add_argument("--samples", type=int, default=1_000_000, help="hit-and-miss samples")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--prefix", default="Evidence")
    args = parser.parse_args(argv)

    rng = np.random.default_rng(args.seed)
    model = Evidence("Evidence", args.signal, args.background, rng)
    for hypothesis in (Hypothesis.BKG_ONLY, Hypothesis.SGN_PLUS_BKG):
        model.reset_results()
        model.set_model(hypothesis)
        model.marginalize(args.steps, rng)
        model.find_mode(model.best_fit)
        _save_marginals(model, f"{args.prefix}_{hypothesis.value}_plots.png")
        print(model.summary())
        integral = model.compute_integral(args.samples)
        print(f"Computed integral with Acceptance-Rejection algorithm for {hypothesis.value} model")
        print(f"Max-P:      {model.max_posterior:g}")
        print(f"Acceptance: {model.acceptance[hypothesis]:g}")
        print(f"Integral: {integral:g}")
    print(f"Bayes factor: {model.bayes_factor():g}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())