"""Trigger-efficiency fit with binomial, Poisson or chi-square likelihoods."""

from __future__ import annotations

import argparse
import enum
import math
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure
from scipy.special import erf, xlog1py, xlogy

from statdemos.bayes import BayesModel


class FitMethod(enum.Enum):
    BINOMIAL = "binomial"
    POISSON = "poisson"
    CHI_SQUARE = "chi-square"


def _result(value):
    arr = np.asarray(value, dtype=float)
    return float(arr) if arr.ndim == 0 else arr


def efficiency_curve(energy, asymptotic: float, threshold: float, sigma: float):
    """Error-function trigger efficiency rising to the asymptotic value."""
    if sigma <= 0.0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    energy = np.asarray(energy, dtype=float)
    return _result(0.5 * asymptotic * (1.0 + erf((energy - threshold) / sigma)))


def log_binomial(k, n, p):
    """Binomial log-probability without the coefficient, which does not depend on p."""
    k = np.asarray(k, dtype=float)
    n = np.asarray(n, dtype=float)
    p = np.asarray(p, dtype=float)
    return _result(xlogy(k, p) + xlog1py(n - k, -p))


def log_poisson(n, lam):
    """Poisson log-probability without the n! term, which does not depend on lambda."""
    lam = np.asarray(lam, dtype=float)
    if np.any(lam < 0.0):
        raise ValueError("lambda must be non-negative")
    return _result(-lam + xlogy(np.asarray(n, dtype=float), lam))


def log_chi2(n, mu):
    """Gaussian log-density of n with mean mu and variance mu."""
    n = np.asarray(n, dtype=float)
    mu = np.asarray(mu, dtype=float)
    if np.any(mu <= 0.0):
        raise ValueError("mu must be positive")
    return _result(-0.5 * (n - mu) ** 2 / mu - np.log(math.sqrt(2.0 * math.pi) * mu))


class Efficiency(BayesModel):
    """Pulser data at 1..20 keV fitted with an error-function efficiency curve."""

    def __init__(
        self,
        name: str = "Efficiency",
        n: int = 100,
        efficiency: float = 0.9,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(name)
        if n < 1:
            raise ValueError("number of injected events must be positive")
        if not 0.0 < efficiency <= 1.0:
            raise ValueError(f"efficiency must lie in (0, 1], got {efficiency}")
        rng = rng if rng is not None else np.random.default_rng()
        self.method = FitMethod.POISSON
        self.n = int(n)
        self.min_energy = 1.0
        self.max_energy = 20.0
        self.threshold = 3.0
        self.sigma = 1.0
        self.efficiency = float(efficiency)

        self.counts: dict[int, int] = {}
        for energy in range(int(self.min_energy), int(self.max_energy) + 1):
            p = efficiency_curve(energy, self.efficiency, self.threshold, self.sigma)
            self.counts[energy] = int(np.count_nonzero(rng.random(self.n) < p))
        self._energies = np.array(list(self.counts), dtype=float)
        self._k = np.array(list(self.counts.values()), dtype=float)

        self.add_parameter(
            "Efficiency",
            max(0.0, 0.95 * self.efficiency),
            min(1.0, 1.05 * self.efficiency),
            "#epsilon",
            "",
            300,
        )
        self.add_parameter("Threshold", 0.9 * self.threshold, 1.1 * self.threshold, "E_{thr}", "[keV]", 300)
        self.add_parameter("Sigma", 0.9 * self.sigma, 1.1 * self.sigma, "#sigma", "[keV]", 300)

    def log_likelihood(self, pars: Sequence[float]) -> float:
        """Log-likelihood of the pulser counts under the selected fit method."""
        eff, threshold, sigma = pars
        p = efficiency_curve(self._energies, eff, threshold, sigma)
        if self.method is FitMethod.BINOMIAL:
            return float(np.sum(log_binomial(self._k, self.n, p)))
        if self.method is FitMethod.POISSON:
            return float(np.sum(log_poisson(self._k, p * self.n)))
        return float(np.sum(log_chi2(self._k, p * self.n)))


def main(argv: Sequence[str] | None = None) -> int:
    """Fit the same pulser data with all three likelihoods and compare the efficiency posteriors."""
    parser = argparse.ArgumentParser(description="Trigger efficiency fit.")
    parser.add_argument("--n", type=int, default=1000, help="injected events per energy")
    parser.add_argument("--p", type=float, default=0.99, help="asymptotic efficiency")
    parser.add_argument("--steps", type=int, default=100_000, help="Markov chain length")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default="Efficiency.png")
    args = parser.parse_args(argv)

    rng = np.random.default_rng(args.seed)
    model = Efficiency("Efficiency", args.n, args.p, rng)
    fig = Figure(figsize=(16, 9))
    ax = fig.subplots()
    labels = {FitMethod.BINOMIAL: "Binomial", FitMethod.POISSON: "Poisson", FitMethod.CHI_SQUARE: "$\\chi^2$"}
    colours = {FitMethod.BINOMIAL: "black", FitMethod.POISSON: "red", FitMethod.CHI_SQUARE: "green"}
    for method in FitMethod:
        model.method = method
        model.marginalize(args.steps, rng)
        model.find_mode(model.best_fit)
        print(model.summary())
        density, edges = model.marginal_histogram("Efficiency")
        ax.stairs(density, edges, color=colours[method], label=labels[method])
        model.reset_results()
    ax.set_xlabel("$\\epsilon$")
    ax.legend(loc="upper left", frameon=False)
    fig.savefig(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())