"""Simultaneous fit of pulser efficiency data and a physics spectrum sharing the efficiency."""

from __future__ import annotations

import argparse
import math
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure

from statdemos.bayes import BayesModel
from statdemos.efficiency import efficiency_curve, log_binomial
from statdemos.flip_flopping import gaussian_pdf


class SimultaneousFit(BayesModel):
    """Pulser counts at 1..20 keV and a Gaussian peak on flat background at 10..20 keV.

    The asymptotic efficiency is common to both data sets.  Parameters are
    S, B, Efficiency, Threshold_eff and Sigma_eff, in this order.
    """

    def __init__(
        self,
        name: str = "SimultaneousFit",
        n_injected: int = 1000,
        efficiency: float = 0.9,
        signal: int = 20,
        background: int = 20,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(name)
        if n_injected < 1:
            raise ValueError("number of injected events must be positive")
        if not 0.0 < efficiency <= 1.0:
            raise ValueError(f"efficiency must lie in (0, 1], got {efficiency}")
        if signal < 0 or background < 0 or signal + background == 0:
            raise ValueError("need non-negative signal and background with at least one event")
        rng = rng if rng is not None else np.random.default_rng()

        self.n_injected = int(n_injected)
        self.efficiency = float(efficiency)
        self.signal = int(signal)
        self.background = int(background)
        self.min_energy_eff = 1.0
        self.max_energy_eff = 20.0
        self.threshold = 3.0
        self.sigma_eff = 1.0

        self.counts: dict[int, int] = {}
        for energy in range(int(self.min_energy_eff), int(self.max_energy_eff) + 1):
            p = efficiency_curve(energy, self.efficiency, self.threshold, self.sigma_eff)
            self.counts[energy] = int(np.count_nonzero(rng.random(self.n_injected) < p))
        self._pulser_energies = np.array(list(self.counts), dtype=float)
        self._k = np.array(list(self.counts.values()), dtype=float)

        self.min_energy = 10.0
        self.max_energy = 20.0
        self.delta_energy = self.max_energy - self.min_energy
        self.mu = 15.0
        self.sigma = 1.2

        signal_energies = rng.normal(self.mu, self.sigma, self.signal)
        background_energies = rng.uniform(self.min_energy, self.max_energy, self.background)
        kept = []
        for energies in (signal_energies, background_energies):
            probability = efficiency_curve(energies, self.efficiency, self.threshold, self.sigma_eff)
            kept.append(energies[rng.random(energies.size) < probability])
        self.energies = np.concatenate(kept)
        self.gaussian_pdf = np.asarray(gaussian_pdf(self.energies, self.mu, self.sigma), dtype=float)
        self.bkg_pdf = 1.0 / self.delta_energy

        err = math.sqrt(self.signal + self.background)
        n_err = 7.0
        self.add_parameter(
            "S", max(0.0, self.signal - n_err * err), self.signal + n_err * err, "S", "[counts]", 100
        )
        self.add_parameter(
            "B", max(0.0, self.background - n_err * err), self.background + n_err * err,
            "B", "[counts]", 100,
        )
        self.add_parameter(
            "Efficiency",
            max(0.0, 0.95 * self.efficiency),
            min(1.0, 1.05 * self.efficiency),
            "#epsilon",
            "",
            100,
        )
        self.add_parameter(
            "Threshold_eff", 0.9 * self.threshold, 1.1 * self.threshold, "E_{thr}", "[keV]", 100
        )
        self.add_parameter(
            "Sigma_eff", 0.75 * self.sigma_eff, 1.25 * self.sigma_eff,
            "#sigma_{#epsilon}", "[keV]", 100,
        )

    def log_likelihood(self, pars: Sequence[float]) -> float:
        """Binomial pulser term plus extended likelihood of the physics events."""
        s, b, eff, threshold, sigma_eff = (float(v) for v in pars)
        p = efficiency_curve(self._pulser_energies, eff, threshold, sigma_eff)
        log_l = float(np.sum(log_binomial(self._k, self.n_injected, p)))

        # The spectrum starts where the efficiency is already flat, so the
        # asymptotic value scales both components.
        log_l -= eff * (s + b)
        density = s * eff * self.gaussian_pdf + b * eff * self.bkg_pdf
        with np.errstate(divide="ignore", invalid="ignore"):
            log_l += float(np.sum(np.log(density)))
        return log_l


def _save_marginals(model: SimultaneousFit, output: str) -> None:
    free = [p for p in model.parameters if not p.fixed]
    fig = Figure(figsize=(6 * len(free), 5))
    axes = np.atleast_1d(fig.subplots(1, len(free)))
    for ax, parameter in zip(axes, free):
        density, edges = model.marginal_histogram(parameter.name)
        ax.stairs(density, edges, color="black")
        ax.set_xlabel(f"{parameter.name} {parameter.unit}".rstrip())
    fig.savefig(output)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the simultaneous fit, save the marginal posteriors and print a summary."""
    parser = argparse.ArgumentParser(description="Simultaneous efficiency and spectrum fit.")
    parser.add_argument("--n-injected", type=int, default=1000)
    parser.add_argument("--efficiency", type=float, default=0.9)
    parser.add_argument("--signal", type=int, default=20)
    parser.add_argument("--background", type=int, default=20)
    parser.add_argument("--steps", type=int, default=100_000, help="Markov chain length")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default="SimultaneousFit_plots.png")
    args = parser.parse_args(argv)

    rng = np.random.default_rng(args.seed)
    model = SimultaneousFit(
        "SimultaneousFit", args.n_injected, args.efficiency, args.signal, args.background, rng
    )
    model.marginalize(args.steps, rng)
    model.find_mode(model.best_fit)
    _save_marginals(model, args.output)
    print(model.summary())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())