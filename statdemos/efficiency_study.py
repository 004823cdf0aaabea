"""Toy Monte Carlo study of efficiency fits with three likelihood choices."""

from __future__ import annotations

import argparse
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np
from matplotlib.figure import Figure

from statdemos.efficiency import Efficiency, FitMethod

_FIT_ORDER = (FitMethod.BINOMIAL, FitMethod.POISSON, FitMethod.CHI_SQUARE)
_COLOURS = {FitMethod.BINOMIAL: "black", FitMethod.POISSON: "red", FitMethod.CHI_SQUARE: "blue"}


@dataclass
class StudyResult:
    """Best-fit values and their errors for every toy of one (n, p) case.

    Arrays in ``estimates`` and ``errors`` have one row per toy and one column per
    parameter (efficiency, threshold, sigma).
    """

    n: int
    p: float
    estimates: dict[FitMethod, np.ndarray] = field(default_factory=dict)
    errors: dict[FitMethod, np.ndarray] = field(default_factory=dict)

    def weights(self, method: FitMethod, index: int = 0) -> np.ndarray:
        """Inverse-variance weights of one parameter; nan where the error is unusable."""
        errors = self.errors[method][:, index]
        with np.errstate(divide="ignore", invalid="ignore"):
            weights = 1.0 / errors**2
        return np.where(np.isfinite(weights) & (weights > 0.0), weights, np.nan)

    def _usable(self, method: FitMethod, index: int) -> tuple[np.ndarray, np.ndarray]:
        weights = self.weights(method, index)
        mask = np.isfinite(weights)
        if not mask.any():
            raise ValueError(f"no toy of {method.value} has a usable error")
        return self.estimates[method][mask, index], weights[mask]

    def weighted_mean(self, method: FitMethod, index: int = 0) -> float:
        """Inverse-variance weighted mean of one parameter over the toys."""
        values, weights = self._usable(method, index)
        return float(np.sum(values * weights) / np.sum(weights))

    def efficiency_histogram(
        self, method: FitMethod, bins: int = 1000, low: float = 0.8, high: float = 1.0
    ) -> tuple[np.ndarray, np.ndarray]:
        """Weighted histogram of the fitted efficiency, scaled by the total weight."""
        values, weights = self._usable(method, 0)
        contents, edges = np.histogram(values, bins=bins, range=(low, high), weights=weights)
        return contents / weights.sum(), edges


def run_study(
    n_values: Iterable[int],
    p_values: Iterable[float],
    toys: int = 1000,
    rng: np.random.Generator | None = None,
) -> list[StudyResult]:
    """Fit ``toys`` fresh pulser data sets for every (n, p) with each likelihood.

    Results are ordered with n in the outer and p in the inner loop.
    """
    if toys < 1:
        raise ValueError("need at least one toy experiment")
    rng = rng if rng is not None else np.random.default_rng()
    p_values = list(p_values)
    results = []
    for n in n_values:
        for p in p_values:
            best: dict[FitMethod, list[np.ndarray]] = {m: [] for m in _FIT_ORDER}
            errs: dict[FitMethod, list[np.ndarray]] = {m: [] for m in _FIT_ORDER}
            for _ in range(toys):
                model = Efficiency("Efficiency", n, p, rng)
                for method in _FIT_ORDER:
                    model.method = method
                    best[method].append(model.find_mode())
                    errs[method].append(model.best_fit_errors.copy())
            results.append(
                StudyResult(
                    n=int(n),
                    p=float(p),
                    estimates={m: np.array(v) for m, v in best.items()},
                    errors={m: np.array(v) for m, v in errs.items()},
                )
            )
    return results


def main(argv: Sequence[str] | None = None) -> int:
    """Run the toy study and plot the efficiency distributions of each case."""
    parser = argparse.ArgumentParser(description="Toy study of efficiency fits.")
    parser.add_argument("--n", type=int, nargs="+", default=[100, 1000, 10000])
    parser.add_argument("--p", type=float, nargs="+", default=[0.9, 0.95, 0.99])
    parser.add_argument("--toys", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default="Efficiency.png")
    args = parser.parse_args(argv)

    results = run_study(args.n, args.p, args.toys, np.random.default_rng(args.seed))
    fig = Figure(figsize=(16, 9))
    axes = np.atleast_1d(fig.subplots(len(args.n), len(args.p), squeeze=False)).ravel()
    for ax, result in zip(axes, results):
        print(f"{result.n}\t{result.p:f}")
        for method in (FitMethod.POISSON, FitMethod.BINOMIAL, FitMethod.CHI_SQUARE):
            try:
                contents, edges = result.efficiency_histogram(method)
            except ValueError:
                continue
            ax.stairs(
                contents, edges, color=_COLOURS[method],
                fill=method is FitMethod.POISSON, label=method.value,
            )
        ax.set_title(f"n={result.n} p={result.p:g}")
    fig.savefig(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())