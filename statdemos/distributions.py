"""Binomial and chi-square distributions, and a binomial posterior for p."""

from __future__ import annotations

import argparse
import itertools
import math
from collections.abc import Iterable, Sequence

import numpy as np
from matplotlib.figure import Figure

DEFAULT_PROBABILITIES = (0.1, 0.3, 0.5, 0.7, 0.9)
CHI_SQUARE_DOFS = (1, 2, 3, 5, 10, 20)


def factorial(n: float) -> float:
    """Return n! as a float; overflows to inf above n=170."""
    terms = list(itertools.takewhile(lambda x: x > 1.0, itertools.count(float(n), -1.0)))
    return math.prod(reversed(terms), start=1.0)


def binomial_coefficient(n: float, k: float) -> float:
    """Binomial coefficient from plain factorials; nan once n! overflows."""
    return factorial(n) / factorial(k) / factorial(n - k)


def _check_counts(n: float, k: float) -> None:
    if n < 0 or k < 0 or k > n:
        raise ValueError(f"need 0 <= k <= n, got k={k}, n={n}")


def _log_sum(start: float, stop: float) -> float:
    """Sum of log(i) for i = start, start+1, ... while i <= stop."""
    values = itertools.takewhile(lambda i: i <= stop, itertools.count(float(start), 1.0))
    return sum(math.log(i) for i in values)


def smart_binomial_coefficient(n: float, k: float) -> float:
    """Binomial coefficient computed as a difference of log sums."""
    _check_counts(n, k)
    return math.exp(_log_sum(int(n - k + 1), n) - _log_sum(1.0, k))


def binomial(k: float, n: float, p: float) -> float:
    """Binomial probability from the plain coefficient; valid up to n=170."""
    return binomial_coefficient(n, k) * p**k * (1.0 - p) ** (n - k)


def smart_binomial(k: float, n: float, p: float) -> float:
    """Binomial probability computed entirely in log space."""
    _check_counts(n, k)
    if not 0.0 < p < 1.0:
        raise ValueError(f"p must lie strictly between 0 and 1, got {p}")
    log_coeff = _log_sum(int(n - k + 1), n) - _log_sum(1.0, k)
    return math.exp(log_coeff + k * math.log(p) + (n - k) * math.log(1.0 - p))


def chi_square_pdf(x2: float, n: float) -> float:
    """Density of the chi-square distribution with n degrees of freedom at x2."""
    x = math.sqrt(x2)
    if x == 0.0 and n < 2.0:
        return math.inf
    p = 2.0 ** (-0.5 * n)
    p *= x ** (n - 2.0)
    p *= math.exp(-0.5 * x2)
    return p / math.gamma(0.5 * n)


def binomial_table(n: int, probabilities: Iterable[float]) -> dict[float, np.ndarray]:
    """Map each p to the array of P(k | n, p) for k = 0..n."""
    return {
        p: np.array([smart_binomial(k, n, p) for k in range(int(n) + 1)])
        for p in probabilities
    }


def binomial_posterior(n: float, k: float) -> tuple[np.ndarray, np.ndarray]:
    """Unnormalised posterior of p given k successes in n trials, on a fine grid.

    Returns the bin centres and the bin contents.
    """
    width = 0.01 / n
    low = -0.5 * width
    high = 1.0 + 0.5 * width
    n_bins = int((high - low) / width)
    centers = low + width * (np.arange(1, n_bins + 1) - 0.5)
    weights = np.zeros(n_bins)
    # The last bin is deliberately left empty.
    for index, x in enumerate(centers[:-1]):
        if 0.0 < x < 1.0:
            weights[index] = smart_binomial(k, n, float(x))
    return centers, weights


def _weight_total(weights: np.ndarray) -> float:
    total = float(np.sum(weights))
    if total == 0.0:
        raise ValueError("histogram has zero total weight")
    return total


def histogram_mean(centers: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted mean of bin centres."""
    centers = np.asarray(centers, dtype=float)
    weights = np.asarray(weights, dtype=float)
    return float(np.sum(centers * weights)) / _weight_total(weights)


def histogram_variance(centers: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted population variance of bin centres."""
    centers = np.asarray(centers, dtype=float)
    weights = np.asarray(weights, dtype=float)
    mean = histogram_mean(centers, weights)
    return float(np.sum(weights * (centers - mean) ** 2)) / _weight_total(weights)


def chi_square_toys(n: float, m: int, rng: np.random.Generator | None = None) -> np.ndarray:
    """Return m toy chi-square values, each the sum of n squared standard normals."""
    if m < 0:
        raise ValueError("number of toys must be non-negative")
    rng = rng if rng is not None else np.random.default_rng()
    draws = rng.standard_normal((int(m), int(math.ceil(n))))
    return np.sum(draws**2, axis=1)


def _plot_binomial(n: int, output: str) -> None:
    fig = Figure(figsize=(16, 9))
    ax = fig.subplots()
    ks = np.arange(n + 1)
    for style, (p, values) in zip(
        itertools.cycle(["-", "--", ":", "-."]), binomial_table(n, DEFAULT_PROBABILITIES).items()
    ):
        ax.step(ks, values, where="mid", linestyle=style, linewidth=2, label=f"p={p:f}")
    ax.set_xlabel("k")
    ax.set_ylabel("P(k)")
    ax.legend()
    fig.savefig(output)


def _plot_posterior(n: int, k: int, output: str) -> None:
    p = k / n
    ks = np.arange(n + 1)
    likelihood = [smart_binomial(x, n, p) for x in ks]
    centers, weights = binomial_posterior(n, k)
    print(f"Posterior mean: {histogram_mean(centers, weights):g}")
    print(f"Posterior variance:  {histogram_variance(centers, weights):g}")
    fig = Figure(figsize=(16, 9))
    top, bottom = fig.subplots(2, 1)
    top.step(ks, likelihood, where="mid")
    top.set_xlabel("k")
    top.set_ylabel("P(k|n,p)")
    bottom.plot(centers, weights, color="red")
    bottom.set_xlabel("p")
    bottom.set_ylabel("P(p|n,k)")
    fig.savefig(output)


def _plot_chi_square(toys: int, rng: np.random.Generator, output: str) -> None:
    fig = Figure(figsize=(16, 9))
    axes = fig.subplots(2, 3).ravel()
    for ax, dof in zip(axes, CHI_SQUARE_DOFS):
        high = dof + 5.0 * math.sqrt(2.0 * dof)
        n_bins = int(30.0 * high)
        counts, edges = np.histogram(chi_square_toys(dof, toys, rng), bins=n_bins, range=(0.0, high))
        width = edges[1] - edges[0]
        centers = 0.5 * (edges[:-1] + edges[1:])
        ax.step(centers, counts / toys / width, where="mid", label=f"Toy-MC n={dof}")
        ax.plot(centers, [chi_square_pdf(c, dof) for c in centers], color="red", label=f"Theoretical n={dof}")
        ax.set_xlabel("$\\chi^2$")
        ax.set_ylabel(f"P($\\chi^2$|n={dof})")
    fig.savefig(output)


def main(argv: Sequence[str] | None = None) -> int:
    """Run one of the distribution demos and save its figure."""
    parser = argparse.ArgumentParser(description="Binomial and chi-square distribution demos.")
    parser.add_argument("demo", choices=["binomial", "posterior", "chisquare"])
    parser.add_argument("--n", type=int, default=None, help="number of trials")
    parser.add_argument("--k", type=int, default=10, help="observed successes (posterior)")
    parser.add_argument("--toys", type=int, default=100000, help="toy experiments (chisquare)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default=None)
    args = parser.parse_args(argv)

    if args.demo == "binomial":
        _plot_binomial(args.n or 500, args.output or "Binomial.png")
    elif args.demo == "posterior":
        _plot_posterior(args.n or 100, args.k, args.output or "BinomialPosterior.png")
    else:
        _plot_chi_square(args.toys, np.random.default_rng(args.seed), args.output or "Chi2.png")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())