"""Neyman confidence belts for a binomial and a Gaussian measurement."""

from __future__ import annotations

import argparse
import math
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure
from scipy.optimize import minimize

from statdemos.distributions import smart_binomial
from statdemos.ordering_rules import ONE_SIGMA, shortest_interval


def binomial_belt(n: int, dp: float = 0.001) -> tuple[np.ndarray, np.ndarray]:
    """Binomial probabilities P(k | n, p) on a grid of p bin centres.

    Returns the p centres and an array of shape (len(p), n + 1).
    """
    if n < 0 or not 0.0 < dp < 1.0:
        raise ValueError("need n >= 0 and 0 < dp < 1")
    n_bins = int(1.0 / dp + 0.5)
    p_values = 0.5 * dp + dp * np.arange(n_bins)
    belt = np.array([[smart_binomial(k, n, float(p)) for k in range(n + 1)] for p in p_values])
    return p_values, belt


def shortest_acceptance(row: Sequence[float], quantile: float = ONE_SIGMA) -> tuple[int, int]:
    """Inclusive index range of the shortest acceptance region in one belt row."""
    interval = shortest_interval(row, quantile)
    return interval.low, interval.high


def binomial_coverage(
    n: int, dp: float = 0.001, quantile: float = ONE_SIGMA
) -> tuple[np.ndarray, np.ndarray]:
    """Coverage of the shortest binomial belt as a function of p."""
    p_values, belt = binomial_belt(n, dp)
    coverage = np.empty(len(p_values))
    for index, row in enumerate(belt):
        left, right = shortest_acceptance(row, quantile)
        coverage[index] = row[left : right + 1].sum()
    return p_values, coverage


def gaussian_belt(
    dx: float = 0.01,
    sigma: float = 1.0,
    samples: int = 100_000,
    rng: np.random.Generator | None = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Fill a belt for x ~ N(theta / 2, sigma) by toy experiments.

    Returns the x edges, the theta edges and counts indexed as [x_bin, theta_bin].
    """
    if dx <= 0.0 or sigma <= 0.0 or samples < 0:
        raise ValueError("need dx > 0, sigma > 0 and samples >= 0")
    rng = rng if rng is not None else np.random.default_rng()
    min_x = -0.5 * dx
    max_x = 10.0 + 0.5 * dx
    n_bins = int((max_x - min_x) / dx + 0.5)
    x_edges = np.linspace(min_x, max_x, n_bins + 1)
    theta_edges = 2.0 * x_edges
    counts = np.zeros((n_bins, n_bins), dtype=np.int64)
    for b in range(n_bins):
        mu = dx * b
        counts[:, b], _ = np.histogram(mu + rng.normal(0.0, sigma, samples), bins=x_edges)
    return x_edges, theta_edges, counts


def invert_belt(belt: np.ndarray, column: int) -> np.ndarray:
    """Distribution of theta for a fixed x bin of the belt."""
    belt = np.asarray(belt)
    if not 0 <= column < belt.shape[0]:
        raise IndexError(f"x bin {column} outside 0..{belt.shape[0] - 1}")
    return belt[column, :].copy()


def fit_gaussian(centers: Sequence[float], counts: Sequence[float]) -> tuple[float, float, float]:
    """Binned Poisson-likelihood fit of a Gaussian; returns integral, mean and sigma."""
    centers = np.asarray(centers, dtype=float)
    counts = np.asarray(counts, dtype=float)
    if centers.size < 2 or centers.shape != counts.shape:
        raise ValueError("need matching centres and counts with at least two bins")
    total = counts.sum()
    if total <= 0.0:
        raise ValueError("histogram is empty")
    width = centers[1] - centers[0]
    mean0 = float(np.sum(centers * counts) / total)
    sigma0 = math.sqrt(float(np.sum(counts * (centers - mean0) ** 2) / total)) or width

    def model(params: np.ndarray) -> np.ndarray:
        log_integral, mean, log_sigma = params
        sigma = math.exp(log_sigma)
        return (
            math.exp(log_integral) * width / math.sqrt(2.0 * math.pi) / sigma
            * np.exp(-0.5 * ((centers - mean) / sigma) ** 2)
        )

    def negative_log_likelihood(params: np.ndarray) -> float:
        expected = np.maximum(model(params), 1e-300)
        return float(np.sum(expected - counts * np.log(expected)))

    result = minimize(
        negative_log_likelihood,
        np.array([math.log(total), mean0, math.log(sigma0)]),
        method="Nelder-Mead",
        options={"xatol": 1e-10, "fatol": 1e-12, "maxiter": 20_000, "maxfev": 40_000},
    )
    log_integral, mean, log_sigma = result.x
    return math.exp(log_integral), float(mean), math.exp(log_sigma)


def _plot_binomial(n: int, dp: float, output: str) -> None:
    p_values, belt = binomial_belt(n, dp)
    accepted = np.zeros_like(belt)
    for index, row in enumerate(belt):
        left, right = shortest_acceptance(row)
        accepted[index, left : right + 1] = 1.0
    coverage = (belt * accepted).sum(axis=1)

    extent = (-0.5, n + 0.5, 0.0, 1.0)
    fig = Figure(figsize=(24, 9))
    ax_belt, ax_68, ax_cov = fig.subplots(1, 3)
    for ax, image in ((ax_belt, belt), (ax_68, accepted)):
        ax.imshow(image, origin="lower", aspect="auto", extent=extent)
        ax.set_xlabel("k [counts]")
        ax.set_ylabel("p")
    ax_cov.plot(p_values, coverage)
    ax_cov.set_ylim(0.0, 1.0)
    ax_cov.set_xlabel("p")
    ax_cov.set_ylabel("Coverage(p)")
    fig.savefig(output)


def _plot_gaussian(dx: float, samples: int, rng: np.random.Generator, output: str) -> None:
    x_edges, theta_edges, counts = gaussian_belt(dx, 1.0, samples, rng)
    column = counts.shape[0] // 2
    theta = invert_belt(counts, column)
    theta_centers = 0.5 * (theta_edges[:-1] + theta_edges[1:])
    integral, mean, sigma = fit_gaussian(theta_centers, theta)
    print(f"Integral: {integral:g}  Mean: {mean:g}  Sigma: {sigma:g}")

    fig = Figure(figsize=(16, 9))
    ax_belt, ax_theta = fig.subplots(2, 1)
    ax_belt.imshow(
        counts.T, origin="lower", aspect="auto",
        extent=(x_edges[0], x_edges[-1], theta_edges[0], theta_edges[-1]),
    )
    ax_belt.set_xlabel("x [bananas]")
    ax_belt.set_ylabel("$\\theta$ [bananas]")
    width = theta_centers[1] - theta_centers[0]
    ax_theta.step(theta_centers, theta, where="mid", color="black")
    ax_theta.plot(
        theta_centers,
        integral * width / math.sqrt(2.0 * math.pi) / sigma
        * np.exp(-0.5 * ((theta_centers - mean) / sigma) ** 2),
        color="red",
    )
    ax_theta.set_xlabel("$\\theta$")
    fig.savefig(output)


def main(argv: Sequence[str] | None = None) -> int:
    """Build a binomial or Gaussian Neyman belt and save the figure."""
    parser = argparse.ArgumentParser(description="Neyman belt construction.")
    parser.add_argument("demo", choices=["binomial", "gaussian"])
    parser.add_argument("--n", type=int, default=10, help="trials (binomial)")
    parser.add_argument("--dp", type=float, default=0.001, help="p bin width (binomial)")
    parser.add_argument("--dx", type=float, default=0.01, help="x bin width (gaussian)")
    parser.add_argument("--samples", type=int, default=100_000, help="toys per theta (gaussian)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default=None)
    args = parser.parse_args(argv)

    if args.demo == "binomial":
        _plot_binomial(args.n, args.dp, args.output or "NeymanBeltBinomial.png")
    else:
        _plot_gaussian(
            args.dx, args.samples, np.random.default_rng(args.seed),
            args.output or "NeymanBeltGaussian.png",
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())