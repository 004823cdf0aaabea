"""Change of variable: distributions of y = x**2 and of the ratio z = x / y."""

from __future__ import annotations

import argparse
import math
from collections.abc import Callable, Sequence

import numpy as np
from matplotlib.figure import Figure
from scipy.integrate import cumulative_trapezoid

GAUSSIAN_MEAN = 2.0
GAUSSIAN_SIGMA = 1.0
POISSON_LAMBDA = 3.0
_SAMPLING_POINTS = 10_000


def gaussian(x: float, integral: float, mean: float, sigma: float) -> float:
    """Gaussian density scaled to the given integral."""
    return integral / math.sqrt(2.0 * math.pi) / sigma * math.exp(
        -((x - mean) ** 2) / 2.0 / sigma**2
    )


def gaussian_squared(y: float, integral: float, mean: float, sigma: float) -> float:
    """Density of y = x**2 when x follows a scaled Gaussian."""
    if y <= 0.0:
        raise ValueError(f"y must be positive, got {y}")
    root = math.sqrt(y)
    return 0.5 * (gaussian(root, integral, mean, sigma) + gaussian(-root, integral, mean, sigma)) / root


def poisson(x: float, integral: float, lam: float) -> float:
    """Poisson probability extended to real x through the gamma function."""
    if lam <= 0.0:
        raise ValueError(f"lambda must be positive, got {lam}")
    if x < 0.0:
        return 0.0
    if x == 0.0:
        return integral * math.exp(-lam)
    return integral * math.exp(x * math.log(lam) - math.lgamma(x + 1.0) - lam)


def poisson_squared(y: float, integral: float, lam: float) -> float:
    """Density of y = x**2 when x follows the continuous Poisson shape."""
    if y <= 0.0:
        raise ValueError(f"y must be positive, got {y}")
    root = math.sqrt(y)
    return 0.5 * (poisson(root, integral, lam) + poisson(-root, integral, lam)) / root


def cauchy(z: float) -> float:
    """Standard Cauchy density, the law of the ratio of two standard normals."""
    return 1.0 / math.pi / (1.0 + z * z)


def _sample_function(
    func: Callable[[float], float],
    low: float,
    high: float,
    size: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Draw from an unnormalised density on [low, high] by inverting its tabulated CDF."""
    xs = np.linspace(low, high, _SAMPLING_POINTS + 1)
    pdf = np.array([func(float(x)) for x in xs])
    cdf = cumulative_trapezoid(pdf, xs, initial=0.0)
    return np.interp(rng.random(size) * cdf[-1], cdf, xs)


def _gaussian_range() -> tuple[float, float]:
    return GAUSSIAN_MEAN - 3.0 * GAUSSIAN_SIGMA, GAUSSIAN_MEAN + 3.0 * GAUSSIAN_SIGMA


def _poisson_range() -> tuple[float, float]:
    return 0.0, POISSON_LAMBDA + 5.0 * math.sqrt(POISSON_LAMBDA)


def simulate_squares(n: int, rng: np.random.Generator | None = None) -> dict[str, np.ndarray]:
    """Draw n Gaussian and n continuous-Poisson values of x, with their squares."""
    if n < 0:
        raise ValueError("number of samples must be non-negative")
    rng = rng if rng is not None else np.random.default_rng()
    g_low, g_high = _gaussian_range()
    p_low, p_high = _poisson_range()
    gauss_x = _sample_function(
        lambda x: gaussian(x, 1.0, GAUSSIAN_MEAN, GAUSSIAN_SIGMA), g_low, g_high, n, rng
    )
    poisson_x = _sample_function(lambda x: poisson(x, 1.0, POISSON_LAMBDA), p_low, p_high, n, rng)
    return {
        "gaussian": gauss_x,
        "gaussian_squared": gauss_x**2,
        "poisson": poisson_x,
        "poisson_squared": poisson_x**2,
    }


def simulate_ratio(
    n: int, rng: np.random.Generator | None = None
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Draw n pairs of standard normals x, y and return x, y and z = x / y."""
    if n < 0:
        raise ValueError("number of samples must be non-negative")
    rng = rng if rng is not None else np.random.default_rng()
    x = rng.normal(0.0, 1.0, n)
    y = rng.normal(0.0, 1.0, n)
    with np.errstate(divide="ignore", invalid="ignore"):
        z = x / y
    return x, y, z


def _hist_with_curve(ax, data, low, high, bins, curve, n, xlabel, ylabel) -> None:
    counts, edges = np.histogram(data, bins=bins, range=(low, high))
    width = edges[1] - edges[0]
    centers = 0.5 * (edges[:-1] + edges[1:])
    ax.step(centers, counts, where="mid", color="black")
    ax.plot(centers, [curve(c, n * width) for c in centers], color="red")
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)


def _plot_quadratic(n: int, rng: np.random.Generator, output: str) -> None:
    samples = simulate_squares(n, rng)
    bins = 10_000
    g_low, g_high = _gaussian_range()
    gs_high = max(g_low**2, g_high**2)
    gs_low = min(0.0, min(g_low**2, g_high**2))
    p_low, p_high = _poisson_range()

    fig = Figure(figsize=(16, 9))
    axes = fig.subplots(2, 2)
    _hist_with_curve(
        axes[0, 0], samples["gaussian"], g_low, g_high, bins,
        lambda x, a: gaussian(x, a, GAUSSIAN_MEAN, GAUSSIAN_SIGMA), n, "x", "Gaussian",
    )
    _hist_with_curve(
        axes[1, 0], samples["gaussian_squared"], gs_low, gs_high, bins,
        lambda y, a: gaussian_squared(y, a, GAUSSIAN_MEAN, GAUSSIAN_SIGMA) if y > 0 else math.nan,
        n, "y", "GaussianSquared",
    )
    _hist_with_curve(
        axes[0, 1], samples["poisson"], p_low, p_high, bins,
        lambda x, a: poisson(x, a, POISSON_LAMBDA), n, "x", "Poisson",
    )
    _hist_with_curve(
        axes[1, 1], samples["poisson_squared"], 0.0, p_high**2, bins,
        lambda y, a: poisson_squared(y, a, POISSON_LAMBDA) if y > 0 else math.nan,
        n, "y", "PoissonSquared",
    )
    fig.savefig(output)


def _plot_ratio(n: int, rng: np.random.Generator, output: str) -> None:
    x, y, z = simulate_ratio(n, rng)
    bins = 1000
    normal = lambda v, a: gaussian(v, a, 0.0, 1.0)  # noqa: E731
    fig = Figure(figsize=(16, 9))
    axes = fig.subplots(1, 3)
    _hist_with_curve(axes[0], x, -5.0, 5.0, bins, normal, n, "x [bananas]", "P(x)")
    _hist_with_curve(axes[1], y, -5.0, 5.0, bins, normal, n, "y [mangos]", "P(y)")
    _hist_with_curve(
        axes[2], z[np.isfinite(z)], -10.0, 10.0, bins,
        lambda v, a: a * cauchy(v), n, "z [bananas/mangos]", "P(z)",
    )
    fig.savefig(output)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the quadratic or ratio change-of-variable demo and save its figure."""
    parser = argparse.ArgumentParser(description="Change-of-variable demos.")
    parser.add_argument("demo", choices=["quadratic", "ratio"])
    parser.add_argument("--n", type=int, default=None, help="number of samples")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default=None)
    args = parser.parse_args(argv)

    rng = np.random.default_rng(args.seed)
    if args.demo == "quadratic":
        _plot_quadratic(args.n or 1_000_000, rng, args.output or "Quadratic.png")
    else:
        _plot_ratio(args.n or 100_000, rng, args.output or "Ratio.png")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())