"""Ordering rules for 68% intervals on a Poisson posterior."""

from __future__ import annotations

import argparse
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from matplotlib.figure import Figure

ONE_SIGMA = 0.6826895


@dataclass(frozen=True)
class Interval:
    """An inclusive range of bin indices around the mode, with its enclosed weight."""

    low: int
    high: int
    mode: int
    coverage: float

    def errors(self, bin_width: float) -> tuple[float, float]:
        """Distances from the mode to the lower and upper edge, in axis units."""
        return bin_width * (self.mode - self.low), bin_width * (self.high - self.mode)

    @property
    def width_bins(self) -> int:
        return self.high - self.low + 1


def log_factorial(n: float) -> float:
    """Natural log of n!, summing log(i) down to 2."""
    total = 0.0
    while n > 1.0:
        total += math.log(n)
        n -= 1.0
    return total


def smart_poisson(n: float, lam: float, amplitude: float = 1.0) -> float:
    """Poisson probability of n for mean lam, computed in log space."""
    if lam <= 0.0:
        raise ValueError(f"lambda must be positive, got {lam}")
    return amplitude * math.exp(-lam + n * math.log(lam) - log_factorial(n))


def poisson_posterior(
    n: float, low: float = 0.0, high: float = 15.0, bins: int = 10_000
) -> tuple[np.ndarray, np.ndarray]:
    """Posterior of lambda for n observed counts, normalised to unit sum over bins."""
    if bins < 1 or high <= low or low < 0.0:
        raise ValueError("need bins >= 1 and 0 <= low < high")
    width = (high - low) / bins
    centers = low + width * (np.arange(bins) + 0.5)
    weights = np.array([smart_poisson(n, float(x)) for x in centers])
    return centers, weights / weights.sum()


def _prepare(weights: Sequence[float], quantile: float) -> np.ndarray:
    w = np.asarray(weights, dtype=float)
    if w.ndim != 1 or w.size == 0:
        raise ValueError("weights must be a non-empty 1-d sequence")
    if quantile <= 0.0 or quantile > w.sum():
        raise ValueError(f"quantile {quantile} cannot be reached with total weight {w.sum()}")
    return w


def _content(w: np.ndarray, index: int) -> float:
    return float(w[index]) if 0 <= index < w.size else 0.0


def _interval(w: np.ndarray, low: int, high: int, mode: int) -> Interval:
    low = max(low, 0)
    high = min(high, w.size - 1)
    return Interval(low, high, mode, float(w[low : high + 1].sum()))


def central_interval(weights: Sequence[float], quantile: float = ONE_SIGMA) -> Interval:
    """Grow symmetrically around the mode, one bin on each side at a time."""
    w = _prepare(weights, quantile)
    mode = int(np.argmax(w))
    integral = float(w[mode])
    shift = 1
    while integral < quantile:
        if mode - shift < 0 and mode + shift >= w.size:
            raise ValueError("ran out of bins before reaching the quantile")
        integral += _content(w, mode + shift) + _content(w, mode - shift)
        shift += 1
    return _interval(w, mode - shift, mode + shift, mode)


def equal_areas_interval(weights: Sequence[float], quantile: float = ONE_SIGMA) -> Interval:
    """Cut equal tails of (1 - quantile) / 2 from each side."""
    w = _prepare(weights, quantile)
    mode = int(np.argmax(w))
    threshold = 0.5 * (1.0 - quantile)

    integral = 0.0
    b = 0
    while integral < threshold:
        if b >= w.size:
            raise ValueError("tail threshold exceeds total weight")
        integral += w[b]
        b += 1
    low = b - 1

    integral = 0.0
    b = w.size - 1
    while integral < threshold:
        if b < 0:
            raise ValueError("tail threshold exceeds total weight")
        integral += w[b]
        b -= 1
    high = b + 1
    return _interval(w, low, high, mode)


def shortest_interval(weights: Sequence[float], quantile: float = ONE_SIGMA) -> Interval:
    """Add the larger neighbouring bin until the quantile is reached."""
    w = _prepare(weights, quantile)
    mode = int(np.argmax(w))
    left = right = mode
    integral = float(w[mode])
    while integral < quantile:
        if left - 1 < 0 and right + 1 >= w.size:
            raise ValueError("ran out of bins before reaching the quantile")
        int_left = _content(w, left - 1)
        int_right = _content(w, right + 1)
        if int_left > int_right:
            integral += int_left
            left -= 1
        elif int_left < int_right:
            integral += int_right
            right += 1
        else:
            integral += int_left + int_right
            left -= 1
            right += 1
    return _interval(w, left, right, mode)


def main(argv: Sequence[str] | None = None) -> int:
    """Compare the three ordering rules on the posterior for n counts."""
    parser = argparse.ArgumentParser(description="Ordering rules for confidence intervals.")
    parser.add_argument("--n", type=float, default=3.0, help="observed counts")
    parser.add_argument("--bins", type=int, default=10_000)
    parser.add_argument("--high", type=float, default=15.0)
    parser.add_argument("--output", default="OrderingRules.png")
    args = parser.parse_args(argv)

    centers, weights = poisson_posterior(args.n, 0.0, args.high, args.bins)
    width = args.high / args.bins
    mode = int(np.argmax(weights))
    print(f"Mode: {centers[mode]:g}\n")

    central = central_interval(weights)
    print(f"Symmetric error with central interval: {width * central.width_bins:g}")
    print(f"Coverage for central interval: {central.coverage:g}\n")

    equal = equal_areas_interval(weights)
    low_err, high_err = equal.errors(width)
    print(f"Low error for equal-areas method: {low_err:g}")
    print(f"High error for equal-areas method: {high_err:g}")
    print(f"Coverage for equal-areas method: {equal.coverage:g}\n")

    shortest = shortest_interval(weights)
    low_err, high_err = shortest.errors(width)
    print(f"Low error for shortest interval method: {low_err:g}")
    print(f"High error for shortest interval method: {high_err:g}")
    print(f"Coverage for shortest interval method: {shortest.coverage:g}\n")

    fig = Figure(figsize=(24, 9))
    for ax, interval in zip(fig.subplots(1, 3), (central, equal, shortest)):
        ax.plot(centers, weights, color="black")
        band = slice(interval.low, interval.high + 1)
        ax.fill_between(centers[band], weights[band], color="slateblue", alpha=0.6)
        ax.vlines(centers[mode], 0.0, weights[mode], color="red")
        ax.set_xlabel("$\\lambda$ [events]")
        ax.set_ylabel(f"P($\\lambda$|n={args.n:g})")
    fig.savefig(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())