"""Central limit theorem: standardised sums of uniform variables."""

from __future__ import annotations

import argparse
import math
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure

_CHUNK = 1_000_000


def standardized_sum(n: int, size: int, rng: np.random.Generator | None = None) -> np.ndarray:
    """Return size values of (sum of n U(0,1) - n/2) * sqrt(12/n)."""
    if n < 1:
        raise ValueError("need at least one term in the sum")
    if size < 0:
        raise ValueError("size must be non-negative")
    rng = rng if rng is not None else np.random.default_rng()
    total = np.zeros(size)
    for _ in range(n):
        total += rng.random(size)
    return (total - 0.5 * n) * math.sqrt(12.0 / n)


def clt_histograms(
    max_n: int,
    samples: int,
    bins: int,
    low: float,
    high: float,
    rng: np.random.Generator | None = None,
) -> tuple[np.ndarray, list[np.ndarray]]:
    """Histogram standardised sums for n = 1..max_n.

    Returns the common bin edges and one count array per n.
    """
    if bins < 1 or high <= low:
        raise ValueError("need a positive number of bins and high > low")
    rng = rng if rng is not None else np.random.default_rng()
    edges = np.linspace(low, high, bins + 1)
    histograms = []
    for n in range(1, max_n + 1):
        counts = np.zeros(bins, dtype=np.int64)
        remaining = samples
        while remaining > 0:
            size = min(_CHUNK, remaining)
            chunk_counts, _ = np.histogram(standardized_sum(n, size, rng), bins=edges)
            counts += chunk_counts
            remaining -= size
        histograms.append(counts)
    return edges, histograms


def main(argv: Sequence[str] | None = None) -> int:
    """Histogram the standardised sums and save them, with the allowed range shaded."""
    parser = argparse.ArgumentParser(description="Central limit theorem demo.")
    parser.add_argument("--max-n", type=int, default=12)
    parser.add_argument("--samples", type=int, default=100_000_000)
    parser.add_argument("--bins", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--pdf", default="CentralLimit.pdf")
    parser.add_argument("--image", default="CentralLimitLog.png")
    args = parser.parse_args(argv)

    low, high = -10.0, 10.0
    edges, histograms = clt_histograms(
        args.max_n, args.samples, args.bins, low, high, np.random.default_rng(args.seed)
    )
    centers = 0.5 * (edges[:-1] + edges[1:])

    columns = 3
    rows = max(1, math.ceil(args.max_n / columns))
    fig = Figure(figsize=(16, 9))
    axes = np.atleast_1d(fig.subplots(rows, columns)).ravel()
    for ax in axes[len(histograms):]:
        ax.set_visible(False)
    for n, (ax, counts) in enumerate(zip(axes, histograms), start=1):
        peak = float(counts.max()) if counts.size else 0.0
        half_width = math.sqrt(3.0 * n)
        ax.axvspan(-half_width, half_width, color="0.85", linewidth=0)
        ax.step(centers, counts, where="mid", color="black")
        ax.set_yscale("log")
        ax.set_ylim(1e-1, 1.1 * peak if peak > 0 else 1.0)
        ax.set_xlabel("g")
        ax.text(0.98, 0.95, f"N = {n}", transform=ax.transAxes, ha="right", va="top")
    fig.savefig(args.pdf)
    fig.savefig(args.image)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())