"""Flip-flopping: switching between upper limits and central intervals spoils coverage."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure

from statdemos.neyman_belt import shortest_acceptance

GAUSSIAN_UPPER_90 = 1.282
"""One-sided 90% quantile of a standard Gaussian."""


def gaussian_pdf(x, mu, sigma: float):
    """Normal density with mean mu and width sigma; broadcasts over arrays."""
    if sigma <= 0.0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    x = np.asarray(x, dtype=float)
    mu = np.asarray(mu, dtype=float)
    return np.exp(-0.5 * ((x - mu) / sigma) ** 2) / np.sqrt(2.0 * np.pi) / sigma


def _centres(low: float, high: float, width: float) -> np.ndarray:
    if width <= 0.0 or high < low:
        raise ValueError("need a positive bin width and high >= low")
    edge_low = low - 0.5 * width
    edge_high = high + 0.5 * width
    n_bins = int((edge_high - edge_low) / width + 0.5)
    return edge_low + width * (np.arange(n_bins) + 0.5)


def neyman_grid(
    min_x: float, max_x: float, dx: float, min_mu: float, max_mu: float, dmu: float
) -> tuple[np.ndarray, np.ndarray]:
    """Bin centres along x and mu, with the first and last centres at the given bounds."""
    return _centres(min_x, max_x, dx), _centres(min_mu, max_mu, dmu)


def _check_quantile(quantile: float) -> None:
    if not 0.0 < quantile < 1.0:
        raise ValueError(f"quantile must lie strictly between 0 and 1, got {quantile}")


def central_belt(pdf: np.ndarray, quantile: float = 0.9) -> np.ndarray:
    """Acceptance mask of the shortest belt; pdf and result are indexed [mu, x]."""
    pdf = np.asarray(pdf, dtype=float)
    if pdf.ndim != 2:
        raise ValueError("pdf must be a 2-d array indexed [mu, x]")
    _check_quantile(quantile)
    belt = np.zeros(pdf.shape, dtype=bool)
    for index, row in enumerate(pdf):
        total = row.sum()
        if total <= 0.0:
            raise ValueError(f"row {index} of the pdf has no weight")
        left, right = shortest_acceptance(row / total, quantile)
        belt[index, left : right + 1] = True
    return belt


def combined_belt(
    central: np.ndarray, x: np.ndarray, mu: np.ndarray, sigma: float = 1.0
) -> np.ndarray:
    """Use a 90% upper limit below x = 3 sigma and the central belt above it."""
    central = np.asarray(central, dtype=bool)
    x = np.asarray(x, dtype=float)
    mu = np.asarray(mu, dtype=float)
    if central.shape != (mu.size, x.size):
        raise ValueError("central belt must have shape (len(mu), len(x))")
    if sigma <= 0.0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    upper = x / (3.0 * sigma) < 1.0
    limit = np.maximum(0.0, x) + GAUSSIAN_UPPER_90 * sigma
    below_limit = mu[:, None] <= limit[None, :]
    return np.where(upper[None, :], below_limit, central)


def coverage(belt: np.ndarray, pdf: np.ndarray, dx: float) -> np.ndarray:
    """Probability, for each mu, that x falls inside the belt."""
    belt = np.asarray(belt, dtype=bool)
    pdf = np.asarray(pdf, dtype=float)
    if belt.shape != pdf.shape:
        raise ValueError("belt and pdf must have the same shape")
    return (pdf * belt).sum(axis=1) * dx


def main(argv: Sequence[str] | None = None) -> int:
    """Build the central and flip-flopping belts and plot their coverage."""
    parser = argparse.ArgumentParser(description="Flip-flopping Neyman belt.")
    parser.add_argument("--dx", type=float, default=0.01)
    parser.add_argument("--dmu", type=float, default=0.01)
    parser.add_argument("--sigma", type=float, default=1.0)
    parser.add_argument("--output", default="FlipFlopping.png")
    args = parser.parse_args(argv)

    x, mu = neyman_grid(-3.0, 11.0, args.dx, 0.0, 7.0, args.dmu)
    pdf = gaussian_pdf(x[None, :], mu[:, None], args.sigma)
    central = central_belt(pdf, 0.9)
    combined = combined_belt(central, x, mu, args.sigma)
    cov = coverage(combined, pdf, args.dx)

    extent = (
        x[0] - 0.5 * args.dx, x[-1] + 0.5 * args.dx,
        mu[0] - 0.5 * args.dmu, mu[-1] + 0.5 * args.dmu,
    )
    fig = Figure(figsize=(16, 9))
    axes = fig.subplots(2, 2)
    for ax, image in zip(axes.ravel()[:3], (pdf, central, combined)):
        ax.imshow(image, origin="lower", aspect="auto", extent=extent)
        ax.set_xlabel("x [bananas]")
        ax.set_ylabel("$\\mu$ [bananas]")
    ax = axes[1, 1]
    ax.plot(mu, cov)
    ax.set_ylim(0.0, 1.0)
    ax.set_xlabel("$\\mu$ [bananas]")
    ax.set_ylabel("Coverage($\\mu$)")
    fig.savefig(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())