"""Feldman-Cousins belts built with the likelihood-ratio ordering principle."""

from __future__ import annotations

import argparse
import math
import warnings
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure

from statdemos.flip_flopping import coverage, gaussian_pdf, neyman_grid

_SQRT_2PI = math.sqrt(2.0 * math.pi)


def fmax(x):
    """Largest unit-Gaussian density at x over non-negative means."""
    arr = np.asarray(x, dtype=float)
    out = np.where(arr < 0.0, np.exp(-0.5 * arr**2), 1.0) / _SQRT_2PI
    return float(out) if out.ndim == 0 else out


def likelihood_ratio(pdf: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Ratio of each belt entry to the best achievable density at the same x."""
    pdf = np.asarray(pdf, dtype=float)
    x = np.asarray(x, dtype=float)
    if pdf.ndim != 2 or pdf.shape[1] != x.size:
        raise ValueError("pdf must be indexed [mu, x] and match the x grid")
    return pdf / fmax(x)[None, :]


def _accept_row(pdf_row: list[float], ratio_row: list[float], mode: int, target: float, index: int):
    last = len(pdf_row) - 1
    left = right = mode
    partial = pdf_row[mode]
    while partial < target:
        lam_left = ratio_row[left - 1] if left > 0 else 0.0
        lam_right = ratio_row[right + 1] if right < last else 0.0
        move_left = lam_left >= lam_right and left > 0
        move_right = lam_right >= lam_left and right < last
        if move_left:
            partial += pdf_row[left - 1]
            left -= 1
        if move_right:
            partial += pdf_row[right + 1]
            right += 1
        if not (move_left or move_right):
            warnings.warn(
                f"mu row {index} stopped at fraction {partial / (target or 1.0):g} of the target",
                RuntimeWarning,
                stacklevel=3,
            )
            break
    return left, right


def feldman_cousins_belt(pdf: np.ndarray, ratio: np.ndarray, quantile: float = 0.9) -> np.ndarray:
    """Acceptance mask built by adding x bins in order of decreasing likelihood ratio."""
    pdf = np.asarray(pdf, dtype=float)
    ratio = np.asarray(ratio, dtype=float)
    if pdf.ndim != 2 or pdf.shape != ratio.shape:
        raise ValueError("pdf and ratio must be 2-d arrays of the same shape")
    if not 0.0 < quantile < 1.0:
        raise ValueError(f"quantile must lie strictly between 0 and 1, got {quantile}")
    belt = np.zeros(pdf.shape, dtype=bool)
    for index, (pdf_row, ratio_row) in enumerate(zip(pdf, ratio)):
        mode = int(np.argmax(ratio_row))
        target = quantile * float(pdf_row.sum())
        left, right = _accept_row(pdf_row.tolist(), ratio_row.tolist(), mode, target, index)
        belt[index, left : right + 1] = True
    return belt


def belt_limits(belt: np.ndarray, mu: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Lowest and highest accepted mu in each x column; nan where none is accepted."""
    belt = np.asarray(belt, dtype=bool)
    mu = np.asarray(mu, dtype=float)
    if belt.ndim != 2 or belt.shape[0] != mu.size:
        raise ValueError("belt must be indexed [mu, x] and match the mu grid")
    any_accepted = belt.any(axis=0)
    low_index = np.argmax(belt, axis=0)
    high_index = belt.shape[0] - 1 - np.argmax(belt[::-1], axis=0)
    low = np.where(any_accepted, mu[low_index], np.nan)
    high = np.where(any_accepted, mu[high_index], np.nan)
    return low, high


def toy_coverage(
    belt: np.ndarray,
    x_edges: np.ndarray,
    mu: np.ndarray,
    sigma: float = 1.0,
    toys: int = 10_000,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Fraction of toy measurements x ~ N(mu, sigma) whose interval contains mu."""
    x_edges = np.asarray(x_edges, dtype=float)
    mu = np.asarray(mu, dtype=float)
    if x_edges.size != np.asarray(belt).shape[1] + 1:
        raise ValueError("x_edges must have one more entry than the belt has x bins")
    if toys < 1 or sigma <= 0.0:
        raise ValueError("need toys >= 1 and sigma > 0")
    rng = rng if rng is not None else np.random.default_rng()
    low, high = belt_limits(belt, mu)
    n_x = x_edges.size - 1
    result = np.empty(mu.size)
    for index, value in enumerate(mu):
        x = value + rng.normal(0.0, sigma, toys)
        bins = np.searchsorted(x_edges, x, side="right") - 1
        valid = (bins >= 0) & (bins < n_x)
        safe = np.clip(bins, 0, n_x - 1)
        accepted = valid & (value >= low[safe]) & (value <= high[safe])
        result[index] = np.count_nonzero(accepted) / toys
    return result


def upper_limit(belt: np.ndarray, x_index: int, mu_edges: np.ndarray) -> float:
    """Lower edge of the first mu bin, from the bottom, that the x column does not accept."""
    belt = np.asarray(belt, dtype=bool)
    mu_edges = np.asarray(mu_edges, dtype=float)
    if mu_edges.size != belt.shape[0] + 1:
        raise ValueError("mu_edges must have one more entry than the belt has mu bins")
    if not 0 <= x_index < belt.shape[1]:
        raise IndexError(f"x bin {x_index} outside 0..{belt.shape[1] - 1}")
    column = belt[:, x_index]
    rejected = np.flatnonzero(~column)
    first = int(rejected[0]) if rejected.size else column.size
    return float(mu_edges[first])


def _katrin_setup(quantile: float, dx: float = 0.01, dmu: float = 0.01):
    x, mu = neyman_grid(-5.0, 20.0, dx, 0.0, 4.0, dmu)
    pdf = gaussian_pdf(x[None, :], (mu**2)[:, None], 1.0)
    ratio = likelihood_ratio(pdf, x)
    belt = feldman_cousins_belt(pdf, ratio, quantile)
    return x, mu, pdf, ratio, belt


def _edges(centres: np.ndarray, width: float) -> np.ndarray:
    return np.append(centres - 0.5 * width, centres[-1] + 0.5 * width)


def katrin_limit(best_fit: float = -1.0, quantile: float = 0.9) -> float:
    """Upper limit on m for a measured m**2 with unit Gaussian resolution."""
    x, mu, _, _, belt = _katrin_setup(quantile)
    if not x[0] <= best_fit <= x[-1]:
        raise ValueError(f"best fit {best_fit} outside the x grid")
    x_index = int(np.argmin(np.abs(x - best_fit)))
    return upper_limit(belt, x_index, _edges(mu, 0.01))


def _plot_panels(fig, x, mu, pdf, ratio, belt, xlabel, ylabel):
    extent = (x[0], x[-1], mu[0], mu[-1])
    axes = fig.subplots(2, 3).ravel()
    axes[0].imshow(pdf, origin="lower", aspect="auto", extent=extent)
    axes[1].fill_between(x, pdf.max(axis=0), step="mid", color="slateblue")
    axes[1].plot(x, fmax(x), color="red")
    axes[1].set_xlabel(xlabel)
    axes[2].imshow(ratio, origin="lower", aspect="auto", extent=extent)
    axes[3].imshow(belt, origin="lower", aspect="auto", extent=extent)
    for ax in (axes[0], axes[2], axes[3]):
        ax.set_xlabel(xlabel)
        ax.set_ylabel(ylabel)
    return axes


def main(argv: Sequence[str] | None = None) -> int:
    """Build the Gaussian or the KATRIN Feldman-Cousins belt and save the figure."""
    parser = argparse.ArgumentParser(description="Feldman-Cousins confidence belts.")
    parser.add_argument("demo", choices=["gaussian", "katrin"])
    parser.add_argument("--quantile", type=float, default=0.9)
    parser.add_argument("--toys", type=int, default=10_000)
    parser.add_argument("--best-fit", type=float, default=-1.0)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default=None)
    args = parser.parse_args(argv)

    dx = dmu = 0.01
    fig = Figure(figsize=(16, 9))
    if args.demo == "gaussian":
        x, mu = neyman_grid(-3.0, 11.0, dx, 0.0, 7.0, dmu)
        pdf = gaussian_pdf(x[None, :], mu[:, None], 1.0)
        ratio = likelihood_ratio(pdf, x)
        belt = feldman_cousins_belt(pdf, ratio, args.quantile)
        axes = _plot_panels(fig, x, mu, pdf, ratio, belt, "x [bananas]", "$\\mu$ [bananas]")
        axes[4].plot(mu, coverage(belt, pdf, dx))
        toys = toy_coverage(
            belt, _edges(x, dx), mu, 1.0, args.toys, np.random.default_rng(args.seed)
        )
        axes[5].plot(mu, toys)
        for ax in axes[4:]:
            ax.set_ylim(0.0, 1.0)
            ax.set_xlabel("$\\mu$ [bananas]")
            ax.set_ylabel("Coverage($\\mu$)")
        output = args.output or "FeldmanCousins.png"
    else:
        x, mu, pdf, ratio, belt = _katrin_setup(args.quantile, dx, dmu)
        x_index = int(np.argmin(np.abs(x - args.best_fit)))
        limit = upper_limit(belt, x_index, _edges(mu, dmu))
        print(f"{100 * args.quantile:g}% C.L. limit on m: {limit:g} eV")
        axes = _plot_panels(fig, x, mu, pdf, ratio, belt, "m$^2$ [eV$^2$]", "m [eV]")
        axes[4].plot(mu, coverage(belt, pdf, dx))
        axes[4].set_ylim(0.0, 1.0)
        axes[4].set_xlabel("m [eV]")
        axes[4].set_ylabel("Coverage(m)")
        axes[5].set_visible(False)
        output = args.output or "FeldmanCousinsKATRIN.png"
    fig.savefig(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())