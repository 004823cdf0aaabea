"""Acceptance of the hit-and-miss method: unit ball inside a hypercube."""

from __future__ import annotations

import argparse
import math
from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure

_CHUNK = 100_000


def sphere_acceptance(dim: int, n: int, rng: np.random.Generator | None = None) -> float:
    """Percentage of n uniform points in [-1, 1]^dim that fall inside the unit ball."""
    if dim < 1:
        raise ValueError("dimension must be at least 1")
    if n < 1:
        raise ValueError("number of points must be positive")
    rng = rng if rng is not None else np.random.default_rng()
    accepted = 0
    remaining = n
    while remaining > 0:
        size = min(_CHUNK, remaining)
        points = rng.uniform(-1.0, 1.0, size=(size, dim))
        accepted += int(np.count_nonzero(np.sqrt(np.sum(points**2, axis=1)) <= 1.0))
        remaining -= size
    return accepted * 100.0 / n


def theoretical_acceptance(dim: float) -> float:
    """Volume of the unit ball over that of the enclosing cube, in percent."""
    return 100.0 * math.pi ** (0.5 * dim) / math.gamma(0.5 * dim + 1.0) / 2.0**dim


def acceptance_scan(
    max_dim: int, n: int, rng: np.random.Generator | None = None
) -> dict[int, float]:
    """Measured acceptance for every dimension from 2 to max_dim."""
    rng = rng if rng is not None else np.random.default_rng()
    return {dim: sphere_acceptance(dim, n, rng) for dim in range(2, max_dim + 1)}


def main(argv: Sequence[str] | None = None) -> int:
    """Scan dimensions, print acceptances and plot them against theory."""
    parser = argparse.ArgumentParser(description="Hit-and-miss acceptance versus dimension.")
    parser.add_argument("--n", type=int, default=1_000_000, help="points per dimension")
    parser.add_argument("--max-dim", type=int, default=15)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output", default="AcceptanceRejection.png")
    args = parser.parse_args(argv)

    rng = np.random.default_rng(args.seed)
    accepted: dict[int, float] = {}
    for dim in range(2, args.max_dim + 1):
        accepted[dim] = sphere_acceptance(dim, args.n, rng)
        print(f"Acceptance for Dim-{dim}: {accepted[dim]:g}")

    dims = list(accepted)
    fig = Figure(figsize=(16, 9))
    ax = fig.subplots()
    ax.set_yscale("log")
    ax.plot(dims, list(accepted.values()), "^", color="black", label="Acceptance-vs-Dim")
    ax.plot(
        dims,
        [theoretical_acceptance(dim) for dim in dims],
        "v",
        color="red",
        label="TheoreticalAcceptance-vs-Dim",
    )
    ax.set_xlabel("Dimension")
    ax.set_ylabel("Acceptance [%]")
    ax.legend()
    fig.savefig(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())