"""A small Bayesian model framework: flat priors, mode finding and Metropolis sampling."""

from __future__ import annotations

import itertools
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize

_BAD_OBJECTIVE = 1e300


@dataclass
class Parameter:
    """A model parameter with a finite range, a histogram binning and an optional fixed value."""

    name: str
    lower: float
    upper: float
    latex: str = ""
    unit: str = ""
    bins: int = 100
    fixed_value: float | None = None

    def __post_init__(self) -> None:
        if not self.lower < self.upper:
            raise ValueError(f"parameter {self.name!r} needs lower < upper")
        if self.bins < 1:
            raise ValueError(f"parameter {self.name!r} needs at least one bin")

    @property
    def fixed(self) -> bool:
        return self.fixed_value is not None

    @property
    def range_width(self) -> float:
        return self.upper - self.lower

    @property
    def centre(self) -> float:
        return 0.5 * (self.lower + self.upper)

    def fix(self, value: float) -> None:
        """Hold the parameter at value during fits and sampling."""
        self.fixed_value = float(value)

    def unfix(self) -> None:
        """Let the parameter float again."""
        self.fixed_value = None


class BayesModel:
    """Base model with flat priors; subclasses supply the log-likelihood."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.parameters: list[Parameter] = []
        self.best_fit: np.ndarray | None = None
        self.best_fit_errors: np.ndarray | None = None
        self.chain: np.ndarray | None = None
        self._histograms: dict[str, tuple[np.ndarray, np.ndarray]] = {}

    def add_parameter(
        self,
        name: str,
        lower: float,
        upper: float,
        latex: str = "",
        unit: str = "",
        bins: int = 100,
    ) -> Parameter:
        """Append a parameter with a flat prior over [lower, upper]."""
        if any(p.name == name for p in self.parameters):
            raise ValueError(f"parameter {name!r} already defined")
        parameter = Parameter(name, float(lower), float(upper), latex, unit, int(bins))
        self.parameters.append(parameter)
        return parameter

    def log_likelihood(self, pars: Sequence[float]) -> float:
        """Log-likelihood of the data; a model without data is flat."""
        return 0.0

    def log_prior(self, pars: Sequence[float]) -> float:
        """Sum of flat log-priors of the free parameters; -inf outside their ranges."""
        total = 0.0
        for parameter, value in zip(self.parameters, pars):
            if parameter.fixed:
                continue
            if not parameter.lower <= value <= parameter.upper:
                return -math.inf
            total -= math.log(parameter.range_width)
        return total

    def log_posterior(self, pars: Sequence[float]) -> float:
        """Unnormalised log-posterior; -inf where prior or likelihood vanish."""
        if len(pars) != len(self.parameters):
            raise ValueError(f"expected {len(self.parameters)} values, got {len(pars)}")
        prior = self.log_prior(pars)
        if not math.isfinite(prior):
            return -math.inf
        try:
            likelihood = float(self.log_likelihood(pars))
        except (ValueError, ZeroDivisionError, OverflowError):
            return -math.inf
        if math.isnan(likelihood):
            return -math.inf
        return prior + likelihood

    def _free_indices(self) -> list[int]:
        return [i for i, p in enumerate(self.parameters) if not p.fixed]

    def _start_point(self, start: Sequence[float] | None) -> np.ndarray:
        if not self.parameters:
            raise ValueError("model has no parameters")
        if start is None:
            start = self.best_fit if self.best_fit is not None else [p.centre for p in self.parameters]
        point = np.array(start, dtype=float)
        if point.shape != (len(self.parameters),):
            raise ValueError(f"expected {len(self.parameters)} start values")
        for index, parameter in enumerate(self.parameters):
            if parameter.fixed:
                point[index] = parameter.fixed_value
        return point

    def find_mode(self, start: Sequence[float] | None = None) -> np.ndarray:
        """Maximise the posterior; stores and returns the best fit, and stores its errors."""
        base = self._start_point(start)
        free = self._free_indices()
        lower = np.array([p.lower for p in self.parameters])
        width = np.array([p.range_width for p in self.parameters])

        def to_point(u: np.ndarray) -> np.ndarray:
            point = base.copy()
            point[free] = lower[free] + u * width[free]
            return point

        def objective(u: np.ndarray) -> float:
            value = self.log_posterior(to_point(u))
            return -value if math.isfinite(value) else _BAD_OBJECTIVE

        if free:
            u0 = np.clip((base[free] - lower[free]) / width[free], 0.0, 1.0)
            result = minimize(
                objective,
                u0,
                method="Nelder-Mead",
                bounds=[(0.0, 1.0)] * len(free),
                options={"xatol": 1e-9, "fatol": 1e-9, "maxiter": 20_000, "maxfev": 40_000},
            )
            best = to_point(np.clip(result.x, 0.0, 1.0))
        else:
            best = base
        errors = np.zeros(len(self.parameters))
        if free:
            errors[free] = self._errors(best, free, width)
        self.best_fit = best
        self.best_fit_errors = errors
        return best.copy()

    def _safe_negative_log_likelihood(self, point: np.ndarray) -> float:
        try:
            return -float(self.log_likelihood(point))
        except (ValueError, ZeroDivisionError, OverflowError):
            return math.nan

    def _errors(self, best: np.ndarray, free: list[int], width: np.ndarray) -> np.ndarray:
        """Standard deviations from the inverse Hessian of -log L at the mode."""
        steps = 1e-4 * width[free]
        f0 = self._safe_negative_log_likelihood(best)

        def shifted(*moves: tuple[int, float]) -> float:
            point = best.copy()
            for slot, amount in moves:
                point[free[slot]] += amount
            return self._safe_negative_log_likelihood(point)

        hessian = np.zeros((len(free), len(free)))
        for a, b in itertools.combinations_with_replacement(range(len(free)), 2):
            ha, hb = steps[a], steps[b]
            if a == b:
                value = (shifted((a, ha)) - 2.0 * f0 + shifted((a, -ha))) / ha**2
            else:
                value = (
                    shifted((a, ha), (b, hb))
                    - shifted((a, ha), (b, -hb))
                    - shifted((a, -ha), (b, hb))
                    + shifted((a, -ha), (b, -hb))
                ) / (4.0 * ha * hb)
            hessian[a, b] = hessian[b, a] = value
        if not np.all(np.isfinite(hessian)):
            return np.full(len(free), np.nan)
        try:
            variances = np.diag(np.linalg.inv(hessian))
        except np.linalg.LinAlgError:
            return np.full(len(free), np.nan)
        return np.where(variances > 0.0, np.sqrt(np.abs(variances)), np.nan)

    def marginalize(self, n_steps: int = 100_000, rng: np.random.Generator | None = None) -> np.ndarray:
        """Run a Metropolis-Hastings chain and fill the marginal histograms.

        Returns the chain, one row per step.
        """
        if n_steps < 1:
            raise ValueError("need at least one step")
        free = self._free_indices()
        if not free:
            raise ValueError("model has no free parameters")
        rng = rng if rng is not None else np.random.default_rng()
        point = self._start_point(None)
        current = self.log_posterior(point)
        if not math.isfinite(current):
            raise ValueError("posterior vanishes at the starting point")
        width = np.array([p.range_width for p in self.parameters])
        scale = 0.05 * width[free]

        def step(point: np.ndarray, current: float) -> tuple[np.ndarray, float, bool]:
            proposal = point.copy()
            proposal[free] += scale * rng.standard_normal(len(free))
            candidate = self.log_posterior(proposal)
            if math.isfinite(candidate) and math.log(rng.random()) < candidate - current:
                return proposal, candidate, True
            return point, current, False

        accepted = 0
        for count in range(1, max(500, n_steps // 5) + 1):
            point, current, ok = step(point, current)
            accepted += ok
            if count % 100 == 0:
                rate = accepted / 100
                if rate > 0.35:
                    scale *= 1.3
                elif rate < 0.15:
                    scale /= 1.3
                accepted = 0

        rows = []
        log_values = []
        for _ in range(n_steps):
            point, current, _ = step(point, current)
            rows.append(point)
            log_values.append(current)
        chain = np.array(rows)
        self.chain = chain
        self.best_fit = chain[int(np.argmax(log_values))].copy()
        self._histograms = {
            parameter.name: np.histogram(
                chain[:, index],
                bins=parameter.bins,
                range=(parameter.lower, parameter.upper),
                density=True,
            )
            for index, parameter in enumerate(self.parameters)
            if not parameter.fixed
        }
        return chain

    def marginal_histogram(self, name: str) -> tuple[np.ndarray, np.ndarray]:
        """Normalised marginal posterior of a parameter as (density, edges)."""
        if name not in self._histograms:
            raise KeyError(f"no marginal distribution for {name!r}")
        density, edges = self._histograms[name]
        return density.copy(), edges.copy()

    def reset_results(self) -> None:
        """Forget the best fit, the chain and the marginal histograms."""
        self.best_fit = None
        self.best_fit_errors = None
        self.chain = None
        self._histograms = {}

    def summary(self) -> str:
        """Human-readable report of parameters and fit results."""
        lines = [f"Model: {self.name}"]
        for index, parameter in enumerate(self.parameters):
            line = f"  {parameter.name} in [{parameter.lower:g}, {parameter.upper:g}] {parameter.unit}".rstrip()
            if parameter.fixed:
                line += f" (fixed at {parameter.fixed_value:g})"
            if self.best_fit is not None:
                line += f"  best fit: {self.best_fit[index]:g}"
            if self.best_fit_errors is not None:
                line += f" +- {self.best_fit_errors[index]:g}"
            if self.chain is not None and not parameter.fixed:
                samples = self.chain[:, index]
                line += f"  marginal: {samples.mean():g} +- {samples.std():g}"
            lines.append(line)
        return "\n".join(lines)