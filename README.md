# statdemos

Small, self-contained demonstrations of statistical methods used in physics
data analysis. Results are computed with NumPy and SciPy; figures are drawn
with Matplotlib and written to image files.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `statdemos.distributions`: factorials and binomial coefficients computed
  directly (`factorial`, `binomial_coefficient`, `binomial`, which overflow
  above n = 170) and in log space (`smart_binomial_coefficient`,
  `smart_binomial`); `chi_square_pdf`, `chi_square_toys`, `binomial_table`,
  `binomial_posterior`, `histogram_mean` and `histogram_variance`.
- `statdemos.acceptance`: `sphere_acceptance`, the percentage of uniform
  points of the cube [-1, 1]^d inside the unit ball, `theoretical_acceptance`
  and `acceptance_scan`.
- `statdemos.central_limit`: `standardized_sum` of uniform variables and
  `clt_histograms`.
- `statdemos.change_of_variable`: densities of x and of y = x² for a Gaussian
  and a continuous Poisson x (`gaussian`, `gaussian_squared`, `poisson`,
  `poisson_squared`), the Cauchy density of the ratio of two standard
  normals (`cauchy`), and `simulate_squares` / `simulate_ratio`.
- `statdemos.ordering_rules`: `poisson_posterior` and three interval rules,
  `central_interval`, `equal_areas_interval` and `shortest_interval`, each
  returning an `Interval` of bin indices with its coverage.
- `statdemos.neyman_belt`: `binomial_belt`, `shortest_acceptance`,
  `binomial_coverage`, a toy-filled `gaussian_belt`, `invert_belt` and a
  binned Poisson-likelihood `fit_gaussian`.
- `statdemos.flip_flopping`: `gaussian_pdf`, `neyman_grid`, `central_belt`,
  `combined_belt` (upper limit below x = 3σ, central belt above) and
  `coverage`.
- `statdemos.feldman_cousins`: `fmax`, `likelihood_ratio`,
  `feldman_cousins_belt`, `belt_limits`, `toy_coverage`, `upper_limit` and
  `katrin_limit`, the upper limit on m from a measured m² with unit Gaussian
  resolution.
- `statdemos.bayes`: `Parameter` and `BayesModel`, a base class with flat
  priors, mode finding with error estimates from the Hessian
  (`find_mode`), a Metropolis-Hastings sampler (`marginalize`),
  `marginal_histogram`, `reset_results` and `summary`.
- `statdemos.efficiency`: the `Efficiency` model of pulser counts at 1–20 keV
  with an error-function efficiency curve, fitted with a binomial, Poisson
  or chi-square likelihood chosen by `FitMethod`.
- `statdemos.efficiency_study`: `run_study`, a toy study of the three
  efficiency fits, returning `StudyResult` objects.
- `statdemos.evidence`: the `Evidence` model, a Gaussian peak over flat
  background under two `Hypothesis` values, with evidence integrals by
  hit-and-miss sampling (`compute_integral`) and `bayes_factor`.
- `statdemos.simultaneous_fit`: `SimultaneousFit`, a joint fit of pulser
  data and a physics spectrum sharing the asymptotic efficiency.

## Command-line demonstrations

Every command takes `--help`. Commands with several demonstrations take the
demonstration's name as the first argument.

```
statdemos-distributions binomial|posterior|chisquare [--n N] [--k K] [--toys M] [--seed S] [--output FILE]
statdemos-acceptance [--n N] [--max-dim D] [--seed S] [--output FILE]
statdemos-central-limit [--max-n N] [--samples K] [--bins B] [--seed S] [--pdf FILE] [--image FILE]
statdemos-change-of-variable quadratic|ratio [--n N] [--seed S] [--output FILE]
statdemos-ordering-rules [--n N] [--bins B] [--high X] [--output FILE]
statdemos-neyman-belt binomial|gaussian [--n N] [--dp DP] [--dx DX] [--samples K] [--seed S] [--output FILE]
statdemos-flip-flopping [--dx DX] [--dmu DMU] [--sigma SIGMA] [--output FILE]
statdemos-feldman-cousins gaussian|katrin [--quantile Q] [--toys M] [--best-fit X] [--seed S] [--output FILE]
statdemos-efficiency [--n N] [--p P] [--steps K] [--seed S] [--output FILE]
statdemos-efficiency-study [--n N ...] [--p P ...] [--toys M] [--seed S] [--output FILE]
statdemos-evidence [--signal S] [--background B] [--steps K] [--samples M] [--seed S] [--prefix NAME]
statdemos-simultaneous-fit [--n-injected N] [--efficiency P] [--signal S] [--background B] [--steps K] [--seed S] [--output FILE]
```

Several commands also print results: the acceptance per dimension, the
posterior mean and variance, the errors and coverage of each interval rule,
the fitted Gaussian parameters, the Feldman-Cousins limit on m, fit
summaries, evidence integrals and the Bayes factor.

With their default settings the central limit demonstration and the
efficiency study draw very many random numbers and take a long time.

## Using the library

```python
import numpy as np

from statdemos.distributions import smart_binomial, chi_square_pdf
from statdemos.acceptance import sphere_acceptance, theoretical_acceptance
from statdemos.ordering_rules import poisson_posterior, shortest_interval

rng = np.random.default_rng(1)

# Probability of 50 successes out of 500 trials with p = 0.1
print(smart_binomial(50, 500, 0.1))

# Chi-square density at x² = 3 for 5 degrees of freedom
print(chi_square_pdf(3.0, 5))

# Percentage of the 5-dimensional cube inside the unit ball
print(sphere_acceptance(5, 100_000, rng), theoretical_acceptance(5))

# Shortest 68% interval of the posterior of lambda for 3 observed counts
centers, weights = poisson_posterior(3)
interval = shortest_interval(weights)
print(centers[interval.low], centers[interval.high], interval.coverage)
```

Random number generators are passed in as `numpy.random.Generator` objects,
so every simulation can be reproduced by seeding the generator; the commands
take `--seed` for the same purpose.

## What it does not do

Figures are only written to files; no interactive plotting window is
opened. The Bayesian models provide their own simple sampler and optimiser;
they do not write Markov chains to disk or produce correlation or
knowledge-update plots.