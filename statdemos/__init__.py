"""Demonstrations of statistical methods for physics data analysis: distributions, sampling, confidence belts and Bayesian fits."""

__version__ = "0.1.0"