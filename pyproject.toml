[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "statdemos"
version = "0.1.0"
description = "Worked examples of statistical methods for physics: sampling, change of variables, confidence belts and Bayesian fits"
requires-python = ">=3.10"
keywords = [
    "statistics",
    "physics",
    "monte-carlo",
    "confidence-intervals",
    "feldman-cousins",
    "neyman-belt",
    "bayesian",
    "likelihood",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "scipy",
    "matplotlib",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
statdemos-distributions = "statdemos.distributions:main"
statdemos-acceptance = "statdemos.acceptance:main"
statdemos-central-limit = "statdemos.central_limit:main"
statdemos-change-of-variable = "statdemos.change_of_variable:main"
statdemos-ordering-rules = "statdemos.ordering_rules:main"
statdemos-neyman-belt = "statdemos.neyman_belt:main"
statdemos-flip-flopping = "statdemos.flip_flopping:main"
statdemos-feldman-cousins = "statdemos.feldman_cousins:main"
statdemos-efficiency = "statdemos.efficiency:main"
statdemos-efficiency-study = "statdemos.efficiency_study:main"
statdemos-evidence = "statdemos.evidence:main"
statdemos-simultaneous-fit = "statdemos.simultaneous_fit:main"

[tool.hatch.build.targets.wheel]
packages = ["statdemos"]

[tool.hatch.build.targets.sdist]
include = ["statdemos", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
