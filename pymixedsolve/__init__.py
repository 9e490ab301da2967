"""
pyMixedSolve: ML/REML estimation of single-component linear mixed models

Fits y = X beta + Z u + e with u ~ N(0, K Vu) and e ~ N(0, I Ve) through a
spectral decomposition that reduces the likelihood to a function of the
variance ratio alone, returning BLUEs, BLUPs and variance components.
"""

from .core import mixed_solve
from .control import MixedSolveControl
from .finalize import MixedSolveResult
from .estimator import BLUPRegressor
from .exceptions import (
    MixedSolveError,
    ValidationError,
    DimensionMismatchError,
    RankDeficiencyError,
    ComputationError,
    NotPositiveSemiDefiniteError,
    NumericalWarning,
)
from .plotting import plot_profile_likelihood, plot_blups
from .utils import get_heritability, get_reliability

__version__ = "0.1.0"
__author__ = "Python mixed.solve Implementation"

__all__ = [
    "mixed_solve",
    "MixedSolveControl",
    "MixedSolveResult",
    "BLUPRegressor",
    "MixedSolveError",
    "ValidationError",
    "DimensionMismatchError",
    "RankDeficiencyError",
    "ComputationError",
    "NotPositiveSemiDefiniteError",
    "NumericalWarning",
    "plot_profile_likelihood",
    "plot_blups",
    "get_heritability",
    "get_reliability",
]
