"""
Control parameters for the mixed model solver.
"""

import numpy as np
from typing import Tuple

from .exceptions import ValidationError

METHODS = ("REML", "ML")
SPECTRAL_METHODS = ("auto", "eigen", "factor")


class MixedSolveControl:
    """
    Control parameters for mixed model estimation.

    The control object fixes the shape of the result: optional outputs are
    only populated when the matching flag is set.

    Parameters
    ----------
    method : {"REML", "ML"}, default="REML"
        Likelihood maximized over the variance ratio
    bounds : tuple of float, default=(1e-9, 1e9)
        Search interval (lambda_min, lambda_max) for lambda = Ve / Vu
    se : bool, default=False
        Whether to compute standard errors of beta and prediction errors of u
    return_hinv : bool, default=False
        Whether to return H^-1 = (Z K Z' + lambda I)^-1
    tolerance : float, default=1e-8
        Convergence tolerance of the bounded search on the log(lambda) scale
    grid_points : int, default=20
        Number of log-spaced points scanned before the bounded search (0 disables)
    max_iter : int, default=500
        Maximum number of bounded-search iterations
    spectral_method : {"auto", "eigen", "factor"}, default="auto"
        Decomposition used to diagonalize the likelihood
    monitoring : bool, default=False
        Whether to print progress
    """

    def __init__(
        self,
        method: str = "REML",
        bounds: Tuple[float, float] = (1e-9, 1e9),
        se: bool = False,
        return_hinv: bool = False,
        tolerance: float = 1e-8,
        grid_points: int = 20,
        max_iter: int = 500,
        spectral_method: str = "auto",
        monitoring: bool = False
    ):
        method = str(method).upper()
        if method not in METHODS:
            raise ValidationError(f"method must be 'REML' or 'ML', got {method!r}")
        if spectral_method not in SPECTRAL_METHODS:
            raise ValidationError(
                f"spectral_method must be one of {SPECTRAL_METHODS}, got {spectral_method!r}"
            )

        if len(bounds) != 2:
            raise ValidationError(f"bounds must be a pair (lambda_min, lambda_max), got {bounds!r}")
        lower, upper = float(bounds[0]), float(bounds[1])
        if not (np.isfinite(lower) and np.isfinite(upper)):
            raise ValidationError(f"bounds must be finite, got {bounds!r}")
        if lower <= 0 or upper <= 0:
            raise ValidationError(f"bounds must be positive, got {bounds!r}")
        if lower > upper:
            raise ValidationError(f"lambda_min must not exceed lambda_max, got {bounds!r}")

        if tolerance <= 0:
            raise ValidationError(f"tolerance must be positive, got {tolerance}")
        if grid_points < 0 or grid_points == 1:
            raise ValidationError(f"grid_points must be 0 or at least 2, got {grid_points}")
        if max_iter < 1:
            raise ValidationError(f"max_iter must be at least 1, got {max_iter}")

        self.method = method
        self.bounds = (lower, upper)
        self.se = bool(se)
        self.return_hinv = bool(return_hinv)
        self.tolerance = float(tolerance)
        self.grid_points = int(grid_points)
        self.max_iter = int(max_iter)
        self.spectral_method = spectral_method
        self.monitoring = monitoring

    def __repr__(self):
        return (f"MixedSolveControl(method={self.method!r}, bounds={self.bounds}, "
                f"se={self.se}, return_hinv={self.return_hinv}, "
                f"spectral_method={self.spectral_method!r})")
