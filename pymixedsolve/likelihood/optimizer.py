"""
Bounded one-dimensional maximization of the profile likelihood.

The search runs on t = log(lambda), so the tolerance is relative in lambda
and the default bounds (1e-9, 1e9) are covered evenly. A coarse grid scan
first locates the best cell, a bounded Brent search refines it, and both
bounds are checked last so that an optimum at the edge of the interval is
reported exactly at the bound.
"""

from __future__ import annotations
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from scipy.optimize import minimize_scalar

from ..exceptions import ComputationError
from .objective import ProfileLikelihood


@dataclass
class OptimizationResult:
    """
    Result of the variance-ratio search.

    Attributes
    ----------
    lambda_opt : float
        Optimal ratio lambda* = Ve / Vu
    objective : float
        Minimized -2 log L (up to constants) at lambda*
    loglik : float
        Maximized log-likelihood at lambda*
    n_eval : int
        Number of objective evaluations
    converged : bool
        Whether the bounded search met its tolerance
    at_bound : bool
        Whether lambda* equals lambda_min or lambda_max
    log : list[dict]
        Grid scan and bound evaluations (for diagnostics)
    """
    lambda_opt: float
    objective: float
    loglik: float
    n_eval: int
    converged: bool
    at_bound: bool
    log: List[Dict] = field(default_factory=list)


def maximize_profile(
    profile: ProfileLikelihood,
    bounds: Tuple[float, float] = (1e-9, 1e9),
    tolerance: float = 1e-8,
    grid_points: int = 20,
    max_iter: int = 500,
    verbose: bool = False,
) -> OptimizationResult:
    """
    Find lambda* maximizing the profile log-likelihood within bounds.

    Parameters
    ----------
    profile : ProfileLikelihood
        REML or ML profile built from a reduced model
    bounds : tuple of float
        Search interval (lambda_min, lambda_max), both positive
    tolerance : float, default=1e-8
        Bracket width on the log(lambda) scale at convergence
    grid_points : int, default=20
        Size of the log-spaced pre-scan, bounds included (0 searches the
        whole interval)
    max_iter : int, default=500
        Maximum iterations of the bounded search
    verbose : bool, default=False
        If True, print progress

    Returns
    -------
    OptimizationResult

    Raises
    ------
    ComputationError
        If the objective cannot be evaluated anywhere in the interval
    """
    lower, upper = float(bounds[0]), float(bounds[1])
    n_eval = 0
    log = []

    def objective_at(lam: float) -> float:
        nonlocal n_eval
        n_eval += 1
        try:
            value = profile.objective(lam)
        except np.linalg.LinAlgError as e:
            raise ComputationError(
                f"{profile.method} objective failed at lambda={lam:.3e}: {e}", stage="optimizer"
            ) from e
        # Non-finite values (zero residual, negative eigenvalue) never win
        return float(value) if np.isfinite(value) else np.inf

    candidates = []
    converged = True

    if lower == upper:
        candidates.append((objective_at(lower), lower, True))
    else:
        t_lo, t_hi = np.log(lower), np.log(upper)
        bracket = (t_lo, t_hi)

        if grid_points:
            grid = np.linspace(t_lo, t_hi, grid_points)
            # Interior grid points only; the bounds are evaluated exactly below
            values = np.array([objective_at(np.exp(t)) for t in grid[1:-1]])
            for t, v in zip(grid[1:-1], values):
                log.append({"stage": "grid", "lambda": float(np.exp(t)), "objective": float(v)})
            if values.size:
                i = int(np.argmin(values)) + 1
                bracket = (grid[i - 1], grid[i + 1])
                candidates.append((float(values[i - 1]), float(np.exp(grid[i])), False))
                if verbose:
                    print(f"[{profile.method}] grid scan best lambda={np.exp(grid[i]):.4e} "
                          f"bracket=({np.exp(bracket[0]):.3e}, {np.exp(bracket[1]):.3e})")

        soln = minimize_scalar(
            lambda t: objective_at(np.exp(t)),
            bounds=bracket,
            method="bounded",
            options={"xatol": tolerance, "maxiter": max_iter},
        )
        converged = bool(soln.success)
        candidates.append((float(soln.fun), float(np.exp(soln.x)), False))
        log.append({"stage": "search", "lambda": float(np.exp(soln.x)),
                    "objective": float(soln.fun), "iterations": int(soln.nfev)})

        for lam in (lower, upper):
            value = objective_at(lam)
            log.append({"stage": "bound", "lambda": lam, "objective": value})
            candidates.append((value, lam, True))

    # Interior points win ties; a bound must be strictly better
    best_value, best_lambda, at_bound = min(candidates, key=lambda c: (c[0], c[2]))
    if not np.isfinite(best_value):
        raise ComputationError(
            f"{profile.method} objective is not finite anywhere in [{lower:.3e}, {upper:.3e}]",
            stage="optimizer"
        )

    loglik = profile.loglik_from_objective(best_value)
    if verbose:
        print(f"[{profile.method}] lambda*={best_lambda:.6e} LL={loglik:.6f} "
              f"evaluations={n_eval}{' (at bound)' if at_bound else ''}")

    return OptimizationResult(
        lambda_opt=best_lambda,
        objective=best_value,
        loglik=loglik,
        n_eval=n_eval,
        converged=converged,
        at_bound=at_bound,
        log=log,
    )
