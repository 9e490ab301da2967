"""
Core entry point for mixed model estimation.

Fits y = X beta + Z u + e with u ~ N(0, K Vu) and e ~ N(0, I Ve) by ML or
REML and returns the BLUE of beta, the BLUP of u and the variance
components. The pipeline is

    prepare_model -> reduce_model -> maximize_profile -> finalize_estimates

and holds no state between calls.
"""

from typing import Optional

from .control import MixedSolveControl
from .finalize import MixedSolveResult, finalize_estimates
from .likelihood import make_profile, maximize_profile
from .preprocess import prepare_model
from .spectral import reduce_model


def mixed_solve(
    y,
    Z=None,
    K=None,
    X=None,
    control: Optional[MixedSolveControl] = None
) -> MixedSolveResult:
    """
    Estimate a linear mixed model with a single random-effect variance.

    Parameters
    ----------
    y : array-like
        Response of length n; NaN / None / pd.NA mark missing observations,
        which are dropped together with the matching rows of X and Z
    Z : array-like, optional
        Random effect design (n x m), identity when omitted
    K : array-like, optional
        Relationship matrix (m x m), symmetric positive semi-definite,
        identity when omitted
    X : array-like, optional
        Fixed effect design (n x p), full column rank, intercept when omitted
    control : MixedSolveControl, optional
        Method, search bounds and optional outputs

    Returns
    -------
    MixedSolveResult
        Vu, Ve, beta, u, LL and, when requested, beta_SE, u_SE, beta_vcov
        and Hinv. Non-fatal numerical issues are listed in `warnings`.

    Raises
    ------
    DimensionMismatchError
        If the shapes of y, X, Z and K disagree
    RankDeficiencyError
        If X is not full column rank
    NotPositiveSemiDefiniteError
        If K is not positive semi-definite
    ComputationError
        If any numerical stage fails

    Examples
    --------
    >>> from pymixedsolve import mixed_solve, MixedSolveControl
    >>> from pymixedsolve.datasets import simulate_marker_trait
    >>> sim = simulate_marker_trait(n=200, m=1000, h2=0.5, seed=1)
    >>> fit = mixed_solve(sim['y'], Z=sim['Z'], control=MixedSolveControl(se=True))
    >>> fit.Vu, fit.Ve
    """
    control = control or MixedSolveControl()

    model = prepare_model(y, Z=Z, K=K, X=X)
    if control.monitoring:
        print(f"Mixed model: n={model.n} ({model.n_missing} missing removed), "
              f"p={model.p}, m={model.m}, method={control.method}")

    spectrum = reduce_model(model, control.spectral_method)
    if control.monitoring:
        print(f"Spectral reduction: {spectrum.path} path")

    profile = make_profile(control.method, spectrum, model)
    opt = maximize_profile(
        profile,
        bounds=control.bounds,
        tolerance=control.tolerance,
        grid_points=control.grid_points,
        max_iter=control.max_iter,
        verbose=control.monitoring,
    )

    return finalize_estimates(model, spectrum, profile, opt, control)
