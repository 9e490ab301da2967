"""
Plotting functions for mixed model fits.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Optional, Tuple

from .control import MixedSolveControl
from .finalize import MixedSolveResult
from .likelihood import make_profile, maximize_profile, profile_loglik
from .preprocess import prepare_model
from .spectral import reduce_model


def plot_profile_likelihood(y, Z=None, K=None, X=None,
                            control: Optional[MixedSolveControl] = None,
                            n_points: int = 100,
                            figsize: Tuple[int, int] = (8, 5),
                            ax: Optional[plt.Axes] = None) -> plt.Figure:
    """
    Plot the profile log-likelihood against log10(lambda).

    The curve spans the search bounds of `control`; the optimum found by
    the solver is marked, which shows whether it sits on a bound.

    Parameters
    ----------
    y, Z, K, X :
        Model inputs, as for mixed_solve
    control : MixedSolveControl, optional
        Method and bounds
    n_points : int, default=100
        Number of lambda values on the curve
    figsize : tuple, default=(8, 5)
        Figure size
    ax : plt.Axes, optional
        Axes to draw on

    Returns
    -------
    plt.Figure
        Matplotlib figure object
    """
    control = control or MixedSolveControl()
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.get_figure()

    model = prepare_model(y, Z=Z, K=K, X=X)
    spectrum = reduce_model(model, control.spectral_method)
    profile = make_profile(control.method, spectrum, model)

    lower, upper = control.bounds
    lambdas = np.logspace(np.log10(lower), np.log10(upper), n_points)
    ll = profile_loglik(profile, lambdas)
    opt = maximize_profile(profile, bounds=control.bounds, tolerance=control.tolerance,
                           grid_points=control.grid_points, max_iter=control.max_iter)

    ax.plot(np.log10(lambdas), ll, color='steelblue', lw=2)
    ax.axvline(np.log10(opt.lambda_opt), color='red', linestyle='--',
               label=f'λ* = {opt.lambda_opt:.3g}')
    ax.scatter([np.log10(opt.lambda_opt)], [opt.loglik], color='red', zorder=3)

    ax.set_xlabel('log10(λ) = log10(Ve / Vu)')
    ax.set_ylabel(f'{profile.method} log-likelihood')
    ax.set_title('Profile Log-Likelihood')
    ax.legend()
    ax.grid(True, alpha=0.3)

    return fig


def plot_blups(result: MixedSolveResult, true_effects=None,
               figsize: Tuple[int, int] = (8, 6),
               ax: Optional[plt.Axes] = None) -> plt.Figure:
    """
    Plot the BLUPs of the random effects.

    With `true_effects` the BLUPs are plotted against the truth and the
    correlation is reported; otherwise the sorted BLUPs are drawn with
    ±1 prediction-error SD when the fit has standard errors.

    Parameters
    ----------
    result : MixedSolveResult
        Fitted model
    true_effects : array-like, optional
        Simulated random effects, aligned with result.u
    figsize : tuple, default=(8, 6)
        Figure size
    ax : plt.Axes, optional
        Axes to draw on

    Returns
    -------
    plt.Figure
        Matplotlib figure object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.get_figure()

    u = result.u.to_numpy()

    if true_effects is not None:
        truth = np.asarray(true_effects, dtype=float)
        if truth.shape != u.shape:
            raise ValueError(f"true_effects has shape {truth.shape}, expected {u.shape}")
        r = np.corrcoef(truth, u)[0, 1]
        ax.scatter(truth, u, alpha=0.6, s=20)
        ax.set_xlabel('True Effect')
        ax.set_ylabel('BLUP')
        ax.set_title(f'BLUP vs True Effect (r = {r:.3f})')
    else:
        order = np.argsort(u)
        positions = np.arange(len(u))
        if result.u_SE is not None:
            se = result.u_SE.to_numpy()[order]
            ax.errorbar(positions, u[order], yerr=se, fmt='o', ms=3,
                        alpha=0.6, elinewidth=0.5)
        else:
            ax.plot(positions, u[order], 'o', ms=3, alpha=0.6)
        ax.axhline(0, color='gray', lw=1)
        ax.set_xlabel('Rank')
        ax.set_ylabel('BLUP')
        ax.set_title('Sorted BLUPs')

    ax.grid(True, alpha=0.3)
    return fig
