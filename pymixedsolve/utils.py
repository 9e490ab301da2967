"""
Utility functions for summarizing mixed model fits.
"""

import numpy as np
import pandas as pd
from typing import Optional, Tuple


def get_heritability(Vu: float, Ve: float, K: Optional[np.ndarray] = None) -> float:
    """
    Narrow-sense heritability from the variance components.

    h² = Vu * s / (Vu * s + Ve), where s is the mean diagonal of K so that
    Vu is on the scale of a single observation (s = 1 when K is omitted).

    Parameters
    ----------
    Vu : float
        Random effect variance
    Ve : float
        Residual variance
    K : np.ndarray, optional
        Relationship matrix used in the fit

    Returns
    -------
    float
        Heritability estimate in [0, 1]

    Raises
    ------
    ValueError
        If a variance is negative or both are zero

    Examples
    --------
    >>> get_heritability(2.0, 2.0)
    0.5
    """
    if Vu < 0 or Ve < 0:
        raise ValueError("Variance components must be non-negative")
    scale = 1.0 if K is None else float(np.mean(np.diag(np.asarray(K, dtype=float))))
    genetic = Vu * scale
    total = genetic + Ve
    if total <= 0:
        raise ValueError("Total variance must be positive")
    return genetic / total


def get_reliability(u_SE, Vu: float, K: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Reliability of each BLUP, r² = 1 - PEV / (Vu * K_ii).

    Parameters
    ----------
    u_SE : array-like
        Prediction-error standard deviations of u
    Vu : float
        Random effect variance
    K : np.ndarray, optional
        Relationship matrix (identity when omitted)

    Returns
    -------
    np.ndarray or pd.Series
        Reliabilities, labelled like u_SE when it is a Series
    """
    pev = np.asarray(u_SE, dtype=float) ** 2
    k_diag = np.ones_like(pev) if K is None else np.diag(np.asarray(K, dtype=float))
    rel = 1.0 - pev / (Vu * k_diag)
    if isinstance(u_SE, pd.Series):
        return pd.Series(rel, index=u_SE.index, name="reliability")
    return rel


def anova_variance_components(y, groups) -> Tuple[float, float]:
    """
    One-way random-effects ANOVA (method of moments) variance components.

    Parameters
    ----------
    y : array-like
        Response
    groups : array-like
        Group label of each observation

    Returns
    -------
    tuple
        (Vu, Ve): between-group and within-group variance estimates
    """
    df = pd.DataFrame({'y': np.asarray(y, dtype=float), 'g': np.asarray(groups)}).dropna()
    n_total = len(df)
    stats = df.groupby('g')['y'].agg(['mean', 'count'])
    k = len(stats)
    if k < 2 or n_total <= k:
        raise ValueError("Need at least two groups and one replicate within a group")

    grand_mean = df['y'].mean()
    ss_between = float(np.sum(stats['count'] * (stats['mean'] - grand_mean) ** 2))
    ss_within = float(np.sum((df['y'] - df['g'].map(stats['mean'])) ** 2))
    ms_between = ss_between / (k - 1)
    ms_within = ss_within / (n_total - k)

    # Effective group size for unbalanced designs
    n0 = (n_total - np.sum(stats['count'] ** 2) / n_total) / (k - 1)
    return (ms_between - ms_within) / n0, ms_within


def compute_aic_bic(loglik: float, n_params: int, n_obs: int) -> Tuple[float, float]:
    """
    Compute AIC and BIC from a maximized log-likelihood.

    Parameters
    ----------
    loglik : float
        Maximized log-likelihood
    n_params : int
        Number of estimated parameters (fixed effects plus two variances for ML)
    n_obs : int
        Number of observations

    Returns
    -------
    tuple
        (AIC, BIC)
    """
    aic = -2.0 * loglik + 2 * n_params
    bic = -2.0 * loglik + np.log(n_obs) * n_params
    return aic, bic
