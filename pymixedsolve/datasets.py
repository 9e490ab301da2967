"""
Simulated datasets for pyMixedSolve examples and tests.
"""

import pandas as pd
import numpy as np
from typing import Dict, Optional


def simulate_markers(n: int = 200, m: int = 1000, seed: Optional[int] = None) -> pd.DataFrame:
    """
    Simulate a marker matrix coded as -1 / +1.

    Parameters
    ----------
    n : int, default=200
        Number of individuals (rows)
    m : int, default=1000
        Number of markers (columns)
    seed : int, optional
        Random seed for reproducibility

    Returns
    -------
    pd.DataFrame
        n x m marker matrix with columns 'M1', 'M2', ...
    """
    rng = np.random.default_rng(seed)
    markers = rng.choice([-1.0, 1.0], size=(n, m))
    return pd.DataFrame(
        markers,
        index=[f"ind{i + 1}" for i in range(n)],
        columns=[f"M{j + 1}" for j in range(m)],
    )


def simulate_relationship_matrix(
    n: int = 200,
    n_factors: Optional[int] = None,
    seed: Optional[int] = None
) -> pd.DataFrame:
    """
    Simulate a relationship matrix with population structure.

    Individuals share `n_factors` latent ancestry factors, giving a
    symmetric positive semi-definite matrix of rank n_factors, rescaled to
    a unit diagonal.

    Parameters
    ----------
    n : int, default=200
        Number of individuals
    n_factors : int, optional
        Number of latent factors (default n // 4)
    seed : int, optional
        Random seed for reproducibility

    Returns
    -------
    pd.DataFrame
        n x n relationship matrix indexed by individual
    """
    rng = np.random.default_rng(seed)
    q = n_factors if n_factors is not None else max(n // 4, 1)
    W = rng.normal(size=(n, q))
    K = W @ W.T / q
    d = 1.0 / np.sqrt(np.diag(K))
    K = K * d[:, None] * d[None, :]
    K = 0.5 * (K + K.T)
    names = [f"ind{i + 1}" for i in range(n)]
    return pd.DataFrame(K, index=names, columns=names)


def simulate_marker_trait(
    n: int = 200,
    m: int = 1000,
    h2: float = 0.5,
    mean: float = 10.0,
    missing_rate: float = 0.0,
    seed: Optional[int] = None
) -> Dict:
    """
    Simulate a polygenic trait from random marker effects.

    Parameters
    ----------
    n : int, default=200
        Number of individuals
    m : int, default=1000
        Number of markers
    h2 : float, default=0.5
        Heritability of the trait
    mean : float, default=10.0
        Population mean
    missing_rate : float, default=0.0
        Proportion of phenotypes set to missing
    seed : int, optional
        Random seed for reproducibility

    Returns
    -------
    dict
        'y' (pd.Series, may contain NaN), 'Z' (marker DataFrame),
        'u' (true marker effects), 'g' (true genetic values), 'Ve'
    """
    if not 0 < h2 < 1:
        raise ValueError("h2 must be in (0, 1)")
    rng = np.random.default_rng(seed)
    Z = simulate_markers(n, m, seed=rng.integers(2**32))

    u = rng.normal(0, 1, m)
    g = Z.to_numpy() @ u
    Ve = np.var(g) * (1 - h2) / h2
    y = mean + g + rng.normal(0, np.sqrt(Ve), n)

    if missing_rate > 0:
        missing_idx = rng.choice(n, size=int(n * missing_rate), replace=False)
        y[missing_idx] = np.nan

    return {
        'y': pd.Series(y, index=Z.index, name='y'),
        'Z': Z,
        'u': pd.Series(u, index=Z.columns, name='u'),
        'g': pd.Series(g, index=Z.index, name='g'),
        'Ve': Ve,
    }


def simulate_breeding_values(
    K,
    h2: float = 0.5,
    mean: float = 10.0,
    missing_rate: float = 0.0,
    seed: Optional[int] = None
) -> Dict:
    """
    Simulate breeding values g ~ N(0, K) and phenotypes y = mean + g + e.

    Parameters
    ----------
    K : array-like
        Relationship matrix (n x n), symmetric PSD
    h2 : float, default=0.5
        Heritability (relative to the mean diagonal of K)
    mean : float, default=10.0
        Population mean
    missing_rate : float, default=0.0
        Proportion of phenotypes set to missing
    seed : int, optional
        Random seed for reproducibility

    Returns
    -------
    dict
        'y' (pd.Series), 'g' (true breeding values), 'Ve'
    """
    if not 0 < h2 < 1:
        raise ValueError("h2 must be in (0, 1)")
    rng = np.random.default_rng(seed)
    index = K.index if isinstance(K, pd.DataFrame) else None
    K = np.asarray(K, dtype=float)
    n = K.shape[0]

    vals, vecs = np.linalg.eigh(K)
    g = vecs @ (np.sqrt(np.maximum(vals, 0.0)) * rng.normal(size=n))
    Ve = np.mean(np.diag(K)) * (1 - h2) / h2
    y = mean + g + rng.normal(0, np.sqrt(Ve), n)

    if missing_rate > 0:
        missing_idx = rng.choice(n, size=int(n * missing_rate), replace=False)
        y[missing_idx] = np.nan

    return {
        'y': pd.Series(y, index=index, name='y'),
        'g': pd.Series(g, index=index, name='g'),
        'Ve': Ve,
    }
