"""
Validation and normalization of the model inputs y, X, Z and K.

Resolves omitted design matrices to concrete defaults, removes
observations with a missing response and checks shapes and the rank of X
before any decomposition runs.
"""

from __future__ import annotations
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .exceptions import DimensionMismatchError, RankDeficiencyError, ValidationError


@dataclass
class PreparedModel:
    """
    Cleaned model inputs.

    Attributes
    ----------
    y : np.ndarray
        Observed response, shape (n,)
    X : np.ndarray
        Fixed effect design, shape (n, p), full column rank
    Z : np.ndarray
        Random effect design, shape (n, m)
    K : np.ndarray
        Relationship matrix, shape (m, m)
    z_identity : bool
        True when Z was omitted (Z = I_n)
    k_identity : bool
        True when K was omitted (K = I_m)
    observed : np.ndarray
        Boolean mask over the original observations that were kept
    beta_names : list
        Labels of the fixed effects
    u_names : list or None
        Labels of the random effects, if available
    """
    y: np.ndarray
    X: np.ndarray
    Z: np.ndarray
    K: np.ndarray
    z_identity: bool
    k_identity: bool
    observed: np.ndarray
    beta_names: List
    u_names: Optional[List] = None

    @property
    def n(self) -> int:
        return self.y.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def m(self) -> int:
        return self.Z.shape[1]

    @property
    def n_missing(self) -> int:
        return int(np.sum(~self.observed))


def _as_matrix(A, name: str) -> Tuple[np.ndarray, Optional[List]]:
    """Convert array-like input to a 2-D float matrix, keeping column labels."""
    labels = None
    if isinstance(A, pd.DataFrame):
        labels = list(A.columns)
        A = A.to_numpy(dtype=float)
    elif isinstance(A, pd.Series):
        labels = [A.name] if A.name is not None else None
        A = A.to_numpy(dtype=float)
    else:
        try:
            A = np.asarray(A, dtype=float)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"{name} must be numeric: {e}") from e

    # 1-D input is a single column, as in y = X b with one covariate
    if A.ndim == 1:
        A = A.reshape(-1, 1)
    elif A.ndim != 2:
        raise DimensionMismatchError(
            f"{name} must be a vector or matrix, got {A.ndim} dimensions",
            name=name, expected=(None, None), actual=A.shape
        )
    return A, labels


def _as_response(y) -> np.ndarray:
    if isinstance(y, pd.DataFrame):
        if y.shape[1] != 1:
            raise DimensionMismatchError(
                f"y must have a single column, got {y.shape[1]}",
                name="y", expected=(None, 1), actual=y.shape
            )
        y = y.iloc[:, 0]
    if not isinstance(y, pd.Series):
        arr = np.asarray(y, dtype=object)
        if arr.ndim == 2 and 1 in arr.shape:
            arr = arr.ravel()
        if arr.ndim != 1:
            raise DimensionMismatchError(
                f"y must be a vector, got shape {arr.shape}",
                name="y", expected=(None,), actual=arr.shape
            )
        y = pd.Series(arr)

    missing = pd.isna(y).to_numpy()
    out = np.full(len(y), np.nan)
    try:
        out[~missing] = y[~missing].to_numpy(dtype=float)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"y must be numeric: {e}") from e
    return out


def prepare_model(y, Z=None, K=None, X=None) -> PreparedModel:
    """
    Validate inputs and build the matrices used by the numerical stages.

    Parameters
    ----------
    y : array-like
        Response of length n; NaN / None / pd.NA mark missing observations
    Z : array-like, optional
        Random effect design (n x m); identity when omitted
    K : array-like, optional
        Relationship matrix (m x m), symmetric PSD; identity when omitted
    X : array-like, optional
        Fixed effect design (n x p); intercept column when omitted

    Returns
    -------
    PreparedModel
        Filtered inputs with capability flags for the identity shortcuts

    Raises
    ------
    DimensionMismatchError
        If the shapes of y, X, Z and K disagree
    RankDeficiencyError
        If X is not full column rank after filtering
    ValidationError
        If too few observations remain or inputs are not numeric
    """
    y_full = _as_response(y)
    n_total = y_full.shape[0]
    if n_total == 0:
        raise ValidationError("y must contain at least one observation")

    if X is None:
        X_full = np.ones((n_total, 1))
        beta_names = ["(Intercept)"]
    else:
        X_full, x_labels = _as_matrix(X, "X")
        beta_names = x_labels if x_labels is not None else list(range(X_full.shape[1]))
    if X_full.shape[0] != n_total:
        raise DimensionMismatchError(
            f"X has {X_full.shape[0]} rows but y has length {n_total}",
            name="X", expected=(n_total, None), actual=X_full.shape
        )

    z_identity = Z is None
    u_names = None
    if z_identity:
        Z_full = np.eye(n_total)
    else:
        Z_full, u_names = _as_matrix(Z, "Z")
    if Z_full.shape[0] != n_total:
        raise DimensionMismatchError(
            f"Z has {Z_full.shape[0]} rows but y has length {n_total}",
            name="Z", expected=(n_total, None), actual=Z_full.shape
        )
    m = Z_full.shape[1]

    k_identity = K is None
    if k_identity:
        K_mat = np.eye(m)
    else:
        if u_names is None and isinstance(K, pd.DataFrame):
            u_names = list(K.index)
        K_mat, _ = _as_matrix(K, "K")
        if K_mat.shape != (m, m):
            raise DimensionMismatchError(
                f"K must be {m} x {m} to match the columns of Z, got {K_mat.shape}",
                name="K", expected=(m, m), actual=K_mat.shape
            )
        if not np.all(np.isfinite(K_mat)):
            raise ValidationError("K contains missing or non-finite values")
        scale = max(np.max(np.abs(K_mat)), 1.0)
        if not np.allclose(K_mat, K_mat.T, rtol=0.0, atol=1e-8 * scale):
            raise ValidationError("K must be symmetric")

    # Drop observations with a missing response from y, X and Z
    observed = ~np.isnan(y_full)
    y_obs = y_full[observed]
    X_obs = X_full[observed, :]
    Z_obs = Z_full[observed, :]
    n = y_obs.shape[0]
    p = X_obs.shape[1]

    if not np.all(np.isfinite(X_obs)):
        raise ValidationError("X contains missing values in observed rows")
    if not np.all(np.isfinite(Z_obs)):
        raise ValidationError("Z contains missing values in observed rows")
    if n < p + 1:
        raise ValidationError(
            f"Need at least {p + 1} observed responses for {p} fixed effects, got {n}"
        )

    XtX = X_obs.T @ X_obs
    rank_X = int(np.linalg.matrix_rank(XtX))
    if rank_X < p:
        raise RankDeficiencyError(
            f"X not full rank: rank {rank_X} < {p} columns, fixed effects are not identifiable",
            rank=rank_X, expected_rank=p
        )

    return PreparedModel(
        y=y_obs,
        X=X_obs,
        Z=Z_obs,
        K=K_mat,
        z_identity=z_identity,
        k_identity=k_identity,
        observed=observed,
        beta_names=beta_names,
        u_names=u_names,
    )
