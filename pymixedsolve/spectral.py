"""
Spectral reduction of the mixed model likelihood.

With H = Z K Z' + lambda I, the ML and REML profile likelihoods become
closed-form functions of lambda once two spectra are known:

    G = Z K Z' = U diag(phi) U'                     (n eigenvalues)
    S G S restricted to null(X') = Q diag(theta) Q' (n - p eigenvalues)

where S = I - X (X'X)^{-1} X'. All three paths below return the same
Spectrum interface, so the optimizer and finalizer never need to know
which one ran:

- "identity": Z and K omitted, G = I; no eigendecomposition at all
- "eigen":    eigendecomposition of G and S G S (n <= m + p)
- "factor":   SVDs of Z B' and S Z B' with K = B'B (n > m + p)
"""

from __future__ import annotations
import numpy as np
from dataclasses import dataclass
from typing import Optional
from scipy import linalg

from .exceptions import ComputationError, NotPositiveSemiDefiniteError
from .preprocess import PreparedModel

# Eigenvalues of G below this are taken as evidence that K is not PSD
PSD_TOLERANCE = 1e-6
# Ridge added to K before its Cholesky factorization
CHOLESKY_JITTER = 1e-6


@dataclass
class Spectrum:
    """
    Diagonalized form of the random-effect covariance.

    Attributes
    ----------
    phi : np.ndarray
        Eigenvalues of G = Z K Z', descending, shape (n,)
    theta : np.ndarray
        Eigenvalues of G projected onto the null space of X', shape (n - p,)
    Q : np.ndarray
        Orthonormal basis of the null space of X', shape (n, n - p)
    U : np.ndarray or None
        Eigenvectors of G, shape (n, n); None when G is the identity
    path : str
        Which reduction produced the spectrum
    """
    phi: np.ndarray
    theta: np.ndarray
    Q: np.ndarray
    U: Optional[np.ndarray] = None
    path: str = "eigen"

    @property
    def n(self) -> int:
        return self.phi.shape[0]

    def rotate(self, A: np.ndarray) -> np.ndarray:
        """Express A in the eigenbasis of G (U' A)."""
        return A if self.U is None else self.U.T @ A

    def back_rotate(self, B: np.ndarray) -> np.ndarray:
        """Map B from the eigenbasis back to observation space (U B)."""
        return B if self.U is None else self.U @ B

    def project(self, y: np.ndarray) -> np.ndarray:
        """Coordinates of y in the null space of X' (Q' y)."""
        return self.Q.T @ y

    def hinv_dot(self, A: np.ndarray, lam: float) -> np.ndarray:
        """Compute H^{-1} A without forming H^{-1}."""
        w = 1.0 / (self.phi + lam)
        R = self.rotate(np.asarray(A, dtype=float))
        R = R * w if R.ndim == 1 else R * w[:, None]
        return self.back_rotate(R)

    def hinv(self, lam: float) -> np.ndarray:
        """Dense H^{-1} = (Z K Z' + lambda I)^{-1}."""
        w = 1.0 / (self.phi + lam)
        if self.U is None:
            return np.diag(w)
        return (self.U * w) @ self.U.T


def _fixed_projection(X: np.ndarray) -> np.ndarray:
    """S = I - X (X'X)^{-1} X'."""
    n = X.shape[0]
    coef = linalg.solve(X.T @ X, X.T, assume_a="pos")
    S = np.eye(n) - X @ coef
    return 0.5 * (S + S.T)


def _null_space_basis(X: np.ndarray) -> np.ndarray:
    Q_full, _ = linalg.qr(X, mode="full")
    return Q_full[:, X.shape[1]:]


def _descending_eigh(A: np.ndarray):
    vals, vecs = linalg.eigh(A)
    return vals[::-1], vecs[:, ::-1]


def _identity_spectrum(model: PreparedModel) -> Spectrum:
    n, p = model.n, model.p
    return Spectrum(
        phi=np.ones(n),
        theta=np.ones(n - p),
        Q=_null_space_basis(model.X),
        U=None,
        path="identity",
    )


def _eigen_spectrum(model: PreparedModel) -> Spectrum:
    n, p = model.n, model.p
    ZK = model.Z if model.k_identity else model.Z @ model.K
    G = ZK @ model.Z.T
    G = 0.5 * (G + G.T)

    # The offset lifts the null-space eigenvalues of S Hb S above the
    # p zero eigenvalues that belong to the column space of X
    offset = np.sqrt(n)
    Hb = G + offset * np.eye(n)

    vals, U = _descending_eigh(Hb)
    phi = vals - offset
    min_phi = float(np.min(phi))
    if min_phi < -PSD_TOLERANCE:
        raise NotPositiveSemiDefiniteError(
            f"K not positive semi-definite (min eigenvalue of Z K Z' = {min_phi:.3e})",
            min_eigenvalue=min_phi
        )

    S = _fixed_projection(model.X)
    SHbS = S @ Hb @ S
    SHbS = 0.5 * (SHbS + SHbS.T)
    vals_s, vecs_s = _descending_eigh(SHbS)
    theta = vals_s[:n - p] - offset
    Q = vecs_s[:, :n - p]

    # Negative values here are rounding on a PSD spectrum
    return Spectrum(
        phi=np.maximum(phi, 0.0),
        theta=np.maximum(theta, 0.0),
        Q=Q,
        U=U,
        path="eigen",
    )


def _factor_spectrum(model: PreparedModel) -> Spectrum:
    n, p, m = model.n, model.p, model.m
    X = model.X

    if model.k_identity:
        ZBt = model.Z
    else:
        K = model.K + CHOLESKY_JITTER * np.eye(m)
        try:
            B = linalg.cholesky(K, lower=False)
        except linalg.LinAlgError as e:
            raise NotPositiveSemiDefiniteError("K not positive semi-definite") from e
        ZBt = model.Z @ B.T

    U, d, _ = linalg.svd(ZBt, full_matrices=True)
    phi = np.zeros(n)
    phi[:d.shape[0]] = d ** 2

    coef = linalg.solve(X.T @ X, X.T @ ZBt, assume_a="pos")
    SZBt = ZBt - X @ coef
    Us, ds, _ = linalg.svd(SZBt, full_matrices=False)

    # Directions with zero singular value may leak into the span of X; drop
    # them and complete the basis from the orthogonal complement instead
    tol = max(n, m) * np.finfo(float).eps * (ds[0] if ds.size else 0.0)
    r = min(int(np.sum(ds > tol)), n - p)
    Us = Us[:, :r]
    Q_full, _ = linalg.qr(np.hstack([X, Us]), mode="full")
    Q = np.hstack([Us, Q_full[:, p + r:]])
    theta = np.concatenate([ds[:r] ** 2, np.zeros(n - p - r)])

    return Spectrum(phi=phi, theta=theta, Q=Q, U=U, path="factor")


def reduce_model(model: PreparedModel, spectral_method: str = "auto") -> Spectrum:
    """
    Diagonalize the likelihood of a prepared model.

    Parameters
    ----------
    model : PreparedModel
        Output of prepare_model
    spectral_method : {"auto", "eigen", "factor"}, default="auto"
        "auto" takes the identity shortcut when Z and K were both omitted,
        otherwise "eigen" when n <= m + p and "factor" when n > m + p

    Returns
    -------
    Spectrum
        Eigenvalues and bases shared by the optimizer and finalizer

    Raises
    ------
    NotPositiveSemiDefiniteError
        If K is not positive semi-definite
    ComputationError
        If a decomposition fails to converge
    """
    if spectral_method == "auto":
        if model.z_identity and model.k_identity:
            return _identity_spectrum(model)
        spectral_method = "eigen" if model.n <= model.m + model.p else "factor"

    try:
        if spectral_method == "factor":
            return _factor_spectrum(model)
        elif spectral_method == "eigen":
            return _eigen_spectrum(model)
        else:
            raise ValueError(f"Unknown spectral method: {spectral_method}")
    except linalg.LinAlgError as e:
        raise ComputationError(f"Spectral decomposition failed: {e}", stage="spectral") from e
