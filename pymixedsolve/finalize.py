"""
Conversion of the optimal variance ratio into the full set of estimates.

Given lambda*, every quantity is assembled through the spectral basis:

    Vu   = RSS(lambda*) / df,  Ve = lambda* Vu
    beta = (X'H^{-1}X)^{-1} X'H^{-1}y
    u    = K Z' H^{-1} (y - X beta)

with H = Z K Z' + lambda* I, so V = Vu H and Vu V^{-1} = H^{-1}. Standard
errors follow from

    Var[beta]  = Vu (X'H^{-1}X)^{-1}
    Var[u - u] = Vu [K - K Z'H^{-1}Z K + K Z'H^{-1}X (X'H^{-1}X)^{-1} X'H^{-1}Z K]

H^{-1} is only formed densely when it is requested.
"""

from __future__ import annotations
import warnings
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from scipy import linalg

from .control import MixedSolveControl
from .exceptions import ComputationError, NumericalWarning
from .likelihood import ProfileLikelihood, OptimizationResult
from .preprocess import PreparedModel
from .spectral import Spectrum
from .utils import compute_aic_bic, get_heritability


@dataclass(frozen=True)
class MixedSolveResult:
    """
    Estimates of a single-component linear mixed model.

    Attributes
    ----------
    Vu : float
        Random effect variance
    Ve : float
        Residual variance
    beta : pd.Series
        BLUE of the fixed effects
    u : pd.Series
        BLUP of the random effects
    LL : float
        Maximized (restricted) log-likelihood
    lambda_opt : float
        Optimal ratio Ve / Vu
    method : str
        "REML" or "ML"
    n_obs : int
        Observations used after removing missing responses
    n_missing : int
        Observations removed
    n_fixed : int
        Columns of X
    n_random : int
        Columns of Z
    spectral_path : str
        Reduction used: "identity", "eigen" or "factor"
    converged : bool
        Whether the variance-ratio search met its tolerance
    k_scale : float
        Mean diagonal of K, used to put Vu on the observation scale
    beta_SE : pd.Series, optional
        Standard errors of beta (only with se=True)
    u_SE : pd.Series, optional
        Prediction-error standard deviations of u (only with se=True)
    beta_vcov : pd.DataFrame, optional
        Var[beta] (only with se=True)
    Hinv : np.ndarray, optional
        (Z K Z' + lambda* I)^{-1} over the observed rows (only with return_hinv=True)
    warnings : tuple of str
        Non-fatal numerical issues met while solving
    """
    Vu: float
    Ve: float
    beta: pd.Series
    u: pd.Series
    LL: float
    lambda_opt: float
    method: str
    n_obs: int
    n_missing: int
    n_fixed: int
    n_random: int
    spectral_path: str
    converged: bool
    k_scale: float = 1.0
    beta_SE: Optional[pd.Series] = None
    u_SE: Optional[pd.Series] = None
    beta_vcov: Optional[pd.DataFrame] = None
    Hinv: Optional[np.ndarray] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def heritability(self) -> float:
        """Narrow-sense heritability Vu * mean(diag K) / (Vu * mean(diag K) + Ve)."""
        return get_heritability(self.Vu * self.k_scale, self.Ve)

    @property
    def information_criteria(self) -> Tuple[float, float]:
        """(AIC, BIC); under REML only the two variances count as parameters."""
        if self.method == "ML":
            return compute_aic_bic(self.LL, self.n_fixed + 2, self.n_obs)
        return compute_aic_bic(self.LL, 2, self.n_obs - self.n_fixed)

    def to_dict(self) -> Dict:
        """Result as a dict keyed like the R rrBLUP output."""
        out = {
            'Vu': self.Vu,
            'Ve': self.Ve,
            'beta': self.beta.to_numpy(),
            'u': self.u.to_numpy(),
            'LL': self.LL,
        }
        if self.beta_SE is not None:
            out['beta.SE'] = self.beta_SE.to_numpy()
            out['u.SE'] = self.u_SE.to_numpy()
        if self.Hinv is not None:
            out['Hinv'] = self.Hinv
        return out

    def summary(self):
        """Print model summary."""
        print("Mixed Model Summary")
        print("=" * 50)
        print(f"Method: {self.method}")
        print(f"Observations: {self.n_obs} ({self.n_missing} missing removed)")
        print(f"Fixed effects: {self.n_fixed}   Random effects: {self.n_random}")
        print(f"Spectral path: {self.spectral_path}")
        print(f"Log-likelihood: {self.LL:.4f}")
        aic, bic = self.information_criteria
        print(f"AIC: {aic:.4f}   BIC: {bic:.4f}")

        print("\nVariance Components:")
        print(f"  Vu (random):   {self.Vu:.6f}")
        print(f"  Ve (residual): {self.Ve:.6f}")
        print(f"  lambda = Ve/Vu: {self.lambda_opt:.6e}")
        print(f"  Heritability:  {self.heritability:.4f}")

        print("\nFixed Effects:")
        for name, value in self.beta.items():
            se = f"  (SE {self.beta_SE[name]:.4f})" if self.beta_SE is not None else ""
            print(f"  {str(name):15s} {value:>12.6f}{se}")

        if self.warnings:
            print("\nWarnings:")
            for msg in self.warnings:
                print(f"  - {msg}")


def _warn(messages: List[str], msg: str):
    messages.append(msg)
    warnings.warn(msg, NumericalWarning, stacklevel=4)


def _checked_sqrt(values: np.ndarray, name: str, messages: List[str]) -> np.ndarray:
    """Square root of variances; negative entries become NaN and are reported."""
    negative = values < 0
    if np.any(negative):
        _warn(messages, f"{int(np.sum(negative))} negative variance(s) in {name}; "
                        f"standard errors set to NaN")
    out = np.full(values.shape, np.nan)
    out[~negative] = np.sqrt(values[~negative])
    return out


def finalize_estimates(
    model: PreparedModel,
    spectrum: Spectrum,
    profile: ProfileLikelihood,
    opt: OptimizationResult,
    control: MixedSolveControl,
) -> MixedSolveResult:
    """
    Assemble the result record at the optimal variance ratio.

    Parameters
    ----------
    model : PreparedModel
        Filtered inputs
    spectrum : Spectrum
        Diagonalized covariance structure
    profile : ProfileLikelihood
        Profile used by the search
    opt : OptimizationResult
        Output of maximize_profile
    control : MixedSolveControl
        Requested optional outputs

    Returns
    -------
    MixedSolveResult

    Raises
    ------
    ComputationError
        If X'H^{-1}X cannot be solved
    """
    messages: List[str] = []
    lam = opt.lambda_opt
    lower, upper = control.bounds

    if opt.at_bound:
        side = "lower" if lam == lower else "upper"
        _warn(messages, f"lambda*={lam:.3e} is at the {side} search bound; "
                        f"the bounds may be too narrow")
    if not opt.converged:
        _warn(messages, "variance ratio search did not converge within max_iter")

    Vu = profile.vu_estimate(lam)
    Ve = lam * Vu
    if not Vu >= 0:
        _warn(messages, f"negative variance component estimate Vu={Vu:.3e}")

    X, y = model.X, model.y
    HinvX = spectrum.hinv_dot(X, lam)
    W = X.T @ HinvX
    W = 0.5 * (W + W.T)
    try:
        beta = linalg.solve(W, X.T @ spectrum.hinv_dot(y, lam), assume_a="sym")
    except linalg.LinAlgError as e:
        raise ComputationError(f"X'H^-1 X is singular: {e}", stage="finalize") from e

    # (K Z')' = Z K because K is symmetric. An omitted Z keeps one column per
    # original observation, so unobserved individuals get u = 0
    ZK = model.Z if model.k_identity else model.Z @ model.K
    u = ZK.T @ spectrum.hinv_dot(y - X @ beta, lam)

    beta_index = pd.Index(model.beta_names)
    u_index = pd.Index(model.u_names) if model.u_names is not None else None
    k_diag = np.ones(model.m) if model.k_identity else np.diag(model.K).copy()

    beta_SE = u_SE = beta_vcov = None
    if control.se:
        Winv = linalg.inv(W)
        Winv = 0.5 * (Winv + Winv.T)
        vcov = Vu * Winv
        beta_vcov = pd.DataFrame(vcov, index=beta_index, columns=beta_index)
        beta_SE = pd.Series(_checked_sqrt(np.diag(vcov), "beta.SE", messages),
                            index=beta_index, name="beta.SE")

        HinvZK = spectrum.hinv_dot(ZK, lam)
        diag_WW = np.sum(ZK * HinvZK, axis=0)
        WWW = HinvZK.T @ X
        diag_WWW = np.sum((WWW @ Winv) * WWW, axis=1)
        pev = Vu * (k_diag - diag_WW + diag_WWW)
        u_SE = pd.Series(_checked_sqrt(pev, "u.SE", messages), index=u_index, name="u.SE")

    Hinv = spectrum.hinv(lam) if control.return_hinv else None

    return MixedSolveResult(
        Vu=float(Vu),
        Ve=float(Ve),
        beta=pd.Series(beta, index=beta_index, name="beta"),
        u=pd.Series(u, index=u_index, name="u"),
        LL=float(opt.loglik),
        lambda_opt=float(lam),
        method=profile.method,
        n_obs=model.n,
        n_missing=model.n_missing,
        n_fixed=model.p,
        n_random=model.m,
        spectral_path=spectrum.path,
        converged=opt.converged,
        k_scale=float(np.mean(k_diag)),
        beta_SE=beta_SE,
        u_SE=u_SE,
        beta_vcov=beta_vcov,
        Hinv=Hinv,
        warnings=tuple(messages),
    )
