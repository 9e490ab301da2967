"""
Profile log-likelihoods of the variance ratio lambda = Ve / Vu.

Both objectives are written as -2 log L up to additive constants,

    f(lambda) = df * log(RSS(lambda)) + sum_i log(e_i + lambda)

with Vu profiled out as RSS(lambda) / df. For REML the e_i are the
projected eigenvalues theta and RSS is a weighted sum of squares of Q'y;
for ML the e_i are the eigenvalues phi of Z K Z' and RSS comes from a
generalized least squares fit in the eigenbasis.
"""

from __future__ import annotations
import numpy as np
from abc import ABC, abstractmethod
from typing import Tuple

from ..preprocess import PreparedModel
from ..spectral import Spectrum


class ProfileLikelihood(ABC):
    """Base class for profile likelihoods over the variance ratio."""

    @property
    @abstractmethod
    def method(self) -> str:
        """Likelihood name."""
        pass

    @property
    @abstractmethod
    def df(self) -> int:
        """Degrees of freedom used to profile out Vu."""
        pass

    @abstractmethod
    def eigenvalues(self) -> np.ndarray:
        """Eigenvalues entering the log-determinant term."""
        pass

    @abstractmethod
    def rss(self, lam: float) -> float:
        """Weighted residual sum of squares at lambda."""
        pass

    def objective(self, lam: float) -> float:
        """-2 log L(lambda) up to constants; minimized by the optimizer."""
        return self.df * np.log(self.rss(lam)) + np.sum(np.log(self.eigenvalues() + lam))

    def vu_estimate(self, lam: float) -> float:
        """Profiled estimate of Vu at lambda."""
        return self.rss(lam) / self.df

    def loglik_from_objective(self, value: float) -> float:
        df = self.df
        return -0.5 * (value + df + df * np.log(2.0 * np.pi / df))

    def loglik(self, lam: float) -> float:
        """Maximized log-likelihood at a fixed lambda."""
        return self.loglik_from_objective(self.objective(lam))


class REMLProfile(ProfileLikelihood):
    """Restricted likelihood of Q'y, free of the fixed effects."""

    def __init__(self, theta: np.ndarray, eta: np.ndarray):
        self.theta = np.asarray(theta, dtype=float)
        self.eta_sq = np.asarray(eta, dtype=float) ** 2

    @property
    def method(self) -> str:
        return "REML"

    @property
    def df(self) -> int:
        return self.theta.shape[0]

    def eigenvalues(self) -> np.ndarray:
        return self.theta

    def rss(self, lam: float) -> float:
        return float(np.sum(self.eta_sq / (self.theta + lam)))


class MLProfile(ProfileLikelihood):
    """Full likelihood of y with beta profiled out by GLS at each lambda."""

    def __init__(self, phi: np.ndarray, omega: np.ndarray, UX: np.ndarray):
        self.phi = np.asarray(phi, dtype=float)
        self.omega = np.asarray(omega, dtype=float)
        self.UX = np.asarray(UX, dtype=float)

    @property
    def method(self) -> str:
        return "ML"

    @property
    def df(self) -> int:
        return self.phi.shape[0]

    def eigenvalues(self) -> np.ndarray:
        return self.phi

    def gls(self, lam: float) -> Tuple[np.ndarray, float]:
        """Generalized least squares fit of U'y on U'X with weights 1/(phi + lambda)."""
        w = 1.0 / (self.phi + lam)
        WX = self.UX * w[:, None]
        beta = np.linalg.solve(self.UX.T @ WX, WX.T @ self.omega)
        resid = self.omega - self.UX @ beta
        return beta, float(np.sum(w * resid ** 2))

    def rss(self, lam: float) -> float:
        return self.gls(lam)[1]


def make_profile(method: str, spectrum: Spectrum, model: PreparedModel) -> ProfileLikelihood:
    """
    Build the profile likelihood for a reduced model.

    Parameters
    ----------
    method : {"REML", "ML"}
        Likelihood to profile
    spectrum : Spectrum
        Output of reduce_model
    model : PreparedModel
        Output of prepare_model

    Returns
    -------
    ProfileLikelihood
    """
    if method == "REML":
        return REMLProfile(spectrum.theta, spectrum.project(model.y))
    elif method == "ML":
        return MLProfile(spectrum.phi, spectrum.rotate(model.y), spectrum.rotate(model.X))
    raise ValueError(f"Unknown method: {method}")


def profile_loglik(profile: ProfileLikelihood, lambdas) -> np.ndarray:
    """Evaluate the profile log-likelihood on a sequence of lambda values."""
    lambdas = np.atleast_1d(np.asarray(lambdas, dtype=float))
    return np.array([profile.loglik(lam) for lam in lambdas])
