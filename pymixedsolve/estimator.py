"""
scikit-learn estimator for ridge-regression BLUP of marker effects.
"""

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.utils.validation import check_array, check_is_fitted

from .control import MixedSolveControl
from .core import mixed_solve


class BLUPRegressor(BaseEstimator, RegressorMixin):
    """
    Genomic prediction by ridge-regression BLUP.

    The columns of X are treated as random marker effects with a common
    variance (Z = X, K = I) and an intercept is the only fixed effect, so
    the shrinkage is estimated by ML or REML rather than cross-validated.

    Parameters
    ----------
    method : {"REML", "ML"}, default="REML"
        Likelihood used to estimate the variance components
    bounds : tuple of float, default=(1e-9, 1e9)
        Search interval for lambda = Ve / Vu
    grid_points : int, default=20
        Size of the grid scan before the bounded search

    Attributes
    ----------
    intercept_ : float
        BLUE of the intercept
    coef_ : np.ndarray
        BLUPs of the marker effects
    Vu_ : float
        Marker effect variance
    Ve_ : float
        Residual variance
    result_ : MixedSolveResult
        Full result of the fit
    n_features_in_ : int
        Number of markers seen in fit

    Examples
    --------
    >>> from pymixedsolve.datasets import simulate_marker_trait
    >>> sim = simulate_marker_trait(n=200, m=500, seed=3)
    >>> model = BLUPRegressor().fit(sim['Z'], sim['y'])
    >>> model.predict(sim['Z'])[:3]
    """

    def __init__(self, method="REML", bounds=(1e-9, 1e9), grid_points=20):
        self.method = method
        self.bounds = bounds
        self.grid_points = grid_points

    def fit(self, X, y):
        """
        Fit marker effects; observations with missing y are ignored.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_markers)
            Marker matrix
        y : array-like of shape (n_samples,)
            Phenotypes, may contain NaN

        Returns
        -------
        self
        """
        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        elif hasattr(self, "feature_names_in_"):
            del self.feature_names_in_
        Z = check_array(X, dtype=float)
        control = MixedSolveControl(method=self.method, bounds=self.bounds,
                                    grid_points=self.grid_points)
        result = mixed_solve(y, Z=Z, control=control)

        self.result_ = result
        self.intercept_ = float(result.beta.iloc[0])
        self.coef_ = result.u.to_numpy()
        self.Vu_ = result.Vu
        self.Ve_ = result.Ve
        self.n_features_in_ = Z.shape[1]
        return self

    def predict(self, X):
        """
        Predict genetic values intercept_ + X coef_.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_markers)
            Marker matrix

        Returns
        -------
        np.ndarray
            Predictions of shape (n_samples,)
        """
        check_is_fitted(self, "coef_")
        Z = check_array(X, dtype=float)
        if Z.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {Z.shape[1]} markers, but BLUPRegressor was fitted with {self.n_features_in_}"
            )
        return self.intercept_ + Z @ self.coef_
