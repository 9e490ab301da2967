"""
Test cases for the profile likelihoods and the variance-ratio search.

Tests verify:
- REML and ML profiles agree with the dense Gaussian log-likelihoods
- The bounded search finds the best lambda within the interval
- Optima on a search bound are reported exactly at the bound
"""

import pytest
import numpy as np
import sys
import os
from scipy.stats import multivariate_normal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymixedsolve.preprocess import prepare_model
from pymixedsolve.spectral import reduce_model
from pymixedsolve.likelihood import (
    ProfileLikelihood,
    MLProfile,
    make_profile,
    maximize_profile,
    profile_loglik,
)
from pymixedsolve.exceptions import ComputationError
from pymixedsolve.datasets import simulate_relationship_matrix, simulate_breeding_values


@pytest.fixture(scope="module")
def grm_model():
    """Breeding values on a simulated relationship matrix, h2 = 0.5."""
    K = simulate_relationship_matrix(60, seed=11)
    sim = simulate_breeding_values(K, h2=0.5, seed=12)
    X = np.c_[np.ones(60), np.linspace(0, 1, 60)]
    model = prepare_model(sim['y'], K=K, X=X)
    return model, reduce_model(model)


def dense_h(model, lam):
    return model.Z @ model.K @ model.Z.T + lam * np.eye(model.n)


def gls_beta(model, lam):
    H = dense_h(model, lam)
    HinvX = np.linalg.solve(H, model.X)
    return np.linalg.solve(model.X.T @ HinvX, HinvX.T @ model.y)


class TestProfileLikelihood:
    """Closed-form profiles match the dense likelihoods."""

    @pytest.mark.parametrize("lam", [0.1, 1.0, 25.0])
    def test_reml_matches_dense(self, grm_model, lam):
        model, spectrum = grm_model
        profile = make_profile("REML", spectrum, model)
        n, p = model.n, model.p

        V = profile.vu_estimate(lam) * dense_h(model, lam)
        Vinv = np.linalg.inv(V)
        r = model.y - model.X @ gls_beta(model, lam)
        expected = -0.5 * (
            (n - p) * np.log(2 * np.pi)
            + np.linalg.slogdet(V)[1]
            + np.linalg.slogdet(model.X.T @ Vinv @ model.X)[1]
            - np.linalg.slogdet(model.X.T @ model.X)[1]
            + r @ Vinv @ r
        )
        assert profile.loglik(lam) == pytest.approx(expected, rel=1e-8)

    @pytest.mark.parametrize("lam", [0.1, 1.0, 25.0])
    def test_ml_matches_dense(self, grm_model, lam):
        model, spectrum = grm_model
        profile = make_profile("ML", spectrum, model)
        beta, _ = profile.gls(lam)

        np.testing.assert_allclose(beta, gls_beta(model, lam), rtol=1e-8)
        V = profile.vu_estimate(lam) * dense_h(model, lam)
        expected = multivariate_normal.logpdf(model.y, mean=model.X @ beta, cov=V)
        assert profile.loglik(lam) == pytest.approx(expected, rel=1e-8)

    def test_ml_and_reml_share_residual(self, grm_model):
        """Both weighted sums of squares equal y'Py."""
        model, spectrum = grm_model
        reml = make_profile("REML", spectrum, model)
        ml = make_profile("ML", spectrum, model)
        for lam in (0.01, 1.0, 100.0):
            assert ml.rss(lam) == pytest.approx(reml.rss(lam), rel=1e-8)

    def test_degrees_of_freedom(self, grm_model):
        model, spectrum = grm_model
        assert make_profile("REML", spectrum, model).df == model.n - model.p
        assert make_profile("ML", spectrum, model).df == model.n

    def test_profile_loglik_vectorized(self, grm_model):
        model, spectrum = grm_model
        profile = make_profile("REML", spectrum, model)
        lambdas = [0.5, 2.0]
        ll = profile_loglik(profile, lambdas)
        assert ll.shape == (2,)
        assert ll[1] == pytest.approx(profile.loglik(2.0))

    def test_unknown_method(self, grm_model):
        model, spectrum = grm_model
        with pytest.raises(ValueError, match="Unknown method"):
            make_profile("MIVQUE", spectrum, model)


class TestMaximizeProfile:
    """Bounded search over log(lambda)."""

    @pytest.mark.parametrize("method", ["REML", "ML"])
    def test_beats_dense_grid(self, grm_model, method):
        model, spectrum = grm_model
        profile = make_profile(method, spectrum, model)
        opt = maximize_profile(profile)

        grid = profile_loglik(profile, np.logspace(-4, 4, 400))
        assert opt.loglik >= grid.max() - 1e-8
        assert 1e-9 <= opt.lambda_opt <= 1e9
        assert opt.converged
        assert not opt.at_bound
        assert opt.loglik == pytest.approx(profile.loglik(opt.lambda_opt))

    def test_search_without_grid(self, grm_model):
        model, spectrum = grm_model
        profile = make_profile("REML", spectrum, model)
        with_grid = maximize_profile(profile)
        without_grid = maximize_profile(profile, grid_points=0)

        assert without_grid.lambda_opt == pytest.approx(with_grid.lambda_opt, rel=1e-3)
        assert without_grid.loglik == pytest.approx(with_grid.loglik, abs=1e-6)
        assert not any(entry['stage'] == 'grid' for entry in without_grid.log)

    def test_optimum_at_lower_bound(self, grm_model):
        model, spectrum = grm_model
        profile = make_profile("REML", spectrum, model)
        opt = maximize_profile(profile, bounds=(1e3, 1e4))

        assert opt.at_bound
        assert opt.lambda_opt == 1e3
        assert opt.loglik == pytest.approx(profile.loglik(1e3))

    def test_narrow_bounds_never_improve(self, grm_model):
        model, spectrum = grm_model
        profile = make_profile("REML", spectrum, model)
        wide = maximize_profile(profile)
        narrow = maximize_profile(profile, bounds=(1e3, 1e4))
        assert wide.loglik >= narrow.loglik

    def test_degenerate_interval(self, grm_model):
        model, spectrum = grm_model
        profile = make_profile("REML", spectrum, model)
        opt = maximize_profile(profile, bounds=(2.0, 2.0))

        assert opt.lambda_opt == 2.0
        assert opt.at_bound
        assert opt.n_eval == 1

    def test_log_records_stages(self, grm_model):
        model, spectrum = grm_model
        opt = maximize_profile(make_profile("REML", spectrum, model), grid_points=10)
        stages = [entry['stage'] for entry in opt.log]

        assert stages.count('grid') == 8
        assert stages.count('search') == 1
        assert stages.count('bound') == 2

    def test_verbose_output(self, grm_model, capsys):
        model, spectrum = grm_model
        maximize_profile(make_profile("REML", spectrum, model), verbose=True)
        out = capsys.readouterr().out
        assert "[REML] grid scan" in out
        assert "[REML] lambda*=" in out


class BrokenProfile(ProfileLikelihood):
    """Profile whose residual cannot be evaluated."""

    @property
    def method(self):
        return "REML"

    @property
    def df(self):
        return 3

    def eigenvalues(self):
        return np.ones(3)

    def rss(self, lam):
        return np.nan


class TestOptimizerFailures:
    """Failures in the objective surface as ComputationError."""

    def test_non_finite_everywhere(self):
        with pytest.raises(ComputationError, match="not finite") as excinfo:
            maximize_profile(BrokenProfile())
        assert excinfo.value.stage == "optimizer"

    def test_singular_gls(self):
        profile = MLProfile(phi=np.ones(5), omega=np.arange(5.0), UX=np.zeros((5, 1)))
        with pytest.raises(ComputationError, match="objective failed"):
            maximize_profile(profile)
