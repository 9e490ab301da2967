"""
Test cases for input validation and missing-value handling.
"""

import pytest
import numpy as np
import pandas as pd
import sys
import os

# Add parent directory to path to find pymixedsolve package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymixedsolve.preprocess import prepare_model
from pymixedsolve.exceptions import (
    DimensionMismatchError,
    RankDeficiencyError,
    ValidationError,
)


class TestDefaults:
    """Omitted design matrices resolve to concrete defaults."""

    def test_all_defaults(self):
        y = np.arange(6, dtype=float)
        model = prepare_model(y)

        assert model.n == 6
        assert model.p == 1
        assert model.m == 6
        np.testing.assert_array_equal(model.X, np.ones((6, 1)))
        np.testing.assert_array_equal(model.Z, np.eye(6))
        np.testing.assert_array_equal(model.K, np.eye(6))
        assert model.z_identity and model.k_identity
        assert model.beta_names == ["(Intercept)"]

    def test_k_defaults_to_identity_of_z_columns(self):
        rng = np.random.default_rng(0)
        Z = rng.normal(size=(10, 4))
        model = prepare_model(rng.normal(size=10), Z=Z)

        assert not model.z_identity
        assert model.k_identity
        np.testing.assert_array_equal(model.K, np.eye(4))

    def test_vector_x_becomes_column(self):
        x = np.linspace(0, 1, 8)
        model = prepare_model(np.sin(np.arange(8.0)), X=x)
        assert model.X.shape == (8, 1)

    def test_explicit_identity_k_is_not_flagged(self):
        model = prepare_model(np.arange(5.0), K=np.eye(5))
        assert model.z_identity
        assert not model.k_identity


class TestMissingValues:
    """Observations with missing responses are dropped everywhere."""

    def test_nan_rows_removed(self):
        rng = np.random.default_rng(1)
        y = rng.normal(size=12)
        y[[2, 7]] = np.nan
        X = np.c_[np.ones(12), np.arange(12.0)]
        Z = rng.normal(size=(12, 5))

        model = prepare_model(y, Z=Z, X=X)

        keep = ~np.isnan(y)
        assert model.n == 10
        assert model.n_missing == 2
        np.testing.assert_array_equal(model.observed, keep)
        np.testing.assert_array_equal(model.y, y[keep])
        np.testing.assert_array_equal(model.X, X[keep])
        np.testing.assert_array_equal(model.Z, Z[keep])

    def test_none_and_pd_na_are_missing(self):
        y = [1.0, None, 3.0, pd.NA, 5.0, 2.5]
        model = prepare_model(y)
        assert model.n == 4
        np.testing.assert_array_equal(model.y, [1.0, 3.0, 5.0, 2.5])

    def test_identity_z_rows_follow_missing(self):
        y = np.array([1.0, np.nan, 2.0, 4.0])
        model = prepare_model(y)
        assert model.Z.shape == (3, 4)
        np.testing.assert_array_equal(model.Z, np.eye(4)[[0, 2, 3]])

    def test_series_response(self):
        y = pd.Series([1.0, np.nan, 2.0, 3.0], index=list("abcd"))
        model = prepare_model(y)
        np.testing.assert_array_equal(model.y, [1.0, 2.0, 3.0])

    def test_too_few_observations(self):
        y = np.array([np.nan, 1.0, np.nan])
        with pytest.raises(ValidationError, match="at least 2 observed"):
            prepare_model(y)


class TestShapeChecks:
    """Inconsistent shapes fail before any computation."""

    def test_x_rows(self):
        with pytest.raises(DimensionMismatchError, match="X has 4 rows"):
            prepare_model(np.arange(5.0), X=np.ones((4, 1)))

    def test_z_rows(self):
        with pytest.raises(DimensionMismatchError, match="Z has 3 rows"):
            prepare_model(np.arange(5.0), Z=np.ones((3, 2)))

    def test_k_shape(self):
        with pytest.raises(DimensionMismatchError) as excinfo:
            prepare_model(np.arange(5.0), Z=np.ones((5, 3)), K=np.eye(4))
        assert excinfo.value.expected == (3, 3)
        assert excinfo.value.actual == (4, 4)

    def test_dimension_error_is_value_error(self):
        with pytest.raises(ValueError):
            prepare_model(np.arange(5.0), X=np.ones((4, 1)))

    def test_asymmetric_k(self):
        K = np.eye(4)
        K[0, 1] = 0.5
        with pytest.raises(ValidationError, match="symmetric"):
            prepare_model(np.arange(4.0), K=K)

    def test_matrix_response_rejected(self):
        with pytest.raises(DimensionMismatchError, match="vector"):
            prepare_model(np.ones((4, 2)))


class TestRank:
    """X must be full column rank after filtering."""

    def test_collinear_columns(self):
        x = np.arange(10.0)
        X = np.c_[np.ones(10), x, 2 * x]
        with pytest.raises(RankDeficiencyError, match="X not full rank") as excinfo:
            prepare_model(np.sin(x), X=X)
        assert excinfo.value.rank == 2
        assert excinfo.value.expected_rank == 3

    def test_rank_lost_after_filtering(self):
        y = np.array([1.0, 2.0, np.nan, 3.0, 4.0, 5.0])
        indicator = np.array([0.0, 0.0, 1.0, 0.0, 0.0, 0.0])
        X = np.c_[np.ones(6), indicator]
        with pytest.raises(RankDeficiencyError):
            prepare_model(y, X=X)


class TestLabels:
    """Column labels of X, Z and K name the estimates."""

    def test_dataframe_labels(self):
        rng = np.random.default_rng(2)
        X = pd.DataFrame({'mu': np.ones(6), 'dose': np.arange(6.0)})
        Z = pd.DataFrame(rng.normal(size=(6, 3)), columns=['a', 'b', 'c'])
        model = prepare_model(rng.normal(size=6), Z=Z, X=X)

        assert model.beta_names == ['mu', 'dose']
        assert model.u_names == ['a', 'b', 'c']

    def test_k_index_names_random_effects(self):
        K = pd.DataFrame(np.eye(3), index=['g1', 'g2', 'g3'], columns=['g1', 'g2', 'g3'])
        model = prepare_model(np.arange(6.0), Z=np.kron(np.eye(3), np.ones((2, 1))), K=K)
        assert model.u_names == ['g1', 'g2', 'g3']
