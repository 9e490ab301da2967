"""
Test cases for heritability and related summaries.
"""

import pytest
import numpy as np
import pandas as pd
import sys
import os

# Add parent directory to path to find pymixedsolve package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymixedsolve.utils import (
    get_heritability,
    get_reliability,
    anova_variance_components,
    compute_aic_bic,
)


def test_get_heritability_values():
    """Test specific heritability values."""
    assert abs(get_heritability(2.0, 2.0) - 0.5) < 1e-12
    assert abs(get_heritability(3.0, 1.0) - 0.75) < 1e-12
    assert get_heritability(0.0, 1.0) == 0.0


def test_get_heritability_relationship_scale():
    """Vu is rescaled by the mean diagonal of K."""
    K = np.diag([2.0, 2.0, 2.0])
    assert abs(get_heritability(1.0, 2.0, K=K) - 0.5) < 1e-12


def test_get_heritability_edge_cases():
    """Test edge cases for heritability calculation."""
    with pytest.raises(ValueError, match="non-negative"):
        get_heritability(-1.0, 1.0)

    with pytest.raises(ValueError, match="Total variance"):
        get_heritability(0.0, 0.0)


def test_get_reliability():
    """Reliability of BLUPs from prediction-error SDs."""
    u_SE = pd.Series([0.0, 1.0, np.sqrt(2.0)], index=['a', 'b', 'c'])
    rel = get_reliability(u_SE, Vu=2.0)

    assert isinstance(rel, pd.Series)
    assert list(rel.index) == ['a', 'b', 'c']
    np.testing.assert_allclose(rel, [1.0, 0.5, 0.0], atol=1e-12)

    rel_k = get_reliability(np.array([1.0, 1.0]), Vu=1.0, K=np.diag([2.0, 4.0]))
    np.testing.assert_allclose(rel_k, [0.5, 0.75])


def test_anova_balanced():
    """Method-of-moments components in a balanced design."""
    y = np.array([1.0, 3.0, 5.0, 7.0, 9.0, 11.0])
    groups = ['a', 'a', 'b', 'b', 'c', 'c']
    Vu, Ve = anova_variance_components(y, groups)

    # Group means 2, 6, 10; MSB = 2 * 32 / 2 = 32; MSW = 6 / 3 = 2
    assert Ve == pytest.approx(2.0)
    assert Vu == pytest.approx((32.0 - 2.0) / 2)


def test_anova_needs_groups():
    with pytest.raises(ValueError, match="two groups"):
        anova_variance_components([1.0, 2.0, 3.0], ['a', 'a', 'a'])


def test_compute_aic_bic():
    aic, bic = compute_aic_bic(-10.0, 3, 100)
    assert aic == pytest.approx(26.0)
    assert bic == pytest.approx(20.0 + 3 * np.log(100))
