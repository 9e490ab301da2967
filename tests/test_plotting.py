"""
Test cases for plotting functions.
"""

import pytest
import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend for testing
import matplotlib.pyplot as plt

import sys
import os
# Add parent directory to path to find pymixedsolve package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymixedsolve import mixed_solve, MixedSolveControl, plot_profile_likelihood, plot_blups
from pymixedsolve.datasets import simulate_marker_trait


@pytest.fixture(scope="module")
def sim():
    return simulate_marker_trait(n=60, m=80, seed=12)


class TestProfilePlot:
    """Profile log-likelihood curve."""

    def test_returns_figure(self, sim):
        fig = plot_profile_likelihood(sim['y'], Z=sim['Z'], n_points=30)

        assert isinstance(fig, plt.Figure)
        ax = fig.axes[0]
        assert len(ax.lines[0].get_xdata()) == 30
        assert "REML" in ax.get_ylabel()
        plt.close(fig)

    def test_existing_axes(self, sim):
        fig, ax = plt.subplots()
        out = plot_profile_likelihood(sim['y'], Z=sim['Z'], n_points=10,
                                      control=MixedSolveControl(method="ML"), ax=ax)

        assert out is fig
        assert "ML" in ax.get_ylabel()
        plt.close(fig)


class TestBLUPPlot:
    """Random-effect predictions."""

    def test_against_truth(self, sim):
        fit = mixed_solve(sim['y'], Z=sim['Z'])
        fig = plot_blups(fit, true_effects=sim['u'])

        assert "r = " in fig.axes[0].get_title()
        plt.close(fig)

    def test_sorted_with_errors(self, sim):
        fit = mixed_solve(sim['y'], Z=sim['Z'], control=MixedSolveControl(se=True))
        fig = plot_blups(fit)

        assert fig.axes[0].get_title() == 'Sorted BLUPs'
        plt.close(fig)

    def test_shape_mismatch(self, sim):
        fit = mixed_solve(sim['y'], Z=sim['Z'])
        with pytest.raises(ValueError, match="true_effects"):
            plot_blups(fit, true_effects=np.zeros(5))
