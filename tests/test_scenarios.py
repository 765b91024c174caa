"""End-to-end sampling scenarios with known posteriors."""

import numpy as np
import pytest

from gibbspy import load_data, run, SyntheticNormalSource
from gibbspy.model.library import HierarchicalNormalModel, NormalModel


@pytest.fixture
def moment_matched_data():
    """1000 observations whose sample mean is exactly 2 and sample variance 3.5."""
    return load_data(
        SyntheticNormalSource(n=1000, mean=2.0, variance=3.5, seed=99, standardize=True)
    )


def test_normal_posterior_means(moment_matched_data, normal_model):
    """With a vague prior the posterior concentrates at the sample moments."""
    initial = normal_model.initial_state(moment_matched_data)
    trajectory = run(normal_model, moment_matched_data, initial, sweep_count=1000, seed=42)

    assert len(trajectory) == 1001
    assert trajectory.posterior_mean("theta") == pytest.approx(2.0, abs=0.1)
    assert trajectory.posterior_mean("sigma2") == pytest.approx(3.5, abs=0.3)


def test_normal_posterior_means_raw_draws(normal_data, normal_model):
    """Same scenario on plain i.i.d. draws from N(2, 3.5)."""
    initial = normal_model.initial_state(normal_data)
    trajectory = run(normal_model, normal_data, initial, sweep_count=1000, seed=42)

    assert trajectory[0] == initial
    assert trajectory.posterior_mean("theta") == pytest.approx(2.0, abs=0.1)
    assert trajectory.posterior_mean("sigma2") == pytest.approx(3.5, abs=0.3)


def test_normal_posterior_tracks_sample(normal_data, normal_model):
    """Same check on raw i.i.d. draws, measured against their own sample moments."""
    initial = normal_model.initial_state(normal_data)
    trajectory = run(normal_model, normal_data, initial, sweep_count=1000, seed=42)

    assert trajectory.posterior_mean("theta") == pytest.approx(normal_data.mean(), abs=0.1)
    assert trajectory.posterior_mean("sigma2") == pytest.approx(
        normal_data.variance(), abs=0.3
    )

    # Posterior sd of theta is close to sqrt(sigma2 / n)
    sd = np.std(trajectory.marginal("theta"), ddof=1)
    assert sd == pytest.approx(np.sqrt(normal_data.variance() / normal_data.n), rel=0.25)


def test_hierarchical_recovers_group_means(grouped_data):
    model = HierarchicalNormalModel(mu_0=0.0, gamma2_0=100.0, eta_0=1.0, tau2_0=1.0)
    initial = model.initial_state(grouped_data)
    trajectory = run(model, grouped_data, initial, sweep_count=2000, seed=7)

    summary = trajectory.summary(burn_in=200)
    theta_means = trajectory.posterior_mean("theta", burn_in=200)

    # Groups are well separated, so shrinkage toward the grand mean is small
    assert np.all(np.diff(theta_means) > 0)
    np.testing.assert_allclose(theta_means, grouped_data.group_means(), atol=1.0)
    assert np.all(summary.loc[[f"theta[{j}]" for j in range(4)], "sd"] > 0)
    assert np.all(summary["q0.025"] <= summary["q0.975"])
