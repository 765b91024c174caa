"""Shared fixtures for GibbsPy tests.

This module provides reusable fixtures to reduce duplication across test files:
- Observed data fixtures (ungrouped normal data, grouped data)
- Model fixtures for the library models
- Random generators for property-style tests
"""

import numpy as np
import pytest

from gibbspy import ArraySource, load_data, SyntheticNormalSource
from gibbspy.model.library import HierarchicalNormalModel, NormalModel

# ══════════════════════════════════════════════════════════════════════════════
# DATA FIXTURES
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def normal_data():
    """1000 i.i.d. observations with true mean 2 and true variance 3.5."""
    return load_data(SyntheticNormalSource(n=1000, mean=2.0, variance=3.5, seed=2024))


@pytest.fixture
def small_normal_data():
    """10 synthetic observations."""
    return load_data(SyntheticNormalSource(n=10, mean=0.0, variance=1.0, seed=10))


@pytest.fixture
def grouped_data():
    """Four groups of unequal size with well separated means."""
    rng = np.random.default_rng(7)
    sizes = [5, 8, 12, 3]
    means = [-2.0, 0.0, 1.5, 4.0]
    values = np.concatenate(
        [rng.normal(mean, 1.0, size=size) for mean, size in zip(means, sizes)]
    )
    groups = np.repeat(np.arange(len(sizes)), sizes)
    return load_data(ArraySource(values, groups=groups))


# ══════════════════════════════════════════════════════════════════════════════
# MODEL FIXTURES
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def normal_model():
    """Normal model with a nearly flat prior on the mean."""
    return NormalModel(mu_0=0.0, tau2_0=10000.0, nu_0=1.0, sigma2_0=1.0)


@pytest.fixture
def hierarchical_model():
    return HierarchicalNormalModel(
        mu_0=0.0, gamma2_0=25.0, eta_0=2.0, tau2_0=4.0, nu_0=2.0, sigma2_0=1.0
    )

