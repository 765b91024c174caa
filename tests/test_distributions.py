"""Tests for distribution handles.

The SciPy and PyTorch backends of each handle are computed independently, so
agreement between them is a meaningful check of the parameter mappings.
"""

import numpy as np
import pytest
import torch.distributions as dist

from scipy import stats

from gibbspy import RandomStream
from gibbspy.model.components import distributions
from gibbspy.model.components.distributions import Dirichlet, InverseGamma, Normal

# ══════════════════════════════════════════════════════════════════════════════
# BACKEND AGREEMENT
# ══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "handle, value",
    [
        (Normal(mu=0.0, sigma=1.0), 0.3),
        (Normal(mu=-2.5, sigma=0.1), -2.4),
        (Normal(mu=[0.0, 1.0, 2.0], sigma=[1.0, 2.0, 3.0]), [0.5, 0.5, 0.5]),
        (InverseGamma(alpha=2.0, beta=3.0), 1.7),
        (InverseGamma(alpha=500.5, beta=1750.0), 3.4),
        (Dirichlet(alpha=[1.0, 2.0, 3.0]), [0.2, 0.3, 0.5]),
    ],
)
def test_scipy_and_torch_agree(handle, value):
    assert handle.log_density(value) == pytest.approx(
        handle.torch_log_density(value), rel=1e-9, abs=1e-9
    )


def test_normal_matches_scipy():
    handle = Normal(mu=1.0, sigma=2.0)
    assert handle.log_density(0.0) == pytest.approx(stats.norm(1.0, 2.0).logpdf(0.0))


def test_inverse_gamma_parameterization():
    """beta is a scale parameter: the mean is beta / (alpha - 1)."""
    handle = InverseGamma(alpha=3.0, beta=4.0)
    assert handle.frozen.mean() == pytest.approx(2.0)


def test_vector_log_density_sums_components():
    handle = Normal(mu=[0.0, 0.0], sigma=[1.0, 1.0])
    expected = 2 * stats.norm(0.0, 1.0).logpdf(0.5)
    assert handle.log_density([0.5, 0.5]) == pytest.approx(expected)


def test_from_variance():
    handle = Normal.from_variance(1.0, 4.0)
    assert handle.params == {"mu": 1.0, "sigma": 2.0}


# ══════════════════════════════════════════════════════════════════════════════
# SAMPLING
# ══════════════════════════════════════════════════════════════════════════════


class TestSampling:
    def test_one_token_per_draw(self):
        stream = RandomStream(0)
        Normal(mu=[0.0, 1.0, 2.0], sigma=1.0).sample(stream)
        InverseGamma(alpha=2.0, beta=1.0).sample(stream)
        assert stream.draws == 2

    def test_same_stream_same_draw(self):
        handle = InverseGamma(alpha=2.0, beta=1.0)
        assert handle.sample(RandomStream(5)) == handle.sample(RandomStream(5))

    def test_scalar_draw_is_float(self):
        assert isinstance(Normal(mu=0.0, sigma=1.0).sample(RandomStream(0)), float)

    def test_vector_draw_is_read_only(self):
        draw = Normal(mu=[0.0, 1.0], sigma=1.0).sample(RandomStream(0))
        assert draw.shape == (2,)
        assert not draw.flags.writeable

    def test_inverse_gamma_positive(self):
        stream = RandomStream(1)
        handle = InverseGamma(alpha=0.5, beta=0.5)
        assert all(handle.sample(stream) > 0 for _ in range(50))

    def test_dirichlet_on_simplex(self):
        draw = Dirichlet(alpha=[1.0, 1.0, 1.0, 1.0]).sample(RandomStream(3))
        assert draw.shape == (4,)
        assert np.all(draw > 0)
        assert draw.sum() == pytest.approx(1.0)

    def test_module_level_helpers(self):
        handle = Normal(mu=0.0, sigma=1.0)
        assert distributions.sample(handle, RandomStream(9)) == handle.sample(
            RandomStream(9)
        )
        assert distributions.log_density(handle, 0.0) == handle.log_density(0.0)


# ══════════════════════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════════════════════


class TestValidation:
    def test_non_positive_scale(self):
        with pytest.raises(ValueError, match="sigma"):
            Normal(mu=0.0, sigma=0.0)

    def test_non_positive_variance(self):
        with pytest.raises(ValueError, match="Variance"):
            Normal.from_variance(0.0, -1.0)

    def test_non_positive_shape(self):
        with pytest.raises(ValueError, match="alpha"):
            InverseGamma(alpha=-1.0, beta=1.0)

    def test_dirichlet_needs_vector(self):
        with pytest.raises(ValueError, match="1-D"):
            Dirichlet(alpha=[1.0])

    def test_missing_class_attributes(self):
        class Incomplete(distributions.Distribution):
            PARAM_TO_SCIPY_NAMES = {"mu": "loc"}

        with pytest.raises(NotImplementedError, match="SCIPY_DIST"):
            Incomplete(mu=0.0)

    def test_parameter_names_checked(self):
        class Loose(distributions.Distribution):
            SCIPY_DIST = stats.norm
            TORCH_DIST = dist.normal.Normal
            PARAM_TO_SCIPY_NAMES = {"mu": "loc", "sigma": "scale"}
            PARAM_TO_TORCH_NAMES = {"mu": "loc", "sigma": "scale"}

        with pytest.raises(TypeError, match="Missing"):
            Loose(mu=0.0)
        with pytest.raises(TypeError, match="Unexpected"):
            Loose(mu=0.0, sigma=1.0, nu=2.0)

    def test_parameters_are_copied(self):
        mu = np.array([0.0, 1.0])
        handle = Normal(mu=mu, sigma=1.0)
        mu[0] = 100.0
        assert handle.params["mu"][0] == 0.0
