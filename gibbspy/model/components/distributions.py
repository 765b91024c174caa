# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Distribution handles for GibbsPy models.

This module is the boundary between GibbsPy and the random-variate libraries it
relies on. GibbsPy does not implement any distribution itself. Instead, each
handle in this module wraps:

    - A frozen SciPy distribution, used for sampling (:py:meth:`Distribution.sample`)
      and for the log density of full conditionals
      (:py:meth:`Distribution.log_density`).
    - The corresponding PyTorch distribution, evaluated in double precision
      (:py:meth:`Distribution.torch_log_density`). Models compose their joint
      density from this backend, so the oracle compares two independently
      computed quantities.

Handles are immutable once constructed and every draw takes exactly one token
from an explicit :py:class:`~gibbspy.model.components.random_stream.RandomStream`.

The following distributions are currently supported:

    - :py:class:`~gibbspy.model.components.distributions.Normal`
    - :py:class:`~gibbspy.model.components.distributions.InverseGamma`
    - :py:class:`~gibbspy.model.components.distributions.Dirichlet`
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import numpy as np
import torch.distributions as dist

from scipy import stats

from gibbspy import utils

if TYPE_CHECKING:
    from gibbspy import custom_types
    from gibbspy.model.components.random_stream import RandomStream


class Distribution:
    """Base class for all distribution handles.

    :param kwargs: Distribution parameters (mu, sigma, etc. depending on subclass)

    :raises NotImplementedError: If required class attributes are missing (i.e.,
        if a subclass was incorrectly defined)
    :raises TypeError: If distribution parameters are missing or unexpected
    :raises ValueError: If a parameter that must be positive is not

    :cvar SCIPY_DIST: Corresponding SciPy distribution
    :cvar TORCH_DIST: Corresponding PyTorch distribution class
    :cvar PARAM_TO_SCIPY_NAMES: Parameter name mapping for the SciPy interface
    :type PARAM_TO_SCIPY_NAMES: dict[str, str]
    :cvar PARAM_TO_TORCH_NAMES: Parameter name mapping for the PyTorch interface
    :type PARAM_TO_TORCH_NAMES: dict[str, str]
    :cvar POSITIVE_PARAMS: Parameters that must be strictly positive
    :type POSITIVE_PARAMS: set[str]
    """

    SCIPY_DIST: Any = None
    """Corresponding SciPy distribution (e.g., `scipy.stats.norm`)."""

    TORCH_DIST: type[dist.Distribution] | None = None
    """Corresponding PyTorch distribution class (e.g., `torch.distributions.Normal`)."""

    PARAM_TO_SCIPY_NAMES: dict[str, str] = {}
    """Maps GibbsPy parameter names to SciPy keyword names."""

    PARAM_TO_TORCH_NAMES: dict[str, str] = {}
    """Maps GibbsPy parameter names to PyTorch keyword names."""

    POSITIVE_PARAMS: set[str] = set()
    """Parameters that must be strictly positive."""

    def __init__(self, **kwargs):
        """Initialize the handle with distribution-specific arguments."""
        # Confirm that class attributes are set correctly
        if missing_attributes := [
            attr
            for attr in ("SCIPY_DIST", "TORCH_DIST")
            if getattr(self, attr) is None
        ]:
            raise NotImplementedError(
                f"The following class attributes must be defined: {', '.join(missing_attributes)}"
            )

        # Make sure we have exactly the expected parameters
        if missing_params := self.PARAM_TO_SCIPY_NAMES.keys() - kwargs.keys():
            raise TypeError(
                f"Missing parameters {sorted(missing_params)} for {self.__class__.__name__}."
            )
        if extra_params := kwargs.keys() - self.PARAM_TO_SCIPY_NAMES.keys():
            raise TypeError(
                f"Unexpected parameters {sorted(extra_params)} for {self.__class__.__name__}."
            )

        # Store immutable copies of the parameters
        self._params: dict[str, "custom_types.ParameterValue"] = {
            name: utils.as_parameter_value(kwargs[name])
            for name in self.PARAM_TO_SCIPY_NAMES
        }

        # Check positivity
        for name in self.POSITIVE_PARAMS:
            if not np.all(np.asarray(self._params[name]) > 0):
                raise ValueError(
                    f"Parameter '{name}' of {self.__class__.__name__} must be "
                    f"positive, got {self._params[name]!r}."
                )

        # Freeze the SciPy distribution
        self._frozen = self.SCIPY_DIST(
            **{
                scipy_name: self._params[name]
                for name, scipy_name in self.PARAM_TO_SCIPY_NAMES.items()
            }
        )

    @property
    def params(self) -> dict[str, "custom_types.ParameterValue"]:
        """Parameters of the distribution keyed by their GibbsPy names."""
        return dict(self._params)

    @property
    def frozen(self) -> Any:
        """The frozen SciPy distribution backing this handle."""
        return self._frozen

    def log_density(self, value: Any) -> float:
        """Log density of the distribution at ``value`` (SciPy backend).

        Array-valued parameters of univariate families describe independent
        components, and their log densities are summed. Multivariate families
        (e.g., Dirichlet) already return one value per point.

        :param value: Point at which to evaluate the log density
        :type value: Any

        :returns: The log density
        :rtype: float
        """
        return float(np.sum(self._frozen.logpdf(np.asarray(value, dtype=np.float64))))

    def torch_dist_instance(self) -> dist.Distribution:
        """Build the PyTorch distribution with float64 parameters.

        :returns: The PyTorch distribution
        :rtype: dist.Distribution
        """
        return self.TORCH_DIST(
            **{
                torch_name: utils.to_tensor(self._params[name])
                for name, torch_name in self.PARAM_TO_TORCH_NAMES.items()
            },
            validate_args=False,
        )

    def torch_log_density(self, value: Any) -> float:
        """Log density of the distribution at ``value`` (PyTorch backend).

        :param value: Point at which to evaluate the log density
        :type value: Any

        :returns: The log density, summed over independent components
        :rtype: float
        """
        return self.torch_dist_instance().log_prob(utils.to_tensor(value)).sum().item()

    def sample(self, stream: "RandomStream") -> "custom_types.ParameterValue":
        """Draw one value from the distribution.

        Exactly one token is taken from ``stream``, regardless of whether the
        draw is a scalar or an array.

        :param stream: Random stream providing the token
        :type stream: RandomStream

        :returns: The drawn value
        :rtype: custom_types.ParameterValue
        """
        return utils.as_parameter_value(
            self._frozen.rvs(random_state=stream.take())
        )

    def __repr__(self) -> str:
        args = ", ".join(f"{name}={value!r}" for name, value in self._params.items())
        return f"{self.__class__.__name__}({args})"


class Normal(Distribution):
    r"""Normal distribution.

    :param mu: Location parameter
    :param sigma: Scale (standard deviation) parameter

    Mathematical Definition:
        .. math::
            P(x | \mu, \sigma) = \frac{1}{\sigma\sqrt{2\pi}}
            e^{-\frac{(x-\mu)^2}{2\sigma^2}}

    Array-valued parameters describe independent normal components.
    """

    POSITIVE_PARAMS = {"sigma"}
    SCIPY_DIST = stats.norm
    TORCH_DIST = dist.normal.Normal
    PARAM_TO_SCIPY_NAMES = {"mu": "loc", "sigma": "scale"}
    PARAM_TO_TORCH_NAMES = {"mu": "loc", "sigma": "scale"}

    def __init__(self, mu: Any, sigma: Any):
        super().__init__(mu=mu, sigma=sigma)

    @classmethod
    def from_variance(cls, mu: Any, variance: Any) -> "Normal":
        """Build a normal distribution from its mean and variance.

        :raises ValueError: If the variance is not positive
        """
        if not np.all(np.asarray(variance) > 0):
            raise ValueError(f"Variance must be positive, got {variance!r}.")
        return cls(mu=mu, sigma=np.sqrt(variance))


class InverseGamma(Distribution):
    r"""Inverse gamma distribution.

    :param alpha: Shape parameter
    :param beta: Scale parameter

    Mathematical Definition:
        .. math::
            P(x | \alpha, \beta) = \frac{\beta^\alpha}{\Gamma(\alpha)}
            x^{-\alpha - 1} e^{-\beta / x} \text{ for } x > 0

    Commonly used as the conjugate prior for a normal variance.
    """

    POSITIVE_PARAMS = {"alpha", "beta"}
    SCIPY_DIST = stats.invgamma
    TORCH_DIST = dist.inverse_gamma.InverseGamma
    PARAM_TO_SCIPY_NAMES = {"alpha": "a", "beta": "scale"}
    PARAM_TO_TORCH_NAMES = {"alpha": "concentration", "beta": "rate"}

    def __init__(self, alpha: Any, beta: Any):
        super().__init__(alpha=alpha, beta=beta)


class Dirichlet(Distribution):
    r"""Dirichlet distribution over the probability simplex.

    :param alpha: Concentration parameters (1-D, length K)

    Mathematical Definition:
        .. math::
            P(x | \alpha) = \frac{\Gamma(\sum_i \alpha_i)}{\prod_i \Gamma(\alpha_i)}
            \prod_i x_i^{\alpha_i - 1}
    """

    POSITIVE_PARAMS = {"alpha"}
    SCIPY_DIST = stats.dirichlet
    TORCH_DIST = dist.dirichlet.Dirichlet
    PARAM_TO_SCIPY_NAMES = {"alpha": "alpha"}
    PARAM_TO_TORCH_NAMES = {"alpha": "concentration"}

    def __init__(self, alpha: Any):
        if np.ndim(alpha) != 1 or len(alpha) < 2:
            raise ValueError("Dirichlet concentration must be 1-D with at least 2 entries.")
        super().__init__(alpha=alpha)

    def sample(self, stream: "RandomStream") -> "custom_types.ParameterValue":
        # SciPy returns a batch of one draw
        return utils.as_parameter_value(
            self._frozen.rvs(random_state=stream.take())[0]
        )


def sample(
    distribution: Distribution, stream: "RandomStream"
) -> "custom_types.ParameterValue":
    """Draw one value from ``distribution`` using one token from ``stream``.

    :param distribution: Distribution handle to sample from
    :type distribution: Distribution
    :param stream: Random stream providing the token
    :type stream: RandomStream

    :returns: The drawn value
    :rtype: custom_types.ParameterValue
    """
    return distribution.sample(stream)


def log_density(distribution: Distribution, value: Any) -> float:
    """Evaluate the log density of ``distribution`` at ``value``.

    :param distribution: Distribution handle to evaluate
    :type distribution: Distribution
    :param value: Point at which to evaluate
    :type value: Any

    :returns: The log density
    :rtype: float
    """
    return distribution.log_density(value)
