# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


r"""Univariate normal model with unknown mean and variance.

The model is the semi-conjugate normal model:

.. math::
    \begin{align*}
    \theta &\sim \mathcal{N}(\mu_0, \tau_0^2) \\
    \sigma^2 &\sim \text{Inv-Gamma}(\nu_0 / 2, \nu_0 \sigma_0^2 / 2) \\
    y_i | \theta, \sigma^2 &\sim \mathcal{N}(\theta, \sigma^2), \quad i = 1, \ldots, n
    \end{align*}

Its full conditionals are

.. math::
    \begin{align*}
    \theta | \sigma^2, y &\sim \mathcal{N}(\mu_n, \tau_n^2), \quad
        \tau_n^2 = \left(\frac{1}{\tau_0^2} + \frac{n}{\sigma^2}\right)^{-1}, \quad
        \mu_n = \tau_n^2 \left(\frac{\mu_0}{\tau_0^2} + \frac{n \bar{y}}{\sigma^2}\right) \\
    \sigma^2 | \theta, y &\sim \text{Inv-Gamma}\left(\frac{\nu_0 + n}{2},
        \frac{\nu_0 \sigma_0^2 + \sum_i (y_i - \theta)^2}{2}\right)
    \end{align*}

Two implementations are provided. :py:class:`NormalModel` is the modular reference,
covered by the conditional-correctness oracle. :py:func:`fast_normal_gibbs` is a
single procedure working from sufficient statistics. It takes tokens from the
random stream in the same order and with the same granularity as the reference,
so the two can be compared draw for draw.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from scipy import stats

from gibbspy import utils
from gibbspy.exceptions import InvalidConfiguration
from gibbspy.model.components.distributions import InverseGamma, Normal
from gibbspy.model.model import conditional, Model, require_positive
from gibbspy.model.state import State

if TYPE_CHECKING:
    from gibbspy import custom_types
    from gibbspy.model.components.random_stream import RandomStream
    from gibbspy.model.data import ObservedData


class NormalModel(Model):
    """Normal model with unknown mean ``theta`` and variance ``sigma2``.

    :param mu_0: Prior mean of ``theta``. Defaults to 0.0.
    :type mu_0: float
    :param tau2_0: Prior variance of ``theta``. Defaults to 1e4.
    :type tau2_0: float
    :param nu_0: Prior degrees of freedom for ``sigma2``. Defaults to 1.0.
    :type nu_0: float
    :param sigma2_0: Prior scale of ``sigma2``. Defaults to 1.0.
    :type sigma2_0: float

    :raises InvalidConfiguration: If ``mu_0`` is not finite or any of the
        other hyperparameters is not positive and finite

    Example:
        >>> model = NormalModel(mu_0=0.0, tau2_0=10000.0, nu_0=1.0, sigma2_0=1.0)
        >>> trajectory = gibbspy.run(model, data, model.initial_state(data), 1000, seed=1)
    """

    PARAMETERS = ("theta", "sigma2")

    def __init__(
        self,
        mu_0: float = 0.0,
        tau2_0: float = 1e4,
        nu_0: float = 1.0,
        sigma2_0: float = 1.0,
    ):
        if not np.isfinite(mu_0):
            raise InvalidConfiguration(f"Hyperparameter 'mu_0' must be finite, got {mu_0}.")
        require_positive(tau2_0=tau2_0, nu_0=nu_0, sigma2_0=sigma2_0)

        self.mu_0 = float(mu_0)
        self.tau2_0 = float(tau2_0)
        self.nu_0 = float(nu_0)
        self.sigma2_0 = float(sigma2_0)
        self._hyperparameters = {
            "mu_0": self.mu_0,
            "tau2_0": self.tau2_0,
            "nu_0": self.nu_0,
            "sigma2_0": self.sigma2_0,
        }

    def prior(self, param: str, state: State) -> Normal | InverseGamma:
        self.check_parameter(param)
        if param == "theta":
            return Normal.from_variance(self.mu_0, self.tau2_0)
        return InverseGamma(alpha=self.nu_0 / 2, beta=self.nu_0 * self.sigma2_0 / 2)

    def likelihood(self, state: State, data: "ObservedData") -> Normal:
        return Normal.from_variance(state["theta"], state["sigma2"])

    @conditional("theta")
    def _theta_conditional(self, others: State, data: "ObservedData") -> Normal:
        sigma2 = others["sigma2"]
        tau2_n = 1.0 / (1.0 / self.tau2_0 + data.n / sigma2)
        mu_n = tau2_n * (self.mu_0 / self.tau2_0 + data.n * data.mean() / sigma2)
        return Normal.from_variance(mu_n, tau2_n)

    @conditional("sigma2")
    def _sigma2_conditional(self, others: State, data: "ObservedData") -> InverseGamma:
        sum_sq = float(np.sum((data.values - others["theta"]) ** 2))
        return InverseGamma(
            alpha=(self.nu_0 + data.n) / 2,
            beta=(self.nu_0 * self.sigma2_0 + sum_sq) / 2,
        )

    def initial_state(self, data: "ObservedData") -> State:
        """Method-of-moments starting values (sample mean and sample variance)."""
        theta, sigma2 = data.method_of_moments()
        return State(theta=theta, sigma2=sigma2)


def fast_normal_gibbs(
    data: "ObservedData",
    initial_state: "custom_types.StateLike",
    sweep_count: "custom_types.Integer",
    stream: "RandomStream",
    *,
    mu_0: float = 0.0,
    tau2_0: float = 1e4,
    nu_0: float = 1.0,
    sigma2_0: float = 1.0,
) -> dict[str, npt.NDArray]:
    """Gibbs sampler for :py:class:`NormalModel` as one monolithic procedure.

    The data are reduced to their size, mean, and centered sum of squares once, so
    each sweep costs O(1) instead of O(n). Sweep ``s`` uses block ``s`` of
    ``stream`` and takes one token for ``theta`` followed by one for ``sigma2``,
    exactly as the reference engine does.

    :param data: Observed data
    :type data: ObservedData
    :param initial_state: Starting values for ``theta`` and ``sigma2``
    :type initial_state: custom_types.StateLike
    :param sweep_count: Number of sweeps
    :type sweep_count: custom_types.Integer
    :param stream: Random stream
    :type stream: RandomStream
    :param mu_0: Prior mean of ``theta``. Defaults to 0.0.
    :param tau2_0: Prior variance of ``theta``. Defaults to 1e4.
    :param nu_0: Prior degrees of freedom for ``sigma2``. Defaults to 1.0.
    :param sigma2_0: Prior scale of ``sigma2``. Defaults to 1.0.

    :returns: Arrays of ``sweep_count + 1`` values for ``theta`` and ``sigma2``,
        starting with the initial values
    :rtype: dict[str, npt.NDArray]

    :raises InvalidConfiguration: If ``sweep_count`` is not a non-negative integer
    """
    sweep_count = utils.validate_sweep_count(sweep_count)

    # Sufficient statistics
    y = data.values
    n = data.n
    ybar = data.mean()
    centered_ss = float(np.sum((y - ybar) ** 2))
    alpha_n = (nu_0 + n) / 2
    prior_precision = 1.0 / tau2_0
    prior_weighted_mean = mu_0 / tau2_0

    # Preallocate the output
    theta_draws = np.empty(sweep_count + 1)
    sigma2_draws = np.empty(sweep_count + 1)
    theta = theta_draws[0] = float(initial_state["theta"])
    sigma2 = sigma2_draws[0] = float(initial_state["sigma2"])

    for sweep in range(1, sweep_count + 1):
        block = stream.block(sweep)

        # Update theta given sigma2
        tau2_n = 1.0 / (prior_precision + n / sigma2)
        mu_n = tau2_n * (prior_weighted_mean + n * ybar / sigma2)
        theta = float(
            stats.norm.rvs(loc=mu_n, scale=np.sqrt(tau2_n), random_state=block.take())
        )

        # Update sigma2 given the new theta
        beta_n = (nu_0 * sigma2_0 + centered_ss + n * (ybar - theta) ** 2) / 2
        sigma2 = float(
            stats.invgamma.rvs(alpha_n, scale=beta_n, random_state=block.take())
        )

        theta_draws[sweep] = theta
        sigma2_draws[sweep] = sigma2

    return {"theta": theta_draws, "sigma2": sigma2_draws}


def normal_model_config(**overrides: Any) -> dict[str, float]:
    """Hyperparameters of :py:class:`NormalModel` with defaults filled in."""
    return NormalModel(**overrides).hyperparameters()
