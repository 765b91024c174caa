# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


r"""Hierarchical normal model for grouped data.

Observations in group :math:`j = 1, \ldots, m` share a group mean
:math:`\theta_j`, and the group means are themselves drawn from a common normal
distribution:

.. math::
    \begin{align*}
    \mu &\sim \mathcal{N}(\mu_0, \gamma_0^2) \\
    \tau^2 &\sim \text{Inv-Gamma}(\eta_0 / 2, \eta_0 \tau_0^2 / 2) \\
    \sigma^2 &\sim \text{Inv-Gamma}(\nu_0 / 2, \nu_0 \sigma_0^2 / 2) \\
    \theta_j | \mu, \tau^2 &\sim \mathcal{N}(\mu, \tau^2) \\
    y_{ij} | \theta_j, \sigma^2 &\sim \mathcal{N}(\theta_j, \sigma^2)
    \end{align*}

``theta`` is a vector-valued parameter with one entry per group. Because the prior
of ``theta`` depends on ``mu`` and ``tau2``, the conditional of each parameter
depends on values updated earlier in the same sweep.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from gibbspy.exceptions import InvalidConfiguration
from gibbspy.model.components.distributions import InverseGamma, Normal
from gibbspy.model.model import conditional, Model, require_positive
from gibbspy.model.state import State

if TYPE_CHECKING:
    from gibbspy.model.data import ObservedData


class HierarchicalNormalModel(Model):
    """Normal model with group means ``theta`` drawn around a grand mean ``mu``.

    :param mu_0: Prior mean of ``mu``. Defaults to 0.0.
    :type mu_0: float
    :param gamma2_0: Prior variance of ``mu``. Defaults to 100.0.
    :type gamma2_0: float
    :param eta_0: Prior degrees of freedom for ``tau2``. Defaults to 1.0.
    :type eta_0: float
    :param tau2_0: Prior scale of ``tau2``. Defaults to 1.0.
    :type tau2_0: float
    :param nu_0: Prior degrees of freedom for ``sigma2``. Defaults to 1.0.
    :type nu_0: float
    :param sigma2_0: Prior scale of ``sigma2``. Defaults to 1.0.
    :type sigma2_0: float
    """

    PARAMETERS = ("theta", "sigma2", "mu", "tau2")

    def __init__(
        self,
        mu_0: float = 0.0,
        gamma2_0: float = 100.0,
        eta_0: float = 1.0,
        tau2_0: float = 1.0,
        nu_0: float = 1.0,
        sigma2_0: float = 1.0,
    ):
        if not np.isfinite(mu_0):
            raise InvalidConfiguration(f"Hyperparameter 'mu_0' must be finite, got {mu_0}.")
        require_positive(
            gamma2_0=gamma2_0, eta_0=eta_0, tau2_0=tau2_0, nu_0=nu_0, sigma2_0=sigma2_0
        )

        self.mu_0 = float(mu_0)
        self.gamma2_0 = float(gamma2_0)
        self.eta_0 = float(eta_0)
        self.tau2_0 = float(tau2_0)
        self.nu_0 = float(nu_0)
        self.sigma2_0 = float(sigma2_0)
        self._hyperparameters = {
            "mu_0": self.mu_0,
            "gamma2_0": self.gamma2_0,
            "eta_0": self.eta_0,
            "tau2_0": self.tau2_0,
            "nu_0": self.nu_0,
            "sigma2_0": self.sigma2_0,
        }

    def prior(self, param: str, state: State) -> Normal | InverseGamma:
        self.check_parameter(param)
        if param == "theta":
            return Normal.from_variance(state["mu"], state["tau2"])
        if param == "mu":
            return Normal.from_variance(self.mu_0, self.gamma2_0)
        if param == "tau2":
            return InverseGamma(alpha=self.eta_0 / 2, beta=self.eta_0 * self.tau2_0 / 2)
        return InverseGamma(alpha=self.nu_0 / 2, beta=self.nu_0 * self.sigma2_0 / 2)

    def likelihood(self, state: State, data: "ObservedData") -> Normal:
        theta = np.asarray(state["theta"])
        return Normal.from_variance(theta[data.group_labels()], state["sigma2"])

    @conditional("theta")
    def _theta_conditional(self, others: State, data: "ObservedData") -> Normal:
        sigma2, mu, tau2 = others["sigma2"], others["mu"], others["tau2"]
        sizes = data.group_sizes()
        variance = 1.0 / (sizes / sigma2 + 1.0 / tau2)
        mean = variance * (data.group_sums() / sigma2 + mu / tau2)
        return Normal.from_variance(mean, variance)

    @conditional("sigma2")
    def _sigma2_conditional(self, others: State, data: "ObservedData") -> InverseGamma:
        theta = np.asarray(others["theta"])
        residuals = data.values - theta[data.group_labels()]
        return InverseGamma(
            alpha=(self.nu_0 + data.n) / 2,
            beta=(self.nu_0 * self.sigma2_0 + float(np.sum(residuals**2))) / 2,
        )

    @conditional("mu")
    def _mu_conditional(self, others: State, data: "ObservedData") -> Normal:
        theta, tau2 = np.asarray(others["theta"]), others["tau2"]
        m = theta.size
        variance = 1.0 / (m / tau2 + 1.0 / self.gamma2_0)
        mean = variance * (float(np.sum(theta)) / tau2 + self.mu_0 / self.gamma2_0)
        return Normal.from_variance(mean, variance)

    @conditional("tau2")
    def _tau2_conditional(self, others: State, data: "ObservedData") -> InverseGamma:
        theta, mu = np.asarray(others["theta"]), others["mu"]
        return InverseGamma(
            alpha=(self.eta_0 + theta.size) / 2,
            beta=(self.eta_0 * self.tau2_0 + float(np.sum((theta - mu) ** 2))) / 2,
        )

    def initial_state(self, data: "ObservedData") -> State:
        """Moment-based starting values.

        ``theta`` starts at the group means, ``sigma2`` at the pooled within-group
        variance, and ``mu`` and ``tau2`` at the mean and variance of the group
        means. Variances that cannot be estimated fall back to 1.
        """
        theta = data.group_means()
        residuals = data.values - theta[data.group_labels()]
        dof = data.n - data.n_groups
        sigma2 = float(np.sum(residuals**2)) / dof if dof > 0 else 1.0
        tau2 = float(np.var(theta, ddof=1)) if theta.size > 1 else 1.0
        return State(
            theta=theta,
            sigma2=sigma2 if sigma2 > 0 else 1.0,
            mu=float(np.mean(theta)),
            tau2=tau2 if tau2 > 0 else 1.0,
        )
