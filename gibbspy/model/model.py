# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Core Model class for GibbsPy.

A GibbsPy model describes one Bayesian model twice, in two deliberately separate
ways:

    1. **Full conditionals**: for every parameter, a hand-derived rule mapping the
       other parameters and the data to the distribution the Gibbs sampler draws
       from. Rules are methods decorated with :py:func:`conditional` and are
       evaluated through the SciPy backend of the distribution handles.
    2. **Joint density**: the sum of the prior and likelihood log densities,
       composed directly from the model definition and evaluated through the
       PyTorch backend of the distribution handles.

The Gibbs engine only ever uses the first description. The conditional-correctness
oracle checks the first against the second. Keeping them separate means a bug in
either is unlikely to cancel out in both.

Example:
    >>> class Toy(Model):
    ...     PARAMETERS = ("theta", "sigma2")
    ...
    ...     @conditional("theta")
    ...     def _theta(self, others, data):
    ...         ...
    ...
    ...     @conditional("sigma2")
    ...     def _sigma2(self, others, data):
    ...         ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, TYPE_CHECKING

import numpy as np

from gibbspy.exceptions import InvalidConfiguration, UnknownParameter
from gibbspy.model.state import State

if TYPE_CHECKING:
    from gibbspy import custom_types
    from gibbspy.model.components.distributions import Distribution
    from gibbspy.model.data import ObservedData


def conditional(param: str) -> Callable[[Callable], Callable]:
    """Mark a Model method as the full-conditional rule for ``param``.

    The decorated method is called as ``method(self, others, data)``, where
    ``others`` is the current State *without* ``param`` and ``data`` is the
    observed data. It must return a fully parameterized distribution handle and
    must not depend on anything but its arguments and the model's
    hyperparameters.

    :param param: Name of the parameter the rule updates
    :type param: str

    :returns: Decorator recording the parameter name on the method
    :rtype: Callable[[Callable], Callable]
    """

    def decorator(method: Callable) -> Callable:
        method.conditional_for = param
        return method

    return decorator


class Model(ABC):
    """Base class for Gibbs-sampled Bayesian models.

    Subclasses declare their parameters in ``PARAMETERS`` (this is also the
    default Gibbs update order) and provide one :py:func:`conditional` rule per
    parameter, a :py:meth:`prior` and a :py:meth:`likelihood`.

    :cvar PARAMETERS: Declared parameter names, in update order
    :type PARAMETERS: tuple[str, ...]

    Models hold only hyperparameters. They are never mutated by sampling and can
    be shared freely across independent chains.
    """

    PARAMETERS: tuple[str, ...] = ()
    """Declared parameter names, in default update order."""

    _conditional_rules: dict[str, str] = {}

    def __init_subclass__(cls, **kwargs):
        """Register the conditional rules of a Model subclass.

        :raises ValueError: If a declared parameter has no rule, has more than
            one rule, or a rule names an undeclared parameter
        """
        super().__init_subclass__(**kwargs)

        # Abstract intermediates without parameters are allowed
        if not cls.PARAMETERS:
            return

        # Parameter names must be unique
        if len(set(cls.PARAMETERS)) != len(cls.PARAMETERS):
            raise ValueError(f"Duplicate names in {cls.__name__}.PARAMETERS.")

        # Collect the rules, including those inherited from parent models
        rules: dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            found: dict[str, str] = {}
            for attr, value in vars(klass).items():
                if (param := getattr(value, "conditional_for", None)) is None:
                    continue
                if param in found:
                    raise ValueError(
                        f"Parameter '{param}' has more than one conditional rule in "
                        f"{klass.__name__}: {found[param]} and {attr}."
                    )
                found[param] = attr
            rules.update(found)

        # Every declared parameter needs a rule and every rule needs a parameter
        if missing := [p for p in cls.PARAMETERS if p not in rules]:
            raise ValueError(
                f"{cls.__name__} declares parameters without a conditional rule: "
                f"{missing}"
            )
        if extra := [p for p in rules if p not in cls.PARAMETERS]:
            raise ValueError(
                f"{cls.__name__} defines conditional rules for undeclared "
                f"parameters: {extra}"
            )

        cls._conditional_rules = {p: rules[p] for p in cls.PARAMETERS}

    @property
    def parameter_names(self) -> tuple[str, ...]:
        """Declared parameter names, in default update order."""
        return tuple(self.PARAMETERS)

    def check_parameter(self, param: str) -> None:
        """Raise :py:class:`~gibbspy.exceptions.UnknownParameter` unless
        ``param`` is declared."""
        if param not in self.PARAMETERS:
            raise UnknownParameter(param, self.parameter_names)

    def conditional(
        self,
        param: str,
        state: "custom_types.StateLike",
        data: "ObservedData",
    ) -> "Distribution":
        """Full-conditional distribution of ``param`` given the rest of ``state``.

        :param param: Declared parameter name
        :type param: str
        :param state: Complete State. The value of ``param`` itself is ignored.
        :type state: custom_types.StateLike
        :param data: Observed data
        :type data: ObservedData

        :returns: Fully parameterized distribution handle
        :rtype: Distribution

        :raises UnknownParameter: If ``param`` is not declared
        :raises IncompleteState: If ``state`` is missing a declared parameter
        """
        self.check_parameter(param)
        state = State.coerce(state)
        state.require(self.PARAMETERS)

        # The rule only sees the other parameters
        rule = getattr(self, self._conditional_rules[param])
        return rule(state.drop(param), data)

    @abstractmethod
    def prior(self, param: str, state: State) -> "Distribution":
        """Prior distribution of ``param``.

        Hierarchical priors may depend on the values of other parameters in
        ``state``; top-level priors ignore it.
        """

    @abstractmethod
    def likelihood(self, state: State, data: "ObservedData") -> "Distribution":
        """Sampling distribution of the observations given the parameters."""

    def log_prior(self, state: "custom_types.StateLike") -> float:
        """Sum of the prior log densities at the values in ``state``.

        :raises IncompleteState: If ``state`` is missing a declared parameter
        """
        state = State.coerce(state)
        state.require(self.PARAMETERS)
        return float(
            sum(
                self.prior(param, state).torch_log_density(state[param])
                for param in self.PARAMETERS
            )
        )

    def log_likelihood(
        self, state: "custom_types.StateLike", data: "ObservedData"
    ) -> float:
        """Log density of the observations at the values in ``state``.

        :raises IncompleteState: If ``state`` is missing a declared parameter
        """
        state = State.coerce(state)
        state.require(self.PARAMETERS)
        return self.likelihood(state, data).torch_log_density(data.values)

    def joint_log_density(
        self, state: "custom_types.StateLike", data: "ObservedData"
    ) -> float:
        """Joint log density of parameters and data.

        This is the single source of truth the conditional-correctness oracle
        checks every conditional rule against.

        :param state: Complete State
        :type state: custom_types.StateLike
        :param data: Observed data
        :type data: ObservedData

        :returns: Sum of the prior and likelihood log densities
        :rtype: float

        :raises IncompleteState: If ``state`` is missing a declared parameter
        """
        return self.log_prior(state) + self.log_likelihood(state, data)

    def hyperparameters(self) -> dict[str, Any]:
        """Hyperparameters the model was built with."""
        return dict(getattr(self, "_hyperparameters", {}))

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.hyperparameters().items())
        return f"{self.__class__.__name__}({args})"


def require_positive(**hyperparameters: Any) -> None:
    """Validate that every given hyperparameter is strictly positive and finite.

    :raises InvalidConfiguration: If any hyperparameter is not
    """
    for name, value in hyperparameters.items():
        if not (np.all(np.isfinite(value)) and np.all(np.asarray(value) > 0)):
            raise InvalidConfiguration(
                f"Hyperparameter '{name}' must be positive and finite, got {value!r}."
            )
