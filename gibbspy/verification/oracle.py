# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


r"""Conditional-correctness oracle.

If a model's rule for parameter :math:`p` returns the true full conditional, then
for any two values :math:`v_1, v_2` of :math:`p` with every other parameter held
fixed,

.. math::
    \log \pi(v_1 | \cdot) - \log \pi(v_2 | \cdot)
    = \log p(v_1, \cdot, y) - \log p(v_2, \cdot, y),

because the normalizing constant of the conditional cancels in the ratio. The
oracle evaluates both sides, the left through the model's conditional rule and the
right through its joint density, and reports the residual. The identity is exact,
so it can be checked at arbitrary (e.g., randomly generated) states, data, and
probe values without any sampling.

Example:
    >>> check = check_conditional(model, "theta", state, data, v1=0.5, v2=-0.3)
    >>> check.passed
    True
    >>> check.raise_for_mismatch()  # no-op when the check passed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, TYPE_CHECKING

from gibbspy import utils
from gibbspy.defaults import DEFAULT_ORACLE_RTOL, DEFAULT_PROBE_PAIRS
from gibbspy.exceptions import ConditionalMismatch, InvalidConfiguration
from gibbspy.model.state import State

if TYPE_CHECKING:
    from gibbspy import custom_types
    from gibbspy.model.components.random_stream import RandomStream
    from gibbspy.model.data import ObservedData
    from gibbspy.model.model import Model


@dataclass(frozen=True)
class ConditionalCheck:
    """Outcome of one conditional-identity check.

    :ivar param: Parameter whose conditional was checked
    :ivar v1: First probe value
    :ivar v2: Second probe value
    :ivar conditional_log_ratio: Conditional log density at ``v1`` minus at ``v2``
    :ivar joint_log_ratio: Joint log density at ``v1`` minus at ``v2``
    :ivar residual: ``conditional_log_ratio - joint_log_ratio``
    :ivar tolerance: Largest absolute residual accepted
    """

    param: str
    v1: Any
    v2: Any
    conditional_log_ratio: float
    joint_log_ratio: float
    residual: float
    tolerance: float

    @property
    def passed(self) -> bool:
        """Whether the residual is within tolerance."""
        return abs(self.residual) <= self.tolerance

    def __bool__(self) -> bool:
        return self.passed

    def raise_for_mismatch(self) -> None:
        """Raise :py:class:`~gibbspy.exceptions.ConditionalMismatch` if the check failed."""
        if not self.passed:
            raise ConditionalMismatch(
                self.param, self.v1, self.v2, self.residual, self.tolerance
            )


def check_conditional(
    model: "Model",
    param: str,
    state: "custom_types.StateLike",
    data: "ObservedData",
    v1: Any,
    v2: Any,
    *,
    rtol: float = DEFAULT_ORACLE_RTOL,
) -> ConditionalCheck:
    """Check the full conditional of ``param`` against the joint density.

    The conditional is derived at the State with ``param`` set to ``v1`` and
    evaluated at both probe values. The joint density is evaluated at the State
    with ``param`` set to ``v1`` and to ``v2``. The residual between the two
    log-density ratios is accepted when it is at most
    ``rtol * max(1, |joint(v1)|, |joint(v2)|)``, which accounts for the rounding
    error of evaluating large joint log densities.

    :param model: Model under test
    :type model: Model
    :param param: Declared parameter name
    :type param: str
    :param state: Complete State supplying the values of the other parameters
    :type state: custom_types.StateLike
    :param data: Observed data
    :type data: ObservedData
    :param v1: First probe value, in the support of ``param``
    :type v1: Any
    :param v2: Second probe value, in the support of ``param``
    :type v2: Any
    :param rtol: Relative tolerance. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_ORACLE_RTOL`.
    :type rtol: float

    :returns: The check outcome
    :rtype: ConditionalCheck

    :raises UnknownParameter: If ``param`` is not declared
    :raises IncompleteState: If ``state`` is missing a declared parameter
    """
    model.check_parameter(param)
    state = State.coerce(state)
    state.require(model.parameter_names)

    at_v1 = state.replace_value(param, v1)
    at_v2 = state.replace_value(param, v2)

    # Left side: the conditional rule
    conditional = model.conditional(param, at_v1, data)
    conditional_log_ratio = conditional.log_density(at_v1[param]) - conditional.log_density(
        at_v2[param]
    )

    # Right side: the joint density
    joint_v1 = model.joint_log_density(at_v1, data)
    joint_v2 = model.joint_log_density(at_v2, data)
    joint_log_ratio = joint_v1 - joint_v2

    return ConditionalCheck(
        param=param,
        v1=at_v1[param],
        v2=at_v2[param],
        conditional_log_ratio=conditional_log_ratio,
        joint_log_ratio=joint_log_ratio,
        residual=conditional_log_ratio - joint_log_ratio,
        tolerance=utils.scaled_tolerance(rtol, joint_v1, joint_v2),
    )


def random_probe_pairs(
    model: "Model",
    param: str,
    state: "custom_types.StateLike",
    data: "ObservedData",
    stream: "RandomStream",
    n_pairs: int = DEFAULT_PROBE_PAIRS,
) -> list[tuple[Any, Any]]:
    """Draw probe-value pairs for ``param`` from its own full conditional.

    Drawing from the conditional guarantees that probes lie inside the support
    of the parameter, including for vector-valued and constrained parameters.

    :param model: Model under test
    :type model: Model
    :param param: Declared parameter name
    :type param: str
    :param state: Complete State
    :type state: custom_types.StateLike
    :param data: Observed data
    :type data: ObservedData
    :param stream: Random stream for the probe draws
    :type stream: RandomStream
    :param n_pairs: Number of pairs. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_PROBE_PAIRS`.
    :type n_pairs: int

    :returns: List of ``(v1, v2)`` pairs
    :rtype: list[tuple[Any, Any]]
    """
    if n_pairs < 1:
        raise InvalidConfiguration(f"At least one probe pair is required, got {n_pairs}.")
    conditional = model.conditional(param, state, data)
    return [
        (conditional.sample(stream), conditional.sample(stream)) for _ in range(n_pairs)
    ]


def check_all_conditionals(
    model: "Model",
    state: "custom_types.StateLike",
    data: "ObservedData",
    probes: Optional[Mapping[str, Iterable[tuple[Any, Any]]]] = None,
    *,
    stream: Optional["RandomStream"] = None,
    n_pairs: int = DEFAULT_PROBE_PAIRS,
    rtol: float = DEFAULT_ORACLE_RTOL,
) -> list[ConditionalCheck]:
    """Check the conditional of every declared parameter.

    Probe pairs are taken from ``probes`` where given, and drawn with
    :py:func:`random_probe_pairs` from ``stream`` otherwise.

    :param model: Model under test
    :type model: Model
    :param state: Complete State
    :type state: custom_types.StateLike
    :param data: Observed data
    :type data: ObservedData
    :param probes: Probe pairs keyed by parameter name. Defaults to None.
    :type probes: Optional[Mapping[str, Iterable[tuple[Any, Any]]]]
    :param stream: Random stream for drawing missing probes. Defaults to None.
    :type stream: Optional[RandomStream]
    :param n_pairs: Number of drawn pairs per parameter. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_PROBE_PAIRS`.
    :type n_pairs: int
    :param rtol: Relative tolerance. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_ORACLE_RTOL`.
    :type rtol: float

    :returns: One check per probe pair, in parameter declaration order
    :rtype: list[ConditionalCheck]

    :raises InvalidConfiguration: If probes are missing for a parameter and no
        stream was given
    """
    probes = dict(probes or {})
    for param in probes:
        model.check_parameter(param)

    checks = []
    for param in model.parameter_names:
        if param in probes:
            pairs = list(probes[param])
        elif stream is None:
            raise InvalidConfiguration(
                f"No probes given for '{param}' and no stream to draw them from."
            )
        else:
            pairs = random_probe_pairs(model, param, state, data, stream, n_pairs)

        checks.extend(
            check_conditional(model, param, state, data, v1, v2, rtol=rtol)
            for v1, v2 in pairs
        )
    return checks
