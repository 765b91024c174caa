# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Equivalence checking of Gibbs sampler implementations.

The modular reference implementation of a model (a
:py:class:`~gibbspy.model.model.Model` driven by the
:py:class:`~gibbspy.sampling.engine.GibbsSampler`) is verified by the
conditional-correctness oracle. An optimized fast-path implementation of the same
model has no modular structure for the oracle to check. Instead, it is shown to
be numerically identical to the reference: both are run on the same data, from
the same starting values, for the same number of sweeps, with random streams
built from the same seed, and their trajectories are compared at every sweep and
every parameter.

This only works if both implementations take random tokens in the same order and
with the same granularity. The checker therefore also compares the number of
tokens each implementation took.

Implementations share one calling convention::

    impl(data, initial_state, sweep_count, stream, **model_config)

and return either a :py:class:`~gibbspy.sampling.trajectory.Trajectory` or a
mapping from parameter name to an array with one leading entry per State.
:py:func:`reference_implementation` adapts any Model class to this convention.

Example:
    >>> result = check_equivalence(
    ...     reference_implementation(NormalModel),
    ...     fast_normal_gibbs,
    ...     model_config={"mu_0": 0.0, "tau2_0": 1.0, "nu_0": 1.0, "sigma2_0": 1.0},
    ...     data=data,
    ...     initial_state=initial_state,
    ...     sweep_count=1000,
    ...     seed=7,
    ... )
    >>> result.passed
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from gibbspy import utils
from gibbspy.defaults import DEFAULT_EQUIVALENCE_ATOL, DEFAULT_EQUIVALENCE_RTOL
from gibbspy.exceptions import EquivalenceMismatch
from gibbspy.model.components.random_stream import RandomStream
from gibbspy.sampling.engine import GibbsSampler
from gibbspy.sampling.trajectory import Trajectory

if TYPE_CHECKING:
    from gibbspy import custom_types
    from gibbspy.model.data import ObservedData
    from gibbspy.model.model import Model


@dataclass(frozen=True)
class Divergence:
    """First point at which two trajectories disagree.

    :ivar sweep: Index of the State at which they disagree
    :ivar param: Parameter that disagrees. ``None`` when the implementations
        disagree on the set of parameters or on random-stream consumption.
    :ivar reference_value: Value produced by the reference implementation
    :ivar fast_value: Value produced by the fast-path implementation
    """

    sweep: int
    param: Optional[str]
    reference_value: Any
    fast_value: Any


@dataclass(frozen=True)
class EquivalenceResult:
    """Outcome of an equivalence check.

    :ivar max_abs_diff: Largest absolute difference over all compared values
    :ivar divergence: First disagreement, or None if the trajectories agree
    :ivar reference_draws: Random tokens taken by the reference implementation
    :ivar fast_draws: Random tokens taken by the fast-path implementation
    """

    max_abs_diff: float
    divergence: Optional[Divergence]
    reference_draws: int
    fast_draws: int

    @property
    def passed(self) -> bool:
        """Whether the implementations agree."""
        return self.divergence is None

    def __bool__(self) -> bool:
        return self.passed

    def raise_for_mismatch(self) -> None:
        """Raise :py:class:`~gibbspy.exceptions.EquivalenceMismatch` if the check failed."""
        if self.divergence is not None:
            raise EquivalenceMismatch(
                self.divergence.sweep,
                self.divergence.param,
                self.divergence.reference_value,
                self.divergence.fast_value,
            )


def reference_implementation(model_class: type["Model"]) -> "custom_types.SamplerImplementation":
    """Adapt a Model class to the implementation calling convention.

    :param model_class: Model class, constructed with ``**model_config``
    :type model_class: type[Model]

    :returns: Callable running the modular Gibbs engine
    :rtype: custom_types.SamplerImplementation
    """

    def implementation(
        data: "ObservedData",
        initial_state: "custom_types.StateLike",
        sweep_count: "custom_types.Integer",
        stream: RandomStream,
        **model_config: Any,
    ) -> Trajectory:
        return GibbsSampler(
            model_class(**model_config), data, initial_state, sweep_count, stream
        ).run()

    implementation.__name__ = f"reference_{model_class.__name__}"
    return implementation


def _as_arrays(result: Any) -> dict[str, npt.NDArray]:
    """Normalize an implementation's output into one array per parameter."""
    if isinstance(result, Trajectory):
        return result.to_arrays()
    return {name: np.asarray(values, dtype=np.float64) for name, values in result.items()}


def compare_trajectories(
    reference: Mapping[str, Any],
    fast: Mapping[str, Any],
    *,
    rtol: float = DEFAULT_EQUIVALENCE_RTOL,
    atol: float = DEFAULT_EQUIVALENCE_ATOL,
) -> tuple[float, Optional[Divergence]]:
    """Compare two trajectories sweep by sweep.

    Two values agree when ``|reference - fast| <= atol + rtol * |reference|``
    element-wise.

    :param reference: Reference arrays keyed by parameter
    :type reference: Mapping[str, Any]
    :param fast: Fast-path arrays keyed by parameter
    :type fast: Mapping[str, Any]
    :param rtol: Relative tolerance
    :type rtol: float
    :param atol: Absolute tolerance
    :type atol: float

    :returns: The maximum absolute difference and the first divergence (None if
        the trajectories agree)
    :rtype: tuple[float, Optional[Divergence]]
    """
    reference = _as_arrays(reference)
    fast = _as_arrays(fast)

    # Both must report the same parameters
    if set(reference) != set(fast):
        return np.inf, Divergence(
            sweep=0,
            param=None,
            reference_value=sorted(reference),
            fast_value=sorted(fast),
        )

    max_diff = 0.0
    divergence: Optional[Divergence] = None
    n_states = max(len(values) for values in reference.values()) if reference else 0
    for sweep in range(n_states):
        for name, ref_values in reference.items():
            fast_values = fast[name]

            # Missing States or mismatched shapes diverge immediately
            if sweep >= len(ref_values) or sweep >= len(fast_values):
                ref_value = ref_values[sweep] if sweep < len(ref_values) else None
                fast_value = fast_values[sweep] if sweep < len(fast_values) else None
                return np.inf, divergence or Divergence(sweep, name, ref_value, fast_value)
            ref_value, fast_value = ref_values[sweep], fast_values[sweep]
            if np.shape(ref_value) != np.shape(fast_value):
                return np.inf, divergence or Divergence(sweep, name, ref_value, fast_value)

            # Compare values
            max_diff = max(max_diff, utils.max_abs_diff(ref_value, fast_value))
            close = np.all(
                np.abs(np.asarray(ref_value) - np.asarray(fast_value))
                <= atol + rtol * np.abs(np.asarray(ref_value))
            )
            if divergence is None and not close:
                divergence = Divergence(sweep, name, ref_value, fast_value)

    # The fast path may also report more States than the reference
    for name, fast_values in fast.items():
        if divergence is None and len(fast_values) > n_states:
            return np.inf, Divergence(n_states, name, None, fast_values[n_states])

    return max_diff, divergence


def check_equivalence(
    reference_impl: "custom_types.SamplerImplementation",
    fast_impl: "custom_types.SamplerImplementation",
    model_config: Mapping[str, Any],
    data: "ObservedData",
    initial_state: "custom_types.StateLike",
    sweep_count: "custom_types.Integer",
    seed: "custom_types.Integer",
    *,
    rtol: float = DEFAULT_EQUIVALENCE_RTOL,
    atol: float = DEFAULT_EQUIVALENCE_ATOL,
) -> EquivalenceResult:
    """Run two implementations of one model under shared randomness and compare them.

    Each implementation gets its own :py:class:`RandomStream` built from ``seed``,
    so neither can observe the other's consumption.

    :param reference_impl: Reference implementation
    :type reference_impl: custom_types.SamplerImplementation
    :param fast_impl: Fast-path implementation
    :type fast_impl: custom_types.SamplerImplementation
    :param model_config: Hyperparameters passed to both implementations
    :type model_config: Mapping[str, Any]
    :param data: Observed data
    :type data: ObservedData
    :param initial_state: Complete starting State
    :type initial_state: custom_types.StateLike
    :param sweep_count: Number of sweeps
    :type sweep_count: custom_types.Integer
    :param seed: Seed shared by both random streams
    :type seed: custom_types.Integer
    :param rtol: Relative tolerance. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_EQUIVALENCE_RTOL`.
    :type rtol: float
    :param atol: Absolute tolerance. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_EQUIVALENCE_ATOL`.
    :type atol: float

    :returns: The comparison outcome
    :rtype: EquivalenceResult

    :raises InvalidConfiguration: If ``sweep_count`` is not a non-negative integer
    """
    sweep_count = utils.validate_sweep_count(sweep_count)

    reference_stream = RandomStream(seed)
    reference = reference_impl(
        data, initial_state, sweep_count, reference_stream, **model_config
    )

    fast_stream = RandomStream(seed)
    fast = fast_impl(data, initial_state, sweep_count, fast_stream, **model_config)

    max_diff, divergence = compare_trajectories(
        _as_arrays(reference), _as_arrays(fast), rtol=rtol, atol=atol
    )

    # Identical values with different stream consumption are not equivalent
    if divergence is None and reference_stream.draws != fast_stream.draws:
        divergence = Divergence(
            sweep=sweep_count,
            param=None,
            reference_value=reference_stream.draws,
            fast_value=fast_stream.draws,
        )

    return EquivalenceResult(
        max_abs_diff=max_diff,
        divergence=divergence,
        reference_draws=reference_stream.draws,
        fast_draws=fast_stream.draws,
    )
