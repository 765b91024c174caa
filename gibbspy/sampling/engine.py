# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Fixed-iteration Gibbs sampling engine.

The :py:class:`GibbsSampler` drives a model through a fixed number of sweeps. Each
sweep updates every parameter exactly once, in a fixed order, by drawing from its
full conditional. Updates are substituted immediately: a parameter updated later
in a sweep conditions on the values drawn earlier in the same sweep.

Sweep ``i`` takes all of its random tokens from block ``i`` of the random stream,
so State ``i`` depends only on State ``i - 1``, the model, the data, and that
block. There is no convergence detection; the sampler stops after the requested
number of sweeps.

Sampling is single-threaded. Independent chains should each get their own sampler
and random stream; models and data are read-only and can be shared between them.
Sweep boundaries are the only points at which a caller should stop a sampler.

Example:
    >>> sampler = GibbsSampler(model, data, initial_state, sweep_count=100, stream=RandomStream(1))
    >>> first = sampler.advance()
    >>> trajectory = sampler.run()
"""

from __future__ import annotations

import enum
import warnings

from typing import Iterable, Optional, TYPE_CHECKING

import numpy as np

from tqdm import tqdm

from gibbspy import utils
from gibbspy.defaults import DEFAULT_SHOW_PROGRESS
from gibbspy.exceptions import InvalidConfiguration, SamplerStopped
from gibbspy.model.components.random_stream import RandomStream
from gibbspy.model.state import State
from gibbspy.sampling.trajectory import Trajectory

if TYPE_CHECKING:
    from gibbspy import custom_types
    from gibbspy.model.data import ObservedData
    from gibbspy.model.model import Model


class SamplerStatus(enum.Enum):
    """Lifecycle of a :py:class:`GibbsSampler`."""

    INITIALIZED = "initialized"
    SWEEPING = "sweeping"
    STOPPED = "stopped"


class GibbsSampler:
    """Gibbs sampler for a single chain.

    :param model: Model providing the full conditionals
    :type model: Model
    :param data: Observed data
    :type data: ObservedData
    :param initial_state: Complete starting State (State 0 of the trajectory)
    :type initial_state: custom_types.StateLike
    :param sweep_count: Number of sweeps to perform
    :type sweep_count: custom_types.Integer
    :param stream: Random stream. Sweep ``i`` uses ``stream.block(i)``.
    :type stream: RandomStream
    :param update_order: Order in which parameters are updated within a sweep.
        Must be a permutation of the model's parameters. Defaults to the
        declaration order.
    :type update_order: Optional[Iterable[str]]
    :param progress: Whether to display a progress bar. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_SHOW_PROGRESS`.
    :type progress: bool

    :ivar status: Current :py:class:`SamplerStatus`
    :ivar sweeps_done: Number of completed sweeps
    :ivar draws_per_sweep: Number of random tokens taken in each completed sweep

    :raises InvalidConfiguration: If ``sweep_count`` is not a non-negative
        integer or ``update_order`` is not a permutation of the model's parameters
    :raises IncompleteState: If ``initial_state`` is missing a declared parameter
    :raises UnknownParameter: If ``initial_state`` assigns an undeclared parameter
    """

    def __init__(
        self,
        model: "Model",
        data: "ObservedData",
        initial_state: "custom_types.StateLike",
        sweep_count: "custom_types.Integer",
        stream: RandomStream,
        *,
        update_order: Optional[Iterable[str]] = None,
        progress: bool = DEFAULT_SHOW_PROGRESS,
    ):
        # Check the configuration before any sweep runs
        self.sweep_count = utils.validate_sweep_count(sweep_count)

        self.update_order: tuple[str, ...] = (
            model.parameter_names if update_order is None else tuple(update_order)
        )
        if sorted(self.update_order) != sorted(model.parameter_names):
            raise InvalidConfiguration(
                f"Update order {self.update_order} is not a permutation of the "
                f"model parameters {model.parameter_names}."
            )

        initial_state = State.coerce(initial_state)
        initial_state.require(model.parameter_names)
        for name in initial_state:
            model.check_parameter(name)
        self._state = initial_state

        self.model = model
        self.data = data
        self.stream = stream
        self.progress = progress

        self.status = SamplerStatus.INITIALIZED
        self.sweeps_done = 0
        self.draws_per_sweep: list[int] = []

        self._trajectory = Trajectory(model.parameter_names)
        self._trajectory.append(self._state)

    @property
    def state(self) -> State:
        """The current State."""
        return self._state

    @property
    def trajectory(self) -> Trajectory:
        """States produced so far, starting with the initial State."""
        return self._trajectory

    def sweep(self, state: State, block: RandomStream) -> State:
        """Perform one Gibbs sweep from ``state`` using tokens from ``block``.

        This is a pure function of its inputs (given the model and data) and does
        not touch the sampler's status or trajectory.

        :param state: State before the sweep
        :type state: State
        :param block: Random stream for this sweep
        :type block: RandomStream

        :returns: State after the sweep
        :rtype: State
        """
        for param in self.update_order:
            value = self.model.conditional(param, state, self.data).sample(block)
            if not np.all(np.isfinite(value)):
                warnings.warn(
                    f"Non-finite value {value!r} drawn for parameter '{param}'."
                )
            state = state.replace_value(param, value)
        return state

    def advance(self) -> State:
        """Perform the next sweep.

        :returns: The new State, which is also appended to the trajectory
        :rtype: State

        :raises SamplerStopped: If all sweeps have already been performed
        """
        if self.sweeps_done >= self.sweep_count:
            self._stop()
            raise SamplerStopped(
                f"All {self.sweep_count} sweeps have already been performed."
            )
        self.status = SamplerStatus.SWEEPING

        # Sweeps are numbered from 1; State 0 is the initial State
        sweep_index = self.sweeps_done + 1
        draws_before = self.stream.draws
        self._state = self.sweep(self._state, self.stream.block(sweep_index))
        self.draws_per_sweep.append(self.stream.draws - draws_before)

        self._trajectory.append(self._state)
        self.sweeps_done = sweep_index

        if self.sweeps_done == self.sweep_count:
            self._stop()

        return self._state

    def _stop(self) -> None:
        self.status = SamplerStatus.STOPPED
        self._trajectory.freeze()

    def run(self) -> Trajectory:
        """Perform all remaining sweeps.

        :returns: The frozen trajectory of ``sweep_count + 1`` States
        :rtype: Trajectory
        """
        remaining = self.sweep_count - self.sweeps_done
        with tqdm(
            total=remaining, desc="Sweeps", disable=not self.progress
        ) as pbar:
            for _ in range(remaining):
                self.advance()
                pbar.update(1)

        self._stop()
        return self._trajectory


def run(
    model: "Model",
    data: "ObservedData",
    initial_state: "custom_types.StateLike",
    sweep_count: "custom_types.Integer",
    seed: "custom_types.SeedLike",
    *,
    update_order: Optional[Iterable[str]] = None,
    progress: bool = DEFAULT_SHOW_PROGRESS,
) -> Trajectory:
    """Run a Gibbs sampler for a fixed number of sweeps.

    :param model: Model providing the full conditionals
    :type model: Model
    :param data: Observed data
    :type data: ObservedData
    :param initial_state: Complete starting State
    :type initial_state: custom_types.StateLike
    :param sweep_count: Number of sweeps
    :type sweep_count: custom_types.Integer
    :param seed: Integer seed or an explicit random stream
    :type seed: custom_types.SeedLike
    :param update_order: Parameter update order. Defaults to declaration order.
    :type update_order: Optional[Iterable[str]]
    :param progress: Whether to display a progress bar. Defaults to
        :py:data:`~gibbspy.defaults.DEFAULT_SHOW_PROGRESS`.
    :type progress: bool

    :returns: Frozen trajectory of exactly ``sweep_count + 1`` States, the first
        of which equals ``initial_state``
    :rtype: Trajectory

    :raises InvalidConfiguration: If ``sweep_count`` is not a non-negative integer
    :raises IncompleteState: If ``initial_state`` is missing a declared parameter

    Example:
        >>> model = NormalModel(mu_0=0.0, tau2_0=10000.0, nu_0=1.0, sigma2_0=1.0)
        >>> trajectory = run(model, data, model.initial_state(data), 1000, seed=42)
    """
    stream = seed if isinstance(seed, RandomStream) else RandomStream(seed)
    return GibbsSampler(
        model,
        data,
        initial_state,
        sweep_count,
        stream,
        update_order=update_order,
        progress=progress,
    ).run()
