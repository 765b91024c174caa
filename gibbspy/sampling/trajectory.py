# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Storage of Gibbs sampling trajectories.

A :py:class:`Trajectory` is the ordered sequence of States produced by the Gibbs
engine, with State 0 being the initial State. It is append-only while the engine
runs and is frozen once sampling completes, after which it is read-only to every
other component.

Trajectories can be read by sweep (:py:meth:`Trajectory.state`) or by parameter
(:py:meth:`Trajectory.marginal`), and exported for downstream analysis as plain
arrays, a pandas DataFrame, or an xarray Dataset.

Example:
    >>> trajectory = gibbspy.run(model, data, initial_state, sweep_count=1000, seed=1)
    >>> len(trajectory)
    1001
    >>> trajectory.posterior_mean("theta", burn_in=100)
"""

from __future__ import annotations

import warnings

from typing import Any, Iterable, Iterator, Mapping, Optional, TYPE_CHECKING, Union

import numpy as np
import numpy.typing as npt
import pandas as pd
import xarray as xr

from gibbspy import utils
from gibbspy.defaults import DEFAULT_SUMMARY_QUANTILES, DEFAULT_SWEEP_DIM
from gibbspy.exceptions import (
    InvalidConfiguration,
    TrajectoryFrozen,
    UnknownParameter,
)
from gibbspy.model.state import State

if TYPE_CHECKING:
    from gibbspy import custom_types


class Trajectory:
    """Append-only sequence of States.

    :param parameter_names: Names of the parameters every stored State must assign
    :type parameter_names: Iterable[str]

    :ivar parameter_names: Parameter names, in the order they are exported

    States are immutable, so appending stores the State itself; callers cannot
    alter history by continuing to work with the State they appended.
    """

    def __init__(self, parameter_names: Iterable[str]):
        self.parameter_names: tuple[str, ...] = tuple(parameter_names)
        if len(set(self.parameter_names)) != len(self.parameter_names):
            raise ValueError("Parameter names must be unique.")

        self._states: list[State] = []
        self._frozen = False

        # Marginals are cached once the trajectory is frozen
        self._marginals: dict[str, npt.NDArray] = {}

    @classmethod
    def from_arrays(cls, arrays: Mapping[str, Any]) -> "Trajectory":
        """Build a frozen trajectory from one array per parameter.

        :param arrays: Mapping of parameter name to an array whose leading axis
            indexes sweeps
        :type arrays: Mapping[str, Any]

        :returns: The trajectory
        :rtype: Trajectory

        :raises InvalidConfiguration: If the arrays disagree on the number of sweeps
        """
        arrays = {name: np.asarray(value) for name, value in arrays.items()}
        if len({len(value) for value in arrays.values()}) > 1:
            raise InvalidConfiguration(
                "All parameters must have the same number of sweeps: "
                f"{ {name: len(value) for name, value in arrays.items()} }"
            )

        trajectory = cls(arrays)
        n_sweeps = len(next(iter(arrays.values()))) if arrays else 0
        for i in range(n_sweeps):
            trajectory.append(State({name: value[i] for name, value in arrays.items()}))
        return trajectory.freeze()

    def append(self, state: "custom_types.StateLike") -> None:
        """Append a State.

        :param state: State assigning exactly this trajectory's parameters
        :type state: custom_types.StateLike

        :raises TrajectoryFrozen: If the trajectory has been frozen
        :raises IncompleteState: If the State is missing a parameter
        :raises UnknownParameter: If the State assigns an unexpected parameter
        """
        if self._frozen:
            raise TrajectoryFrozen("Cannot append to a frozen trajectory.")

        state = State.coerce(state)
        state.require(self.parameter_names)
        for name in state:
            if name not in self.parameter_names:
                raise UnknownParameter(name, self.parameter_names)

        self._states.append(state)

    def freeze(self) -> "Trajectory":
        """Stop accepting States. Returns the trajectory itself."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        """Whether the trajectory still accepts States."""
        return self._frozen

    @property
    def sweep_count(self) -> int:
        """Number of completed sweeps (the number of States minus the initial one)."""
        return max(len(self._states) - 1, 0)

    def __len__(self) -> int:
        return len(self._states)

    def __getitem__(
        self, index: Union[int, np.integer, slice]
    ) -> Union[State, list[State]]:
        """State at sweep ``index``, or a list of States for a slice.

        Example:
            >>> after_burn_in = trajectory[100:]
        """
        return self._states[index]

    def __iter__(self) -> Iterator[State]:
        return iter(self._states)

    def state(self, sweep: int) -> State:
        """State after sweep ``sweep`` (0 is the initial State)."""
        return self._states[sweep]

    def marginal(self, name: str) -> npt.NDArray:
        """Values of parameter ``name`` across all sweeps.

        :param name: Parameter name
        :type name: str

        :returns: Read-only array whose leading axis indexes sweeps
        :rtype: npt.NDArray

        :raises UnknownParameter: If ``name`` is not stored in this trajectory
        """
        if name not in self.parameter_names:
            raise UnknownParameter(name, self.parameter_names)
        if not self._states:
            return np.empty(0)

        # Use the cache if we can
        if name in self._marginals:
            return self._marginals[name]
        stacked = utils.stack_values([state[name] for state in self._states])
        if self._frozen:
            self._marginals[name] = stacked

        return stacked

    def to_arrays(self) -> dict[str, npt.NDArray]:
        """One array per parameter, keyed by parameter name."""
        return {name: self.marginal(name) for name in self.parameter_names}

    def _post_burn_in(self, name: str, burn_in: int) -> npt.NDArray:
        """Marginal of ``name`` with the first ``burn_in`` States discarded."""
        if burn_in < 0:
            raise InvalidConfiguration(f"Burn-in must be non-negative, got {burn_in}.")
        kept = self.marginal(name)[burn_in:]
        if len(kept) == 0:
            warnings.warn(
                f"Burn-in of {burn_in} discards all {len(self)} States of the trajectory."
            )
        return kept

    def posterior_mean(self, name: str, burn_in: int = 0) -> "custom_types.ParameterValue":
        """Mean of parameter ``name`` after discarding ``burn_in`` States.

        :param name: Parameter name
        :type name: str
        :param burn_in: Number of leading States to discard. Defaults to 0.
        :type burn_in: int

        :returns: The mean (element-wise for vector parameters). NaN if nothing
            remains after burn-in.
        :rtype: custom_types.ParameterValue
        """
        kept = self._post_burn_in(name, burn_in)
        if len(kept) == 0:
            return utils.as_parameter_value(np.full(kept.shape[1:], np.nan))
        return utils.as_parameter_value(np.mean(kept, axis=0))

    def _columns(self, burn_in: int = 0) -> dict[str, npt.NDArray]:
        """Flatten vector parameters into one column per component."""
        columns = {}
        for name in self.parameter_names:
            values = self._post_burn_in(name, burn_in)
            if values.ndim == 1:
                columns[name] = values
                continue
            flat = values.reshape(len(values), int(np.prod(values.shape[1:])))
            for flat_index, index in enumerate(np.ndindex(*values.shape[1:])):
                columns[f"{name}[{','.join(map(str, index))}]"] = flat[:, flat_index]
        return columns

    def to_dataframe(self) -> pd.DataFrame:
        """Trajectory as a DataFrame with one row per sweep.

        Vector parameters are split into one column per component, named
        ``name[i]``.
        """
        frame = pd.DataFrame(self._columns())
        frame.index.name = DEFAULT_SWEEP_DIM
        return frame

    def summary(
        self,
        burn_in: int = 0,
        quantiles: Optional[tuple[float, ...]] = None,
    ) -> pd.DataFrame:
        """Posterior summaries of every scalar component.

        :param burn_in: Number of leading States to discard. Defaults to 0.
        :type burn_in: int
        :param quantiles: Quantiles to report. Defaults to
            :py:data:`~gibbspy.defaults.DEFAULT_SUMMARY_QUANTILES`.
        :type quantiles: Optional[tuple[float, ...]]

        :returns: DataFrame indexed by component with columns ``mean``, ``sd``, and
            one column per quantile
        :rtype: pd.DataFrame
        """
        quantiles = DEFAULT_SUMMARY_QUANTILES if quantiles is None else quantiles
        frame = pd.DataFrame(self._columns(burn_in))
        summary = pd.DataFrame({"mean": frame.mean(), "sd": frame.std(ddof=1)})
        for q in quantiles:
            summary[f"q{q:g}"] = frame.quantile(q)
        return summary

    def to_xarray(self) -> xr.Dataset:
        """Trajectory as an xarray Dataset with a ``sweep`` dimension.

        Extra dimensions of vector parameters are named ``<name>_dim_<k>``.
        """
        data_vars = {}
        for name, values in self.to_arrays().items():
            dims = (DEFAULT_SWEEP_DIM,) + tuple(
                f"{name}_dim_{k}" for k in range(values.ndim - 1)
            )
            data_vars[name] = (dims, np.array(values))
        return xr.Dataset(
            data_vars, coords={DEFAULT_SWEEP_DIM: np.arange(len(self._states))}
        )

    def __repr__(self) -> str:
        return (
            f"Trajectory(parameters={self.parameter_names}, states={len(self)}, "
            f"frozen={self._frozen})"
        )
