# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Immutable parameter states for Gibbs sampling.

A :py:class:`State` is an ordered mapping from parameter name to its current value.
States are value objects: every update returns a new State and no stored value
can be mutated in place. A State can be stored in a trajectory without copying,
and independent chains share only the read-only model and data.

Example:
    >>> state = State(theta=0.5, sigma2=1.2)
    >>> updated = state.replace(theta=0.7)
    >>> state["theta"], updated["theta"]
    (0.5, 0.7)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Iterator, Optional, TYPE_CHECKING

import numpy as np

from gibbspy import utils
from gibbspy.exceptions import IncompleteState, UnknownParameter

if TYPE_CHECKING:
    from gibbspy import custom_types


class State(Mapping):
    """Immutable, ordered assignment of values to model parameters.

    :param values: Mapping of parameter names to values. Defaults to None.
    :type values: Optional[Mapping[str, Any]]
    :param kwargs: Additional parameter values. These are added after ``values``.

    Scalars are stored as Python floats and vectors as read-only float64 arrays.
    All inputs are copied on construction.

    :raises ValueError: If a parameter is assigned twice
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None, **kwargs):

        # Combine the two sources of values, refusing duplicates
        values = dict(values or {})
        if duplicates := values.keys() & kwargs.keys():
            raise ValueError(f"Parameters assigned twice: {sorted(duplicates)}")
        values.update(kwargs)

        self._values: dict[str, "custom_types.ParameterValue"] = {
            name: utils.as_parameter_value(value) for name, value in values.items()
        }

    @classmethod
    def coerce(cls, state: "custom_types.StateLike") -> "State":
        """Return ``state`` unchanged if it is already a State, else build one."""
        if isinstance(state, State):
            return state
        return cls(state)

    def __getitem__(self, name: str) -> "custom_types.ParameterValue":
        try:
            return self._values[name]
        except KeyError as error:
            raise UnknownParameter(name, tuple(self._values)) from error

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return tuple(self) == tuple(other) and all(
            utils.values_equal(self[name], other[name]) for name in self
        )

    def __hash__(self) -> int:
        return hash(tuple(self._values))

    def __repr__(self) -> str:
        args = ", ".join(f"{name}={value!r}" for name, value in self._values.items())
        return f"State({args})"

    @property
    def names(self) -> tuple[str, ...]:
        """Parameter names in assignment order."""
        return tuple(self._values)

    def replace(self, **updates: Any) -> "State":
        """Build a new State with some parameter values replaced.

        Replaced parameters keep their position in the ordering; new parameters
        are appended.

        :param updates: New values keyed by parameter name

        :returns: The updated State
        :rtype: State
        """
        values = dict(self._values)
        values.update(updates)
        return State(values)

    def replace_value(self, name: str, value: Any) -> "State":
        """Like :py:meth:`replace`, for names that are not valid identifiers."""
        return self.replace(**{name: value})

    def drop(self, name: str) -> "State":
        """Build a partial State without the parameter ``name``.

        :raises UnknownParameter: If ``name`` has no value in this State
        """
        if name not in self._values:
            raise UnknownParameter(name, self.names)
        return State({k: v for k, v in self._values.items() if k != name})

    def require(self, names: Iterable[str]) -> None:
        """Confirm that every parameter in ``names`` has a value.

        :param names: Required parameter names
        :type names: Iterable[str]

        :raises IncompleteState: If any of the names has no value
        """
        if missing := tuple(name for name in names if name not in self._values):
            raise IncompleteState(missing)

    def as_dict(self) -> dict[str, "custom_types.ParameterValue"]:
        """Deep copy of the State as a plain, writeable dictionary."""
        return {
            name: value.copy() if isinstance(value, np.ndarray) else value
            for name, value in self._values.items()
        }

    def copy(self) -> "State":
        """Return an independent copy of this State."""
        return State(self._values)

    def allclose(self, other: "State", rtol: float = 1e-9, atol: float = 0.0) -> bool:
        """Whether two States hold the same parameters with numerically close values.

        :param other: State to compare against
        :type other: State
        :param rtol: Relative tolerance. Defaults to 1e-9.
        :type rtol: float
        :param atol: Absolute tolerance. Defaults to 0.0.
        :type atol: float

        :returns: True if parameter names match and all values are close
        :rtype: bool
        """
        return set(self) == set(other) and all(
            np.shape(self[name]) == np.shape(other[name])
            and bool(np.allclose(self[name], other[name], rtol=rtol, atol=atol))
            for name in self
        )
