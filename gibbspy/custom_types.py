# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Custom type definitions for GibbsPy.

This module provides type aliases used throughout the GibbsPy package for
parameter values, data sources, and model callables.

All imports are conditional on TYPE_CHECKING to avoid circular imports while
maintaining proper type hints for development and documentation tools.
"""

from typing import Any, Callable, Mapping, TYPE_CHECKING, Union

# Everything in this file is only imported if TYPE_CHECKING is True.
if TYPE_CHECKING:

    import numpy as np
    import numpy.typing as npt

    from gibbspy.model.components.random_stream import RandomStream
    from gibbspy.model.state import State
    from gibbspy.sampling.trajectory import Trajectory

# Integers
Integer = Union[int, "np.integer"]
"""Type alias for integer values such as sweep counts, seeds, and indices.

Accepts both Python's built-in int and NumPy integer types.

:type: Union[int, np.integer]
"""

# Parameter values
ParameterValue = Union[float, "npt.NDArray[np.floating]"]
"""Type alias for the value of a single model parameter in a State.

Scalar parameters hold floats; vector parameters hold float64 arrays.

:type: Union[float, npt.NDArray[np.floating]]
"""

StateLike = Union["State", Mapping[str, Any]]
"""Anything that can be converted into a :py:class:`~gibbspy.model.state.State`.

:type: Union[State, Mapping[str, Any]]
"""

# Seeds and streams
SeedLike = Union[int, "np.integer", "RandomStream"]
"""Either an integer seed or an explicit random stream.

:type: Union[int, np.integer, RandomStream]
"""

# Implementation callables compared by the equivalence checker
SamplerImplementation = Callable[..., Union["Trajectory", Mapping[str, Any]]]
"""Signature shared by reference and fast-path implementations.

Implementations are called as ``impl(data, initial_state, sweep_count, stream,
**model_config)`` and return either a Trajectory or a mapping from parameter
name to an array with one leading entry per sweep.

:type: Callable[..., Union[Trajectory, Mapping[str, npt.NDArray]]]
"""