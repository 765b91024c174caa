# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Utility functions for the GibbsPy package.

This module provides small numerical helpers that support the core
functionality of GibbsPy, including:

    - Normalization of parameter values into immutable scalars or arrays
    - Conversion between NumPy and PyTorch representations
    - Validation of sweep counts
    - Tolerance computations shared by the verification tools

Users will not typically need to interact with this module directly--it is designed
to be used internally by GibbsPy.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import torch

from gibbspy.exceptions import InvalidConfiguration

if TYPE_CHECKING:
    from gibbspy import custom_types


def validate_sweep_count(sweep_count: Any) -> int:
    """Confirm that ``sweep_count`` is a non-negative integer.

    Python and NumPy integers are both accepted; booleans are not.

    :returns: The sweep count as a Python int
    :rtype: int

    :raises InvalidConfiguration: If it is not a non-negative integer
    """
    if isinstance(sweep_count, bool) or not isinstance(sweep_count, (int, np.integer)):
        raise InvalidConfiguration(
            f"Sweep count must be an integer, got {type(sweep_count).__name__}."
        )
    if sweep_count < 0:
        raise InvalidConfiguration(
            f"Sweep count must be non-negative, got {sweep_count}."
        )
    return int(sweep_count)


def as_parameter_value(value: Any) -> "custom_types.ParameterValue":
    """Normalize a parameter value into its canonical immutable form.

    Scalars (including 0-d arrays and tensors) become Python floats. Anything
    with at least one dimension becomes a read-only float64 copy, so that the
    caller's original buffer can never alias a stored value.

    :param value: Value to normalize
    :type value: Any

    :returns: A float or a read-only float64 array
    :rtype: custom_types.ParameterValue

    Example:
        >>> as_parameter_value(np.float32(1.5))
        1.5
        >>> as_parameter_value([1, 2]).flags.writeable
        False
    """
    if isinstance(value, torch.Tensor):
        value = value.detach().cpu().numpy()

    array = np.array(value, dtype=np.float64, copy=True)
    if array.ndim == 0:
        return float(array)

    return read_only(array)


def read_only(array: npt.NDArray) -> npt.NDArray:
    """Lock ``array`` and return a read-only view of it.

    The write flag of the returned view cannot be turned back on, because its base
    is locked too. ``array`` should be a private copy that is not handed out; the
    locked buffer stays reachable through the view's ``base`` attribute, so this
    guards against accidental writes rather than deliberate ones.

    :param array: Array owning its data
    :type array: npt.NDArray

    :returns: Read-only view of ``array``
    :rtype: npt.NDArray
    """
    array.setflags(write=False)
    return array.view()


def values_equal(
    first: "custom_types.ParameterValue", second: "custom_types.ParameterValue"
) -> bool:
    """Exact (bitwise for finite values) comparison of two parameter values.

    :returns: True if the shapes match and every element is equal
    :rtype: bool
    """
    first, second = np.asarray(first), np.asarray(second)
    return first.shape == second.shape and bool(np.array_equal(first, second))


def max_abs_diff(first: Any, second: Any) -> float:
    """Maximum absolute element-wise difference between two broadcastable values.

    Non-finite entries that agree exactly (e.g., matching infinities) contribute
    nothing; any other non-finite difference is reported as infinity.

    :returns: The largest absolute difference
    :rtype: float
    """
    first = np.asarray(first, dtype=np.float64)
    second = np.asarray(second, dtype=np.float64)
    if first.size == 0 and second.size == 0:
        return 0.0

    same = first == second
    diff = np.where(same, 0.0, np.abs(first - second))
    diff = np.where(np.isnan(diff), np.inf, diff)
    return float(np.max(diff))


def scaled_tolerance(rtol: float, *magnitudes: float) -> float:
    """Tolerance relative to the largest magnitude involved in a comparison.

    The tolerance is never allowed to fall below ``rtol`` itself, so comparisons
    of quantities near zero still get a meaningful absolute floor.

    :param rtol: Relative tolerance
    :type rtol: float
    :param magnitudes: Values whose magnitude sets the scale

    :returns: ``rtol * max(1, |m_1|, ..., |m_k|)``
    :rtype: float
    """
    return rtol * max([1.0, *(abs(float(m)) for m in magnitudes)])


def to_tensor(value: Any) -> torch.Tensor:
    """Convert a value to a float64 PyTorch tensor.

    Float64 is required: the oracle compares log-density ratios at a relative
    tolerance that single precision cannot meet.

    :param value: Scalar, array, or tensor
    :type value: Any

    :returns: A float64 tensor holding a copy of the value
    :rtype: torch.Tensor
    """
    if isinstance(value, torch.Tensor):
        return value.to(torch.float64)
    return torch.as_tensor(np.asarray(value, dtype=np.float64).copy())


def stack_values(values: list[Any]) -> npt.NDArray:
    """Stack a list of parameter values into a read-only float64 array.

    :param values: Scalars or equally shaped arrays
    :type values: list[Any]

    :returns: Array with one leading entry per input value
    :rtype: npt.NDArray
    """
    stacked = np.stack([np.asarray(v, dtype=np.float64) for v in values])
    return read_only(stacked)
