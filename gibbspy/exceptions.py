"""Custom exception classes for the GibbsPy package.

This module defines a hierarchy of custom exceptions used throughout the
GibbsPy package. All custom exceptions inherit from the base GibbsPyError class
to allow for unified exception handling when needed.

None of these errors are transient. Each one indicates either a configuration
mistake or a genuine bug in the mathematics of a model, so they are always
surfaced to the caller.
"""

from __future__ import annotations

from typing import Any, Optional


class GibbsPyError(Exception):
    """Base class for all exceptions in the GibbsPy package.

    This exception serves as the root of the GibbsPy exception hierarchy,
    allowing users to catch all package-specific exceptions with a single
    except clause.

    Example:
        >>> try:
        ...     # GibbsPy operations
        ...     pass
        ... except GibbsPyError as e:
        ...     print(f"GibbsPy error occurred: {e}")
    """


class UnknownParameter(GibbsPyError, KeyError):
    """Raised when a model is asked about a parameter it does not declare.

    :param name: The offending parameter name
    :type name: str
    :param known: The parameter names that are declared
    :type known: tuple[str, ...]
    """

    def __init__(self, name: str, known: tuple[str, ...] = ()):
        self.name = name
        self.known = tuple(known)
        super().__init__(
            f"Unknown parameter '{name}'. Declared parameters are: {', '.join(self.known)}"
        )

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]


class IncompleteState(GibbsPyError):
    """Raised when a State does not assign a value to every declared parameter.

    :param missing: Names of the parameters without a value
    :type missing: tuple[str, ...]
    """

    def __init__(self, missing: tuple[str, ...]):
        self.missing = tuple(missing)
        super().__init__(
            f"State is missing values for parameters: {', '.join(self.missing)}"
        )


class InvalidConfiguration(GibbsPyError, ValueError):
    """Raised when sampling or data configuration is invalid (e.g., a negative
    sweep count or an update order that is not a permutation of the parameters)."""


class SamplerStopped(InvalidConfiguration):
    """Raised when a Gibbs sampler is advanced past its final sweep."""


class TrajectoryFrozen(GibbsPyError):
    """Raised when appending to a trajectory that no longer accepts States."""


class ConditionalMismatch(GibbsPyError, AssertionError):
    """Raised when a full conditional disagrees with the model's joint density.

    This is a test failure rather than a runtime fault. It carries everything
    needed to reproduce the failing probe.

    :param param: Parameter whose conditional was checked
    :type param: str
    :param v1: First probe value
    :param v2: Second probe value
    :param residual: Difference between the conditional and joint log-density ratios
    :type residual: float
    :param tolerance: Tolerance the residual was compared against
    :type tolerance: float
    """

    def __init__(
        self, param: str, v1: Any, v2: Any, residual: float, tolerance: float
    ):
        self.param = param
        self.v1 = v1
        self.v2 = v2
        self.residual = residual
        self.tolerance = tolerance
        super().__init__(
            f"Conditional for '{param}' is inconsistent with the joint density: "
            f"residual {residual:.3e} exceeds tolerance {tolerance:.3e} "
            f"for probe values v1={v1!r}, v2={v2!r}"
        )


class EquivalenceMismatch(GibbsPyError, AssertionError):
    """Raised when fast-path and reference trajectories diverge.

    :param sweep: Index of the first diverging sweep
    :type sweep: int
    :param param: Parameter that diverged first, or None when the implementations
        disagree on the parameter set or on random-stream consumption
    :type param: Optional[str]
    :param reference_value: Value produced by the reference implementation
    :param fast_value: Value produced by the fast-path implementation
    """

    def __init__(
        self, sweep: int, param: Optional[str], reference_value: Any, fast_value: Any
    ):
        self.sweep = sweep
        self.param = param
        self.reference_value = reference_value
        self.fast_value = fast_value
        what = "parameter set or stream consumption" if param is None else f"parameter '{param}'"
        super().__init__(
            f"Trajectories diverge at sweep {sweep} in {what}: "
            f"reference={reference_value!r}, fast={fast_value!r}"
        )
