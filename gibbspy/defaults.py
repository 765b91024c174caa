# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Default configuration values for GibbsPy package components.

This module centralizes default values used across the GibbsPy package,
including tolerances for the conditional-correctness oracle and the
equivalence checker, progress reporting, and naming conventions for exported
trajectories.

The module is organized into logical groups covering:
    - Verification tolerances
    - Sampling defaults
    - Trajectory export conventions

Default values cannot be programmatically altered. This documentation serves as a
reference for users and developers to understand the standard configuration used
by GibbsPy.
"""

# Verification defaults
DEFAULT_ORACLE_RTOL: float = 1e-9
"""Default relative tolerance for the conditional-correctness oracle.

The residual between the conditional and joint log-density ratios is compared
against this tolerance scaled by the magnitude of the joint log densities.

:type: float
"""

DEFAULT_PROBE_PAIRS: int = 5
"""Default number of probe-value pairs drawn per parameter by the oracle.

:type: int
"""

DEFAULT_EQUIVALENCE_RTOL: float = 1e-9
"""Default relative tolerance for comparing reference and fast-path trajectories.

:type: float
"""

DEFAULT_EQUIVALENCE_ATOL: float = 1e-12
"""Default absolute tolerance for comparing reference and fast-path trajectories.

:type: float
"""

# Sampling defaults
DEFAULT_SHOW_PROGRESS: bool = False
"""Default setting for displaying a progress bar over Gibbs sweeps.

:type: bool
"""

# Trajectory export defaults
DEFAULT_SWEEP_DIM: str = "sweep"
"""Name of the dimension indexing sweeps in exported trajectories.

:type: str
"""

DEFAULT_SUMMARY_QUANTILES: tuple[float, ...] = (0.025, 0.5, 0.975)
"""Quantiles reported by :py:meth:`Trajectory.summary()
<gibbspy.sampling.trajectory.Trajectory.summary>`.

:type: tuple[float, ...]
"""
