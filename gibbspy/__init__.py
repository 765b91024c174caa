# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
GibbsPy: Verifiable Gibbs sampling for Bayesian models.

GibbsPy is a Python package for building Gibbs samplers whose correctness can be
checked deterministically, without judging whether sampled output "looks right".
It decomposes a sampler into independently verifiable full-conditional rules and
provides two verification tools alongside the sampling engine.

Key Features:
    - Immutable States and explicit random streams for reproducible sampling
    - Models that describe each full conditional and the joint density separately
    - A conditional-correctness oracle based on an exact log-density-ratio identity
    - An equivalence checker proving that a fast monolithic sampler reproduces the
      verified modular one under shared randomness
    - Trajectory export to pandas and xarray for downstream analysis

Global Variables:
    __version__: Package version string

Example:
    >>> import gibbspy
    >>> from gibbspy.model.library import NormalModel
    >>> data = gibbspy.load_data(
    ...     gibbspy.SyntheticNormalSource(n=1000, mean=2.0, variance=3.5, seed=0)
    ... )
    >>> model = NormalModel(mu_0=0.0, tau2_0=10000.0, nu_0=1.0, sigma2_0=1.0)
    >>> trajectory = gibbspy.run(model, data, model.initial_state(data), 1000, seed=1)
    >>> gibbspy.check_conditional(model, "theta", trajectory[-1], data, 0.5, -0.3).passed
    True
"""

from typeguard import install_import_hook

# Define the version
__version__ = "0.1.0"

# Set up type checking
install_import_hook("gibbspy")

# Import objects that should be easily accessible from the package level
# pylint: disable=wrong-import-position
from gibbspy.model.components.random_stream import RandomStream
from gibbspy.model.data import (
    ArraySource,
    CsvSource,
    load_data,
    ObservedData,
    QuerySource,
    SyntheticNormalSource,
    TableSource,
)
from gibbspy.model.model import conditional, Model
from gibbspy.model.state import State
from gibbspy.sampling.engine import GibbsSampler, run, SamplerStatus
from gibbspy.sampling.trajectory import Trajectory
from gibbspy.verification.equivalence import (
    check_equivalence,
    reference_implementation,
)
from gibbspy.verification.oracle import check_all_conditionals, check_conditional
