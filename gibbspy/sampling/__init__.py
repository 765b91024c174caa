# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Gibbs sampling for GibbsPy models.

This submodule contains the fixed-iteration Gibbs engine
(:py:mod:`gibbspy.sampling.engine`) and the append-only store of the States it
produces (:py:mod:`gibbspy.sampling.trajectory`).
"""
