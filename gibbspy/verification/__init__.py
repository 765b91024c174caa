# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Deterministic verification of Gibbs samplers.

    1. :py:mod:`gibbspy.verification.oracle` checks each full-conditional rule of
       a model against the model's joint density using an exact
       log-density-ratio identity.
    2. :py:mod:`gibbspy.verification.equivalence` checks that an optimized
       sampler reproduces the modular reference sampler draw for draw when both
       share a random seed.

Both return value-like results with a ``passed`` flag and a
``raise_for_mismatch()`` method for use in test suites.
"""
