# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Random-variate building blocks for GibbsPy models.

This submodule contains the distribution handles models return from their prior,
likelihood, and full-conditional rules, and the explicit random streams every
draw is taken from.
"""
