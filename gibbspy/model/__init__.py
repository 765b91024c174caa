# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Model construction for GibbsPy.

Models are built from a small set of value types:

    - :py:class:`~gibbspy.model.state.State`, an immutable assignment of values
      to parameters.
    - :py:class:`~gibbspy.model.data.ObservedData`, the immutable observations a
      model conditions on.
    - :py:class:`~gibbspy.model.model.Model`, which declares parameters, their
      priors and likelihood, and one hand-derived full-conditional rule per
      parameter.

Distribution handles and random streams live in
:py:mod:`gibbspy.model.components`; ready-made models live in
:py:mod:`gibbspy.model.library`.
"""
