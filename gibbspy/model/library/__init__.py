# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Ready-made GibbsPy models.

    - :py:class:`~gibbspy.model.library.normal.NormalModel`, the univariate
      normal model with unknown mean and variance, together with its fast-path
      sampler :py:func:`~gibbspy.model.library.normal.fast_normal_gibbs`.
    - :py:class:`~gibbspy.model.library.hierarchical_normal.HierarchicalNormalModel`,
      a two-level normal model for grouped data.
"""

from gibbspy.model.library.hierarchical_normal import HierarchicalNormalModel
from gibbspy.model.library.normal import fast_normal_gibbs, NormalModel
