# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Explicit random-stream tokens for reproducible Gibbs sampling.

GibbsPy never draws from a global random number generator. Every sampling call
receives a :py:class:`RandomStream` and takes exactly one token from it per draw.
This gives two guarantees:

    - **Determinism**: Two streams built from the same seed produce identical
      draws when consumed in the same order.
    - **Auditable consumption**: Streams count the draws taken from them (and from
      their child blocks), so two implementations of the same sampler can be
      checked to consume randomness with identical granularity.

Streams are organized into blocks. Block ``i`` of a stream is an independent child
stream derived only from the parent seed and ``i`` using NumPy's
``SeedSequence`` spawn keys. The Gibbs engine uses block ``i`` for sweep ``i``, so
a sweep can be replayed in isolation from the preceding State.

Example:
    >>> stream = RandomStream(42)
    >>> block = stream.block(1)
    >>> x = block.take().standard_normal()
    >>> stream.draws
    1
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from gibbspy import custom_types


class RandomStream:
    """Deterministic source of random-stream tokens.

    :param seed: Non-negative integer seed for the stream
    :type seed: custom_types.Integer
    :param spawn_key: Position of this stream within the block tree of its root.
        Users should leave this empty; child streams are created with
        :py:meth:`block`. Defaults to ().
    :type spawn_key: tuple[int, ...]

    :ivar seed: Seed of the root stream
    :ivar spawn_key: Block path from the root stream

    :raises ValueError: If the seed is not a non-negative integer
    """

    def __init__(
        self,
        seed: "custom_types.Integer",
        spawn_key: tuple[int, ...] = (),
        _parent: Optional["RandomStream"] = None,
    ):
        if (
            isinstance(seed, bool)
            or not isinstance(seed, (int, np.integer))
            or seed < 0
        ):
            raise ValueError(f"Seed must be a non-negative integer, got {seed!r}.")

        self.seed = int(seed)
        self.spawn_key = tuple(spawn_key)
        self._parent = _parent
        self._draws = 0
        self._generator = np.random.Generator(
            np.random.PCG64(
                np.random.SeedSequence(entropy=self.seed, spawn_key=self.spawn_key)
            )
        )

    def block(self, index: "custom_types.Integer") -> "RandomStream":
        """Get the independent child stream for block ``index``.

        Calling this twice with the same index yields two streams that produce
        the same draws. Draws taken from a block are also counted by this stream.

        :param index: Non-negative block index
        :type index: custom_types.Integer

        :returns: A fresh child stream
        :rtype: RandomStream
        """
        if index < 0:
            raise ValueError(f"Block index must be non-negative, got {index}.")
        return RandomStream(self.seed, self.spawn_key + (int(index),), _parent=self)

    def take(self) -> np.random.Generator:
        """Take the token for exactly one draw.

        The returned generator must be used for a single sampling call (which may
        produce an array of values). Every call is counted on this stream and on
        all of its ancestors.

        :returns: The underlying NumPy generator
        :rtype: np.random.Generator
        """
        stream = self
        while stream is not None:
            stream._draws += 1  # pylint: disable=protected-access
            stream = stream._parent  # pylint: disable=protected-access
        return self._generator

    @property
    def draws(self) -> int:
        """Number of tokens taken from this stream and all of its blocks."""
        return self._draws

    def __repr__(self) -> str:
        return (
            f"RandomStream(seed={self.seed}, spawn_key={self.spawn_key}, "
            f"draws={self._draws})"
        )
