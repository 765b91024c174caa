# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Observed data for GibbsPy models.

This module provides :py:class:`ObservedData`, the immutable container of
observations a model conditions on, together with a single loading entry point,
:py:func:`load_data`.

Data can come from several places. Rather than inspecting the type of whatever
the caller passes, :py:func:`load_data` accepts one of an explicit set of request
variants, each carrying a ``kind`` tag:

    - :py:class:`ArraySource`: values already held in memory
    - :py:class:`CsvSource`: a column of a CSV file
    - :py:class:`TableSource`: a column of a table in a SQLite database
    - :py:class:`QuerySource`: a column of the result of a SQL query against a
      SQLite database
    - :py:class:`SyntheticNormalSource`: i.i.d. normal draws with a known mean
      and variance, for simulation studies

Example:
    >>> data = load_data(SyntheticNormalSource(n=1000, mean=2.0, variance=3.5, seed=0))
    >>> data.n
    1000
"""

from __future__ import annotations

import sqlite3

from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional, Union

import numpy as np
import numpy.typing as npt
import pandas as pd

from gibbspy import utils
from gibbspy.exceptions import InvalidConfiguration


class ObservedData:
    """Immutable sequence of observations, optionally split into groups.

    :param values: Observations
    :type values: Any
    :param groups: Integer group label of each observation. Labels must be
        ``0, ..., n_groups - 1`` with every group represented. Defaults to None.
    :type groups: Optional[Any]

    :raises InvalidConfiguration: If there are no observations, the values are
        not 1-D and finite, or the group labels are malformed
    """

    def __init__(self, values: Any, groups: Optional[Any] = None):

        # Copy the values and make them read-only
        values = np.array(values, dtype=np.float64, copy=True)
        if values.ndim != 1:
            raise InvalidConfiguration(
                f"Observations must be 1-D, got shape {values.shape}."
            )
        if values.size == 0:
            raise InvalidConfiguration("At least one observation is required.")
        if not np.all(np.isfinite(values)):
            raise InvalidConfiguration("Observations must be finite.")
        self._values = utils.read_only(values)

        # Same for the groups, if provided
        self._groups: Optional[npt.NDArray] = None
        if groups is not None:
            groups = np.array(groups, copy=True)
            if groups.shape != values.shape:
                raise InvalidConfiguration(
                    f"Group labels have shape {groups.shape} but observations "
                    f"have shape {values.shape}."
                )
            if not np.issubdtype(groups.dtype, np.integer):
                raise InvalidConfiguration("Group labels must be integers.")
            if groups.min() < 0 or set(np.unique(groups)) != set(
                range(groups.max() + 1)
            ):
                raise InvalidConfiguration(
                    "Group labels must be 0, ..., n_groups - 1 with every group observed."
                )
            self._groups = utils.read_only(groups.astype(np.int64))

    @property
    def values(self) -> npt.NDArray:
        """Read-only array of observations."""
        return self._values

    @property
    def groups(self) -> Optional[npt.NDArray]:
        """Read-only array of group labels, or None for ungrouped data."""
        return self._groups

    @property
    def n(self) -> int:
        """Number of observations."""
        return int(self._values.size)

    @property
    def n_groups(self) -> int:
        """Number of groups (1 for ungrouped data)."""
        return 1 if self._groups is None else int(self._groups.max()) + 1

    def mean(self) -> float:
        """Sample mean of the observations."""
        return float(np.mean(self._values))

    def variance(self) -> float:
        """Unbiased sample variance of the observations.

        :raises InvalidConfiguration: If there is only one observation
        """
        if self.n < 2:
            raise InvalidConfiguration("The variance needs at least two observations.")
        return float(np.var(self._values, ddof=1))

    def method_of_moments(self) -> tuple[float, float]:
        """Method-of-moments estimates of the mean and variance."""
        return self.mean(), self.variance()

    def group_sizes(self) -> npt.NDArray:
        """Number of observations in each group."""
        if self._groups is None:
            return np.array([self.n])
        return np.bincount(self._groups, minlength=self.n_groups)

    def group_sums(self) -> npt.NDArray:
        """Sum of the observations in each group."""
        if self._groups is None:
            return np.array([float(np.sum(self._values))])
        return np.bincount(self._groups, weights=self._values, minlength=self.n_groups)

    def group_means(self) -> npt.NDArray:
        """Mean of the observations in each group."""
        return self.group_sums() / self.group_sizes()

    def group_labels(self) -> npt.NDArray:
        """Group label of every observation (all zeros for ungrouped data)."""
        if self._groups is None:
            return np.zeros(self.n, dtype=np.int64)
        return self._groups

    def __len__(self) -> int:
        return self.n

    def __repr__(self) -> str:
        return f"ObservedData(n={self.n}, n_groups={self.n_groups})"


@dataclass(frozen=True)
class ArraySource:
    """Observations already held in memory."""

    values: Any
    groups: Optional[Any] = None
    kind: Literal["array"] = "array"


@dataclass(frozen=True)
class CsvSource:
    """A column (and optional group column) of a CSV file."""

    path: str
    column: str
    group_column: Optional[str] = None
    kind: Literal["csv"] = "csv"


@dataclass(frozen=True)
class TableSource:
    """A column (and optional group column) of a table in a SQLite database."""

    database: str
    table: str
    column: str
    group_column: Optional[str] = None
    kind: Literal["table"] = "table"


@dataclass(frozen=True)
class QuerySource:
    """A column (and optional group column) of a SQL query result."""

    database: str
    query: str
    column: str
    group_column: Optional[str] = None
    kind: Literal["query"] = "query"


@dataclass(frozen=True)
class SyntheticNormalSource:
    """``n`` i.i.d. normal observations with known mean and variance.

    With ``standardize`` set, the draws are shifted and rescaled so that their
    sample mean and (unbiased) sample variance equal ``mean`` and ``variance``
    exactly.
    """

    n: int
    mean: float
    variance: float
    seed: int
    standardize: bool = False
    kind: Literal["synthetic_normal"] = "synthetic_normal"


DataSource = Union[ArraySource, CsvSource, TableSource, QuerySource, SyntheticNormalSource]
"""Union of all request variants accepted by :py:func:`load_data`."""


def _from_frame(
    frame: pd.DataFrame, column: str, group_column: Optional[str]
) -> ObservedData:
    """Build observed data from columns of a data frame.

    Group labels of any type are mapped to ``0, ..., n_groups - 1`` in order of
    first appearance.
    """
    for name in (column, group_column):
        if name is not None and name not in frame.columns:
            raise InvalidConfiguration(
                f"Column '{name}' not found. Available columns: {list(frame.columns)}"
            )

    groups = None
    if group_column is not None:
        groups, _ = pd.factorize(frame[group_column])

    return ObservedData(frame[column].to_numpy(dtype=np.float64), groups=groups)


def _read_sql(database: str, query: str) -> pd.DataFrame:
    """Run ``query`` against the SQLite database at ``database``."""
    connection = sqlite3.connect(database)
    try:
        return pd.read_sql_query(query, connection)
    finally:
        connection.close()


def _load_array(source: ArraySource) -> ObservedData:
    return ObservedData(source.values, groups=source.groups)


def _load_csv(source: CsvSource) -> ObservedData:
    return _from_frame(pd.read_csv(source.path), source.column, source.group_column)


def _load_table(source: TableSource) -> ObservedData:
    # Table names cannot be bound as parameters, so they are quoted instead
    table = source.table.replace('"', '""')
    return _from_frame(
        _read_sql(source.database, f'SELECT * FROM "{table}"'),
        source.column,
        source.group_column,
    )


def _load_query(source: QuerySource) -> ObservedData:
    return _from_frame(
        _read_sql(source.database, source.query), source.column, source.group_column
    )


def _load_synthetic_normal(source: SyntheticNormalSource) -> ObservedData:
    if source.variance <= 0:
        raise InvalidConfiguration(
            f"Variance must be positive, got {source.variance}."
        )
    rng = np.random.default_rng(source.seed)
    draws = rng.normal(source.mean, np.sqrt(source.variance), size=source.n)
    if source.standardize:
        if source.n < 2:
            raise InvalidConfiguration("Standardizing needs at least two observations.")
        draws = (draws - draws.mean()) / draws.std(ddof=1)
        draws = source.mean + np.sqrt(source.variance) * draws
    return ObservedData(draws)


_LOADERS: dict[str, Callable[[Any], ObservedData]] = {
    "array": _load_array,
    "csv": _load_csv,
    "table": _load_table,
    "query": _load_query,
    "synthetic_normal": _load_synthetic_normal,
}


def load_data(source: DataSource) -> ObservedData:
    """Load observed data from one of the supported request variants.

    :param source: Request describing where the data comes from
    :type source: DataSource

    :returns: The loaded observations
    :rtype: ObservedData

    :raises InvalidConfiguration: If the request kind is unknown, a requested
        column does not exist, or the loaded observations are invalid

    Example:
        >>> data = load_data(CsvSource("measurements.csv", column="y"))
        >>> data = load_data(QuerySource("lab.db", "SELECT y FROM runs WHERE ok", "y"))
    """
    if (loader := _LOADERS.get(getattr(source, "kind", None))) is None:
        raise InvalidConfiguration(
            f"Unknown data source kind {getattr(source, 'kind', None)!r}. "
            f"Expected one of {sorted(_LOADERS)}."
        )
    return loader(source)
