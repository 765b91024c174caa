"""Tests for trajectory storage and export."""

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from gibbspy import State, Trajectory
from gibbspy.exceptions import (
    IncompleteState,
    InvalidConfiguration,
    TrajectoryFrozen,
    UnknownParameter,
)


@pytest.fixture
def scalar_trajectory():
    trajectory = Trajectory(("theta", "sigma2"))
    for i in range(5):
        trajectory.append(State(theta=float(i), sigma2=float(10 * i + 1)))
    return trajectory.freeze()


@pytest.fixture
def vector_trajectory():
    return Trajectory.from_arrays(
        {
            "theta": np.arange(12, dtype=float).reshape(4, 3),
            "sigma2": [1.0, 2.0, 3.0, 4.0],
        }
    )


class TestAppend:
    def test_append_and_read(self):
        trajectory = Trajectory(("theta",))
        trajectory.append(State(theta=1.0))
        trajectory.append({"theta": 2.0})
        assert len(trajectory) == 2
        assert trajectory.sweep_count == 1
        assert trajectory.state(1) == State(theta=2.0)

    def test_numpy_index(self, scalar_trajectory):
        best = np.argmax(scalar_trajectory.marginal("theta"))
        assert scalar_trajectory[best] == State(theta=4.0, sigma2=41.0)
        assert scalar_trajectory[np.int64(-1)] == scalar_trajectory[4]

    def test_slice(self, scalar_trajectory):
        kept = scalar_trajectory[2:]
        assert kept == [scalar_trajectory[i] for i in range(2, 5)]
        assert scalar_trajectory[::2] == [scalar_trajectory[i] for i in (0, 2, 4)]
        assert scalar_trajectory[10:] == []

    def test_frozen(self, scalar_trajectory):
        with pytest.raises(TrajectoryFrozen):
            scalar_trajectory.append(State(theta=0.0, sigma2=1.0))

    def test_incomplete_state(self):
        with pytest.raises(IncompleteState):
            Trajectory(("theta", "sigma2")).append(State(theta=1.0))

    def test_extra_parameter(self):
        with pytest.raises(UnknownParameter):
            Trajectory(("theta",)).append(State(theta=1.0, mu=0.0))

    def test_history_cannot_change(self):
        values = np.array([1.0, 2.0])
        trajectory = Trajectory(("theta",))
        trajectory.append(State(theta=values))
        values[0] = 100.0
        assert trajectory[0]["theta"][0] == 1.0

    def test_duplicate_names(self):
        with pytest.raises(ValueError, match="unique"):
            Trajectory(("theta", "theta"))


class TestMarginals:
    def test_marginal(self, scalar_trajectory):
        np.testing.assert_array_equal(scalar_trajectory.marginal("theta"), np.arange(5.0))

    def test_marginal_read_only(self, scalar_trajectory):
        with pytest.raises(ValueError):
            scalar_trajectory.marginal("theta")[0] = 10.0

    def test_vector_marginal(self, vector_trajectory):
        assert vector_trajectory.marginal("theta").shape == (4, 3)

    def test_unknown_marginal(self, scalar_trajectory):
        with pytest.raises(UnknownParameter):
            scalar_trajectory.marginal("mu")

    def test_empty_marginal(self):
        assert Trajectory(("theta",)).marginal("theta").shape == (0,)

    def test_posterior_mean(self, scalar_trajectory, vector_trajectory):
        assert scalar_trajectory.posterior_mean("theta") == pytest.approx(2.0)
        assert scalar_trajectory.posterior_mean("theta", burn_in=3) == pytest.approx(3.5)
        np.testing.assert_allclose(
            vector_trajectory.posterior_mean("theta"), [4.5, 5.5, 6.5]
        )

    def test_negative_burn_in(self, scalar_trajectory):
        with pytest.raises(InvalidConfiguration, match="Burn-in"):
            scalar_trajectory.posterior_mean("theta", burn_in=-1)

    def test_burn_in_discards_everything(self, scalar_trajectory):
        with pytest.warns(UserWarning, match="discards all"):
            mean = scalar_trajectory.posterior_mean("theta", burn_in=10)
        assert np.isnan(mean)

    def test_from_arrays_length_mismatch(self):
        with pytest.raises(InvalidConfiguration, match="same number of sweeps"):
            Trajectory.from_arrays({"theta": [1.0, 2.0], "sigma2": [1.0]})

    def test_round_trip_through_arrays(self, vector_trajectory):
        rebuilt = Trajectory.from_arrays(vector_trajectory.to_arrays())
        assert list(rebuilt) == list(vector_trajectory)


class TestExport:
    def test_dataframe(self, vector_trajectory):
        frame = vector_trajectory.to_dataframe()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["theta[0]", "theta[1]", "theta[2]", "sigma2"]
        assert frame.index.name == "sweep"
        assert len(frame) == 4

    def test_summary(self, scalar_trajectory):
        summary = scalar_trajectory.summary()
        assert list(summary.index) == ["theta", "sigma2"]
        assert list(summary.columns) == ["mean", "sd", "q0.025", "q0.5", "q0.975"]
        assert summary.loc["theta", "mean"] == pytest.approx(2.0)
        assert summary.loc["theta", "q0.5"] == pytest.approx(2.0)

    def test_summary_custom_quantiles(self, scalar_trajectory):
        summary = scalar_trajectory.summary(burn_in=1, quantiles=(0.1, 0.9))
        assert list(summary.columns) == ["mean", "sd", "q0.1", "q0.9"]
        assert summary.loc["theta", "mean"] == pytest.approx(2.5)

    def test_xarray(self, vector_trajectory):
        dataset = vector_trajectory.to_xarray()
        assert isinstance(dataset, xr.Dataset)
        assert dataset["theta"].dims == ("sweep", "theta_dim_0")
        assert dataset["sigma2"].dims == ("sweep",)
        np.testing.assert_array_equal(dataset["sweep"].values, np.arange(4))
