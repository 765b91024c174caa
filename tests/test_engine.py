"""Tests for the Gibbs sampling engine."""

import warnings

import numpy as np
import pytest

from gibbspy import (
    ArraySource,
    conditional,
    GibbsSampler,
    load_data,
    Model,
    RandomStream,
    run,
    SamplerStatus,
    State,
)
from gibbspy.exceptions import (
    IncompleteState,
    InvalidConfiguration,
    SamplerStopped,
    UnknownParameter,
)
from gibbspy.model.components.distributions import Normal

# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════


class ChainedModel(Model):
    """Model whose conditionals make sequential substitution observable.

    ``first`` is drawn near 100 regardless of the State, and ``second`` is drawn
    near the value of ``first`` it is given. Each rule records what it saw.
    """

    PARAMETERS = ("first", "second")

    def __init__(self):
        self.seen_first = []

    def prior(self, param, state):
        return Normal(mu=0.0, sigma=10.0)

    def likelihood(self, state, data):
        return Normal(mu=state["second"], sigma=1.0)

    @conditional("first")
    def _first(self, others, data):
        return Normal(mu=100.0, sigma=1e-6)

    @conditional("second")
    def _second(self, others, data):
        self.seen_first.append(others["first"])
        return Normal(mu=others["first"], sigma=1e-6)


@pytest.fixture
def normal_sampler(normal_model, normal_data):
    return GibbsSampler(
        normal_model,
        normal_data,
        normal_model.initial_state(normal_data),
        sweep_count=20,
        stream=RandomStream(11),
    )


# ══════════════════════════════════════════════════════════════════════════════
# TRAJECTORY SHAPE
# ══════════════════════════════════════════════════════════════════════════════


class TestTrajectoryShape:
    @pytest.mark.parametrize("sweep_count", [0, 1, 2, 25])
    def test_length(self, normal_model, normal_data, sweep_count):
        initial = normal_model.initial_state(normal_data)
        trajectory = run(normal_model, normal_data, initial, sweep_count, seed=3)
        assert len(trajectory) == sweep_count + 1
        assert trajectory.sweep_count == sweep_count
        assert trajectory.frozen

    def test_first_state_is_initial(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        trajectory = run(normal_model, normal_data, initial, 10, seed=3)
        assert trajectory[0] == initial

    def test_every_state_is_complete(self, hierarchical_model, grouped_data):
        initial = hierarchical_model.initial_state(grouped_data)
        trajectory = run(hierarchical_model, grouped_data, initial, 10, seed=3)
        for state in trajectory:
            assert state.names == hierarchical_model.parameter_names
        assert trajectory.marginal("theta").shape == (11, grouped_data.n_groups)


# ══════════════════════════════════════════════════════════════════════════════
# DETERMINISM AND THE MARKOV PROPERTY
# ══════════════════════════════════════════════════════════════════════════════


class TestDeterminism:
    def test_same_seed_same_trajectory(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        first = run(normal_model, normal_data, initial, 50, seed=8)
        second = run(normal_model, normal_data, initial, 50, seed=8)
        assert list(first) == list(second)

    def test_different_seed_different_trajectory(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        first = run(normal_model, normal_data, initial, 5, seed=8)
        second = run(normal_model, normal_data, initial, 5, seed=9)
        assert first[1] != second[1]

    def test_seed_or_stream(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        from_seed = run(normal_model, normal_data, initial, 5, seed=4)
        from_stream = run(normal_model, normal_data, initial, 5, seed=RandomStream(4))
        assert list(from_seed) == list(from_stream)

    def test_sweep_replays_from_previous_state(self, normal_sampler):
        """State i is a function of State i - 1 and block i of the stream only."""
        trajectory = normal_sampler.run()
        replay_stream = RandomStream(11)
        for i in (1, 7, 20):
            replayed = normal_sampler.sweep(trajectory[i - 1], replay_stream.block(i))
            assert replayed == trajectory[i]

    def test_sweep_is_pure(self, normal_sampler):
        state = normal_sampler.state
        normal_sampler.sweep(state, RandomStream(0).block(1))
        assert normal_sampler.sweeps_done == 0
        assert len(normal_sampler.trajectory) == 1
        assert normal_sampler.state is state

    def test_shared_model_and_data(self, normal_model, normal_data):
        """Independent chains sharing a model and data do not interfere."""
        initial = normal_model.initial_state(normal_data)
        chains = [
            GibbsSampler(normal_model, normal_data, initial, 5, RandomStream(seed))
            for seed in (1, 2, 1)
        ]
        for _ in range(5):
            for chain in chains:
                chain.advance()
        assert list(chains[0].trajectory) == list(chains[2].trajectory)
        assert chains[0].state != chains[1].state


# ══════════════════════════════════════════════════════════════════════════════
# SEQUENTIAL SUBSTITUTION
# ══════════════════════════════════════════════════════════════════════════════


class TestSequentialSubstitution:
    def test_later_update_sees_earlier_draw(self):
        model = ChainedModel()
        data = load_data(ArraySource([0.0]))
        trajectory = run(model, data, State(first=0.0, second=0.0), 1, seed=0)

        # second was drawn given the new value of first, not the initial 0.0
        assert model.seen_first == [trajectory[1]["first"]]
        assert trajectory[1]["first"] == pytest.approx(100.0, abs=1e-3)
        assert trajectory[1]["second"] == pytest.approx(100.0, abs=1e-3)

    def test_update_order(self):
        model = ChainedModel()
        data = load_data(ArraySource([0.0]))
        trajectory = run(
            model,
            data,
            State(first=0.0, second=0.0),
            1,
            seed=0,
            update_order=("second", "first"),
        )

        # second now conditions on the initial value of first
        assert model.seen_first == [0.0]
        assert trajectory[1]["second"] == pytest.approx(0.0, abs=1e-3)
        assert trajectory[1].names == ("first", "second")

    def test_each_parameter_updated_once_per_sweep(self, normal_sampler):
        normal_sampler.run()
        assert normal_sampler.draws_per_sweep == [2] * 20
        assert normal_sampler.stream.draws == 40


# ══════════════════════════════════════════════════════════════════════════════
# LIFECYCLE
# ══════════════════════════════════════════════════════════════════════════════


class TestLifecycle:
    def test_status_transitions(self, normal_model, normal_data):
        sampler = GibbsSampler(
            normal_model,
            normal_data,
            normal_model.initial_state(normal_data),
            2,
            RandomStream(0),
        )
        assert sampler.status is SamplerStatus.INITIALIZED
        sampler.advance()
        assert sampler.status is SamplerStatus.SWEEPING
        assert not sampler.trajectory.frozen
        sampler.advance()
        assert sampler.status is SamplerStatus.STOPPED
        assert sampler.trajectory.frozen

    def test_advance_past_end(self, normal_sampler):
        normal_sampler.run()
        with pytest.raises(SamplerStopped):
            normal_sampler.advance()

    def test_run_after_advance(self, normal_sampler):
        normal_sampler.advance()
        trajectory = normal_sampler.run()
        assert len(trajectory) == 21

    def test_advance_matches_run(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        stepped = GibbsSampler(normal_model, normal_data, initial, 3, RandomStream(5))
        states = [stepped.advance() for _ in range(3)]
        trajectory = run(normal_model, normal_data, initial, 3, seed=5)
        assert states == list(trajectory)[1:]

    def test_zero_sweeps(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        sampler = GibbsSampler(normal_model, normal_data, initial, 0, RandomStream(0))
        trajectory = sampler.run()
        assert list(trajectory) == [initial]
        assert sampler.status is SamplerStatus.STOPPED

    def test_progress_bar(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        trajectory = run(normal_model, normal_data, initial, 3, seed=0, progress=True)
        assert len(trajectory) == 4


# ══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION ERRORS
# ══════════════════════════════════════════════════════════════════════════════


class TestConfiguration:
    def test_negative_sweep_count(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        with pytest.raises(InvalidConfiguration, match="non-negative"):
            run(normal_model, normal_data, initial, -1, seed=0)

    def test_numpy_integer_sweep_count(self, normal_model, normal_data):
        initial = normal_model.initial_state(normal_data)
        trajectory = run(normal_model, normal_data, initial, np.int64(3), seed=np.int64(1))
        assert len(trajectory) == 4
        assert list(trajectory) == list(run(normal_model, normal_data, initial, 3, seed=1))

    @pytest.mark.parametrize("sweep_count", [2.5, 3.0, "3", True, None])
    def test_sweep_count_must_be_integer(self, normal_model, normal_data, sweep_count):
        initial = normal_model.initial_state(normal_data)
        with pytest.raises(InvalidConfiguration, match="integer"):
            run(normal_model, normal_data, initial, sweep_count, seed=0)

    def test_negative_sweep_count_checked_before_sampling(self, normal_model, normal_data):
        stream = RandomStream(0)
        with pytest.raises(InvalidConfiguration):
            GibbsSampler(
                normal_model, normal_data, normal_model.initial_state(normal_data), -5, stream
            )
        assert stream.draws == 0

    def test_incomplete_initial_state(self, normal_model, normal_data):
        with pytest.raises(IncompleteState) as excinfo:
            run(normal_model, normal_data, State(theta=0.0), 10, seed=0)
        assert excinfo.value.missing == ("sigma2",)

    def test_extra_initial_parameter(self, normal_model, normal_data):
        with pytest.raises(UnknownParameter, match="mu"):
            run(normal_model, normal_data, State(theta=0.0, sigma2=1.0, mu=0.0), 10, seed=0)

    @pytest.mark.parametrize(
        "update_order",
        [("theta",), ("theta", "theta"), ("theta", "sigma2", "mu")],
    )
    def test_update_order_must_be_permutation(self, normal_model, normal_data, update_order):
        with pytest.raises(InvalidConfiguration, match="permutation"):
            run(
                normal_model,
                normal_data,
                normal_model.initial_state(normal_data),
                10,
                seed=0,
                update_order=update_order,
            )


def test_non_finite_draw_warns():
    class Exploding(ChainedModel):
        @conditional("first")
        def _first(self, others, data):
            return Normal(mu=np.inf, sigma=1.0)

    data = load_data(ArraySource([0.0]))
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        run(Exploding(), data, State(first=0.0, second=0.0), 1, seed=0)
    assert any("Non-finite" in str(warning.message) for warning in caught)
