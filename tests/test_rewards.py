"""Tests for reward accumulation."""

import pytest

from crossing.config.schema import Approach
from crossing.intersection.semaphore import SemaphoreState
from crossing.rewards import RewardAccumulator, RewardConfig, throughput_ratio, wait_penalty


class TestRewardHelpers:
    """Test reward helper functions."""

    def test_wait_penalty_scales_with_queue(self):
        """Test penalty is -0.1 per queued car by default."""
        assert wait_penalty(3) == pytest.approx(-0.3)
        assert wait_penalty(0) == 0.0

    def test_throughput_ratio(self):
        """Test ratio of zone passes to detections."""
        assert throughput_ratio(3, [2, 2]) == pytest.approx(0.75)

    def test_throughput_ratio_no_detections(self):
        """Test zero detections fall back to the empty value instead of dividing by zero."""
        assert throughput_ratio(0, [0, 0]) == 0.0
        assert throughput_ratio(4, [0, 0], empty_value=0.25) == 0.25

    def test_throughput_ratio_bounded(self):
        """Test the ratio stays within [0, 1]."""
        assert throughput_ratio(5, [1, 1]) == 1.0
        for passed in range(0, 11):
            assert 0.0 <= throughput_ratio(passed, [4, 6]) <= 1.0

    def test_config_from_dict_ignores_unknown_keys(self):
        """Test config creation from partial dictionaries."""
        config = RewardConfig.from_dict({'goal_reward': 0.2, 'not_a_field': 1})

        assert config.goal_reward == 0.2
        assert config.accident_penalty == -0.5
        assert config.to_dict()['goal_reward'] == 0.2


class TestRewardAccumulator:
    """Test the per-episode reward ledger."""

    def test_goal_reward(self):
        """Test each goal adds +0.1."""
        rewards = RewardAccumulator()
        rewards.add_goal()
        rewards.add_goal()

        assert rewards.episode_total == pytest.approx(0.2)
        assert rewards.components['goal'] == pytest.approx(0.2)

    def test_wait_penalty_only_for_overdue(self):
        """Test penalties apply only to approaches past their timer."""
        north = SemaphoreState(Approach.NORTH, 1.0)
        south = SemaphoreState(Approach.SOUTH, 1.0)
        for _ in range(2):
            north.register_arrival()
        south.register_arrival()
        north.wait_timer = -0.5

        rewards = RewardAccumulator()
        applied = rewards.apply_wait_penalties([north, south])

        assert applied == pytest.approx(-0.2)
        assert rewards.components['wait_penalty'] == pytest.approx(-0.2)

    def test_wait_penalty_repeats_every_tick(self):
        """Test an overdue approach is penalized on every tick, not once."""
        north = SemaphoreState(Approach.NORTH, 1.0)
        for _ in range(2):
            north.register_arrival()

        rewards = RewardAccumulator()
        for _ in range(4):
            north.tick(0.25)
            rewards.apply_wait_penalties([north])

        # Overdue on ticks 3 and 4
        assert rewards.episode_total == pytest.approx(-0.4)

    def test_terminal_throughput(self):
        """Test the non-accident terminal reward."""
        rewards = RewardAccumulator()
        result = rewards.apply_terminal(False, 3, [2, 2])

        assert result.total_reward == pytest.approx(0.75)
        assert result.components == {'throughput': pytest.approx(0.75)}

    def test_terminal_accident(self):
        """Test the accident penalty replaces the throughput reward."""
        rewards = RewardAccumulator()
        rewards.add_goal()
        result = rewards.apply_terminal(True, 3, [2, 2])

        assert result.total_reward == pytest.approx(-0.5)
        assert rewards.components['throughput'] == 0.0
        assert rewards.episode_total == pytest.approx(-0.4)

    def test_terminal_with_no_detections(self):
        """Test the terminal reward is zero when nothing was detected."""
        rewards = RewardAccumulator()
        result = rewards.apply_terminal(False, 0, [0, 0])

        assert result.total_reward == 0.0

    def test_drain(self):
        """Test drain returns reward accrued since the last drain."""
        rewards = RewardAccumulator()
        rewards.add_goal()
        assert rewards.drain() == pytest.approx(0.1)
        assert rewards.drain() == 0.0

        rewards.add_goal()
        rewards.add_goal()
        assert rewards.drain() == pytest.approx(0.2)
        assert rewards.episode_total == pytest.approx(0.3)

    def test_custom_config(self):
        """Test dictionary configuration overrides constants."""
        rewards = RewardAccumulator({'goal_reward': 1.0, 'accident_penalty': -2.0})
        rewards.add_goal()
        rewards.apply_terminal(True, 0, [0, 0])

        assert rewards.episode_total == pytest.approx(-1.0)

    def test_unknown_component(self):
        """Test unknown components are rejected."""
        rewards = RewardAccumulator()

        with pytest.raises(ValueError):
            rewards.add_reward(1.0, "bonus")

    def test_reset(self):
        """Test reset clears totals, components and pending reward."""
        rewards = RewardAccumulator()
        rewards.add_goal()
        rewards.reset()

        assert rewards.episode_total == 0.0
        assert rewards.drain() == 0.0
        assert all(value == 0.0 for value in rewards.components.values())
        assert rewards.get_reward_statistics() == {}

    def test_statistics(self):
        """Test reward statistics over the episode."""
        rewards = RewardAccumulator()
        rewards.add_goal()
        rewards.apply_terminal(True, 0, [0, 0])

        stats = rewards.get_reward_statistics()

        assert stats['reward_events'] == 2
        assert stats['total_reward'] == pytest.approx(-0.4)
        assert stats['min_reward'] == pytest.approx(-0.5)
        assert stats['component_accident'] == pytest.approx(-0.5)
