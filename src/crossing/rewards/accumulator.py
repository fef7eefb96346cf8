"""
Reward accumulation for the intersection controller.

Turns per-tick semaphore wait state, goal notifications and terminal outcomes
into additive reward deltas. The cumulative sum over an episode is what the
external learner sees as the episode return.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

import numpy as np

from crossing.intersection.semaphore import SemaphoreState
from crossing.rewards.utils import RewardConfig, throughput_ratio, wait_penalty

logger = logging.getLogger(__name__)

REWARD_COMPONENTS = ("wait_penalty", "goal", "throughput", "accident")


@dataclass
class RewardResult:
    """
    Result of a reward event with its component breakdown.

    Args:
        total_reward: Reward delta produced by the event
        components: Dictionary of individual reward components
    """
    total_reward: float
    components: Dict[str, float]


class RewardAccumulator:
    """
    Additive per-episode reward ledger.

    Wait penalties are re-applied on every tick an approach stays overdue,
    so a starved approach compounds at the simulation tick rate.
    """

    def __init__(self, config: Optional[Union[RewardConfig, Dict[str, Any]]] = None):
        """
        Initialize reward accumulator.

        Args:
            config: RewardConfig or dictionary of reward parameters
        """
        if isinstance(config, dict):
            self.config = RewardConfig.from_dict(config)
        else:
            self.config = config if config else RewardConfig()

        self.episode_total = 0.0
        self.components = {name: 0.0 for name in REWARD_COMPONENTS}
        self._pending = 0.0
        self._reward_history: list[float] = []

    def reset(self) -> None:
        """Reset accumulator state for a new episode."""
        self.episode_total = 0.0
        self.components = {name: 0.0 for name in REWARD_COMPONENTS}
        self._pending = 0.0
        self._reward_history.clear()

    def add_reward(self, value: float, component: str) -> float:
        """Add a reward delta under the given component name."""
        if component not in self.components:
            raise ValueError(f"Unknown reward component: {component}")

        value = float(value)
        self.episode_total += value
        self.components[component] += value
        self._pending += value

        if len(self._reward_history) >= self.config.max_reward_history:
            self._reward_history.pop(0)
        self._reward_history.append(value)
        return value

    def apply_wait_penalties(self, semaphores: Iterable[SemaphoreState]) -> float:
        """
        Penalize every overdue approach for this tick.

        Args:
            semaphores: Semaphores already advanced for the current tick

        Returns:
            Sum of penalties applied on this tick
        """
        applied = 0.0
        for semaphore in semaphores:
            if semaphore.is_overdue and semaphore.cars_queued > 0:
                applied += self.add_reward(
                    wait_penalty(semaphore.cars_queued, self.config.wait_penalty_scale),
                    "wait_penalty"
                )
        return applied

    def add_goal(self) -> float:
        """Reward a single vehicle reaching its goal."""
        return self.add_reward(self.config.goal_reward, "goal")

    def apply_terminal(
        self,
        accident: bool,
        total_passed: int,
        detected_totals: list[int]
    ) -> RewardResult:
        """
        Apply the one-shot end-of-episode reward.

        Args:
            accident: Whether the episode ended in an accident
            total_passed: Vehicles counted through the critical zone
            detected_totals: Per-semaphore detection totals

        Returns:
            RewardResult with the terminal delta and its component
        """
        if accident:
            value = self.add_reward(self.config.accident_penalty, "accident")
            components = {"accident": value}
        else:
            ratio = throughput_ratio(
                total_passed, detected_totals, self.config.empty_throughput_reward
            )
            value = self.add_reward(ratio, "throughput")
            components = {"throughput": value}

        logger.debug(f"Terminal reward {value:.3f} (accident={accident})")
        return RewardResult(total_reward=value, components=components)

    def drain(self) -> float:
        """Return the reward accrued since the previous drain and clear it."""
        pending, self._pending = self._pending, 0.0
        return pending

    def get_reward_statistics(self) -> Dict[str, float]:
        """Get statistics about reward deltas over the current episode."""
        if not self._reward_history:
            return {}

        rewards = np.asarray(self._reward_history)
        stats = {
            'mean_reward': float(np.mean(rewards)),
            'std_reward': float(np.std(rewards)),
            'min_reward': float(np.min(rewards)),
            'max_reward': float(np.max(rewards)),
            'total_reward': float(self.episode_total),
            'reward_events': len(rewards),
        }
        stats.update({f"component_{k}": v for k, v in self.components.items()})
        return stats
