"""
Configuration and helper functions for the reward system.

Keeps the reward constants in one place so the accumulator, the environment
and the CLI agree on the same values.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from crossing.config.defaults import (
    DEFAULT_ACCIDENT_PENALTY,
    DEFAULT_EMPTY_THROUGHPUT_REWARD,
    DEFAULT_GOAL_REWARD,
    DEFAULT_WAIT_PENALTY_SCALE,
)

logger = logging.getLogger(__name__)


@dataclass
class RewardConfig:
    """
    Configuration for reward accumulation.

    Provides centralized reward constants with defaults that can be overridden.
    """

    # Per-tick penalty per queued car once a semaphore's timer is overdue
    wait_penalty_scale: float = DEFAULT_WAIT_PENALTY_SCALE

    # One-shot rewards
    goal_reward: float = DEFAULT_GOAL_REWARD
    accident_penalty: float = DEFAULT_ACCIDENT_PENALTY

    # Terminal reward when no semaphore detected any vehicle
    empty_throughput_reward: float = DEFAULT_EMPTY_THROUGHPUT_REWARD

    # History kept for statistics
    max_reward_history: int = 10000

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'RewardConfig':
        """Create config from dictionary, using defaults for missing keys."""
        return cls(**{k: v for k, v in config_dict.items() if hasattr(cls, k)})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'wait_penalty_scale': self.wait_penalty_scale,
            'goal_reward': self.goal_reward,
            'accident_penalty': self.accident_penalty,
            'empty_throughput_reward': self.empty_throughput_reward,
            'max_reward_history': self.max_reward_history,
        }


def wait_penalty(cars_queued: int, scale: float = DEFAULT_WAIT_PENALTY_SCALE) -> float:
    """Penalty for one overdue tick on an approach with cars_queued waiting."""
    return -scale * cars_queued


def throughput_ratio(
    total_passed: int,
    detected_totals: list[int],
    empty_value: float = DEFAULT_EMPTY_THROUGHPUT_REWARD
) -> float:
    """
    Ratio of vehicles through the critical zone to vehicles detected.

    Args:
        total_passed: Vehicles counted by the critical zone
        detected_totals: Per-semaphore detection totals
        empty_value: Value returned when no vehicle was detected at all

    Returns:
        Ratio clipped to [0, 1], or empty_value when nothing was detected
    """
    detected = sum(detected_totals)
    if detected <= 0:
        logger.warning(
            f"No vehicles detected by any semaphore; throughput reward set to {empty_value}"
        )
        return float(empty_value)

    return float(np.clip(total_passed / detected, 0.0, 1.0))
