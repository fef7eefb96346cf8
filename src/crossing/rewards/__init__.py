"""
Reward system for the intersection agent.

This module provides the episode reward ledger:
- Per-tick wait penalties for approaches starved of green
- Goal rewards for every vehicle completing its crossing
- Terminal throughput reward, or a fixed penalty after an accident

All deltas are additive within an episode.
"""

from .accumulator import REWARD_COMPONENTS, RewardAccumulator, RewardResult
from .utils import RewardConfig, throughput_ratio, wait_penalty

__all__ = [
    "REWARD_COMPONENTS",
    "RewardAccumulator",
    "RewardResult",
    "RewardConfig",
    "throughput_ratio",
    "wait_penalty",
]
