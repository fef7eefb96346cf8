"""Action space definitions and decoding for the intersection agent."""

import logging
from typing import Any, Optional

import numpy as np

from crossing.config.defaults import ACTION_SPACE_SIZE
from crossing.config.schema import Approach

logger = logging.getLogger(__name__)

# Action value -> approach that gets the green light
ACTION_TO_APPROACH = {
    0: Approach.NORTH,
    1: Approach.SOUTH,
}


def decode_action(action_value: Any) -> Optional[Approach]:
    """Decode a discrete action value to the approach it turns green.

    Action space encoding:
    - 0: North green, South red
    - 1: South green, North red
    - Anything else: no-op

    Args:
        action_value: Discrete action from a policy (int, numpy scalar or
            single-element array)

    Returns:
        Approach to turn green, or None for a no-op
    """
    if isinstance(action_value, np.ndarray):
        if action_value.size != 1:
            logger.debug(f"Ignoring action array of size {action_value.size}")
            return None
        action_value = action_value.item()

    if isinstance(action_value, bool) or not isinstance(action_value, (int, np.integer)):
        logger.debug(f"Ignoring non-integer action: {action_value!r}")
        return None

    approach = ACTION_TO_APPROACH.get(int(action_value))
    if approach is None:
        logger.debug(f"Ignoring out-of-range action: {action_value}")
    return approach


def encode_action(approach: Approach) -> int:
    """Encode the approach to turn green as a discrete action value.

    Raises:
        ValueError: If the approach is unknown
    """
    approach = Approach(approach)
    for value, candidate in ACTION_TO_APPROACH.items():
        if candidate is approach:
            return value
    raise ValueError(f"No action for approach: {approach}")


def get_action_space_size() -> int:
    """Get total number of discrete actions."""
    return ACTION_SPACE_SIZE


def get_action_meanings() -> list[str]:
    """Get human-readable meanings for each action."""
    return [
        f"{approach.value.capitalize()} green"
        for _, approach in sorted(ACTION_TO_APPROACH.items())
    ]


def sample_random_action(rng: Optional[np.random.Generator] = None) -> int:
    """Sample a random valid action value."""
    rng = rng if rng is not None else np.random.default_rng()
    return int(rng.integers(0, ACTION_SPACE_SIZE))
