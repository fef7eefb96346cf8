"""Keyboard-equivalent manual policy for debugging and demonstrations."""

import logging
from typing import Optional

import numpy as np

from crossing.config.schema import Approach
from crossing.policy.action_space import encode_action

logger = logging.getLogger(__name__)

KEY_BINDINGS = {
    "up": Approach.NORTH,
    "down": Approach.SOUTH,
}


class HeuristicPolicy:
    """
    Policy driven by key presses instead of a learned model.

    A press is consumed by the next decision request. Without a pending press
    the policy answers with a no-op, so the lights stay as they are.
    """

    def __init__(self):
        self._pending: Optional[int] = None

    def press(self, key: str) -> int:
        """
        Register a key press.

        Args:
            key: "up" for North green, "down" for South green

        Returns:
            The action value that will be emitted

        Raises:
            ValueError: If the key is not bound
        """
        approach = KEY_BINDINGS.get(key.lower())
        if approach is None:
            raise ValueError(f"Unbound key: {key!r}. Use one of {sorted(KEY_BINDINGS)}")

        self._pending = encode_action(approach)
        logger.debug(f"Key '{key}' pressed -> action {self._pending}")
        return self._pending

    def __call__(self, obs: np.ndarray) -> Optional[int]:
        action, self._pending = self._pending, None
        return action
