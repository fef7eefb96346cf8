"""
Gymnasium environment wrapper for the intersection controller.

Provides a standard Gymnasium interface for training RL agents on the
two-approach intersection, driving the episode controller with the reference
traffic model and reporting the controller's reward deltas per step.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from .config.defaults import ACTION_SPACE_SIZE, OBSERVATION_SIZE
from .config.schema import EpisodeConfig, EpisodeStats
from .episode.controller import EpisodeController, EpisodeReporter
from .policy.action_space import get_action_meanings
from .rewards import RewardConfig
from .sim.traffic import QueueTrafficModel

logger = logging.getLogger(__name__)


class CrossingEnv(gym.Env):
    """
    Gymnasium environment for the intersection agent.

    Each step applies one discrete action and then advances the simulation
    until the controller's decision scheduler requests the next action, or
    the episode ends. The returned reward is everything the controller
    accrued in between.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        config: Optional[Union[EpisodeConfig, Dict[str, Any]]] = None,
        reward_config: Optional[Union[RewardConfig, Dict[str, Any]]] = None,
        traffic: Optional[QueueTrafficModel] = None,
        reporter: Optional[EpisodeReporter] = None,
    ):
        """
        Initialize the intersection environment.

        Args:
            config: Episode configuration (EpisodeConfig or dictionary)
            reward_config: Configuration for reward calculation
            traffic: Traffic collaborator (default: QueueTrafficModel)
            reporter: Receives the EpisodeStats of every finished episode
        """
        super().__init__()

        if isinstance(config, dict):
            config = EpisodeConfig(**config)
        self.config = config or EpisodeConfig()

        self.traffic = traffic or QueueTrafficModel()
        self.controller = EpisodeController(
            config=self.config,
            policy=self._on_decision_request,
            reward_config=reward_config,
            reporter=reporter,
            vehicles=self.traffic,
            on_episode_end=self._on_episode_end,
            auto_restart=False,
        )
        self.traffic.bind(self.controller)

        self.action_space = spaces.Discrete(ACTION_SPACE_SIZE)
        self.observation_space = spaces.Box(
            low=0.0,
            high=np.inf,
            shape=(OBSERVATION_SIZE,),
            dtype=np.float32
        )

        # Episode state
        self.current_step = 0
        self.episode_rewards = []
        self.last_stats: Optional[EpisodeStats] = None
        self._decision_pending = False
        self._last_observation: Optional[np.ndarray] = None
        self._episode_over = True

    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Reset the environment for a new episode.

        Args:
            seed: Random seed for the traffic model
            options: Additional options for reset

        Returns:
            Tuple of (initial_observation, info_dict)
        """
        super().reset(seed=seed)

        self.current_step = 0
        self.episode_rewards = []
        self.last_stats = None
        self._episode_over = False

        self.traffic.reset(seed=seed)
        self.controller.begin_episode()
        self._run_until_decision()

        # Reward accrued before the first decision has no action to credit
        pre_decision_reward = self.controller.rewards.drain()

        info = self._build_info()
        info['pre_decision_reward'] = pre_decision_reward

        logger.info(f"Environment reset - episode {self.controller.episode_index}")
        return self._observation(), info

    def step(self, action_value: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Execute one step in the environment.

        Args:
            action_value: Discrete action (0 North green, 1 South green)

        Returns:
            Tuple of (observation, reward, terminated, truncated, info)
        """
        if self._episode_over:
            raise RuntimeError("Episode is over. Call reset() first.")

        self.current_step += 1
        applied = self.controller.apply_action(action_value)

        self._run_until_decision()

        reward = self.controller.rewards.drain()
        self.episode_rewards.append(reward)

        terminated = False
        truncated = False
        if self.last_stats is not None:
            self._episode_over = True
            truncated = self.last_stats.end_reason == "truncated"
            terminated = not truncated

        info = self._build_info()
        info['action_applied'] = applied

        logger.debug(
            f"Step {self.current_step}: Action={action_value}, "
            f"Reward={reward:.3f}, Terminated={terminated}, Truncated={truncated}"
        )

        return self._observation(), reward, terminated, truncated, info

    def close(self):
        """Clean up environment resources."""
        logger.info("Environment closed")

        if self.episode_rewards:
            total_reward = sum(self.episode_rewards)
            mean_reward = np.mean(self.episode_rewards)
            logger.info(
                f"Episode completed: {len(self.episode_rewards)} steps, "
                f"Total reward: {total_reward:.3f}, Mean reward: {mean_reward:.3f}"
            )

    def _run_until_decision(self) -> None:
        """Tick traffic and controller until a decision is requested or the episode ends."""
        self._decision_pending = False
        dt = self.config.tick_seconds

        while self.controller.running and not self._decision_pending:
            if self.controller.elapsed >= self.config.max_episode_seconds:
                self.controller.truncate()
                break
            self.traffic.advance(dt)
            self.controller.tick(dt)

    def _on_decision_request(self, obs: np.ndarray) -> None:
        # The answer arrives with the next step(); leave the lights unchanged
        self._decision_pending = True
        self._last_observation = obs
        return None

    def _on_episode_end(self, stats: EpisodeStats) -> None:
        self.last_stats = stats

    def _observation(self) -> np.ndarray:
        if self._decision_pending and self._last_observation is not None:
            return self._last_observation
        return self.controller.collect_observations()

    def _build_info(self) -> Dict[str, Any]:
        controller = self.controller
        info = {
            'episode': controller.episode_index,
            'episode_step': self.current_step,
            'elapsed': controller.elapsed,
            'decisions': controller.decisions,
            'reward_components': dict(controller.rewards.components),
            'episode_rewards_sum': controller.rewards.episode_total,
        }
        if self.last_stats is not None:
            info['episode_stats'] = self.last_stats.dict()
        return info

    def get_reward_statistics(self) -> Dict[str, float]:
        """Get statistics about rewards in current episode."""
        base_stats = self.controller.rewards.get_reward_statistics()

        if self.episode_rewards:
            base_stats.update({
                'episode_total_reward': float(sum(self.episode_rewards)),
                'episode_mean_reward': float(np.mean(self.episode_rewards)),
                'episode_std_reward': float(np.std(self.episode_rewards)),
                'episode_length': len(self.episode_rewards),
            })

        return base_stats

    def get_action_meanings(self) -> list[str]:
        """Get human-readable meanings for each action."""
        return get_action_meanings()
