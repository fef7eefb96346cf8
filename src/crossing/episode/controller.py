"""
Episode controller for the two-approach intersection.

Owns the semaphores, the critical-zone summary, the decision scheduler and
the reward accumulator, and drives them through the episode lifecycle:
begin, running (one tick at a time), ending, then the next begin.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Union

import numpy as np

from crossing.config.schema import Approach, EndReason, EpisodeConfig, EpisodeStats
from crossing.episode.stats import EpisodeCounters, build_episode_stats
from crossing.episode.sync import CompletionBarrier
from crossing.intersection.semaphore import SemaphoreState
from crossing.intersection.zone import IntersectionZone
from crossing.policy.action_space import decode_action
from crossing.rewards.accumulator import RewardAccumulator
from crossing.rewards.utils import RewardConfig
from crossing.scheduling.decision import DecisionScheduler

logger = logging.getLogger(__name__)

Policy = Callable[[np.ndarray], Any]


class EpisodeReporter(Protocol):
    def write_episode(self, stats: EpisodeStats) -> None: ...


class VehicleSource(Protocol):
    def reset(self) -> None: ...

    def clear_vehicles(self) -> None: ...


class EpisodePhase(str, Enum):
    IDLE = "idle"
    BEGIN = "begin"
    RUNNING = "running"
    ENDING = "ending"


class EpisodeController:
    """
    Orchestrates one intersection agent across episodes.

    The controller is the only writer of the light colours, so the
    North/South mutual exclusion holds by construction: every action sets one
    approach green and the other red in the same call.
    """

    def __init__(
        self,
        config: Optional[EpisodeConfig] = None,
        policy: Optional[Policy] = None,
        reward_config: Optional[Union[RewardConfig, Dict[str, Any]]] = None,
        reporter: Optional[EpisodeReporter] = None,
        vehicles: Optional[VehicleSource] = None,
        on_episode_end: Optional[Callable[[EpisodeStats], None]] = None,
        auto_restart: bool = True,
        generator_count: int = 2,
    ):
        """
        Initialize the episode controller.

        Args:
            config: Episode settings (spawn cap, wait timer, decision interval)
            policy: Callable mapping an observation to a discrete action
            reward_config: Reward constants
            reporter: Receives the finalised EpisodeStats of every episode
            vehicles: Traffic collaborator, reset at every begin and cleared at every end
            on_episode_end: Termination signal for the learning framework
            auto_restart: Begin the next episode right after one ends
            generator_count: Spawn generators that must finish before ending
        """
        self.config = config or EpisodeConfig()
        self.policy = policy
        self.reporter = reporter
        self.vehicles = vehicles
        self.on_episode_end = on_episode_end
        self.auto_restart = auto_restart

        self.semaphores = [
            SemaphoreState(approach, self.config.semaphore_timer) for approach in Approach
        ]
        self.zone = IntersectionZone()
        self.rewards = RewardAccumulator(reward_config)
        self.counters = EpisodeCounters()
        self.generators = CompletionBarrier(generator_count)
        self.scheduler = DecisionScheduler(
            self.config.timer_for_decision,
            has_queued_vehicles=self.has_queued_vehicles,
            request_decision=self.request_decision,
        )

        self.phase = EpisodePhase.IDLE
        self.episode_index = 0
        self.elapsed = 0.0
        self.step_count = 0
        self.decisions = 0
        self.accident_count = 0

    @property
    def total_max_car_spawn(self) -> int:
        return self.config.total_max_car_spawn

    @property
    def running(self) -> bool:
        return self.phase is EpisodePhase.RUNNING

    def semaphore(self, approach: Union[Approach, str]) -> SemaphoreState:
        return self.semaphores[list(Approach).index(Approach(approach))]

    def begin_episode(self) -> None:
        """Reset every per-episode component and arm the decision poll."""
        self.phase = EpisodePhase.BEGIN
        self.episode_index += 1

        self.generators.reset()
        self.elapsed = 0.0
        self.step_count = 0
        self.decisions = 0

        self.zone.reset()
        self.counters.reset()
        self.rewards.reset()
        for semaphore in self.semaphores:
            semaphore.reset()
        if self.vehicles is not None:
            self.vehicles.reset()

        self.scheduler.start()
        self.phase = EpisodePhase.RUNNING
        logger.info(
            f"Episode {self.episode_index} started "
            f"(spawn cap={self.total_max_car_spawn}, decision every "
            f"{self.config.timer_for_decision}s)"
        )

    def tick(self, dt: float) -> bool:
        """
        Advance the running episode by one simulation tick.

        Wait penalties are applied before the terminal checks, so a penalty
        from the final tick is included in the episode return.

        Args:
            dt: Tick length in seconds

        Returns:
            True if the episode ended on this tick
        """
        if not self.running:
            return False
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")

        index = self.episode_index
        self.elapsed += dt
        self.step_count += 1

        for semaphore in self.semaphores:
            semaphore.tick(dt)
        self.rewards.apply_wait_penalties(self.semaphores)

        if self.zone.accident_occurred:
            return self.on_end(accident=True)

        if self.counters.cap_reached(self.total_max_car_spawn):
            return self.on_end()

        self.scheduler.advance(dt)
        return self.episode_index != index or not self.running

    def has_queued_vehicles(self) -> bool:
        return any(semaphore.cars_queued > 0 for semaphore in self.semaphores)

    def collect_observations(self) -> np.ndarray:
        """Observation vector: is_green, cars_queued, cars_passed_total per approach."""
        return np.array(
            [value for semaphore in self.semaphores for value in semaphore.observation()],
            dtype=np.float32
        )

    def request_decision(self) -> None:
        """Ask the policy for an action and apply it."""
        self.decisions += 1
        observation = self.collect_observations()

        if self.policy is None:
            logger.debug("Decision requested with no policy attached")
            return

        action = self.policy(observation)
        self.apply_action(action)

    def apply_action(self, action: Any) -> bool:
        """
        Apply a discrete action to the lights.

        Args:
            action: 0 for North green, 1 for South green

        Returns:
            True if the lights were set, False for a no-op
        """
        approach = decode_action(action)
        if approach is None:
            return False

        for semaphore in self.semaphores:
            semaphore.set_green(semaphore.approach is approach)

        logger.debug(f"Episode {self.episode_index}: {approach.value} green")
        return True

    def inject_action(self, action: Any) -> bool:
        """Manual override that bypasses the policy."""
        logger.debug(f"Manual action override: {action}")
        return self.apply_action(action)

    def on_goal(self) -> None:
        """A vehicle completed its crossing."""
        if not self.running:
            logger.debug("Goal notification outside a running episode ignored")
            return
        self.counters.total_goal += 1
        self.rewards.add_goal()

    def on_vehicle_spawned(self) -> None:
        if not self.running:
            logger.debug("Spawn notification outside a running episode ignored")
            return
        self.counters.total_spawned += 1

    def on_end(
        self,
        accident: bool = False,
        generator: bool = False,
        source: Optional[Any] = None,
    ) -> bool:
        """
        Request the end of the running episode.

        A generator-finished request only ends the episode once every spawn
        generator has reported in.

        Args:
            accident: The episode ends because of an accident
            generator: The request comes from a spawn generator finishing
            source: Identity of the finishing generator, if known

        Returns:
            True if the episode actually ended
        """
        if not self.running:
            return False

        if accident:
            reason: EndReason = "accident"
        elif generator:
            if not self.generators.arrive(source):
                logger.info(
                    f"Generator finished ({self.generators.arrived}/"
                    f"{self.generators.parties}); waiting for the rest"
                )
                return False
            reason = "generators_finished"
        else:
            reason = "cap_reached"

        self.end_episode(accident=accident, reason=reason)
        return True

    def truncate(self) -> bool:
        """End the episode on a time limit, without a terminal reward."""
        if not self.running:
            return False
        self.end_episode(accident=False, reason="truncated")
        return True

    def end_episode(self, accident: bool, reason: EndReason) -> EpisodeStats:
        """Cancel polling, apply the terminal reward, report and signal termination."""
        self.phase = EpisodePhase.ENDING
        self.scheduler.cancel()

        terminal_reward = 0.0
        if reason != "truncated":
            result = self.rewards.apply_terminal(
                accident,
                self.zone.total_vehicles_passed,
                [semaphore.cars_passed_total for semaphore in self.semaphores],
            )
            terminal_reward = result.total_reward

        if accident:
            self.accident_count += 1

        self.zone.compute_averages()
        stats = build_episode_stats(
            episode_index=self.episode_index,
            elapsed=self.elapsed,
            steps=self.step_count,
            decisions=self.decisions,
            accident=accident,
            counters=self.counters,
            zone=self.zone,
            terminal_reward=terminal_reward,
            cumulative_reward=self.rewards.episode_total,
            end_reason=reason,
        )
        logger.info(
            f"Episode {stats.episode_index} ended ({reason}) after "
            f"{stats.episode_length:.2f}s, {stats.episode_steps} steps, "
            f"reward={stats.cumulative_reward:.3f}"
        )

        if self.reporter is not None:
            self.reporter.write_episode(stats)

        if self.vehicles is not None:
            self.vehicles.clear_vehicles()

        if self.on_episode_end is not None:
            self.on_episode_end(stats)

        if self.auto_restart:
            self.begin_episode()
        else:
            self.phase = EpisodePhase.IDLE

        return stats
