"""
Queue-level reference traffic for the intersection.

Plays the spawner, detector and critical-zone collaborators so an episode can
be stepped without an external simulator. Vehicles are points in a queue:
they arrive at a semaphore's detector, leave one per headway while their
light is green, spend a fixed time inside the shared zone and then reach
their goal. Two vehicles from different approaches inside the zone at once
count as an accident.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np

from crossing.config.schema import Approach

if TYPE_CHECKING:
    from crossing.episode.controller import EpisodeController

logger = logging.getLogger(__name__)


@dataclass
class Vehicle:
    approach: Approach
    arrived_at: float
    entered_at: Optional[float] = None


class QueueTrafficModel:
    """Poisson arrivals per approach, discharged at a fixed headway on green."""

    def __init__(
        self,
        arrival_rate: float = 0.3,
        headway: float = 1.0,
        crossing_time: float = 2.0,
        vehicles_per_generator: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize the traffic model.

        Args:
            arrival_rate: Mean arrivals per second on each approach
            headway: Seconds between departures from a green approach
            crossing_time: Seconds a vehicle occupies the critical zone
            vehicles_per_generator: Vehicles each approach's generator spawns
                before it reports completion (None: spawn until the episode cap)
            seed: Seed for the arrival process
        """
        if arrival_rate < 0:
            raise ValueError(f"arrival_rate must be non-negative, got {arrival_rate}")
        if headway <= 0 or crossing_time <= 0:
            raise ValueError("headway and crossing_time must be positive")
        if vehicles_per_generator is not None and vehicles_per_generator < 1:
            raise ValueError("vehicles_per_generator must be at least 1")

        self.arrival_rate = arrival_rate
        self.headway = headway
        self.crossing_time = crossing_time
        self.vehicles_per_generator = vehicles_per_generator
        self.rng = np.random.default_rng(seed)

        self.controller: Optional["EpisodeController"] = None
        self.clock = 0.0
        self._queues: dict[Approach, deque] = {approach: deque() for approach in Approach}
        self._in_zone: list[Vehicle] = []
        self._spawned: dict[Approach, int] = {approach: 0 for approach in Approach}
        self._outstanding: dict[Approach, int] = {approach: 0 for approach in Approach}
        self._finished: set[Approach] = set()
        self._next_departure: dict[Approach, float] = {approach: 0.0 for approach in Approach}

    def bind(self, controller: "EpisodeController") -> None:
        self.controller = controller

    def reset(self, seed: Optional[int] = None) -> None:
        """Clear all vehicles and generator progress for a new episode."""
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.clock = 0.0
        self.clear_vehicles()
        self._spawned = {approach: 0 for approach in Approach}
        self._outstanding = {approach: 0 for approach in Approach}
        self._finished.clear()
        self._next_departure = {approach: 0.0 for approach in Approach}

    def clear_vehicles(self) -> None:
        for queue in self._queues.values():
            queue.clear()
        self._in_zone.clear()

    @property
    def vehicles_in_zone(self) -> int:
        return len(self._in_zone)

    def queue_length(self, approach: Approach) -> int:
        return len(self._queues[Approach(approach)])

    def advance(self, dt: float) -> None:
        """Move traffic forward by dt seconds, notifying the controller."""
        if self.controller is None:
            raise RuntimeError("Traffic model is not bound to a controller")
        if not self.controller.running:
            return

        self.clock += dt
        self._exit_zone()
        self._depart()
        self._spawn(dt)
        self._report_finished_generators()

    def spawn(self, approach: Approach) -> bool:
        """
        Put one vehicle at an approach's detector.

        Returns:
            False when the episode cap or the generator quota is exhausted
        """
        approach = Approach(approach)
        controller = self.controller
        if controller is None:
            raise RuntimeError("Traffic model is not bound to a controller")
        if controller.counters.total_spawned >= controller.total_max_car_spawn:
            return False
        quota = self.vehicles_per_generator
        if quota is not None and self._spawned[approach] >= quota:
            return False

        self._spawned[approach] += 1
        self._outstanding[approach] += 1
        controller.on_vehicle_spawned()
        controller.semaphore(approach).register_arrival()
        self._queues[approach].append(Vehicle(approach, arrived_at=self.clock))
        return True

    def _spawn(self, dt: float) -> None:
        for approach in Approach:
            arrivals = int(self.rng.poisson(self.arrival_rate * dt))
            for _ in range(arrivals):
                if not self.spawn(approach):
                    break

    def _depart(self) -> None:
        for approach in Approach:
            semaphore = self.controller.semaphore(approach)
            queue = self._queues[approach]
            if not semaphore.is_green or not queue:
                continue
            if self.clock < self._next_departure[approach]:
                continue

            vehicle = queue.popleft()
            semaphore.release()
            vehicle.entered_at = self.clock
            self._next_departure[approach] = self.clock + self.headway

            if any(other.approach is not approach for other in self._in_zone):
                logger.debug(f"Conflict in zone: {approach.value} entered while crossing traffic present")
                self.controller.zone.flag_accident()
            self._in_zone.append(vehicle)

    def _exit_zone(self) -> None:
        remaining = []
        for vehicle in self._in_zone:
            if self.clock - vehicle.entered_at >= self.crossing_time:
                self.controller.zone.record_crossing(
                    crossing_time=self.clock - vehicle.entered_at,
                    wait_time=vehicle.entered_at - vehicle.arrived_at,
                )
                self._outstanding[vehicle.approach] -= 1
                self.controller.on_goal()
            else:
                remaining.append(vehicle)
        self._in_zone = remaining

    def _report_finished_generators(self) -> None:
        if self.vehicles_per_generator is None:
            return
        for approach in Approach:
            if approach in self._finished:
                continue
            if (self._spawned[approach] >= self.vehicles_per_generator
                    and self._outstanding[approach] == 0):
                self._finished.add(approach)
                logger.debug(f"{approach.value} generator finished")
                if self.controller.on_end(generator=True, source=approach):
                    return
