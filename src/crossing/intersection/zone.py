"""Critical-zone summary: pass-through counts, accident latch and averages."""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class IntersectionZone:
    """
    Summary of the shared crossing area.

    Written by the collision-detection and vehicle collaborators, read by the
    episode controller. The accident flag latches until the next reset.
    """

    def __init__(self):
        self.accident_occurred = False
        self.total_vehicles_passed = 0
        self.avg_crossing_time = 0.0
        self.avg_wait_time = 0.0
        self._crossing_times: list[float] = []
        self._wait_times: list[float] = []

    def reset(self) -> None:
        """Clear the accident flag, counters and samples for a new episode."""
        self.accident_occurred = False
        self.total_vehicles_passed = 0
        self.avg_crossing_time = 0.0
        self.avg_wait_time = 0.0
        self._crossing_times.clear()
        self._wait_times.clear()

    def flag_accident(self) -> None:
        if not self.accident_occurred:
            logger.info("Accident detected in critical zone")
        self.accident_occurred = True

    def record_crossing(self, crossing_time: float, wait_time: float = 0.0) -> None:
        """
        Record a vehicle that made it through the zone.

        Args:
            crossing_time: Seconds spent inside the zone
            wait_time: Seconds spent queued before entering
        """
        if crossing_time < 0 or wait_time < 0:
            raise ValueError("Crossing and wait times must be non-negative")

        self.total_vehicles_passed += 1
        self._crossing_times.append(float(crossing_time))
        self._wait_times.append(float(wait_time))

    def compute_averages(self) -> tuple[float, float]:
        """
        Finalise average crossing and wait times.

        Returns:
            Tuple of (avg_crossing_time, avg_wait_time); zeros when nothing passed
        """
        if self._crossing_times:
            self.avg_crossing_time = float(np.mean(self._crossing_times))
            self.avg_wait_time = float(np.mean(self._wait_times))
        else:
            self.avg_crossing_time = 0.0
            self.avg_wait_time = 0.0

        logger.debug(
            f"Zone averages: crossing={self.avg_crossing_time:.3f}s, "
            f"wait={self.avg_wait_time:.3f}s over {self.total_vehicles_passed} vehicles"
        )
        return self.avg_crossing_time, self.avg_wait_time
