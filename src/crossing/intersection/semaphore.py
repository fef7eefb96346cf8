"""Per-approach semaphore state: light colour, queue and wait timer."""

import logging

from crossing.config.schema import Approach

logger = logging.getLogger(__name__)


class SemaphoreState:
    """
    Light and queue-patience timer for one approach.

    The wait timer drains faster the more cars are queued on red, so a starved
    approach produces a sharper penalty. Exclusivity between the two
    approaches is the controller's job, not this class's.
    """

    def __init__(self, approach: Approach, wait_timer_limit: float):
        """
        Initialize semaphore state.

        Args:
            approach: Which approach this semaphore guards
            wait_timer_limit: Seconds the timer is refilled to

        Raises:
            ValueError: If wait_timer_limit is not positive
        """
        if wait_timer_limit <= 0:
            raise ValueError(f"wait_timer_limit must be positive, got {wait_timer_limit}")

        self.approach = Approach(approach)
        self.wait_timer_limit = float(wait_timer_limit)

        self.is_green = False
        self.cars_queued = 0
        self.cars_passed_total = 0
        self.wait_timer = self.wait_timer_limit

    def reset(self) -> None:
        """Return to the episode-start state: red, empty queue, full timer."""
        self.is_green = False
        self.cars_queued = 0
        self.cars_passed_total = 0
        self.wait_timer = self.wait_timer_limit

    def tick(self, dt: float) -> bool:
        """
        Advance the wait timer by one simulation tick.

        Args:
            dt: Tick length in seconds

        Returns:
            True if the timer dropped below zero on this tick
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")

        was_overdue = self.is_overdue

        if not self.is_green and self.cars_queued > 0:
            self.wait_timer -= dt * self.cars_queued
        else:
            self.wait_timer = self.wait_timer_limit

        crossed = self.is_overdue and not was_overdue
        if crossed:
            logger.debug(
                f"{self.approach.value} semaphore overdue with {self.cars_queued} cars queued"
            )
        return crossed

    @property
    def is_overdue(self) -> bool:
        """Whether queued cars have waited past their patience."""
        return self.wait_timer < 0.0

    def set_green(self, green: bool) -> None:
        self.is_green = bool(green)

    def register_arrival(self) -> None:
        """A vehicle reached this semaphore's detector and joined the queue."""
        self.cars_queued += 1
        self.cars_passed_total += 1

    def release(self) -> bool:
        """Let the head of the queue go. Returns False when nothing was queued."""
        if self.cars_queued == 0:
            return False
        self.cars_queued -= 1
        return True

    def observation(self) -> tuple[float, float, float]:
        return (float(self.is_green), float(self.cars_queued), float(self.cars_passed_total))

    def __repr__(self) -> str:
        light = "green" if self.is_green else "red"
        return (
            f"SemaphoreState({self.approach.value}, {light}, queued={self.cars_queued}, "
            f"passed={self.cars_passed_total}, timer={self.wait_timer:.2f})"
        )
