"""Decision scheduling: a repeating poll that asks the policy for an action."""

import logging
from enum import Enum
from typing import Callable, Optional

from crossing.config.defaults import MAX_TIMER_FOR_DECISION, MIN_TIMER_FOR_DECISION

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class CancellationToken:
    """One-way cancel flag owned by a single scheduler run."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class DecisionScheduler:
    """
    Repeating timer that polls for queued vehicles at a fixed cadence.

    Driven by the simulation clock through advance(). Each start() issues a
    fresh CancellationToken; after cancel() no poll fires until the next
    start(), so a poll can never leak from one episode into the next.
    """

    def __init__(
        self,
        interval: float,
        has_queued_vehicles: Callable[[], bool],
        request_decision: Callable[[], None],
    ):
        """
        Initialize decision scheduler.

        Args:
            interval: Seconds between polls (0.1 to 5.0)
            has_queued_vehicles: Gate checked at every poll
            request_decision: Synchronous request to the policy

        Raises:
            ValueError: If interval is out of range
        """
        if not MIN_TIMER_FOR_DECISION <= interval <= MAX_TIMER_FOR_DECISION:
            raise ValueError(
                f"Decision interval must be within [{MIN_TIMER_FOR_DECISION}, "
                f"{MAX_TIMER_FOR_DECISION}] seconds, got {interval}"
            )

        self.interval = float(interval)
        self._has_queued_vehicles = has_queued_vehicles
        self._request_decision = request_decision

        self.state = SchedulerState.IDLE
        self.time_until_poll = 0.0
        self.polls = 0
        self.requests = 0
        self._token: Optional[CancellationToken] = None

    @property
    def active(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def start(self) -> CancellationToken:
        """Arm a new run with the first poll due immediately."""
        if self._token is not None:
            self._token.cancel()

        self._token = CancellationToken()
        self.state = SchedulerState.IDLE
        self.time_until_poll = 0.0
        self.polls = 0
        self.requests = 0
        logger.debug(f"Decision scheduler armed (interval={self.interval}s)")
        return self._token

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self.state = SchedulerState.IDLE
        logger.debug("Decision scheduler cancelled")

    def advance(self, dt: float) -> bool:
        """
        Advance the countdown and poll when due.

        Args:
            dt: Elapsed simulated seconds

        Returns:
            True if a decision was requested during this call
        """
        if not self.active:
            return False

        self.time_until_poll -= dt
        if self.time_until_poll > 0:
            return False

        token = self._token
        self.state = SchedulerState.POLLING
        self.polls += 1
        requested = False
        try:
            if self._has_queued_vehicles():
                self.requests += 1
                requested = True
                self._request_decision()
        finally:
            # The request may end the episode and cancel this run
            if not token.cancelled:
                self.state = SchedulerState.IDLE
                self.time_until_poll = self.interval

        return requested
