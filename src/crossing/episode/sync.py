"""Rendezvous for collaborators that must all finish before an episode ends."""

import logging
from typing import Hashable, Optional

logger = logging.getLogger(__name__)


class CompletionBarrier:
    """
    Counting barrier for a fixed number of parties.

    Named arrivals are counted once per name; anonymous arrivals each count
    as a new party. The barrier opens when every party has arrived and stays
    open until reset().
    """

    def __init__(self, parties: int = 2):
        if parties < 1:
            raise ValueError(f"parties must be at least 1, got {parties}")
        self.parties = parties
        self._arrived: set = set()
        self._anonymous = 0

    @property
    def arrived(self) -> int:
        return len(self._arrived) + self._anonymous

    @property
    def is_open(self) -> bool:
        return self.arrived >= self.parties

    def arrive(self, party: Optional[Hashable] = None) -> bool:
        """
        Register a party as finished.

        Args:
            party: Optional identity of the arriving party

        Returns:
            True once all parties have arrived
        """
        if party is None:
            self._anonymous += 1
        else:
            self._arrived.add(party)

        logger.debug(f"Barrier arrival {party!r}: {self.arrived}/{self.parties}")
        return self.is_open

    def reset(self) -> None:
        self._arrived.clear()
        self._anonymous = 0
