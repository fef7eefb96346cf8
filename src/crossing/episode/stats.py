"""Per-episode counters and construction of the finalised episode record."""

from dataclasses import dataclass

from crossing.config.schema import EndReason, EpisodeStats
from crossing.intersection.zone import IntersectionZone


@dataclass
class EpisodeCounters:
    """Vehicle counters reported by the spawn and arrival collaborators."""

    total_spawned: int = 0
    total_goal: int = 0

    def reset(self) -> None:
        self.total_spawned = 0
        self.total_goal = 0

    def cap_reached(self, cap: int) -> bool:
        """Every vehicle of the episode was spawned and reached its goal."""
        return self.total_spawned >= cap and self.total_goal >= cap


def build_episode_stats(
    episode_index: int,
    elapsed: float,
    steps: int,
    decisions: int,
    accident: bool,
    counters: EpisodeCounters,
    zone: IntersectionZone,
    terminal_reward: float,
    cumulative_reward: float,
    end_reason: EndReason,
) -> EpisodeStats:
    """Assemble the record handed to the reporter. Zone averages must be computed first."""
    return EpisodeStats(
        episode_index=episode_index,
        episode_length=elapsed,
        episode_steps=steps,
        decisions=decisions,
        accident=accident,
        total_spawned=counters.total_spawned,
        total_goal=counters.total_goal,
        total_passed=zone.total_vehicles_passed,
        avg_crossing_time=zone.avg_crossing_time,
        avg_wait_time=zone.avg_wait_time,
        terminal_reward=terminal_reward,
        cumulative_reward=cumulative_reward,
        end_reason=end_reason,
    )
