"""Pydantic models for configuration and data structures."""

import json
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, validator

from crossing.config.defaults import (
    DEFAULT_MAX_EPISODE_SECONDS,
    DEFAULT_SEMAPHORE_TIMER,
    DEFAULT_TICK_SECONDS,
    DEFAULT_TIMER_FOR_DECISION,
    DEFAULT_TOTAL_MAX_CAR_SPAWN,
    MAX_TIMER_FOR_DECISION,
    MIN_TIMER_FOR_DECISION,
)

logger = logging.getLogger(__name__)


class Approach(str, Enum):
    """The two directions of traffic guarded by a semaphore."""

    NORTH = "north"
    SOUTH = "south"


EndReason = Literal["accident", "cap_reached", "generators_finished", "truncated"]


class EpisodeConfig(BaseModel):
    """Episode settings handed to the controller at construction."""

    total_max_car_spawn: int = Field(
        default=DEFAULT_TOTAL_MAX_CAR_SPAWN,
        ge=0,
        description="Vehicles to spawn per episode (0 means unset)"
    )
    semaphore_timer: float = Field(
        default=DEFAULT_SEMAPHORE_TIMER,
        gt=0,
        description="Wait timer reset value for every semaphore, in seconds"
    )
    timer_for_decision: float = Field(
        default=DEFAULT_TIMER_FOR_DECISION,
        ge=MIN_TIMER_FOR_DECISION,
        le=MAX_TIMER_FOR_DECISION,
        description="Seconds between decision polls"
    )
    tick_seconds: float = Field(
        default=DEFAULT_TICK_SECONDS, gt=0, le=1.0, description="Simulation tick length"
    )
    max_episode_seconds: float = Field(
        default=DEFAULT_MAX_EPISODE_SECONDS,
        gt=0,
        description="Simulated seconds after which an environment episode is truncated"
    )

    model_config = {"validate_assignment": True}

    @validator('total_max_car_spawn')
    def unset_cap_uses_default(cls, v):
        if v == 0:
            return DEFAULT_TOTAL_MAX_CAR_SPAWN
        return v

    def save(self, path: Path) -> None:
        """Save episode config to JSON file."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w') as f:
                json.dump(self.dict(), f, indent=2)
            logger.info(f"Saved episode config to {path}")
        except Exception as e:
            logger.error(f"Failed to save episode config to {path}: {e}")
            raise

    @classmethod
    def load(cls, path: Path) -> 'EpisodeConfig':
        """Load episode config from JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
            config = cls(**data)
            logger.info(f"Loaded episode config from {path}")
            return config
        except FileNotFoundError:
            logger.error(f"Episode config file not found: {path}")
            raise
        except Exception as e:
            logger.error(f"Failed to load episode config from {path}: {e}")
            raise


class EpisodeStats(BaseModel):
    """Finalised record of one episode, handed to the reporter."""

    episode_index: int = Field(..., ge=1, description="Episode number within this process")
    episode_length: float = Field(..., ge=0, description="Elapsed simulated seconds")
    episode_steps: int = Field(..., ge=0, description="Ticks processed while running")
    decisions: int = Field(default=0, ge=0, description="Decision requests issued")
    accident: bool = Field(default=False, description="Episode ended by an accident")
    total_spawned: int = Field(default=0, ge=0, description="Vehicles spawned")
    total_goal: int = Field(default=0, ge=0, description="Vehicles that reached their goal")
    total_passed: int = Field(default=0, ge=0, description="Vehicles through the critical zone")
    avg_crossing_time: float = Field(default=0.0, ge=0, description="Mean crossing time")
    avg_wait_time: float = Field(default=0.0, ge=0, description="Mean wait time")
    terminal_reward: float = Field(default=0.0, description="Throughput reward or accident penalty")
    cumulative_reward: float = Field(default=0.0, description="Sum of all reward deltas")
    end_reason: EndReason = Field(..., description="What ended the episode")
    timestamp: float = Field(default_factory=time.time, description="Unix timestamp")

    def to_jsonl(self) -> str:
        """Convert to JSONL string."""
        return json.dumps(self.dict(), separators=(',', ':'))
