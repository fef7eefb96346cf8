"""Crossing - RL traffic-intersection controller core."""

__version__ = "0.1.0"
__author__ = "AI Development"

from crossing.config.schema import Approach, EpisodeConfig, EpisodeStats
from crossing.episode.controller import EpisodeController

__all__ = ["Approach", "EpisodeConfig", "EpisodeStats", "EpisodeController"]
