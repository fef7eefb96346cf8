"""Logging setup and JSONL episode reporting."""

import json
import logging
import time
from pathlib import Path
from typing import Optional

import numpy as np

from crossing.config.schema import EpisodeStats

logger = logging.getLogger(__name__)


class EpisodeReporter:
    """JSONL reporter for finished episodes and session events."""

    def __init__(self, log_path: Path):
        """Initialize episode reporter.

        Args:
            log_path: Path to JSONL report file
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Episode reporter initialized: {self.log_path}")

    def write_episode(self, stats: EpisodeStats) -> None:
        """Append one finished episode to the report.

        Args:
            stats: Finalised episode record
        """
        try:
            with open(self.log_path, 'a') as f:
                f.write(stats.to_jsonl() + '\n')
            logger.debug(f"Reported episode {stats.episode_index}")
        except Exception as e:
            logger.error(f"Failed to write episode {stats.episode_index}: {e}")
            raise

    def log_event(
        self,
        event_type: str,
        details: Optional[dict] = None,
        notes: Optional[str] = None
    ) -> None:
        """Log a general event.

        Args:
            event_type: Type of event (e.g., "session_start", "session_end")
            details: Additional event details
            notes: Event notes
        """
        try:
            entry = {
                "timestamp": time.time(),
                "event_type": event_type,
                "details": details or {},
                "notes": notes,
            }
            with open(self.log_path, 'a') as f:
                f.write(json.dumps(entry, separators=(',', ':')) + '\n')

            logger.debug(f"Logged event: {event_type}")

        except Exception as e:
            logger.error(f"Failed to log event: {e}")

    def read_episodes(self) -> list[EpisodeStats]:
        """Read every episode record back from the report, skipping events."""
        if not self.log_path.exists():
            return []

        episodes = []
        with open(self.log_path) as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning(f"Skipping malformed line {line_no} in {self.log_path}: {e}")
                    continue
                if "event_type" in data:
                    continue
                episodes.append(EpisodeStats(**data))
        return episodes

    def get_log_stats(self) -> dict:
        """Get statistics about the report file.

        Returns:
            Dictionary with report file statistics
        """
        try:
            if not self.log_path.exists():
                return {"entries": 0, "size_bytes": 0}

            entries = 0
            with open(self.log_path) as f:
                for line in f:
                    if line.strip():
                        entries += 1

            size_bytes = self.log_path.stat().st_size

            return {
                "entries": entries,
                "size_bytes": size_bytes,
                "size_mb": size_bytes / (1024 * 1024)
            }

        except Exception as e:
            logger.error(f"Failed to get log stats: {e}")
            return {"entries": 0, "size_bytes": 0, "error": str(e)}


def summarize_episodes(episodes: list[EpisodeStats]) -> dict:
    """Aggregate a list of episode records.

    Args:
        episodes: Episode records, in any order

    Returns:
        Dictionary of aggregate statistics (empty for no episodes)
    """
    if not episodes:
        return {}

    rewards = np.array([e.cumulative_reward for e in episodes])
    lengths = np.array([e.episode_length for e in episodes])
    accidents = np.array([e.accident for e in episodes])
    passed = np.array([e.total_passed for e in episodes])

    return {
        "episodes": len(episodes),
        "mean_reward": float(np.mean(rewards)),
        "std_reward": float(np.std(rewards)),
        "best_reward": float(np.max(rewards)),
        "mean_length": float(np.mean(lengths)),
        "accident_rate": float(np.mean(accidents)),
        "mean_passed": float(np.mean(passed)),
    }


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Setup logging configuration.

    Args:
        level: Logging level
        log_file: Optional file for logging output
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, file={log_file}")


def get_report_filename(base_name: str = "episodes") -> str:
    """Generate report filename with timestamp.

    Args:
        base_name: Base name for report file

    Returns:
        Report filename with timestamp
    """
    import datetime

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{base_name}_{timestamp}.jsonl"


def rotate_reports(report_dir: Path, max_files: int = 10, max_size_mb: int = 100) -> None:
    """Rotate report files to prevent disk space issues.

    Args:
        report_dir: Directory containing report files
        max_files: Maximum number of report files to keep
        max_size_mb: Maximum size per report file in MB
    """
    try:
        if not report_dir.exists():
            return

        report_files = list(report_dir.glob("*.jsonl"))
        report_files.sort(key=lambda f: f.stat().st_mtime, reverse=True)  # Newest first

        if len(report_files) > max_files:
            for old_file in report_files[max_files:]:
                logger.info(f"Removing old report file: {old_file}")
                old_file.unlink()

        for report_file in report_files[:max_files]:
            size_mb = report_file.stat().st_size / (1024 * 1024)
            if size_mb > max_size_mb:
                logger.warning(f"Report file {report_file.name} is {size_mb:.1f}MB (>{max_size_mb}MB limit)")

        logger.debug(f"Report rotation complete: kept {min(len(report_files), max_files)} files")

    except Exception as e:
        logger.error(f"Report rotation failed: {e}")
