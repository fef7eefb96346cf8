"""Default configuration values and constants."""

from pathlib import Path

# Default directories
CONFIG_DIR = Path.home() / ".crossing"
CONFIG_FILE = CONFIG_DIR / "episode.json"
REPORT_DIR = CONFIG_DIR / "reports"
MODELS_DIR = CONFIG_DIR / "models"

# Episode settings
DEFAULT_TOTAL_MAX_CAR_SPAWN = 10_000_000  # Used when the spawn cap is unset (0)
DEFAULT_SEMAPHORE_TIMER = 5.0  # Seconds of queue patience before penalties start
DEFAULT_TIMER_FOR_DECISION = 1.0  # Seconds between decision polls
MIN_TIMER_FOR_DECISION = 0.1
MAX_TIMER_FOR_DECISION = 5.0

# Simulation clock
DEFAULT_TICK_SECONDS = 0.02  # 50 Hz fixed tick
DEFAULT_MAX_EPISODE_SECONDS = 600.0

# Reward constants
DEFAULT_WAIT_PENALTY_SCALE = 0.1  # Per queued car, per overdue tick
DEFAULT_GOAL_REWARD = 0.1
DEFAULT_ACCIDENT_PENALTY = -0.5
DEFAULT_EMPTY_THROUGHPUT_REWARD = 0.0

# Approach order used by observations and actions
APPROACH_ORDER = ("north", "south")
OBSERVATION_SIZE = 3 * len(APPROACH_ORDER)
ACTION_SPACE_SIZE = len(APPROACH_ORDER)

# Logging settings
DEFAULT_LOG_LEVEL = "INFO"
MAX_REPORT_FILES = 10
MAX_REPORT_FILE_SIZE_MB = 100

# Model inference settings
DEFAULT_DEVICE = "cpu"
DEFAULT_DETERMINISTIC = True


def ensure_directories() -> None:
    """Create default directories if they don't exist."""
    CONFIG_DIR.mkdir(exist_ok=True)
    REPORT_DIR.mkdir(exist_ok=True)
    MODELS_DIR.mkdir(exist_ok=True)


def get_default_config_path() -> Path:
    """Get default episode config path, creating directory if needed."""
    ensure_directories()
    return CONFIG_FILE


def get_default_report_path() -> Path:
    """Get default report directory path, creating it if needed."""
    ensure_directories()
    return REPORT_DIR


def get_default_models_path() -> Path:
    """Get default models directory path, creating it if needed."""
    ensure_directories()
    return MODELS_DIR
