"""
TopSpin Configuration

Centralized settings, paths, and table-tennis rule constants.
"""

import logging
import logging.handlers
from pathlib import Path
from dataclasses import dataclass
import appdirs


# Application info
APP_NAME = "TopSpin"
APP_AUTHOR = "TopSpin"
APP_VERSION = "1.0.0"


@dataclass(frozen=True)
class Paths:
    """Application paths."""
    # Data directory (stores database)
    data_dir: Path = Path(appdirs.user_data_dir(APP_NAME, APP_AUTHOR))

    # Config directory (stores user preferences)
    config_dir: Path = Path(appdirs.user_config_dir(APP_NAME, APP_AUTHOR))

    # Log directory
    log_dir: Path = Path(appdirs.user_log_dir(APP_NAME, APP_AUTHOR))

    @property
    def database(self) -> Path:
        return self.data_dir / "topspin.db"

    @property
    def log_file(self) -> Path:
        return self.log_dir / "topspin.log"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        for dir_path in [self.data_dir, self.config_dir, self.log_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RuleSettings:
    """Table-tennis rules (ITTF / CBTM)."""
    # A set is won at 11 points with a 2-point margin
    points_to_win: int = 11
    min_difference: int = 2

    # From 10-10 on, the set ends exactly 2 points apart
    deuce_threshold: int = 10

    # Upper bound accepted for a single score entry
    max_set_score: int = 99

    # Match formats
    best_of_options: tuple[int, ...] = (3, 5, 7)
    groups_best_of_options: tuple[int, ...] = (3, 5)
    default_groups_best_of: int = 5
    default_knockout_best_of: int = 5

    # Timeouts per player per match
    timeouts_per_player: int = 1

    # Groups
    group_size_options: tuple[int, ...] = (3, 4, 5)
    min_group_members: int = 2

    # Knockout
    min_athletes_for_knockout: int = 4
    min_main_bracket_size: int = 4
    max_seeds: int = 16

    # Standings: no draws in table tennis
    points_for_win: int = 3
    points_for_loss: int = 0


@dataclass(frozen=True)
class LogSettings:
    """Logging settings."""
    level: int = logging.INFO
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # Rotating file handler
    max_bytes: int = 1_000_000
    backup_count: int = 3


# Singleton instances
PATHS = Paths()
RULES = RuleSettings()
LOG_SETTINGS = LogSettings()


def init_config() -> None:
    """Initialize configuration and create required directories."""
    PATHS.ensure_directories()


def configure_logging(level: int = LOG_SETTINGS.level, log_to_file: bool = True) -> None:
    """Install console (and optionally rotating file) log handlers."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        PATHS.log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            PATHS.log_file,
            maxBytes=LOG_SETTINGS.max_bytes,
            backupCount=LOG_SETTINGS.backup_count,
            encoding="utf-8",
        ))

    logging.basicConfig(level=level, format=LOG_SETTINGS.format, handlers=handlers, force=True)
