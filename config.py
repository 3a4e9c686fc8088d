"""
CupTally Configuration

Centralized settings, paths, and constants for the application.
"""

import logging
from pathlib import Path
from dataclasses import dataclass
import appdirs


# Application info
APP_NAME = "CupTally"
APP_AUTHOR = "CupTally"
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
        return self.data_dir / "cuptally.db"

    @property
    def log_file(self) -> Path:
        return self.log_dir / "cuptally.log"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        for dir_path in [self.data_dir, self.config_dir, self.log_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RackSettings:
    """Rack-related settings."""
    # Cup counts that have a pyramid layout and an adjacency table
    supported_cup_counts: tuple[int, ...] = (6, 10)

    # Cup count used when a match is set up without one
    default_cup_count: int = 6

    # Players per side for each game type
    players_per_side: tuple[tuple[str, int], ...] = (("1v1", 1), ("2v2", 2))


@dataclass(frozen=True)
class PersistenceSettings:
    """Settings for forwarding records to the match store."""
    # Worker threads for fire-and-forget store calls (1 keeps calls in order)
    forwarder_workers: int = 1

    # Echo SQL statements (debugging only)
    echo_sql: bool = False


# Singleton instances
PATHS = Paths()
RACK_SETTINGS = RackSettings()
PERSISTENCE_SETTINGS = PersistenceSettings()

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: int = logging.INFO, log_to_file: bool = True) -> None:
    """Install console (and optionally file) log handlers on the root logger."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        PATHS.log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(PATHS.log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def init_config() -> None:
    """Initialize configuration and create required directories."""
    PATHS.ensure_directories()
