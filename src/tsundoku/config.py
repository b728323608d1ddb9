"""Configuration module for tsundoku."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from tsundoku import __version__
from tsundoku.exceptions import ConfigurationError

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the database
_USER_ENV = Path.home() / ".tsundoku" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class TsundokuConfig(BaseModel):
    """Configuration for the link tracker."""

    # Base directory; relative paths below are resolved against it
    base_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("TSUNDOKU_BASE_DIR", str(Path.home() / ".tsundoku"))
        )
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("TSUNDOKU_DATABASE_PATH", "tsundoku.db")
        )
    )
    # Logging configuration. No log directory means console logging only.
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("TSUNDOKU_LOG_DIR"))
            if os.getenv("TSUNDOKU_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("TSUNDOKU_LOG_LEVEL", "WARNING").upper()
    )
    version: str = Field(default=__version__)

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate_log_level(self) -> "TsundokuConfig":
        """Reject log levels the logging module does not know."""
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level '{self.log_level}'",
                config_key="log_level",
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        path = path.expanduser()
        if path.is_absolute():
            return path
        return self.base_dir.expanduser() / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite. Nothing is created on disk."""
        return f"sqlite:///{self.get_absolute_path(self.database_path)}"

    def get_log_dir(self) -> Optional[Path]:
        """Get the absolute log directory, or None when file logging is off."""
        if self.log_dir is None:
            return None
        return self.get_absolute_path(self.log_dir)


# Create a global config instance
config = TsundokuConfig()
