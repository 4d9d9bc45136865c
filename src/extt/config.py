"""Configuration module for the extt note store.

Settings are read from ``EXTT_*`` environment variables (optionally supplied
through ``.env`` files) into an explicit :class:`ExttConfig` value. The store
never reads configuration itself: callers build a config with
:func:`load_config` and hand the resolved paths to the store.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

# User-level config: lives alongside the default log directory
USER_ENV_FILE = Path.home() / ".extt" / ".env"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ExttConfig(BaseModel):
    """Configuration for the extt note store and its command line."""

    # Base directory that relative paths are resolved against
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("EXTT_BASE_DIR", "."))
    )
    # Root directory holding the note files
    notes_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("EXTT_NOTES_DIR", "notes"))
    )
    # SQLite index file
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("EXTT_DATABASE_PATH", "data/db/extt.db")
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("EXTT_LOG_LEVEL", "WARNING").upper()
    )
    # When unset, logging goes to the console only
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("EXTT_LOG_DIR")) if os.getenv("EXTT_LOG_DIR") else None
        )
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _validate_log_level(self) -> "ExttConfig":
        """Reject unknown logging level names."""
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}, "
                f"got '{self.log_level}'"
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return (self.base_dir / path).absolute()

    def get_notes_dir(self) -> Path:
        """Absolute path of the notes root."""
        return self.get_absolute_path(self.notes_dir)

    def get_database_path(self) -> Path:
        """Absolute path of the SQLite index file."""
        return self.get_absolute_path(self.database_path)

    def get_log_level(self) -> int:
        """Numeric logging level for ``log_level``."""
        return getattr(logging, self.log_level.upper(), logging.WARNING)


def load_config(env_file: Optional[Path] = None, **overrides: Any) -> ExttConfig:
    """Build a fresh configuration value.

    ``.env`` files are loaded first (``~/.extt/.env``, then ``env_file`` or the
    working directory's ``.env``) without overriding variables already set in
    the environment. Keyword overrides that are not ``None`` take precedence
    over the environment.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    from pydantic import ValidationError

    from extt.exceptions import ConfigurationError

    load_dotenv(USER_ENV_FILE)
    load_dotenv(env_file if env_file is not None else Path.cwd() / ".env")

    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        config = ExttConfig(**values)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        key = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg', e)}", config_key=key
        ) from e

    logger.debug(
        f"Configuration loaded: notes_dir={config.get_notes_dir()}, "
        f"database_path={config.get_database_path()}"
    )
    return config
