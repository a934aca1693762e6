"""Configuration and settings.

Nothing here runs at import time: an application opts in by calling
``load_logging_settings()`` (usually through ``configure_logging()``).
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel


class LoggingSettings(BaseModel):
    """Logging options read from the environment."""

    level: str = "WARNING"
    verbose: bool = False
    file: str = ""  # empty means console only; a path also writes JSONL records


def load_logging_settings(dotenv_path: str | Path | None = None) -> LoggingSettings:
    """Load ``.env`` (without overriding existing variables) and read logging settings."""
    load_dotenv(dotenv_path)
    return LoggingSettings(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        verbose=os.getenv("VERBOSE_LOGGING", "false").lower() == "true",
        file=os.getenv("LOG_FILE", "").strip(),
    )
