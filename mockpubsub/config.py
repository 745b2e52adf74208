"""Environment configuration (optionally loaded from a .env file)."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

DEFAULT_PROJECT_ID = "local-project"
DEFAULT_LOG_LEVEL = "INFO"

# Checked in order; the first non-empty value wins.
PROJECT_ID_VARS = ("PUBSUB_PROJECT_ID", "GCP_PROJECT_ID", "GOOGLE_CLOUD_PROJECT")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the emulator and its inspection server."""

    project_id: str = DEFAULT_PROJECT_ID
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment. Malformed values fall back to defaults."""
        project_id = DEFAULT_PROJECT_ID
        for var in PROJECT_ID_VARS:
            value = (os.environ.get(var) or "").strip()
            if value:
                project_id = value
                break
        log_level = (os.environ.get("PUBSUB_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            log_level = DEFAULT_LOG_LEVEL
        return cls(project_id=project_id, log_level=log_level)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load .env (without overriding the real environment) and return cached settings."""
    load_dotenv()
    return Settings.from_env()
