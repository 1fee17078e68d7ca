"""
Process configuration.

Settings come from environment variables, optionally seeded from a ``.env``
file in the working directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_ADAPTER = "sql"
DEFAULT_DATABASE_URL = "sqlite:///data/que.db"
DEFAULT_JSON_STORE = "data/que.json"


def load_env() -> None:
    """Load .env from project root if present."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for que."""

    persistence_adapter: str = DEFAULT_ADAPTER
    database_url: str = DEFAULT_DATABASE_URL
    json_store_path: Path = Path(DEFAULT_JSON_STORE)
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ after loading .env)

        Returns:
            Settings instance
        """
        if environ is None:
            load_env()
            environ = os.environ

        log_dir = environ.get("QUE_LOG_DIR", "").strip()
        return cls(
            persistence_adapter=environ.get("QUE_PERSISTENCE_ADAPTER", DEFAULT_ADAPTER).strip(),
            database_url=environ.get("QUE_DATABASE_URL", DEFAULT_DATABASE_URL).strip(),
            json_store_path=Path(environ.get("QUE_JSON_STORE", DEFAULT_JSON_STORE)),
            log_level=environ.get("QUE_LOG_LEVEL", "INFO").strip().upper(),
            log_dir=Path(log_dir) if log_dir else None,
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings

    if _settings is None:
        _settings = Settings.from_env()

    return _settings


def reset_settings():
    """Reset the global settings (useful for testing)."""
    global _settings
    _settings = None
