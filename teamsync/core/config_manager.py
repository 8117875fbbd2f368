"""Environment-based configuration for the TeamSync server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ENV_PREFIX = "TEAMSYNC_"

# Environment variable -> Config field
_ENV_FIELDS: dict[str, str] = {
    "TEAMSYNC_STORE_BACKEND": "store_backend",
    "TEAMSYNC_STORE_PATH": "store_path",
    "TEAMSYNC_REMOTE_API_URL": "remote_api_url",
    "TEAMSYNC_REFRESH_INTERVAL": "refresh_interval_seconds",
    "TEAMSYNC_SERVER_BIND": "server_bind",
    "TEAMSYNC_SERVER_PORT": "server_port",
    "TEAMSYNC_LOG_LEVEL": "log_level",
    "TEAMSYNC_AI_API_KEY": "ai_api_key",
    "TEAMSYNC_AI_MODEL": "ai_model",
    "TEAMSYNC_AI_ENDPOINT": "ai_endpoint",
}

_INT_FIELDS = {"refresh_interval_seconds", "server_port"}


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Skips blank lines and ``#`` comments, strips single and double quotes
    from values. Returns an empty dict if the file is missing or unreadable.
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export ") :].strip()
        if key:
            result[key] = val.strip().strip('"').strip("'")

    return result


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load the .env file into ``os.environ``.

        Variables already present in the environment are left untouched.

        Returns:
            Keys that were loaded from the .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build config overrides from ``TEAMSYNC_*`` environment variables.

        Integer fields that fail to parse are ignored with a warning.
        """
        cfg: dict[str, Any] = {}
        for env_key, field_name in _ENV_FIELDS.items():
            raw = os.environ.get(env_key)
            if not raw:
                continue
            if field_name in _INT_FIELDS:
                try:
                    cfg[field_name] = int(raw)
                except ValueError:
                    logger.warning("Invalid %s=%r; ignoring", env_key, raw)
                continue
            cfg[field_name] = raw
        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load the .env file, then return the environment overrides."""
        self.load_env_file()
        return self.build_config_from_env()
