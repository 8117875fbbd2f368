"""teamsync.config_loader

Config loader for the TeamSync server.

- Reads YAML (PyYAML) or, for ``.json`` files, JSON.
- Exposes a typed dataclass ``Config`` and a ``load_config()`` helper that
  accepts an optional path override and environment overrides.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

STORE_BACKENDS = ("local", "remote")
MIN_REFRESH_SECONDS = 5
MAX_REFRESH_SECONDS = 3600
DEFAULT_AI_MODEL = "gemini-3-flash-preview"
DEFAULT_AI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"


@dataclass
class Config:
    """Typed configuration for TeamSync.

    Fields:
        store_backend: ``local`` (JSON file) or ``remote`` (key-value proxy)
        store_path: JSON file used by the local backend
        remote_api_url: base URL of the remote proxy
        refresh_interval_seconds: how often sessions re-read the store (5..3600)
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
        ai_api_key: Gemini API key; AI quick fill is disabled without one
        ai_model: Gemini model name
        ai_endpoint: Gemini REST base URL
    """

    store_backend: str = "local"
    store_path: str = "teamsync.json"
    remote_api_url: Optional[str] = None
    refresh_interval_seconds: int = 30
    server_bind: str = "127.0.0.1"
    server_port: int = 8080
    log_level: str = "INFO"
    ai_api_key: Optional[str] = None
    ai_model: str = DEFAULT_AI_MODEL
    ai_endpoint: str = DEFAULT_AI_ENDPOINT

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int, ``refresh_interval_seconds`` is
        clamped to 5..3600 and an unknown ``store_backend`` falls back to
        ``local``; each coercion is logged as a warning.
        """
        if data is None:
            data = {}
        defaults = cls()

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        def _optional_str(key: str) -> Optional[str]:
            raw = data.get(key)
            return str(raw) if raw not in (None, "") else None

        refresh = _coerce_int("refresh_interval_seconds", defaults.refresh_interval_seconds)
        if refresh < MIN_REFRESH_SECONDS:
            logger.warning(
                "refresh_interval_seconds %d below minimum; coercing to %d",
                refresh,
                MIN_REFRESH_SECONDS,
            )
            refresh = MIN_REFRESH_SECONDS
        elif refresh > MAX_REFRESH_SECONDS:
            logger.warning(
                "refresh_interval_seconds %d above maximum; coercing to %d",
                refresh,
                MAX_REFRESH_SECONDS,
            )
            refresh = MAX_REFRESH_SECONDS

        backend = str(data.get("store_backend") or defaults.store_backend).lower()
        if backend not in STORE_BACKENDS:
            logger.warning("Unknown store_backend %r; using 'local'", backend)
            backend = "local"

        remote_api_url = _optional_str("remote_api_url")
        if backend == "remote" and not remote_api_url:
            raise ValueError("store_backend 'remote' requires remote_api_url")

        log_level = data.get("log_level") or defaults.log_level

        return cls(
            store_backend=backend,
            store_path=str(data.get("store_path") or defaults.store_path),
            remote_api_url=remote_api_url.rstrip("/") if remote_api_url else None,
            refresh_interval_seconds=refresh,
            server_bind=str(data.get("server_bind") or defaults.server_bind),
            server_port=_coerce_int("server_port", defaults.server_port),
            log_level=str(log_level).upper(),
            ai_api_key=_optional_str("ai_api_key"),
            ai_model=str(data.get("ai_model") or defaults.ai_model),
            ai_endpoint=str(data.get("ai_endpoint") or defaults.ai_endpoint).rstrip("/"),
        )

    def with_overrides(self, overrides: dict[str, Any]) -> Config:
        """Return a copy with ``overrides`` applied and re-validated."""
        known = {f.name for f in fields(self)}
        merged = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in overrides.items():
            if key in known:
                merged[key] = value
            else:
                logger.debug("Ignoring unknown config override %s", key)
        return Config.from_dict(merged)


def _load_yaml_or_json(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file (JSON for ``.json`` suffixes)."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: Optional[str] = None, overrides: Optional[dict[str, Any]] = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./teamsync.yaml.
        overrides: Values (e.g. from the environment) that win over the file.

    Behavior:
    - If the file is missing: defaults plus overrides.
    - If the file exists but its top level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "teamsync.yaml"
    logger.debug("Attempting to load config from %s", p)
    raw: Any = {}
    if p.exists():
        raw = _load_yaml_or_json(p)
        if not isinstance(raw, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
            raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    merged = dict(raw)
    if overrides:
        merged.update(overrides)
    cfg = Config.from_dict(merged)
    logger.debug("Configuration values: %s", _redacted(cfg))
    return cfg


def _redacted(cfg: Config) -> dict[str, Any]:
    values = vars(cfg).copy()
    if values.get("ai_api_key"):
        values["ai_api_key"] = "***"
    return values
