"""Configuration management for the admin authentication service."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path
from .sessions import DEFAULT_SESSION_TTL
from .sweeper import DEFAULT_SWEEP_INTERVAL

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_MAX_SESSION_TTL_HOURS = 24 * 366
_MAX_SWEEP_INTERVAL_SECONDS = 7 * 24 * 3600

# setting name -> environment variable
_ENV_KEYS = {
    "database_path": "SHOPADMIN_DB_PATH",
    "session_ttl_hours": "SHOPADMIN_SESSION_TTL_HOURS",
    "sweep_interval_seconds": "SHOPADMIN_SWEEP_INTERVAL_SECONDS",
    "secure_cookies": "SHOPADMIN_SESSION_SECURE",
    "log_level": "SHOPADMIN_LOG_LEVEL",
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the service."""

    database_path: Path
    session_ttl: timedelta = DEFAULT_SESSION_TTL
    sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL
    secure_cookies: bool = True
    log_level: str = "INFO"

    @property
    def cookie_max_age(self) -> int:
        return int(self.session_ttl.total_seconds())

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "Settings":
        """Create :class:`Settings` from raw file and environment values."""

        unknown = set(data.keys()) - set(_ENV_KEYS)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        database_path = resolve_database_path(str(raw_path) if raw_path else None)

        ttl_hours = _parse_positive_number(
            data,
            "session_ttl_hours",
            DEFAULT_SESSION_TTL.total_seconds() / 3600,
            maximum=_MAX_SESSION_TTL_HOURS,
        )
        interval_seconds = _parse_positive_number(
            data,
            "sweep_interval_seconds",
            DEFAULT_SWEEP_INTERVAL.total_seconds(),
            maximum=_MAX_SWEEP_INTERVAL_SECONDS,
        )

        log_level = str(data.get("log_level", "INFO")).strip().upper()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"Unsupported log_level '{log_level}'")

        return Settings(
            database_path=database_path,
            session_ttl=timedelta(hours=ttl_hours),
            sweep_interval=timedelta(seconds=interval_seconds),
            secure_cookies=_parse_flag(data.get("secure_cookies"), default=True),
            log_level=log_level,
        )


def _parse_positive_number(
    data: Mapping[str, object], key: str, default: float, *, maximum: float
) -> float:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a number") from exc
    if not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number")
    if value <= 0:
        raise ValueError(f"{key} must be greater than zero")
    if value > maximum:
        raise ValueError(f"{key} must not exceed {maximum:g}")
    return value


def _parse_flag(value: object, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value '{value}'")


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "shopadmin.yaml").resolve(strict=False)
    return candidate


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from the YAML file, overridden by environment variables.

    An explicitly given ``config_path`` must exist; the default location is
    optional.
    """

    env = os.environ if environ is None else environ
    explicit = config_path is not None or bool(env.get("SHOPADMIN_CONFIG"))
    path = config_path or resolve_config_path(env.get("SHOPADMIN_CONFIG"))

    values: Dict[str, object] = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError("Configuration file must contain a mapping of settings")
        raw_path = raw.get("database_path")
        if raw_path and not Path(str(raw_path)).expanduser().is_absolute():
            # Relative paths in the file are relative to the file itself.
            raw = {**raw, "database_path": str(path.parent / Path(str(raw_path)).expanduser())}
        values.update(raw)
    elif explicit:
        raise ValueError(f"Configuration file {path} does not exist")

    for key, env_name in _ENV_KEYS.items():
        env_value = env.get(env_name)
        if env_value is not None and env_value.strip():
            values[key] = env_value.strip()

    return Settings.from_dict(values)


__all__ = ["Settings", "load_settings", "resolve_config_path"]
