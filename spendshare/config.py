"""Runtime configuration for the SpendShare backend.

Settings are resolved once per process. Defaults can be overridden by an
optional YAML file (its path is read from ``SPENDSHARE_CONFIG``) and then by
individual ``SPENDSHARE_*`` environment variables, which always win. The
resolved :class:`Settings` object is read-only for the lifetime of the process.
"""

from __future__ import annotations

import logging
import os
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from functools import cache
from pathlib import Path
from typing import Any, Final

import yaml

LOG = logging.getLogger(__name__)

CONFIG_ENV: Final[str] = "SPENDSHARE_CONFIG"
DATABASE_URL_ENV: Final[str] = "SPENDSHARE_DATABASE_URL"
JWT_SECRET_ENV: Final[str] = "SPENDSHARE_JWT_SECRET"
TOKEN_TTL_ENV: Final[str] = "SPENDSHARE_TOKEN_TTL_DAYS"
LOG_LEVEL_ENV: Final[str] = "SPENDSHARE_LOG_LEVEL"
JSON_LOGS_ENV: Final[str] = "SPENDSHARE_JSON_LOGS"

DEFAULT_SQLITE_PATH: Final[Path] = Path(__file__).resolve().parent / "spendshare.db"
DEFAULT_DATABASE_URL: Final[str] = f"sqlite:///{DEFAULT_SQLITE_PATH}"
DEFAULT_TOKEN_TTL_DAYS: Final[int] = 15
DEFAULT_LOG_LEVEL: Final[str] = "INFO"

_YAML_KEYS: Final[frozenset[str]] = frozenset(
    {"database_url", "jwt_secret", "token_ttl_days", "log_level", "json_logs"}
)
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


class ConfigError(ValueError):
    """Raised when a configuration source holds an unusable value."""


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-wide settings.

    Attributes:
      database_url: SQLAlchemy URL of the relational store.
      jwt_secret: HMAC secret used to sign bearer tokens.
      token_ttl_days: Lifetime of issued tokens, in days.
      log_level: Level name applied to the ``spendshare`` loggers.
      json_logs: Whether structured JSON records are also written to file.
    """

    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret: str = ""
    token_ttl_days: int = DEFAULT_TOKEN_TTL_DAYS
    log_level: str = DEFAULT_LOG_LEVEL
    json_logs: bool = False


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _as_ttl(value: Any) -> int:
    try:
        days = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"token_ttl_days must be an integer, got {value!r}") from exc
    if days <= 0:
        raise ConfigError("token_ttl_days must be positive")
    return days


def _read_config_file(path: Path | str) -> dict[str, Any]:
    """Load the YAML overrides, rejecting unknown keys."""

    with Path(path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    unknown = set(payload) - _YAML_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
    return payload


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from defaults, the YAML file and the environment."""

    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_path = env.get(CONFIG_ENV)
    if config_path:
        values.update(_read_config_file(config_path))

    overrides = {
        "database_url": env.get(DATABASE_URL_ENV),
        "jwt_secret": env.get(JWT_SECRET_ENV),
        "token_ttl_days": env.get(TOKEN_TTL_ENV),
        "log_level": env.get(LOG_LEVEL_ENV),
        "json_logs": env.get(JSON_LOGS_ENV),
    }
    values.update({key: value for key, value in overrides.items() if value not in (None, "")})

    if "token_ttl_days" in values:
        values["token_ttl_days"] = _as_ttl(values["token_ttl_days"])
    if "json_logs" in values:
        values["json_logs"] = _as_bool(values["json_logs"])
    if "log_level" in values:
        values["log_level"] = str(values["log_level"]).strip().upper()

    if not values.get("jwt_secret"):
        LOG.warning(
            "%s is not set; tokens are signed with a random secret and will not survive a restart",
            JWT_SECRET_ENV,
        )
        values["jwt_secret"] = secrets.token_urlsafe(48)

    return Settings(**values)


@cache
def get_settings() -> Settings:
    """Return the cached process-wide settings."""

    return load_settings()


__all__ = ["ConfigError", "Settings", "get_settings", "load_settings"]
