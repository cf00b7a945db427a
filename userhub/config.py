"""Configuration management for the user directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

ENV_API_KEY = "USERHUB_API_KEY"
ENV_HOST = "USERHUB_HOST"
ENV_PORT = "USERHUB_PORT"
ENV_SEED_DEMO_USERS = "USERHUB_SEED_DEMO_USERS"
ENV_CONFIG = "USERHUB_CONFIG"


class ConfigurationError(ValueError):
    """Raised when the service cannot be configured from the given sources."""


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP and WebSocket service."""

    api_key: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    seed_demo_users: bool = True

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "Settings":
        """Create :class:`Settings` from raw mapping data."""

        api_key = str(data.get("api_key") or "").strip()
        if not api_key:
            raise ConfigurationError(f"{ENV_API_KEY} is not set!")

        host = str(data.get("host") or DEFAULT_HOST).strip() or DEFAULT_HOST
        port = _parse_port(data.get("port", DEFAULT_PORT))

        seed = data.get("seed_demo_users", True)
        if isinstance(seed, str):
            seed = _env_flag(seed, True)

        return Settings(api_key=api_key, host=host, port=port, seed_demo_users=bool(seed))


def _parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{ENV_PORT} must be an integer, got {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"{ENV_PORT} must be between 1 and 65535, got {port}")
    return port


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_yaml(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return raw


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the path to the optional configuration file."""

    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from a YAML file overlaid with environment variables."""

    env = os.environ if environ is None else environ

    path = config_path or resolve_config_path(env.get(ENV_CONFIG))
    data: Dict[str, object] = _load_yaml(path) if path is not None else {}

    overrides = {
        "api_key": env.get(ENV_API_KEY),
        "host": env.get(ENV_HOST),
        "port": env.get(ENV_PORT),
        "seed_demo_users": env.get(ENV_SEED_DEMO_USERS),
    }
    for key, value in overrides.items():
        if value is not None and value.strip():
            data[key] = value

    return Settings.from_dict(data)


__all__ = [
    "ConfigurationError",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "Settings",
    "load_settings",
    "resolve_config_path",
]
