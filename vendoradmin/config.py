"""Configuration management for the vendor console."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_API_URL = "https://europadel-back.vercel.app/api"
CONFIG_ENV_VAR = "VENDORADMIN_CONFIG"


class ConfigurationError(ValueError):
    """Raised when a configuration value cannot be used."""


@dataclass(frozen=True)
class ConsoleSettings:
    """Settings shared by the web interface and the terminal console."""

    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = 10.0
    verify: bool | str = True
    session_secret: Optional[str] = None
    secure_cookies: bool = False
    session_ttl: timedelta = timedelta(hours=8)

    @staticmethod
    def from_dict(data: Mapping[str, Any], base_path: Path | None = None) -> "ConsoleSettings":
        """Create :class:`ConsoleSettings` from a raw mapping."""

        defaults = ConsoleSettings()
        known = {
            "api_base_url",
            "request_timeout",
            "verify",
            "session_secret",
            "secure_cookies",
            "session_ttl_hours",
        }
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown console settings: {', '.join(sorted(unknown))}")

        verify = data.get("verify", defaults.verify)
        if isinstance(verify, str):
            verify = _parse_verify_setting(verify, base_path)

        secure_cookies = data.get("secure_cookies", defaults.secure_cookies)
        if isinstance(secure_cookies, str):
            secure_cookies = _env_bool(secure_cookies, defaults.secure_cookies)

        secret = data.get("session_secret")
        return ConsoleSettings(
            api_base_url=str(data.get("api_base_url", defaults.api_base_url)).strip().rstrip("/"),
            request_timeout=_as_float(data.get("request_timeout", defaults.request_timeout), "request_timeout"),
            verify=verify,
            session_secret=str(secret) if secret is not None else None,
            secure_cookies=bool(secure_cookies),
            session_ttl=timedelta(
                hours=_as_float(data.get("session_ttl_hours", 8), "session_ttl_hours")
            ),
        )


def _as_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number {value!r} for {name}") from exc
    if number <= 0:
        raise ConfigurationError(f"{name} must be greater than zero")
    return number


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _parse_verify_setting(value: str, base_path: Path | None = None) -> bool | str:
    lowered = value.strip().lower()
    if lowered in {"", "default", "1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    path = Path(value).expanduser()
    if not path.is_absolute() and base_path is not None:
        path = base_path / path
    return str(path.resolve(strict=False))


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the YAML settings file, if one is configured."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    candidate = (Path(__file__).resolve().parent.parent / "config" / "console.yaml").resolve(strict=False)
    return candidate if candidate.exists() else None


def load_settings(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ConsoleSettings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    environ = env if env is not None else os.environ
    if config_path is None:
        config_path = resolve_config_path(environ.get(CONFIG_ENV_VAR))

    settings = ConsoleSettings()
    if config_path is not None:
        try:
            with config_path.open("r", encoding="utf-8") as handle:
                raw = yaml.safe_load(handle) or {}
        except OSError as exc:
            raise ConfigurationError(f"Unable to read configuration file {config_path}: {exc}") from exc
        section = raw.get("console", {}) if isinstance(raw, dict) else None
        if not isinstance(section, dict):
            raise ConfigurationError("Configuration file must define a 'console' mapping")
        settings = ConsoleSettings.from_dict(section, base_path=config_path.parent)

    overrides: Dict[str, Any] = {}
    api_url = environ.get("VENDORADMIN_API_URL")
    if api_url and api_url.strip():
        overrides["api_base_url"] = api_url.strip().rstrip("/")
    timeout = environ.get("VENDORADMIN_TIMEOUT")
    if timeout and timeout.strip():
        overrides["request_timeout"] = _as_float(timeout, "VENDORADMIN_TIMEOUT")
    verify = environ.get("VENDORADMIN_VERIFY")
    if verify is not None:
        overrides["verify"] = _parse_verify_setting(verify)
    secret = environ.get("VENDORADMIN_SESSION_SECRET")
    if secret:
        overrides["session_secret"] = secret
    if "VENDORADMIN_SESSION_SECURE" in environ:
        overrides["secure_cookies"] = _env_bool(environ.get("VENDORADMIN_SESSION_SECURE"), False)

    settings = replace(settings, **overrides)
    if not settings.api_base_url:
        raise ConfigurationError("API base URL must not be empty")
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigurationError",
    "ConsoleSettings",
    "DEFAULT_API_URL",
    "load_settings",
    "resolve_config_path",
]
