"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from dirmon.models.config import (
    APIConfig,
    DirMonConfig,
    ListenerConfig,
    LogConfig,
    MonitorConfig,
    SourceConfig,
)

_DEFAULT_REFRESH_PERIOD = 20.0
_DEFAULT_RETRY_INITIAL_DELAY = 0.5
_DEFAULT_RETRY_MAX_DELAY = 60.0


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"DIRMON_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _env_list(key: str) -> frozenset[str]:
    return frozenset(item.strip() for item in _env(key, "").split(",") if item.strip())


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_ldap_url(value: str) -> str:
    if not value.startswith(("ldap://", "ldaps://")):
        raise ValueError(f"Invalid source url: {value!r}. Must start with ldap:// or ldaps://")
    return value


def _refresh_period(value: float) -> float:
    # Non-positive periods fall back to the default rather than busy-polling.
    return value if value > 0 else _DEFAULT_REFRESH_PERIOD


def _retry_delays(initial: float, maximum: float) -> tuple[float, float]:
    """Validate the fetch-failure backoff bounds.

    Non-positive values fall back to the defaults and the cap is never
    below the first delay.
    """
    if initial <= 0:
        initial = _DEFAULT_RETRY_INITIAL_DELAY
    if maximum <= 0:
        maximum = _DEFAULT_RETRY_MAX_DELAY
    return initial, max(maximum, initial)


def load_config() -> DirMonConfig:
    """Load configuration from DIRMON_* environment variables."""
    retry_initial_delay, retry_max_delay = _retry_delays(
        _env_float("RETRY_INITIAL_DELAY", _DEFAULT_RETRY_INITIAL_DELAY),
        _env_float("RETRY_MAX_DELAY", _DEFAULT_RETRY_MAX_DELAY),
    )
    return DirMonConfig(
        source=SourceConfig(
            url=_validate_ldap_url(_env("SOURCE_URL", "ldap://localhost:389")),
            bind_dn=_env("SOURCE_BIND_DN", ""),
            bind_password=_env("SOURCE_BIND_PASSWORD", ""),
            base_dn=_env("SOURCE_BASE_DN", ""),
            search_filter=_env("SOURCE_SEARCH_FILTER", "(objectClass=*)"),
            key_attribute=_env("SOURCE_KEY_ATTRIBUTE", "sAMAccountName"),
            page_size=_env_int("SOURCE_PAGE_SIZE", 512, min_val=1, max_val=10000),
            timeout_seconds=_env_float("SOURCE_TIMEOUT", 10.0),
            max_reconnect_attempts=_env_int("SOURCE_MAX_RECONNECT_ATTEMPTS", 3, min_val=0, max_val=10),
        ),
        monitor=MonitorConfig(
            refresh_period=_refresh_period(_env_float("REFRESH_PERIOD", _DEFAULT_REFRESH_PERIOD)),
            ignore_fields=_env_list("IGNORE_FIELDS"),
            queue_capacity=_env_int("QUEUE_CAPACITY", 1024, min_val=1),
            diagnostic_logging=_env_bool("DIAGNOSTIC_LOGGING", False),
            retry_initial_delay=retry_initial_delay,
            retry_max_delay=retry_max_delay,
        ),
        listeners=ListenerConfig(
            console_enabled=_env_bool("LISTENERS_CONSOLE_ENABLED", True),
            webhook_secret_ref=_env("LISTENERS_WEBHOOK_SECRET_REF", ""),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
