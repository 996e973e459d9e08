"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SourceConfig:
    """Directory source (LDAP) connection configuration."""

    url: str = "ldap://localhost:389"
    bind_dn: str = ""
    bind_password: str = ""
    base_dn: str = ""
    search_filter: str = "(objectClass=*)"
    key_attribute: str = "sAMAccountName"
    page_size: int = 512
    timeout_seconds: float = 10.0
    max_reconnect_attempts: int = 3
    reconnect_delay: float = 0.5


@dataclass
class MonitorConfig:
    """Poll loop and dispatch configuration."""

    refresh_period: float = 20.0
    ignore_fields: frozenset[str] = field(default_factory=frozenset)
    queue_capacity: int = 1024
    diagnostic_logging: bool = False
    retry_initial_delay: float = 0.5
    retry_max_delay: float = 60.0
    shutdown_grace_seconds: float = 10.0


@dataclass
class ListenerConfig:
    """Built-in listener configuration."""

    console_enabled: bool = True
    webhook_secret_ref: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class DirMonConfig:
    """Top-level dirmon configuration."""

    source: SourceConfig = field(default_factory=SourceConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    listeners: ListenerConfig = field(default_factory=ListenerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
