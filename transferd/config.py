"""Application configuration: defaults, an optional YAML file and environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_log = logging.getLogger(__name__)

_DB_PASSWORD = "password"

_DEFAULTS: dict[str, Any] = {
    "server.port": "8080",
    "server.gin_mode": "debug",
    "server.shutdown_timeout": 5,
    "database.host": "localhost",
    "database.port": "5432",
    "database.user": "postgres",
    "database.password": _DB_PASSWORD,
    "database.name": "transfer_service",
    "database.sslmode": "disable",
    "redis.host": "localhost",
    "redis.port": "6379",
    "redis.password": "",
    "redis.db": 0,
}

_INT_KEYS = {"server.shutdown_timeout", "redis.db"}


@dataclass
class ServerConfig:
    port: str = "8080"
    gin_mode: str = "debug"
    shutdown_timeout: int = 5


@dataclass
class DatabaseConfig:
    host: str = "localhost"
    port: str = "5432"
    user: str = "postgres"
    password: str = _DB_PASSWORD
    name: str = "transfer_service"
    sslmode: str = "disable"


@dataclass
class RedisConfig:
    host: str = "localhost"
    port: str = "6379"
    password: str = ""
    db: int = 0


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)

    def db_connection_string(self) -> str:
        """Return the key=value connection string for the database."""
        d = self.database
        return (
            f"host={d.host} port={d.port} user={d.user} password={d.password}"
            f" dbname={d.name} sslmode={d.sslmode}"
        )

    def redis_address(self) -> str:
        """Return the host:port address of Redis."""
        return f"{self.redis.host}:{self.redis.port}"


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        full = f"{prefix}{str(key).lower()}"
        if isinstance(value, dict):
            flat.update(_flatten(value, full + "."))
        else:
            flat[full] = value
    return flat


def _read_file(config_path: str) -> dict[str, Any]:
    try:
        text = Path(config_path).read_text(encoding="utf-8")
        data = yaml.safe_load(text) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ValueError(f"failed to read config file: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("failed to read config file: top level must be a mapping")
    return _flatten(data)


def _convert(key: str, value: Any) -> Any:
    if key in _INT_KEYS:
        if isinstance(value, bool):
            raise ValueError(f"failed to unmarshal config: {key} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"failed to unmarshal config: {key} must be an integer"
            ) from exc
    return "" if value is None else str(value)


def load_config(config_path: str | None = None) -> Config:
    """Build the configuration; environment variables override file and defaults."""
    values = dict(_DEFAULTS)
    if config_path:
        values.update(_read_file(config_path))
        _log.info("Using config file: %s", config_path)
    for key in _DEFAULTS:
        env_name = key.replace(".", "_").upper()
        if env_name in os.environ:
            values[key] = os.environ[env_name]
    converted = {key: _convert(key, values[key]) for key in _DEFAULTS}

    def section(name: str) -> dict[str, Any]:
        return {k.split(".", 1)[1]: v for k, v in converted.items() if k.startswith(name + ".")}

    return Config(
        server=ServerConfig(**section("server")),
        database=DatabaseConfig(**section("database")),
        redis=RedisConfig(**section("redis")),
    )