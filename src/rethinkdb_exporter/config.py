"""
Exporter configuration.

Settings come from, in order of precedence:
1. command-line flags
2. environment variables (resolved by the CLI, see cli.py)
3. a YAML config file
4. the defaults below

The YAML file mirrors the model layout:

    log:
      debug: false
      json_output: true
    db:
      rethinkdb_addresses: ["db1:28015", "db2:28015"]
      username: admin
      password: secret
      connection_pool_size: 5
    web:
      listen_address: 0.0.0.0:9055
      telemetry_path: /metrics
    stats:
      table_docs_estimates: true
      scrape_timeout: 10
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from rethinkdb_exporter.errors import ConfigError
from rethinkdb_exporter.rethink_client import parse_address

DEFAULT_CONFIG_FILE = Path("prometheus-exporter.yaml")


class LogSettings(BaseModel):
    debug: bool = False
    json_output: bool = False


class DBSettings(BaseModel):
    """Connection settings for the RethinkDB cluster."""

    rethinkdb_addresses: list[str] = Field(default_factory=lambda: ["localhost:28015"], min_length=1)
    username: str = "admin"
    password: str = ""
    enable_tls: bool = False
    ca_file: Path | None = None
    connection_pool_size: int = Field(default=5, ge=1)
    connect_timeout: float = Field(default=20.0, gt=0)

    @field_validator("rethinkdb_addresses", mode="before")
    @classmethod
    def _split_addresses(cls, value: Any) -> Any:
        # DB_ADDRESSES=db1:28015,db2:28015
        if isinstance(value, str):
            return [a.strip() for a in value.split(",") if a.strip()]
        return value

    @field_validator("rethinkdb_addresses")
    @classmethod
    def _check_addresses(cls, value: list[str]) -> list[str]:
        for address in value:
            try:
                parse_address(address)
            except ValueError:
                raise ValueError(f"invalid rethinkdb address {address!r}, expected host:port") from None
        return value

    @model_validator(mode="after")
    def _check_tls(self) -> "DBSettings":
        if self.enable_tls and self.ca_file is None:
            raise ValueError("db.ca_file is required when db.enable_tls is set")
        return self


class WebSettings(BaseModel):
    listen_address: str = "0.0.0.0:9055"
    telemetry_path: str = "/metrics"

    @field_validator("listen_address")
    @classmethod
    def _check_listen_address(cls, value: str) -> str:
        _, sep, port = value.rpartition(":")
        if not sep or not port.isdigit() or int(port) > 65535:
            raise ValueError(f"listen address must be host:port, got {value!r}")
        return value

    @field_validator("telemetry_path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("telemetry path must start with '/'")
        return value

    @property
    def host(self) -> str:
        host, _, _ = self.listen_address.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.listen_address.rpartition(":")
        return int(port)


class StatsSettings(BaseModel):
    """Scrape behaviour."""

    table_docs_estimates: bool = False
    table_estimates_concurrency: int = Field(default=8, ge=1)
    scrape_timeout: float = Field(default=10.0, gt=0)


class ExporterSettings(BaseModel):
    """Complete exporter configuration."""

    log: LogSettings = Field(default_factory=LogSettings)
    db: DBSettings = Field(default_factory=DBSettings)
    web: WebSettings = Field(default_factory=WebSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_file: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ExporterSettings:
    """
    Load settings from a YAML file and apply overrides.

    Args:
        config_file: Explicit config file. When None, DEFAULT_CONFIG_FILE in
            the working directory is used if it exists.
        overrides: Nested dict of values from flags and environment; None
            values are ignored.

    Returns:
        Validated ExporterSettings.

    Raises:
        ConfigError: If an explicit config file is missing, the YAML is
            malformed, or validation fails.
    """
    path = config_file
    if path is None and DEFAULT_CONFIG_FILE.exists():
        path = DEFAULT_CONFIG_FILE

    data: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigError(f"config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")

    data = _merge(data, overrides or {})

    try:
        return ExporterSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"failed to parse config: {e}") from e
