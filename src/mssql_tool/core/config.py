"""Configuration management for MSSQL Tool.

Handles TOML config files, environment variables, named profiles,
and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--sql-instance, --port, etc.)
2. --dsn flag (parsed into components)
3. Environment variables (SQLCMDSERVER, SQLCMDPORT, SQLCMDDBNAME,
   SQLCMDUSER, SQLCMDPASSWORD)
4. Named profile (--profile or MSSQL_PROFILE env var)
5. Config file defaults
6. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import BaseModel, field_validator, model_validator

from mssql_tool.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "mssql-tool" / "config.toml"

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"

_MSSQL_ENV_VARS: dict[str, str] = {
    "SQLCMDSERVER": "host",
    "SQLCMDPORT": "port",
    "SQLCMDDBNAME": "dbname",
    "SQLCMDUSER": "user",
    "SQLCMDPASSWORD": "password",  # pragma: allowlist secret
}

_PROFILE_DEFAULTS: dict[str, Any] = {
    "host": "localhost",
    "port": None,
    "dbname": "master",
    "user": None,
    "password": None,
    "driver": DEFAULT_DRIVER,
    "encrypt": "yes",
    "trust_server_certificate": False,
    "connect_timeout": 15,
    "application_name": "mssql-tool",
    "instances": [],
}

_VALID_ENCRYPT = {"yes", "no", "strict", "mandatory", "optional"}

_TRUTHY = {"1", "true", "yes", "on"}


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Supports mssql:// and sqlserver:// schemes with query params.

    A named instance is given either as ``?instance=NAME`` or URL-encoded
    in the host part (``host%5CNAME``).
    """
    parsed = urlparse(dsn)
    if parsed.scheme not in ("mssql", "sqlserver"):
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected 'mssql' or 'sqlserver'"
        raise ConfigError(msg)

    result: dict[str, Any] = {}
    netloc_host = parsed.netloc.rsplit("@", 1)[-1]
    if ":" in netloc_host:
        netloc_host = netloc_host.split(":", 1)[0]
    host = unquote(netloc_host)
    query_params = parse_qs(parsed.query)
    if "instance" in query_params and host:
        host = f"{host}\\{query_params['instance'][0]}"
    if host:
        result["host"] = host
    if parsed.port:
        result["port"] = parsed.port
    if parsed.path and parsed.path.strip("/"):
        result["dbname"] = unquote(parsed.path.strip("/"))
    if parsed.username:
        result["user"] = unquote(parsed.username)
    if parsed.password:
        result["password"] = unquote(parsed.password)
    if "driver" in query_params:
        result["driver"] = query_params["driver"][0]
    if "encrypt" in query_params:
        result["encrypt"] = query_params["encrypt"][0].lower()
    if "trust_server_certificate" in query_params:
        result["trust_server_certificate"] = _as_bool(
            query_params["trust_server_certificate"][0]
        )
    if "connect_timeout" in query_params:
        result["connect_timeout"] = int(query_params["connect_timeout"][0])
    if "application_name" in query_params:
        result["application_name"] = query_params["application_name"][0]
    return result


def split_instance(instance: str) -> tuple[str, str | None, int | None]:
    """Split ``host[\\instance][,port]`` into its parts."""
    port: int | None = None
    address = instance.strip()
    if "," in address:
        address, port_text = address.rsplit(",", 1)
        try:
            port = int(port_text)
        except ValueError:
            msg = f"Invalid port in instance name: '{instance}'"
            raise ConfigError(msg) from None
    if "\\" in address:
        host, name = address.split("\\", 1)
        return host, name or None, port
    return address, None, port


class MssqlProfile(BaseModel):
    dsn: str | None = None
    host: str = "localhost"
    port: int | None = None
    dbname: str = "master"
    user: str | None = None
    password: str | None = None
    driver: str = DEFAULT_DRIVER
    encrypt: str = "yes"
    trust_server_certificate: bool = False
    connect_timeout: int = 15
    application_name: str = "mssql-tool"
    instances: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def parse_dsn_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            dsn_fields = parse_dsn(data["dsn"])
            for key, value in dsn_fields.items():
                if key not in data:
                    data[key] = value
        return data

    @field_validator("encrypt")
    @classmethod
    def validate_encrypt(cls, v: str) -> str:
        if v.lower() not in _VALID_ENCRYPT:
            msg = f"Invalid encrypt: '{v}'. Must be one of: {', '.join(sorted(_VALID_ENCRYPT))}"
            raise ValueError(msg)
        return v.lower()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int | None) -> int | None:
        if v is not None and not (1 <= v <= 65535):
            msg = f"Invalid port: {v}. Must be 1-65535"
            raise ValueError(msg)
        return v


class AppConfig(BaseModel):
    default_timeout: float = 30.0
    default_format: str = "table"
    default_profile: str | None = None
    profiles: dict[str, MssqlProfile] = {}


def _odbc_value(value: str) -> str:
    if any(ch in value for ch in ";{}=") or value != value.strip():
        return "{" + value.replace("}", "}}") + "}"
    return value


class ResolvedConfig(BaseModel):
    host: str = "localhost"
    port: int | None = None
    dbname: str = "master"
    user: str | None = None
    password: str | None = None
    driver: str = DEFAULT_DRIVER
    encrypt: str = "yes"
    trust_server_certificate: bool = False
    connect_timeout: int = 15
    application_name: str = "mssql-tool"
    instances: list[str] = []
    default_timeout: float = 30.0
    default_format: str = "table"
    active_profile: str | None = None
    sources: dict[str, str] = {}

    @property
    def server(self) -> str:
        """ODBC SERVER value: ``host[\\instance]`` with ``,port`` when set."""
        if self.port is not None and "," not in self.host:
            return f"{self.host},{self.port}"
        return self.host

    @property
    def integrated_auth(self) -> bool:
        return not self.user

    def for_instance(self, instance: str) -> ResolvedConfig:
        """Copy of this config targeting ``host[\\instance][,port]``."""
        host, name, port = split_instance(instance)
        sources = dict(self.sources)
        update: dict[str, Any] = {"host": f"{host}\\{name}" if name else host}
        sources["host"] = "cli: --sql-instance"
        if port is not None:
            update["port"] = port
            sources["port"] = "cli: --sql-instance"
        update["sources"] = sources
        return self.model_copy(update=update)

    def odbc_connection_string(self) -> str:
        parts = [
            f"DRIVER={{{self.driver}}}",
            f"SERVER={_odbc_value(self.server)}",
            f"DATABASE={_odbc_value(self.dbname)}",
            f"APP={_odbc_value(self.application_name)}",
            f"Encrypt={self.encrypt}",
        ]
        if self.trust_server_certificate:
            parts.append("TrustServerCertificate=yes")
        if self.integrated_auth:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={_odbc_value(self.user or '')}")
            parts.append(f"PWD={_odbc_value(self.password or '')}")
        return ";".join(parts) + ";"


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > DSN > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_PROFILE_DEFAULTS)
    resolved["instances"] = []
    resolved["default_timeout"] = 30.0
    resolved["default_format"] = "table"
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file global defaults
    if config.default_timeout != 30.0:
        resolved["default_timeout"] = config.default_timeout
        sources["default_timeout"] = "config"
    if config.default_format != "table":
        resolved["default_format"] = config.default_format
        sources["default_format"] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("MSSQL_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key == "dsn":
                continue
            if key in resolved:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    for env_var, field_name in _MSSQL_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None:
            if field_name == "port":
                try:
                    resolved[field_name] = int(value)
                except ValueError:
                    msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                    raise ConfigError(msg) from None
            else:
                resolved[field_name] = value
            sources[field_name] = f"env: {env_var}"

    # Layer 5: DSN flag
    if dsn:
        dsn_fields = parse_dsn(dsn)
        for key, value in dsn_fields.items():
            if key in resolved:
                resolved[key] = value
                sources[key] = "dsn"

    # Layer 6: CLI flags (highest priority)
    cli_to_field = {
        "host": "host",
        "port": "port",
        "database": "dbname",
        "user": "user",
        "password": "password",  # pragma: allowlist secret
        "driver": "driver",
        "trust_server_certificate": "trust_server_certificate",
        "timeout": "default_timeout",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name.replace('_', '-')}"

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    try:
        return ResolvedConfig(**resolved)
    except ValueError as e:
        raise ConfigError(f"Invalid connection settings: {e}") from e
