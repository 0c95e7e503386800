"""Configuration loading and Pydantic models for s3proxy.

Settings come from an optional YAML file and are then overridden by
environment variables, so a container can be configured with env alone.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from s3proxy.errors import ConfigError


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = 80
    log_level: str = "INFO"
    log_format: str = "text"
    ssl_cert: str = ""
    ssl_key: str = ""
    version: str = ""
    build_date: str = ""

    @property
    def tls_enabled(self) -> bool:
        return bool(self.ssl_cert) and bool(self.ssl_key)


class StorageConfig(BaseModel):
    """Object store configuration."""

    backend: str = "aws"
    bucket: str = ""
    prefix: str = ""
    aws_region: str = "us-east-1"
    aws_endpoint_url: str = ""
    aws_use_path_style: bool = False
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""


class HTTPConfig(BaseModel):
    """Static response header overrides."""

    cache_control: str = ""
    expires: str = ""


class AuthConfig(BaseModel):
    """HTTP Basic authentication configuration.

    The gate is active only when both username and password are set.
    """

    username: str = ""
    password: str = ""
    realm: str = "REALM"

    @property
    def enabled(self) -> bool:
        return bool(self.username) and bool(self.password)


class ObservabilityConfig(BaseModel):
    """Prometheus metrics configuration."""

    metrics: bool = False


class GatewayConfig(BaseModel):
    """Top-level s3proxy configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    access_log: bool = False

    def validate_settings(self) -> None:
        """Check settings that can only be verified as a whole.

        Raises:
            ConfigError: If the configuration cannot be used to start the gateway.
        """
        if self.storage.backend not in ("aws", "memory"):
            raise ConfigError(f"Unknown storage backend: {self.storage.backend}")
        if self.storage.backend == "aws" and not self.storage.bucket:
            raise ConfigError("Missing required setting: storage.bucket (AWS_S3_BUCKET)")


def _parse_server(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the server section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    fields = ServerConfig.model_fields
    return {name: data[name] for name in fields if name in data}


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    Handles nested structure: storage.aws.region -> aws_region, etc.
    """
    if data is None:
        return {}

    result: dict[str, Any] = {"backend": data.get("backend", "aws")}
    for name in ("bucket", "prefix"):
        if name in data:
            result[name] = data[name]

    aws_section = data.get("aws")
    if isinstance(aws_section, dict):
        for name in (
            "region",
            "endpoint_url",
            "use_path_style",
            "access_key_id",
            "secret_access_key",
        ):
            if name in aws_section:
                result[f"aws_{name}"] = aws_section[name]

    return result


def _parse_http(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the http section from YAML data."""
    if data is None:
        return {}
    return {
        "cache_control": data.get("cache_control", ""),
        "expires": data.get("expires", ""),
    }


def _parse_auth(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the auth section from YAML data."""
    if data is None:
        return {}
    return {
        "username": data.get("username", ""),
        "password": data.get("password", ""),
        "realm": data.get("realm", "REALM"),
    }


def _parse_observability(data: dict[str, Any] | None) -> dict[str, Any]:
    if data is None:
        return {}
    return {"metrics": data.get("metrics", False)}


def load_config(path: Path) -> GatewayConfig:
    """Load a GatewayConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated GatewayConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return GatewayConfig(
        server=ServerConfig(**_parse_server(raw.get("server"))),
        storage=StorageConfig(**_parse_storage(raw.get("storage"))),
        http=HTTPConfig(**_parse_http(raw.get("http"))),
        auth=AuthConfig(**_parse_auth(raw.get("auth"))),
        observability=ObservabilityConfig(**_parse_observability(raw.get("observability"))),
        access_log=raw.get("access_log", False),
    )


# Environment variable -> (section, field). A section of None means a
# top-level GatewayConfig field.
_ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "APP_HOST": ("server", "host"),
    "APP_PORT": ("server", "port"),
    "LOG_LEVEL": ("server", "log_level"),
    "LOG_FORMAT": ("server", "log_format"),
    "SSL_CERT_PATH": ("server", "ssl_cert"),
    "SSL_KEY_PATH": ("server", "ssl_key"),
    "APP_VERSION": ("server", "version"),
    "APP_BUILD_DATE": ("server", "build_date"),
    "STORAGE_BACKEND": ("storage", "backend"),
    "AWS_S3_BUCKET": ("storage", "bucket"),
    "AWS_REGION": ("storage", "aws_region"),
    "AWS_S3_KEY_PREFIX": ("storage", "prefix"),
    "AWS_ENDPOINT_URL": ("storage", "aws_endpoint_url"),
    "AWS_S3_PATH_STYLE": ("storage", "aws_use_path_style"),
    "AWS_ACCESS_KEY_ID": ("storage", "aws_access_key_id"),
    "AWS_SECRET_ACCESS_KEY": ("storage", "aws_secret_access_key"),
    "HTTP_CACHE_CONTROL": ("http", "cache_control"),
    "HTTP_EXPIRES": ("http", "expires"),
    "BASIC_AUTH_USER": ("auth", "username"),
    "BASIC_AUTH_PASS": ("auth", "password"),
    "BASIC_AUTH_REALM": ("auth", "realm"),
    "ACCESS_LOG": (None, "access_log"),
    "METRICS": ("observability", "metrics"),
}

_TRUE = {"1", "t", "true", "yes", "on"}
_FALSE = {"0", "f", "false", "no", "off"}


def parse_bool(value: str) -> bool | None:
    """Parse a boolean environment value, or return None if unrecognised."""
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    return None


def apply_env_overrides(
    config: GatewayConfig, environ: Mapping[str, str] | None = None
) -> GatewayConfig:
    """Return a copy of ``config`` with environment variables applied.

    Empty variables are ignored. Boolean variables that do not parse leave
    the configured value unchanged; a non-numeric ``APP_PORT`` raises
    ConfigError.

    Args:
        config: The base configuration (defaults or loaded from YAML).
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        A new GatewayConfig.
    """
    if environ is None:
        environ = os.environ

    data = config.model_dump()
    for var, (section, name) in _ENV_OVERRIDES.items():
        raw = environ.get(var, "")
        if not raw:
            continue
        target = data if section is None else data[section]
        current = target[name]
        if isinstance(current, bool):
            parsed = parse_bool(raw)
            if parsed is not None:
                target[name] = parsed
        elif isinstance(current, int):
            try:
                target[name] = int(raw)
            except ValueError as exc:
                raise ConfigError(f"{var} must be an integer, got {raw!r}") from exc
        else:
            target[name] = raw

    return GatewayConfig.model_validate(data)
