"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
- ``--config-file`` on the command line overrides the environment mapping

Only ``DISPATCHER_CONCURRENT_SIZE`` is re-read while running (see
``hook_dispatcher.core.live_config``); everything else is fixed at startup.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hook_dispatcher.core.errors import INVALID_CONFIGURATION, ValidationAppError
from hook_dispatcher.utils.url_validators import is_well_formed_url


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

COMPONENT_NAME = "robot-hook-dispatcher"


def _build_dispatcher_settings() -> "DispatcherSettings":
    """Build dispatcher settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return DispatcherSettings()  # type: ignore[call-arg]


def _build_kafka_settings() -> "KafkaSettings":
    return KafkaSettings()


def _build_http_settings() -> "HttpSettings":
    return HttpSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class DispatcherSettings(BaseSettings):
    """Dispatch pipeline configuration."""

    topic: str = Field(
        ...,
        description="Topic the dispatcher subscribes to",
    )
    user_agent: str = Field(
        ...,
        description="Expected value of the identifying header on inbound messages",
    )
    header_name: str = Field(
        "User-Agent",
        description="Name of the identifying header checked on inbound messages",
    )
    access_endpoint: str = Field(
        ...,
        description="Webhook endpoint messages are forwarded to",
    )
    concurrent_size: int = Field(
        ...,
        description="Maximum forwards per one-second window (re-read while running)",
    )

    model_config = SettingsConfigDict(
        env_prefix="DISPATCHER_",
        case_sensitive=False,
    )

    @field_validator("topic", "user_agent", "header_name", "access_endpoint")
    @classmethod
    def _require_non_empty(cls, value: str, info: ValidationInfo) -> str:
        if not value or not value.strip():
            raise ValueError(f"missing {info.field_name}")
        return value

    @field_validator("access_endpoint")
    @classmethod
    def _require_url(cls, value: str) -> str:
        if not is_well_formed_url(value):
            raise ValueError("access_endpoint must be an absolute http(s) URL")
        return value

    @field_validator("concurrent_size")
    @classmethod
    def _require_positive_ceiling(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("concurrent_size must be > 0")
        return value


class KafkaSettings(BaseSettings):
    """Kafka subscription configuration."""

    provider: str = Field(
        "kafka",
        description="Subscription provider name",
    )
    bootstrap_servers: str = Field(
        "localhost:9092",
        description="Comma-separated list of Kafka brokers",
    )
    group_id: str | None = Field(
        None,
        description="Consumer group id (defaults to the component name)",
    )
    auto_offset_reset: Literal["earliest", "latest"] = Field(
        "earliest",
        description="Where to start when the group has no committed offset",
    )
    workers: int = Field(
        1,
        description="Number of consumer threads delivering messages concurrently",
        ge=1,
    )
    poll_timeout_seconds: float = Field(
        1.0,
        description="Maximum time a consumer blocks waiting for a message",
        gt=0,
    )
    setup_timeout_seconds: float = Field(
        10.0,
        description="Timeout for the topic metadata lookup done at subscribe time",
        gt=0,
    )
    security_protocol: str | None = Field(
        None,
        description="librdkafka security.protocol (e.g., SASL_SSL)",
    )
    sasl_mechanism: str | None = Field(
        None,
        description="librdkafka sasl.mechanism (e.g., PLAIN, SCRAM-SHA-512)",
    )
    sasl_username: str | None = Field(None)
    sasl_password: str | None = Field(None)

    model_config = SettingsConfigDict(
        env_prefix="KAFKA_",
        case_sensitive=False,
    )

    def to_consumer_config(self, component: str) -> dict[str, Any]:
        """Translate settings into a librdkafka consumer configuration.

        Args:
            component: Component name used as the default group id and client id.

        Returns:
            Mapping accepted by ``confluent_kafka.Consumer``.
        """
        config: dict[str, Any] = {
            "bootstrap.servers": self.bootstrap_servers,
            "group.id": self.group_id or component,
            "client.id": component,
            "auto.offset.reset": self.auto_offset_reset,
            "enable.auto.commit": True,
        }
        if self.security_protocol:
            config["security.protocol"] = self.security_protocol
        if self.sasl_mechanism:
            config["sasl.mechanism"] = self.sasl_mechanism
        if self.sasl_username:
            config["sasl.username"] = self.sasl_username
        if self.sasl_password:
            config["sasl.password"] = self.sasl_password
        return config


class HttpSettings(BaseSettings):
    """Outbound HTTP client configuration."""

    timeout_seconds: float = Field(
        10.0,
        description="Timeout applied to each webhook request",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="HTTP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="json for machine-readable logs, plain for local development",
    )
    output: Literal["stdout", "file"] = Field("stdout")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, ge=0)
    component: str = Field(
        COMPONENT_NAME,
        description="Component name attached to every log record",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Built through ``load_settings`` so the selected .env file is loaded into
    the environment before the nested settings read it.
    Raises validation errors on startup if required settings are missing.
    """

    app_env: str = APP_ENV
    config_file: str | None = None
    dispatcher: DispatcherSettings = Field(default_factory=_build_dispatcher_settings)
    kafka: KafkaSettings = Field(default_factory=_build_kafka_settings)
    http: HttpSettings = Field(default_factory=_build_http_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


def resolve_config_file(config_file: str | Path | None = None) -> Path | None:
    """Pick the .env file to load.

    Args:
        config_file: Explicit path from the command line, if any.

    Returns:
        Path of an existing file, or None when nothing should be loaded.

    Raises:
        ValidationAppError: If an explicit config file does not exist.
    """
    if config_file is not None:
        path = Path(config_file)
        if not path.is_file():
            raise ValidationAppError(
                code=INVALID_CONFIGURATION,
                message=f"Config file not found: {path}",
                details={"config_file": str(path)},
            )
        return path

    env_path = PROJECT_ROOT / ENV_FILE_MAP.get(APP_ENV, ".env.development")
    # Only load from file if it exists (production might inject via env vars only)
    return env_path if env_path.is_file() else None


def load_settings(config_file: str | Path | None = None) -> Settings:
    """Load and validate the startup configuration.

    Args:
        config_file: Optional explicit .env file; defaults to the APP_ENV mapping.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationAppError: If the file is missing or any field is invalid.
    """
    env_path = resolve_config_file(config_file)

    # Nested BaseSettings don't inherit env_file, so populate os.environ first
    if env_path is not None:
        load_dotenv(env_path, override=True)

    try:
        return Settings(config_file=str(env_path) if env_path else None)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationAppError(
            code=INVALID_CONFIGURATION,
            message=f"Invalid configuration: {problems}",
            details={"error_type": type(exc).__name__},
        ) from exc
