"""Keystone Configuration Schema.

Pydantic-based settings for the bootstrap sequence. Every field maps to one
environment variable so operators can tune startup without code changes.
"""

from __future__ import annotations

from enum import StrEnum
import logging
import shlex
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_COMMAND = "pip-audit --format json --progress-spinner off"
DEFAULT_STARTUP_TIMEOUT_MS = 30000
DEFAULT_VALIDATOR_TARGET = "keystone.startup.dependencies:validate_dependencies"
DEFAULT_SERVER_TARGET = "keystone.server:create_server"


class LogLevel(StrEnum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def is_flag_enabled(value: Any) -> bool:
    """Return True only for the literal string ``"true"`` (any case).

    Operator flags are opt-in: ``"1"``, ``"yes"`` and friends stay disabled.
    """
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


class KeystoneConfig(BaseSettings):
    """Environment-backed bootstrap configuration."""

    # Audit
    enforce_audit: bool = Field(
        default=False, description="Run the audit tool at startup", alias="ENFORCE_AUDIT"
    )
    audit_command: str = Field(
        default=DEFAULT_AUDIT_COMMAND,
        description="Audit command producing a JSON report on stdout",
        min_length=1,
        alias="AUDIT_COMMAND",
    )
    audit_timeout: float = Field(
        default=120.0,
        description="Audit command timeout in seconds",
        gt=0,
        alias="AUDIT_TIMEOUT",
    )

    # Startup
    startup_timeout_ms: int = Field(
        default=DEFAULT_STARTUP_TIMEOUT_MS,
        description="Server start deadline in milliseconds",
        gt=0,
        alias="STARTUP_TIMEOUT_MS",
    )
    required_packages: str = Field(
        default="fastapi,uvicorn,pydantic",
        description="Comma-separated distributions that must be installed",
        alias="REQUIRED_PACKAGES",
    )
    validator_target: str = Field(
        default=DEFAULT_VALIDATOR_TARGET,
        description="module:attribute of the dependency validator",
        alias="VALIDATOR_TARGET",
    )
    server_target: str = Field(
        default=DEFAULT_SERVER_TARGET,
        description="module:attribute of the server factory",
        alias="SERVER_TARGET",
    )

    # Fault handling
    debug: bool = Field(default=False, description="Log stack traces", alias="DEBUG")
    crash_on_unhandled_rejection: bool = Field(
        default=False,
        description="Exit when an asynchronous error goes unhandled",
        alias="CRASH_ON_UNHANDLED_REJECTION",
    )
    crash_on_uncaught_exception: bool = Field(
        default=False,
        description="Exit when a synchronous exception goes uncaught",
        alias="CRASH_ON_UNCAUGHT_EXCEPTION",
    )
    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Logging level", alias="LOG_LEVEL"
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Server host", alias="HOST")
    port: int = Field(
        default=8000, description="Server port", ge=1, le=65535, alias="PORT"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator(
        "enforce_audit",
        "debug",
        "crash_on_unhandled_rejection",
        "crash_on_uncaught_exception",
        mode="before",
    )
    @classmethod
    def parse_flag(cls, v: Any) -> bool:
        """Parse operator flags strictly."""
        return is_flag_enabled(v)

    @field_validator("validator_target", "server_target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        """Validate ``module[:attribute]`` target format."""
        module_name, sep, attr = v.strip().partition(":")
        if not module_name or (sep and not attr):
            msg = f"Invalid import target (expected module[:attribute]): {v}"
            raise ValueError(msg)
        return v.strip()

    def required_package_names(self) -> list[str]:
        """Get required distribution names."""
        return [p.strip() for p in self.required_packages.split(",") if p.strip()]

    def audit_argv(self) -> list[str]:
        """Split the audit command into an argument vector."""
        return shlex.split(self.audit_command)

    def get_startup_summary(self) -> dict[str, Any]:
        """Get startup configuration summary."""
        return {
            "enforce_audit": self.enforce_audit,
            "startup_timeout_ms": self.startup_timeout_ms,
            "debug": self.debug,
            "crash_on_unhandled_rejection": self.crash_on_unhandled_rejection,
            "crash_on_uncaught_exception": self.crash_on_uncaught_exception,
            "log_level": self.log_level.value,
        }

    @classmethod
    def validate_from_env(cls) -> tuple[KeystoneConfig | None, list[str]]:
        """Validate configuration from environment variables.

        Returns:
            Tuple of (config, errors). Config is None if validation fails.
        """
        try:
            return cls(), []
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field_path = ".".join(str(loc) for loc in error["loc"])
                errors.append(f"{field_path}: {error['msg']}")
            return None, errors


def load_config() -> KeystoneConfig:
    """Load and validate configuration with clear error reporting."""
    config, errors = KeystoneConfig.validate_from_env()

    if errors or config is None:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error("  • %s", error)
        msg = "Configuration validation failed - see logs for details"
        raise ValueError(msg)

    logger.debug("Configuration loaded: %s", config.get_startup_summary())
    return config
