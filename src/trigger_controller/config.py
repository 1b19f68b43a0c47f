"""Configuration management with validation.

Configuration is read from the environment once and validated at load time,
so an operator never starts with a deadline or identity it cannot honour.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Per-category deadlines, matching the Data Factory resource defaults
DEFAULT_CREATE_UPDATE_TIMEOUT_SECONDS = 1800
DEFAULT_READ_TIMEOUT_SECONDS = 300
DEFAULT_DELETE_TIMEOUT_SECONDS = 1800
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 7200

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"


@dataclass(frozen=True)
class OperationTimeouts:
    """Independent deadline budgets per operation category, in seconds.

    create_update covers the pre-read, the definition write and activation
    convergence; delete covers stop plus delete.
    """

    create_update: float = DEFAULT_CREATE_UPDATE_TIMEOUT_SECONDS
    read: float = DEFAULT_READ_TIMEOUT_SECONDS
    delete: float = DEFAULT_DELETE_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        for name in ("create_update", "read", "delete"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} timeout must be positive")


@dataclass(frozen=True)
class Config:
    """Controller configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    subscription_id: str

    # User-assigned managed identity; None selects the system-assigned one
    client_id: str | None = None

    create_update_timeout_seconds: int = DEFAULT_CREATE_UPDATE_TIMEOUT_SECONDS
    read_timeout_seconds: int = DEFAULT_READ_TIMEOUT_SECONDS
    delete_timeout_seconds: int = DEFAULT_DELETE_TIMEOUT_SECONDS

    # Emit one structured audit record per controller operation
    enable_audit_logging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        for env_name, value in (
            ("CREATE_UPDATE_TIMEOUT", self.create_update_timeout_seconds),
            ("READ_TIMEOUT", self.read_timeout_seconds),
            ("DELETE_TIMEOUT", self.delete_timeout_seconds),
        ):
            if not MIN_TIMEOUT_SECONDS <= value <= MAX_TIMEOUT_SECONDS:
                errors.append(
                    f"{env_name} must be between {MIN_TIMEOUT_SECONDS} "
                    f"and {MAX_TIMEOUT_SECONDS} seconds"
                )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def timeouts(self) -> OperationTimeouts:
        """Deadline budgets handed to the controller."""
        return OperationTimeouts(
            create_update=self.create_update_timeout_seconds,
            read=self.read_timeout_seconds,
            delete=self.delete_timeout_seconds,
        )

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Subscription used for factory-name selectors
            AZURE_CLIENT_ID: Optional user-assigned managed identity client ID
            CREATE_UPDATE_TIMEOUT: Seconds for create/update cycles (default: 1800)
            READ_TIMEOUT: Seconds for reads (default: 300)
            DELETE_TIMEOUT: Seconds for stop + delete (default: 1800)
            ENABLE_AUDIT_LOGGING: Emit per-operation audit records (default: true)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            create_update_timeout_seconds=get_int(
                "CREATE_UPDATE_TIMEOUT", DEFAULT_CREATE_UPDATE_TIMEOUT_SECONDS
            ),
            read_timeout_seconds=get_int("READ_TIMEOUT", DEFAULT_READ_TIMEOUT_SECONDS),
            delete_timeout_seconds=get_int("DELETE_TIMEOUT", DEFAULT_DELETE_TIMEOUT_SECONDS),
            enable_audit_logging=get_bool("ENABLE_AUDIT_LOGGING", True),
        )
