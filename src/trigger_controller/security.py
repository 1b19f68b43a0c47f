"""Managed-identity-only credential acquisition.

The controller authenticates to Azure Resource Manager exclusively through a
managed identity. Secret-bearing credential variables in the environment
mean someone wired a service principal in, and the controller refuses to
start rather than pick one up implicitly.
"""

from __future__ import annotations

import logging
import os

from azure.identity import ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Environment variables that indicate secret-based authentication
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
)

SECRETLESS_VIOLATION_MESSAGE = (
    "SECURITY VIOLATION: {env_var} is set. The trigger controller only "
    "authenticates with a managed identity; remove secret-based credential "
    "variables from the environment and grant the identity Data Factory "
    "Contributor on the target factories."
)


class SecretlessViolationError(Exception):
    """Raised when a secret-bearing credential variable is present."""

    pass


def enforce_secretless_architecture() -> None:
    """Fail if any secret-bearing credential variable is set.

    Raises:
        SecretlessViolationError: If a forbidden variable is present.
    """
    for env_var in FORBIDDEN_CREDENTIAL_ENV_VARS:
        if os.environ.get(env_var):
            logger.critical(
                "Secretless architecture violation",
                extra={
                    "security_event": "credential_detected",
                    "env_var": env_var,
                    "action": "startup_blocked",
                },
            )
            raise SecretlessViolationError(SECRETLESS_VIOLATION_MESSAGE.format(env_var=env_var))


def get_managed_identity_credential(client_id: str | None = None) -> ManagedIdentityCredential:
    """Return a ManagedIdentityCredential after the secretless check.

    Args:
        client_id: Client ID of a user-assigned identity, or None for the
            system-assigned identity.

    Raises:
        SecretlessViolationError: If credential environment variables are set.
    """
    enforce_secretless_architecture()

    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.info("Using system-assigned managed identity")
    return ManagedIdentityCredential()
