"""Mock Azure credential for secretless testing.

Provides a mock ManagedIdentityCredential that returns fake tokens
without requiring Azure connectivity.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

# Token validity duration
TOKEN_VALIDITY_HOURS = 1


class MockCredentialError(Exception):
    """Simulates azure.core.exceptions.ClientAuthenticationError."""

    pass


@dataclass
class MockAccessToken:
    """Mimics azure.core.credentials.AccessToken."""

    token: str
    expires_on: int


class MockManagedIdentityCredential:
    """Mock implementation of ManagedIdentityCredential.

    Tracks get_token calls for test assertions.
    """

    def __init__(self, client_id: str | None = None) -> None:
        self._client_id = client_id
        self._get_token_calls: list[tuple[str, ...]] = []
        self._should_fail = False
        self._failure_message = "Authentication failed"

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def get_token_call_count(self) -> int:
        return len(self._get_token_calls)

    def set_failure(self, should_fail: bool, message: str = "Authentication failed") -> None:
        self._should_fail = should_fail
        self._failure_message = message

    def get_token(self, *scopes: str, **kwargs: Any) -> MockAccessToken:
        self._get_token_calls.append(scopes)
        if self._should_fail:
            raise MockCredentialError(self._failure_message)

        identity_part = self._client_id or "system-assigned"
        expires_on = datetime.now(UTC) + timedelta(hours=TOKEN_VALIDITY_HOURS)
        return MockAccessToken(
            token=f"mock-token-{len(self._get_token_calls)}-{identity_part}",
            expires_on=int(expires_on.timestamp()),
        )

    def close(self) -> None:
        pass


def create_mock_credential(client_id: str | None = None) -> MockManagedIdentityCredential:
    """Factory function to create a mock credential."""
    return MockManagedIdentityCredential(client_id=client_id)
