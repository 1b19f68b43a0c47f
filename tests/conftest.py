"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from trigger_controller.security import FORBIDDEN_CREDENTIAL_ENV_VARS  # noqa: E402


@pytest.fixture(autouse=True)
def no_credential_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip secret-bearing credential variables inherited from the host shell."""
    for env_var in FORBIDDEN_CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)
