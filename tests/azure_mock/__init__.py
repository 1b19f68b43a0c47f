"""Azure API Mock for Integration Testing.

Mock implementations of the Data Factory triggers API that let the
controller be tested without Azure connectivity.

Key Features:
- In-memory trigger state with Started/Stopped runtime semantics
- Long-running start/stop simulated through mock pollers
- Error and latency injection per operation
- Managed Identity simulation

Usage:
    from azure_mock import MockAzureContext, MockTriggerClient

    client = MockTriggerClient()
    controller = ReconcileController(client, subscription_id=SUBSCRIPTION_ID)
    await controller.create(desired)

    assert client.calls == ["get", "create_or_update", "start", "wait_start"]
"""

from .context import MockAzureContext
from .credential import MockManagedIdentityCredential, create_mock_credential
from .datafactory import MockDataFactoryClient, MockDataFactoryState
from .triggers import MockLROPoller, MockTriggerClient

__all__ = [
    "MockAzureContext",
    "MockDataFactoryClient",
    "MockDataFactoryState",
    "MockLROPoller",
    "MockManagedIdentityCredential",
    "MockTriggerClient",
    "create_mock_credential",
]
