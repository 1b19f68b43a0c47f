"""Error taxonomy for trigger reconciliation.

Every failure surfaced by the controller derives from TriggerControllerError.
Remote-call failures carry the identity they were issued against and chain
the underlying Azure SDK exception so callers can decide whether to retry
the whole cycle.

RETRY GUIDANCE:
- ParseError, ClassificationError: local/misconfiguration, never retry
- ProjectionError: the remote trigger holds values outside what this
  controller manages; fix or import it by hand before retrying
- AlreadyExistsError: import the existing trigger instead of creating it
- UpdateFailed / StartFailed / StopFailed / DeleteFailed / ReadFailed:
  retry the whole cycle at the caller's discretion
- OperationTimeoutError: re-read state before retrying the mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .identity import TriggerIdentity


class TriggerControllerError(Exception):
    """Base class for all trigger controller errors."""

    pass


class ParseError(TriggerControllerError, ValueError):
    """Raised when a composite resource identifier is malformed."""

    pass


class ClassificationError(TriggerControllerError):
    """Raised when a remote trigger exists but is not a schedule trigger.

    The Data Factory triggers endpoint hosts every trigger kind, so a name
    collision with e.g. a blob-event trigger is a caller misconfiguration.
    """

    def __init__(self, identity: TriggerIdentity, expected: str, received: str | None) -> None:
        self.identity = identity
        self.expected = expected
        self.received = received
        super().__init__(
            f"classifying {identity}: expected kind {expected!r}, received {received!r}"
        )


class ProjectionError(TriggerControllerError):
    """Raised when a remote schedule trigger cannot be reported back.

    Typically a recurrence the service accepts but the controller does not
    model, such as a yearly frequency. The validation error is chained.
    """

    def __init__(self, identity: TriggerIdentity, cause: Exception) -> None:
        self.identity = identity
        self.cause = cause
        super().__init__(f"projecting {identity}: {cause}")


class AlreadyExistsError(TriggerControllerError):
    """Raised when a create targets a trigger that already exists remotely.

    The existing trigger must be imported by its id; it is never adopted
    silently.
    """

    def __init__(self, identity: TriggerIdentity, existing_id: str) -> None:
        self.identity = identity
        self.existing_id = existing_id
        super().__init__(
            f"a schedule trigger with ID {existing_id!r} already exists - "
            "it must be imported to be managed"
        )


class RemoteOperationError(TriggerControllerError):
    """A remote call (or its long-running-operation wait) failed."""

    action = "calling"

    def __init__(self, identity: TriggerIdentity, cause: BaseException) -> None:
        self.identity = identity
        self.cause = cause
        super().__init__(f"{self.action} {identity}: {cause}")


class ReadFailed(RemoteOperationError):
    """Raised when a get fails for a reason other than not-found."""

    action = "retrieving"


class UpdateFailed(RemoteOperationError):
    """Raised when create-or-update of the trigger definition fails."""

    action = "creating/updating"


class StartFailed(RemoteOperationError):
    """Raised when starting the trigger fails.

    The definition is already committed when this is raised.
    """

    action = "starting"


class StopFailed(RemoteOperationError):
    """Raised when stopping the trigger fails."""

    action = "stopping"


class DeleteFailed(RemoteOperationError):
    """Raised when deleting the trigger fails."""

    action = "deleting"


class TriggerNotFoundError(TriggerControllerError):
    """Raised when an update expects an existing trigger that is gone."""

    def __init__(self, identity: TriggerIdentity) -> None:
        self.identity = identity
        super().__init__(f"{identity} was not found")


class OperationTimeoutError(TriggerControllerError, TimeoutError):
    """Raised when a remote wait exceeds its deadline or is cancelled.

    Remote state is left as-is; re-read before retrying the mutation.
    """

    def __init__(
        self,
        identity: TriggerIdentity,
        operation: str,
        timeout_seconds: float | None,
        cancelled: bool = False,
    ) -> None:
        self.identity = identity
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        self.cancelled = cancelled
        if cancelled:
            message = f"{operation} on {identity} was cancelled"
        else:
            message = f"{operation} on {identity} timed out after {timeout_seconds}s"
        super().__init__(message)
