"""Composite identifiers for Data Factory schedule triggers.

A trigger is addressed by (subscription, resource group, factory, trigger
name). The canonical ARM path is:

    /subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.DataFactory
        /factories/{factory}/triggers/{name}

Configuration can point at the owning factory two ways: the legacy
resource-group + factory-name pair, or a pre-built factory ID. Both are
modelled as the FactorySelector tagged union and resolved once, at the
boundary, into a single TriggerIdentity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ParseError

PROVIDER_NAMESPACE = "Microsoft.DataFactory"

# Path segments may not contain "/" - anything else is left to ARM
_SEGMENT = r"([^/]+)"

FACTORY_ID_PATTERN = re.compile(
    rf"^/subscriptions/{_SEGMENT}/resourceGroups/{_SEGMENT}"
    rf"/providers/{PROVIDER_NAMESPACE}/factories/{_SEGMENT}/?$"
)

TRIGGER_ID_PATTERN = re.compile(
    rf"^/subscriptions/{_SEGMENT}/resourceGroups/{_SEGMENT}"
    rf"/providers/{PROVIDER_NAMESPACE}/factories/{_SEGMENT}/triggers/{_SEGMENT}/?$"
)


def factory_id(subscription_id: str, resource_group: str, factory_name: str) -> str:
    """Format the ARM ID of a Data Factory."""
    return (
        f"/subscriptions/{subscription_id}"
        f"/resourceGroups/{resource_group}"
        f"/providers/{PROVIDER_NAMESPACE}/factories/{factory_name}"
    )


@dataclass(frozen=True)
class TriggerIdentity:
    """Fully-qualified identity of one trigger.

    Every component is non-empty and free of "/", which is what makes
    from_address_path(to_address_path()) lossless.
    """

    subscription_id: str
    resource_group: str
    factory_name: str
    trigger_name: str

    def __post_init__(self) -> None:
        for field_name in ("subscription_id", "resource_group", "factory_name", "trigger_name"):
            value = getattr(self, field_name)
            if not value:
                raise ParseError(f"{field_name} cannot be empty")
            if "/" in value:
                raise ParseError(f"{field_name} cannot contain '/': {value!r}")

    def __str__(self) -> str:
        return (
            f'Schedule Trigger "{self.trigger_name}" '
            f'(Factory "{self.factory_name}" / Resource Group "{self.resource_group}")'
        )

    @property
    def factory_id(self) -> str:
        """ARM ID of the factory that owns this trigger."""
        return factory_id(self.subscription_id, self.resource_group, self.factory_name)

    def to_address_path(self) -> str:
        """Format the canonical ARM ID of this trigger."""
        return f"{self.factory_id}/triggers/{self.trigger_name}"

    @classmethod
    def from_address_path(cls, path: str) -> TriggerIdentity:
        """Parse a trigger ARM ID previously produced by to_address_path.

        Raises:
            ParseError: If the path is not a Data Factory trigger ID.
        """
        match = TRIGGER_ID_PATTERN.match(path or "")
        if match is None:
            raise ParseError(f"parsing {path!r}: not a Data Factory trigger ID")
        return cls(*match.groups())

    @classmethod
    def from_factory_selector(
        cls,
        subscription_id: str,
        resource_group: str,
        factory_name: str,
        trigger_name: str,
    ) -> TriggerIdentity:
        """Build an identity from the legacy resource group + factory name pair."""
        return cls(subscription_id, resource_group, factory_name, trigger_name)

    @classmethod
    def from_factory_identifier(cls, factory_id: str, trigger_name: str) -> TriggerIdentity:
        """Build an identity from a factory ARM ID and a trigger name.

        Raises:
            ParseError: If factory_id is not a Data Factory ID.
        """
        match = FACTORY_ID_PATTERN.match(factory_id or "")
        if match is None:
            raise ParseError(f"parsing {factory_id!r}: not a Data Factory ID")
        subscription_id, resource_group, factory_name = match.groups()
        return cls(subscription_id, resource_group, factory_name, trigger_name)


# =============================================================================
# Factory selector (tagged union)
# =============================================================================


@dataclass(frozen=True)
class FactoryByName:
    """Legacy selector: factory name within a resource group.

    The subscription comes from operator configuration.
    """

    resource_group: str
    factory_name: str


@dataclass(frozen=True)
class FactoryById:
    """Selector carrying a full factory ARM ID."""

    factory_id: str


FactorySelector = FactoryByName | FactoryById


def resolve_identity(
    selector: FactorySelector,
    trigger_name: str,
    subscription_id: str,
) -> TriggerIdentity:
    """Resolve a factory selector into a TriggerIdentity.

    Args:
        selector: Which factory owns the trigger.
        trigger_name: The trigger name.
        subscription_id: Subscription used for the legacy by-name selector.

    Raises:
        ParseError: If the selector cannot be turned into a valid identity.
    """
    match selector:
        case FactoryById(factory_id=value):
            return TriggerIdentity.from_factory_identifier(value, trigger_name)
        case FactoryByName(resource_group=resource_group, factory_name=factory_name):
            return TriggerIdentity.from_factory_selector(
                subscription_id, resource_group, factory_name, trigger_name
            )
        case _:
            raise ParseError(f"Unsupported factory selector: {selector!r}")
