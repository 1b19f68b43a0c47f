"""Tests for drift detection."""

from __future__ import annotations

from typing import Any

from trigger_controller.drift import definition_drift, detect_drift
from trigger_controller.identity import TriggerIdentity
from trigger_controller.models import DesiredTrigger, ObservedTrigger

SUBSCRIPTION_ID = "12345678-1234-1234-1234-123456789012"
IDENTITY = TriggerIdentity(SUBSCRIPTION_ID, "RG-Data", "adf-test", "nightly")


def desired(**overrides: Any) -> DesiredTrigger:
    data: dict[str, Any] = {
        "name": "nightly",
        "dataFactoryId": IDENTITY.factory_id,
        "pipelineName": "ingest",
        "frequency": "Week",
        "interval": 2,
        "schedule": {"daysOfWeek": ["Monday", "Tuesday"]},
    }
    data.update(overrides)
    return DesiredTrigger.model_validate(data)


def observed(**overrides: Any) -> ObservedTrigger:
    data: dict[str, Any] = {
        "id": IDENTITY.to_address_path(),
        "name": "nightly",
        "resourceGroupName": "RG-Data",
        "dataFactoryName": "adf-test",
        "dataFactoryId": IDENTITY.factory_id,
        "pipelineName": "ingest",
        "frequency": "Week",
        "interval": 2,
        "startTime": "2024-01-01T00:00:00Z",
        "schedule": {"daysOfWeek": ["Monday", "Tuesday"]},
        "activated": True,
    }
    data.update(overrides)
    return ObservedTrigger.model_validate(data)


class TestDetectDrift:
    """Tests for detect_drift()."""

    def test_converged(self) -> None:
        """Test that identical state reports no drift."""
        assert detect_drift(desired(), observed(), IDENTITY) == []

    def test_resource_group_case_is_not_drift(self) -> None:
        """Test that a lower-cased resource group echo is not drift."""
        assert detect_drift(desired(), observed(resourceGroupName="rg-data"), IDENTITY) == []

    def test_different_resource_group_is_drift(self) -> None:
        """Test that a genuinely different resource group is drift."""
        drifted = detect_drift(desired(), observed(resourceGroupName="rg-other"), IDENTITY)

        assert drifted == ["resource_group_name"]

    def test_unset_start_time_accepts_remote_default(self) -> None:
        """Test that an unset desired startTime accepts whatever the service recorded."""
        assert detect_drift(desired(), observed(startTime="2030-06-01T12:00:00Z"), IDENTITY) == []

    def test_start_time_compared_at_second_precision(self) -> None:
        """Test that sub-second and offset differences are not drift."""
        drifted = detect_drift(
            desired(startTime="2024-01-01T01:00:00.250+01:00"), observed(), IDENTITY
        )

        assert drifted == []

    def test_start_time_change_is_drift(self) -> None:
        """Test that a different desired startTime is drift."""
        drifted = detect_drift(desired(startTime="2024-02-01T00:00:00Z"), observed(), IDENTITY)

        assert drifted == ["start_time"]

    def test_end_time_removed_is_drift(self) -> None:
        """Test that an endTime present only remotely is drift."""
        drifted = detect_drift(desired(), observed(endTime="2025-01-01T00:00:00Z"), IDENTITY)

        assert drifted == ["end_time"]

    def test_empty_and_absent_schedule_equivalent(self) -> None:
        """Test that an absent schedule equals an empty remote schedule."""
        drifted = detect_drift(
            desired(schedule=None),
            observed(schedule={"hours": [], "minutes": []}),
            IDENTITY,
        )

        assert drifted == []

    def test_schedule_change_is_drift(self) -> None:
        """Test that a changed weekday list is drift."""
        drifted = detect_drift(
            desired(schedule={"daysOfWeek": ["Monday", "Friday"]}), observed(), IDENTITY
        )

        assert drifted == ["schedule"]

    def test_empty_remote_description_equals_unset(self) -> None:
        """Test that an empty remote description is not drift from an unset one."""
        assert detect_drift(desired(), observed(description=""), IDENTITY) == []

    def test_description_set_over_empty_remote_is_drift(self) -> None:
        """Test that setting a description on a trigger stored without one is drift."""
        drifted = detect_drift(desired(description="weekly"), observed(description=""), IDENTITY)

        assert drifted == ["description"]

    def test_absent_annotations_equal_empty(self) -> None:
        """Test that absent desired annotations equal an empty remote list."""
        assert detect_drift(desired(annotations=None), observed(annotations=[]), IDENTITY) == []

    def test_annotation_order_matters(self) -> None:
        """Test that annotations are compared as ordered lists."""
        drifted = detect_drift(
            desired(annotations=["a", "b"]), observed(annotations=["b", "a"]), IDENTITY
        )

        assert drifted == ["annotations"]

    def test_multiple_fields(self) -> None:
        """Test that every drifted field is reported in declaration order."""
        drifted = detect_drift(
            desired(description="new", interval=1, pipelineParameters={"env": "prod"}),
            observed(),
            IDENTITY,
        )

        assert drifted == ["description", "interval", "pipeline_parameters"]

    def test_activation_only(self) -> None:
        """Test that an activation flip is reported on its own."""
        drifted = detect_drift(desired(activated=False), observed(), IDENTITY)

        assert drifted == ["activated"]
        assert definition_drift(drifted) == []


class TestDefinitionDrift:
    """Tests for definition_drift()."""

    def test_excludes_activation(self) -> None:
        """Test that only definition fields require a rewrite."""
        assert definition_drift(["schedule", "activated", "interval"]) == ["schedule", "interval"]

    def test_empty(self) -> None:
        """Test that no drift needs no rewrite."""
        assert definition_drift([]) == []
