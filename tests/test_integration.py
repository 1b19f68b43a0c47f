"""Integration tests for the full controller stack.

These tests use MockAzureContext to run ReconcileController through
DataFactoryTriggerClient and the real Data Factory SDK models without
Azure connectivity.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from unittest import mock

import pytest
from azure_mock import MockAzureContext

from trigger_controller.config import Config
from trigger_controller.errors import AlreadyExistsError, StartFailed
from trigger_controller.models import DesiredTrigger, Frequency, Weekday
from trigger_controller.projector import TriggerPhase
from trigger_controller.reconciler import ReconcileController

SUBSCRIPTION_ID = "12345678-1234-1234-1234-123456789012"


def weekly_trigger(**overrides: object) -> DesiredTrigger:
    data: dict[str, object] = {
        "name": "weekly-ingest",
        "dataFactoryName": "adf-test",
        "resourceGroupName": "RG-Data",
        "pipelineName": "ingest",
        "pipelineParameters": {"env": "prod"},
        "frequency": "Week",
        "interval": 2,
        "startTime": "2024-01-01T06:00:00Z",
        "schedule": {"daysOfWeek": ["Monday", "Tuesday", "Wednesday"]},
        "annotations": ["team-data"],
        "activated": True,
    }
    data.update(overrides)
    return DesiredTrigger.model_validate(data)


class TestControllerIntegration:
    """Integration tests for ReconcileController with mocked Azure APIs."""

    @pytest.fixture
    def clean_env(self) -> Generator[None, None, None]:
        with mock.patch.dict(os.environ, {}, clear=True):
            yield

    @pytest.fixture
    def config(self, clean_env: None) -> Config:
        return Config(subscription_id=SUBSCRIPTION_ID, client_id="mi-client-id")

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, config: Config) -> None:
        """Test create, read, update and delete against the SDK surface."""
        with MockAzureContext(client_id="mi-client-id") as ctx:
            controller = ReconcileController.from_config(config)

            identity = await controller.create(weekly_trigger())
            assert ctx.state.operation_names() == [
                "get",
                "create_or_update",
                "begin_start",
            ]

            state = await controller.read(identity.to_address_path())
            observed = state.observed
            assert state.phase == TriggerPhase.STARTED
            assert observed.frequency == Frequency.WEEK
            assert observed.interval == 2
            assert observed.start_time == "2024-01-01T06:00:00Z"
            assert observed.schedule.days_of_week == [
                Weekday.MONDAY,
                Weekday.TUESDAY,
                Weekday.WEDNESDAY,
            ]
            assert observed.schedule.hours is None
            assert observed.pipeline_parameters == {"env": "prod"}
            assert observed.annotations == ["team-data"]

            drifted = await controller.update(weekly_trigger(activated=False), identity)
            assert drifted == ["activated"]
            assert ctx.state.trigger_count == 1

            await controller.delete(identity)
            assert ctx.state.trigger_count == 0
            assert ctx.state.operation_names()[-2:] == ["begin_stop", "delete"]

        assert ctx.clients[0].subscription_id == SUBSCRIPTION_ID
        assert ctx.clients[0].credential is ctx.credential

    @pytest.mark.asyncio
    async def test_stored_sdk_body(self, config: Config) -> None:
        """Test that the stored SDK model omits unset schedule fields."""
        with MockAzureContext() as ctx:
            controller = ReconcileController.from_config(config)
            await controller.create(weekly_trigger(activated=False))

            stored = ctx.state.get_trigger("RG-Data", "adf-test", "weekly-ingest")
            recurrence = stored.properties.recurrence

            assert stored.properties.type == "ScheduleTrigger"
            assert stored.properties.runtime_state == "Stopped"
            assert recurrence.schedule.week_days == ["Monday", "Tuesday", "Wednesday"]
            assert recurrence.schedule.hours is None
            assert recurrence.schedule.minutes is None
            assert stored.properties.pipelines[0].pipeline_reference.reference_name == "ingest"

    @pytest.mark.asyncio
    async def test_update_through_lowercased_echo(self, config: Config) -> None:
        """Test that a lower-cased resource group echo causes no rewrite."""
        with MockAzureContext(echo_lowercase_resource_group=True) as ctx:
            controller = ReconcileController.from_config(config)
            desired = weekly_trigger()
            identity = await controller.create(desired)

            state = await controller.read(identity)
            assert state.observed.resource_group_name == "rg-data"

            drifted = await controller.update(desired, identity)

            assert drifted == []
            assert ctx.state.operation_names().count("create_or_update") == 1

    @pytest.mark.asyncio
    async def test_existing_trigger_must_be_imported(self, config: Config) -> None:
        """Test that create refuses to adopt an existing trigger."""
        with MockAzureContext():
            controller = ReconcileController.from_config(config)
            await controller.create(weekly_trigger())

            with pytest.raises(AlreadyExistsError):
                await controller.create(weekly_trigger(interval=5))

    @pytest.mark.asyncio
    async def test_start_failure_surfaces(self, config: Config) -> None:
        """Test that an SDK failure on start surfaces as StartFailed."""
        with MockAzureContext() as ctx:
            ctx.state.fail_operations.add("begin_start")
            controller = ReconcileController.from_config(config)

            with pytest.raises(StartFailed):
                await controller.create(weekly_trigger())

            assert ctx.state.trigger_count == 1
