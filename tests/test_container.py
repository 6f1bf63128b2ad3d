"""Tests for container wiring."""

import asyncio

from ziora.adapters.fcm_push_sender import DisabledPushSender, HttpxFcmPushSender
from ziora.containers import build_container, build_device_container
from ziora.domain.gacha import OrchestratorState
from tests.conftest import FakeAdProvider


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.photo_service is not None
    assert container.photo_service.blocked_country_codes == {"KP"}
    assert isinstance(container.notification_service.push_sender, DisabledPushSender)
    asyncio.run(container.close_resources())


def test_build_container_enables_fcm_when_configured(settings) -> None:
    settings.fcm_project_id = "demo"
    settings.fcm_access_token = "secret"

    container = build_container(settings)

    assert isinstance(container.notification_service.push_sender, HttpxFcmPushSender)
    asyncio.run(container.close_resources())


def test_build_device_container(settings, tmp_path) -> None:
    settings.device_state_path = str(tmp_path / "device.json")

    device = build_device_container(settings, "me", FakeAdProvider())

    assert device.orchestrator.state is OrchestratorState.IDLE
    assert device.orchestrator.seen_ids == frozenset()
    asyncio.run(device.close_resources())
