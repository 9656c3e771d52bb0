"""Tests for the MQTT bus adapter (no broker required)."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiomqtt
import pytest

from fieldgate.common.config import MqttSettings
from fieldgate.services.bus.mqtt_bus import MqttBus


@pytest.fixture
def bus():
    return MqttBus(MqttSettings(), "device/command", "device/error")


async def test_publish_requires_connection(bus):
    assert not bus.is_connected

    with pytest.raises(ConnectionError):
        await bus.publish("device/response", "{}")


async def test_dispatch_runs_handler_in_task(bus):
    received = []
    started = asyncio.Event()

    async def handler(payload):
        started.set()
        await asyncio.sleep(0.01)
        received.append(payload)

    bus.set_handler(handler)
    bus._dispatch(b'{"uniqueID": "a"}')
    bus._dispatch('{"uniqueID": "b"}')

    await started.wait()
    await bus.stop()

    assert sorted(received) == [b'{"uniqueID": "a"}', b'{"uniqueID": "b"}']


async def test_subscribe_failure_publishes_error(bus):
    client = MagicMock()
    client.subscribe = AsyncMock(side_effect=aiomqtt.MqttError("not authorized"))
    client.publish = AsyncMock()

    assert await bus._subscribe(client) is False

    topic = client.publish.await_args.args[0]
    envelope = json.loads(client.publish.await_args.kwargs["payload"])
    assert topic == "device/error"
    assert envelope["message"] == "Failed to subscribe to command topic: not authorized"
    assert len(envelope["uniqueID"]) == 36
    assert "date" in envelope


async def test_subscribe_success(bus):
    client = MagicMock()
    client.subscribe = AsyncMock()

    assert await bus._subscribe(client) is True
    client.subscribe.assert_awaited_once_with("device/command")
