"""Tests for the method invoker."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fieldgate.common.config import ModbusMethod
from fieldgate.services.device.connection_registry import ConnectionRegistry
from fieldgate.services.device.method_invoker import HANDLERS, MethodInvoker


def test_handler_table_covers_every_method():
    assert set(HANDLERS) == set(ModbusMethod)


async def test_unsupported_method_without_connection(invoker):
    outcome = await invoker.invoke(None, "readEverything", 0, length=1)

    assert outcome.error == "method not supported: readEverything"
    assert outcome.code == "unsupported_method"


async def test_unsupported_method_with_connection(registry, invoker, transport_factory):
    await registry.connect("TCP", "10.0.0.5", 1)

    outcome = await invoker.invoke_at("10.0.0.5", 1, "readEverything", 0, length=1)

    assert outcome.error == "method not supported: readEverything"
    assert transport_factory.created[0].calls == []


async def test_missing_connection_is_not_connected(invoker):
    outcome = await invoker.invoke_at("10.0.0.5", 1, "readHoldingRegisters", 0, length=2)

    assert outcome.error == "device not connected"
    assert outcome.code == "not_connected"


async def test_disconnected_flag_blocks_transport_call(registry, invoker, transport_factory):
    await registry.connect("TCP", "10.0.0.5", 1)
    registry.get("10.0.0.5", 1).connected = False

    outcome = await invoker.invoke_at("10.0.0.5", 1, "readHoldingRegisters", 0, length=2)

    assert outcome.error == "device not connected"
    assert transport_factory.created[0].calls == []


async def test_read_holding_registers(registry, invoker):
    await registry.connect("TCP", "10.0.0.5", 1)

    outcome = await invoker.invoke_at("10.0.0.5", 1, "readHoldingRegisters", 10, length=3)

    assert outcome.ok
    assert outcome.result == [10, 11, 12]


@pytest.mark.parametrize(
    "method, kwargs, expected_call",
    [
        ("readCoils", {"length": 4}, ("readCoils", 5, 4)),
        ("readDiscreteInputs", {"length": 2}, ("readDiscreteInputs", 5, 2)),
        ("readInputRegisters", {"length": 1}, ("readInputRegisters", 5, 1)),
        ("writeCoil", {"value": True}, ("writeCoil", 5, True)),
        ("writeRegister", {"value": 42}, ("writeRegister", 5, 42)),
        ("writeCoils", {"values": [True, False]}, ("writeCoils", 5, [True, False])),
        ("writeRegisters", {"values": [1, 2, 3]}, ("writeRegisters", 5, [1, 2, 3])),
    ],
)
async def test_methods_forward_supplied_argument(
    registry, invoker, transport_factory, method, kwargs, expected_call
):
    await registry.connect("TCP", "10.0.0.5", 1)

    outcome = await invoker.invoke_at("10.0.0.5", 1, method, 5, **kwargs)

    assert outcome.ok
    assert transport_factory.created[0].calls == [expected_call]


async def test_transport_failure_keeps_connection(registry, invoker, transport_factory):
    await registry.connect("TCP", "10.0.0.5", 1)
    transport_factory.created[0].fail_calls = "Modbus error: timed out"

    outcome = await invoker.invoke_at("10.0.0.5", 1, "readHoldingRegisters", 0, length=2)

    assert outcome.error == "Modbus error: timed out"
    assert outcome.code == "transport_failure"
    connection = registry.get("10.0.0.5", 1)
    assert connection is not None
    assert connection.connected is True


async def test_call_queued_behind_disconnect_is_refused(registry, invoker, transport_factory):
    await registry.connect("TCP", "10.0.0.5", 1)
    connection = registry.get("10.0.0.5", 1)

    await connection.bus_lock.acquire()
    disconnect = asyncio.create_task(registry.disconnect("10.0.0.5", 1))
    await asyncio.sleep(0)
    call = asyncio.create_task(
        invoker.invoke(connection, "readHoldingRegisters", 0, length=2)
    )
    await asyncio.sleep(0)
    connection.bus_lock.release()

    assert (await disconnect).ok
    outcome = await call
    assert outcome.error == "device not connected"
    assert outcome.code == "not_connected"
    assert transport_factory.created[0].calls == []


@pytest.mark.parametrize(
    "method, kwargs",
    [
        ("writeRegister", {"value": "abc"}),
        ("writeRegister", {"value": 1.5}),
        ("writeRegisters", {"values": 5}),
        ("writeCoils", {"values": "1010"}),
    ],
)
async def test_bad_write_values_are_outcomes(method, kwargs):
    client = MagicMock()
    client.connect = AsyncMock(return_value=True)
    client.connected = True
    with patch(
        "fieldgate.services.device.modbus_client.AsyncModbusTcpClient",
        return_value=client,
    ):
        registry = ConnectionRegistry()
        await registry.connect("TCP", "10.0.0.5", 1)
        outcome = await MethodInvoker(registry).invoke_at("10.0.0.5", 1, method, 0, **kwargs)

    assert outcome.code == "transport_failure"
    assert method in outcome.error
    assert registry.get("10.0.0.5", 1).connected
    client.write_register.assert_not_called()
    client.write_registers.assert_not_called()
    client.write_coils.assert_not_called()
