"""
Shared fixtures: in-memory Modbus transports and a recording publisher
"""

import json

import pytest

from fieldgate.common.exceptions import TransportError
from fieldgate.services.bus.dispatcher import CommandDispatcher
from fieldgate.services.device.connection_registry import ConnectionRegistry
from fieldgate.services.device.method_invoker import MethodInvoker
from fieldgate.services.device.modbus_driver import ModbusDriver
from fieldgate.services.device.poll_manager import PollManager


class FakeTransport:
    """Stands in for ModbusTcpTransport/ModbusRtuTransport"""

    def __init__(self, kind, address, slave_id, baud_rate=None, port=None):
        self.kind = kind
        self.address = address
        self.slave_id = slave_id
        self.baud_rate = baud_rate
        self.port = port
        self.calls: list[tuple] = []
        self.connected = False
        self.fail_connect: str | None = None
        self.fail_close: str | None = None
        self.fail_calls: str | None = None

    async def connect(self):
        if self.fail_connect:
            raise TransportError(self.fail_connect, self.address, self.slave_id)
        self.connected = True

    async def close(self):
        if self.fail_close:
            raise TransportError(self.fail_close, self.address, self.slave_id)
        self.connected = False

    def _record(self, method, address, arg):
        self.calls.append((method, address, arg))
        if self.fail_calls:
            raise TransportError(self.fail_calls, self.address, self.slave_id)

    async def read_coils(self, address, length):
        self._record("readCoils", address, length)
        return [bool(i % 2) for i in range(length)]

    async def read_discrete_inputs(self, address, length):
        self._record("readDiscreteInputs", address, length)
        return [False] * length

    async def read_holding_registers(self, address, length):
        self._record("readHoldingRegisters", address, length)
        return [address + i for i in range(length)]

    async def read_input_registers(self, address, length):
        self._record("readInputRegisters", address, length)
        return [100 + i for i in range(length)]

    async def write_coil(self, address, value):
        self._record("writeCoil", address, value)
        return {"address": address, "value": bool(value)}

    async def write_register(self, address, value):
        self._record("writeRegister", address, value)
        return {"address": address, "value": value}

    async def write_coils(self, address, values):
        self._record("writeCoils", address, values)
        return {"address": address, "length": len(values)}

    async def write_registers(self, address, values):
        self._record("writeRegisters", address, values)
        return {"address": address, "length": len(values)}


class FakeTransportFactory:
    """Transport factory for ConnectionRegistry that keeps every transport it built"""

    def __init__(self):
        self.created: list[FakeTransport] = []
        self.fail_connect: str | None = None

    def __call__(self, kind, address, slave_id, settings, baud_rate=None, port=None):
        transport = FakeTransport(kind, address, slave_id, baud_rate, port)
        transport.fail_connect = self.fail_connect
        self.created.append(transport)
        return transport


class RecordingPublisher:
    """Collects (topic, decoded payload) pairs"""

    def __init__(self):
        self.messages: list[tuple[str, dict]] = []
        self.fail: Exception | None = None

    async def publish(self, topic: str, payload: str) -> None:
        if self.fail:
            raise self.fail
        self.messages.append((topic, json.loads(payload)))

    def on(self, topic: str) -> list[dict]:
        return [payload for t, payload in self.messages if t == topic]


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
async def registry(transport_factory):
    registry = ConnectionRegistry(transport_factory=transport_factory)
    yield registry
    await registry.close_all()


@pytest.fixture
def invoker(registry):
    return MethodInvoker(registry)


@pytest.fixture
def poll_manager(registry, invoker):
    return PollManager(registry, invoker)


@pytest.fixture
def modbus_driver(registry, invoker, poll_manager):
    return ModbusDriver(registry, invoker, poll_manager)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def dispatcher(publisher, modbus_driver):
    dispatcher = CommandDispatcher(publisher, "device/response", "device/error")
    dispatcher.register_driver("modbus", modbus_driver)
    return dispatcher

