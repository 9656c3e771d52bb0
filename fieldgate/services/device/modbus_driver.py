"""
Modbus Driver

Dispatcher-facing "modbus" driver. Every operation takes one named
params mapping, e.g.

    {"address": "10.0.0.5", "slaveId": 1, "addressOffset": 0, "length": 2}

and returns an Outcome built by the registry, invoker or poll manager.
"""

from functools import partial

from ...common.config import ModbusMethod
from ...common.exceptions import InvalidParamsError
from ...common.outcome import Outcome
from .connection_registry import ConnectionRegistry
from .driver import Driver, Operation
from .method_invoker import MethodInvoker
from .poll_manager import PollManager


class ModbusDriver(Driver):
    """Connect, invoke and poll Modbus devices by (address, slaveId)"""

    name = "modbus"

    def __init__(
        self,
        registry: ConnectionRegistry,
        invoker: MethodInvoker,
        poll_manager: PollManager,
    ):
        self.registry = registry
        self.invoker = invoker
        self.poll_manager = poll_manager

    def operations(self) -> dict[str, Operation]:
        ops: dict[str, Operation] = {
            "connect": self.connect,
            "disconnect": self.disconnect,
            "getConnections": self.get_connections,
            "setInterval": self.set_interval,
            "removeInterval": self.remove_interval,
            "getIntervals": self.get_intervals,
        }
        for method in ModbusMethod:
            ops[method.value] = partial(self.invoke, method)
        return ops

    def _target(self, params: dict) -> tuple[str, int]:
        return (
            self.param(params, "address", str),
            self.param(params, "slaveId", int),
        )

    async def connect(self, params: dict | None = None) -> Outcome:
        try:
            params = self.require_mapping(params)
            address, slave_id = self._target(params)
            baud_rate = self.param(params, "baudRate", int, None)
            port = self.param(params, "port", int, None)
        except InvalidParamsError as e:
            return Outcome.failure(e)

        return await self.registry.connect(
            params.get("type"), address, slave_id, baud_rate=baud_rate, port=port,
        )

    async def disconnect(self, params: dict | None = None) -> Outcome:
        try:
            address, slave_id = self._target(self.require_mapping(params))
        except InvalidParamsError as e:
            return Outcome.failure(e)

        return await self.registry.disconnect(address, slave_id)

    async def get_connections(self, params: dict | None = None) -> Outcome:
        return Outcome.success(self.registry.list_connections())

    async def invoke(self, method: ModbusMethod, params: dict | None = None) -> Outcome:
        try:
            params = self.require_mapping(params)
            address, slave_id = self._target(params)
            offset = self.param(params, "addressOffset", int)
            length = self.param(params, "length", int, None)
            values = self.param(params, "values", list, None)
        except InvalidParamsError as e:
            return Outcome.failure(e)

        return await self.invoker.invoke_at(
            address, slave_id, method, offset,
            length=length, value=params.get("value"), values=values,
        )

    async def set_interval(self, params: dict | None = None) -> Outcome:
        try:
            params = self.require_mapping(params)
            address, slave_id = self._target(params)
            method_name = self.param(params, "methodName", str)
            offset = self.param(params, "addressOffset", int)
            interval = self.param(params, "interval", float)
            length = self.param(params, "length", int, None)
            values = self.param(params, "values", list, None)
        except InvalidParamsError as e:
            return Outcome.failure(e)

        return await self.poll_manager.set_interval(
            self.registry.get(address, slave_id), method_name, offset, interval,
            length=length, value=params.get("value"), values=values,
        )

    async def remove_interval(self, params: dict | None = None) -> Outcome:
        try:
            params = self.require_mapping(params)
            address, slave_id = self._target(params)
            method_name = self.param(params, "methodName", str)
            offset = self.param(params, "addressOffset", int)
        except InvalidParamsError as e:
            return Outcome.failure(e)

        return await self.poll_manager.remove_interval(
            self.registry.get(address, slave_id), method_name, offset,
        )

    async def get_intervals(self, params: dict | None = None) -> Outcome:
        return Outcome.success(self.poll_manager.list_intervals())
