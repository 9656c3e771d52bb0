"""
Method Invoker

Validates and executes one named Modbus operation against a
connection's transport handle.

Method names resolve through ModbusMethod and a fixed handler
table; nothing is looked up on the transport by string.
"""

from typing import Any, Awaitable, Callable

from ...common.config import ModbusMethod
from ...common.exceptions import NotConnectedError, TransportError, UnsupportedMethodError
from ...common.logging_setup import get_service_logger
from ...common.outcome import Outcome
from .connection_registry import ConnectionRegistry
from .modbus_client import ModbusTransport
from .models import DeviceConnection

logger = get_service_logger("device.invoker")

Handler = Callable[[ModbusTransport, int, Any, Any, Any], Awaitable[Any]]


async def _read_coils(transport, offset, length, value, values):
    return await transport.read_coils(offset, length)


async def _read_discrete_inputs(transport, offset, length, value, values):
    return await transport.read_discrete_inputs(offset, length)


async def _read_holding_registers(transport, offset, length, value, values):
    return await transport.read_holding_registers(offset, length)


async def _read_input_registers(transport, offset, length, value, values):
    return await transport.read_input_registers(offset, length)


async def _write_coil(transport, offset, length, value, values):
    return await transport.write_coil(offset, value)


async def _write_register(transport, offset, length, value, values):
    return await transport.write_register(offset, value)


async def _write_coils(transport, offset, length, value, values):
    return await transport.write_coils(offset, values)


async def _write_registers(transport, offset, length, value, values):
    return await transport.write_registers(offset, values)


HANDLERS: dict[ModbusMethod, Handler] = {
    ModbusMethod.READ_COILS: _read_coils,
    ModbusMethod.READ_DISCRETE_INPUTS: _read_discrete_inputs,
    ModbusMethod.READ_HOLDING_REGISTERS: _read_holding_registers,
    ModbusMethod.READ_INPUT_REGISTERS: _read_input_registers,
    ModbusMethod.WRITE_COIL: _write_coil,
    ModbusMethod.WRITE_REGISTER: _write_register,
    ModbusMethod.WRITE_COILS: _write_coils,
    ModbusMethod.WRITE_REGISTERS: _write_registers,
}


def resolve_method(method_name: ModbusMethod | str) -> ModbusMethod:
    """
    Map a wire method name onto the capability set.

    Raises:
        UnsupportedMethodError: name is not one of the eight Modbus methods
    """
    if isinstance(method_name, ModbusMethod):
        return method_name
    try:
        return ModbusMethod(method_name)
    except ValueError:
        raise UnsupportedMethodError(str(method_name))


class MethodInvoker:
    """Runs single Modbus operations against registered connections"""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def invoke(
        self,
        connection: DeviceConnection | None,
        method_name: ModbusMethod | str,
        offset: int,
        length: int | None = None,
        value: Any = None,
        values: list | None = None,
    ) -> Outcome:
        """
        Execute one operation.

        The method name is checked before the connection, so an unknown
        method is reported the same way whatever the connection state.
        Transport failures leave the connection registered and connected.
        """
        try:
            method = resolve_method(method_name)
        except UnsupportedMethodError as e:
            return Outcome.failure(e)

        if connection is None or not connection.connected:
            return Outcome.failure(NotConnectedError())

        handler = HANDLERS[method]
        try:
            async with connection.bus_lock:
                # A disconnect may have taken the bus while this call waited
                if not connection.connected:
                    return Outcome.failure(NotConnectedError())
                result = await handler(connection.transport, offset, length, value, values)
        except TransportError as e:
            logger.warning(
                f"{method.value} on {connection.address} (slave {connection.slave_id}) "
                f"failed: {e.message}"
            )
            return Outcome.failure(e)

        return Outcome.success(result)

    async def invoke_at(
        self,
        address: str,
        slave_id: int,
        method_name: ModbusMethod | str,
        offset: int,
        length: int | None = None,
        value: Any = None,
        values: list | None = None,
    ) -> Outcome:
        """Look up (address, slave_id) in the registry and invoke on it"""
        connection = self.registry.get(address, slave_id)
        return await self.invoke(connection, method_name, offset, length, value, values)
