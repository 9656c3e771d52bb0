"""
Async Modbus Transports

Wrapper around pymodbus for async Modbus TCP and RTU serial
communication. One transport instance is bound to one unit id.

Every operation either returns the raw result or raises
TransportError carrying the underlying failure message.
"""

import asyncio
from typing import Any

from pymodbus.client import AsyncModbusTcpClient, AsyncModbusSerialClient
from pymodbus.exceptions import ModbusException

from ...common.config import ConnectionType
from ...common.exceptions import TransportError
from ...common.logging_setup import get_service_logger

logger = get_service_logger("device.modbus")


class ModbusTransport:
    """
    Base async Modbus transport.

    Subclasses only decide how the pymodbus client is built; the
    read/write handlers are shared by both transport kinds.
    """

    kind: ConnectionType

    def __init__(self, address: str, slave_id: int = 1, timeout: float = 3.0):
        self.address = address
        self.slave_id = slave_id
        self.timeout = timeout

        self._client: AsyncModbusTcpClient | AsyncModbusSerialClient | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._client is not None and self._client.connected

    def _create_client(self) -> AsyncModbusTcpClient | AsyncModbusSerialClient:
        raise NotImplementedError

    def _describe(self) -> str:
        return f"{self.address} (slave {self.slave_id})"

    async def connect(self) -> None:
        """
        Open the channel.

        Raises:
            TransportError: the client could not be opened
        """
        if self._connected:
            return

        try:
            self._client = self._create_client()
            await self._client.connect()
        except Exception as e:
            self._client = None
            raise TransportError(str(e) or repr(e), self.address, self.slave_id) from e

        if not self._client.connected:
            self._client = None
            raise TransportError(
                f"Failed to connect to {self._describe()}",
                self.address,
                self.slave_id,
            )

        self._connected = True
        logger.debug(f"Connected to {self.kind.value} device {self._describe()}")

    async def close(self) -> None:
        """
        Close the channel.

        Raises:
            TransportError: the client raised while closing
        """
        if self._client:
            try:
                self._client.close()
            except Exception as e:
                raise TransportError(str(e) or repr(e), self.address, self.slave_id) from e
            self._client = None
        self._connected = False
        logger.debug(f"Disconnected from {self._describe()}")

    async def read_coils(self, address: int, length: int | None) -> list[bool]:
        response = await self._call(
            "readCoils", self._require_client().read_coils,
            address, count=self._require(length, "length", "readCoils"),
        )
        return list(response.bits[:length])

    async def read_discrete_inputs(self, address: int, length: int | None) -> list[bool]:
        response = await self._call(
            "readDiscreteInputs", self._require_client().read_discrete_inputs,
            address, count=self._require(length, "length", "readDiscreteInputs"),
        )
        return list(response.bits[:length])

    async def read_holding_registers(self, address: int, length: int | None) -> list[int]:
        response = await self._call(
            "readHoldingRegisters", self._require_client().read_holding_registers,
            address, count=self._require(length, "length", "readHoldingRegisters"),
        )
        return list(response.registers)

    async def read_input_registers(self, address: int, length: int | None) -> list[int]:
        response = await self._call(
            "readInputRegisters", self._require_client().read_input_registers,
            address, count=self._require(length, "length", "readInputRegisters"),
        )
        return list(response.registers)

    async def write_coil(self, address: int, value: bool | None) -> dict:
        value = self._coerce(value, "value", "writeCoil", bool)
        await self._call("writeCoil", self._require_client().write_coil, address, value)
        return {"address": address, "value": value}

    async def write_register(self, address: int, value: int | None) -> dict:
        value = self._coerce(value, "value", "writeRegister", int)
        await self._call("writeRegister", self._require_client().write_register, address, value)
        logger.debug(f"Write successful: {self._describe()} reg={address} value={value}")
        return {"address": address, "value": value}

    async def write_coils(self, address: int, values: list | None) -> dict:
        values = self._coerce_list(values, "values", "writeCoils", bool)
        await self._call("writeCoils", self._require_client().write_coils, address, values)
        return {"address": address, "length": len(values)}

    async def write_registers(self, address: int, values: list | None) -> dict:
        values = self._coerce_list(values, "values", "writeRegisters", int)
        await self._call("writeRegisters", self._require_client().write_registers, address, values)
        return {"address": address, "length": len(values)}

    def _require_client(self) -> AsyncModbusTcpClient | AsyncModbusSerialClient:
        if self._client is None:
            raise TransportError(
                f"Not connected to {self._describe()}",
                self.address,
                self.slave_id,
            )
        return self._client

    def _require(self, arg: Any, arg_name: str, method_name: str) -> Any:
        if arg is None:
            raise TransportError(
                f"{method_name} requires '{arg_name}'",
                self.address,
                self.slave_id,
            )
        return arg

    def _coerce(self, arg: Any, arg_name: str, method_name: str, kind: type) -> Any:
        """Require and convert one write argument; bad input becomes TransportError"""
        arg = self._require(arg, arg_name, method_name)
        try:
            if kind is int and isinstance(arg, float) and not arg.is_integer():
                raise ValueError(f"not an integer: {arg}")
            return kind(arg)
        except (TypeError, ValueError) as e:
            raise TransportError(
                f"{method_name} invalid '{arg_name}': {e}",
                self.address,
                self.slave_id,
            ) from e

    def _coerce_list(self, args: Any, arg_name: str, method_name: str, kind: type) -> list:
        args = self._require(args, arg_name, method_name)
        if not isinstance(args, (list, tuple)):
            raise TransportError(
                f"{method_name} invalid '{arg_name}': expected a list",
                self.address,
                self.slave_id,
            )
        return [self._coerce(arg, arg_name, method_name, kind) for arg in args]

    async def _call(self, method_name: str, func, *args, **kwargs):
        """Run one pymodbus request and translate every failure to TransportError"""
        try:
            response = await func(*args, device_id=self.slave_id, **kwargs)
        except ModbusException as e:
            raise TransportError(f"Modbus exception: {e}", self.address, self.slave_id) from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method_name} timeout", self.address, self.slave_id) from e
        except (OSError, ValueError, TypeError) as e:
            raise TransportError(str(e) or repr(e), self.address, self.slave_id) from e

        if response.isError():
            raise TransportError(f"Modbus error: {response}", self.address, self.slave_id)
        return response


class ModbusTcpTransport(ModbusTransport):
    """Modbus TCP transport (also RTU gateways speaking Modbus TCP)"""

    kind = ConnectionType.TCP

    def __init__(
        self,
        address: str,
        slave_id: int = 1,
        port: int = 502,
        timeout: float = 3.0,
    ):
        super().__init__(address, slave_id, timeout)
        self.port = port

    def _create_client(self) -> AsyncModbusTcpClient:
        return AsyncModbusTcpClient(
            host=self.address,
            port=self.port,
            timeout=self.timeout,
        )

    def _describe(self) -> str:
        return f"{self.address}:{self.port} (slave {self.slave_id})"


class ModbusRtuTransport(ModbusTransport):
    """
    Modbus RTU transport for direct RS485/RS232 connections.

    ``address`` is the serial port path (e.g. "/dev/ttyUSB0").
    """

    kind = ConnectionType.RTU

    def __init__(
        self,
        address: str,
        slave_id: int = 1,
        baudrate: int = 9600,
        parity: str = "N",
        stopbits: int = 1,
        bytesize: int = 8,
        timeout: float = 3.0,
    ):
        super().__init__(address, slave_id, timeout)
        self.baudrate = baudrate
        self.parity = parity
        self.stopbits = stopbits
        self.bytesize = bytesize

    def _create_client(self) -> AsyncModbusSerialClient:
        return AsyncModbusSerialClient(
            port=self.address,
            baudrate=self.baudrate,
            parity=self.parity,
            stopbits=self.stopbits,
            bytesize=self.bytesize,
            timeout=self.timeout,
        )

    def _describe(self) -> str:
        return f"{self.address}@{self.baudrate} (slave {self.slave_id})"
