"""
Modbus Connection Registry

Owns every live device connection, keyed by (address, unit id),
and enforces at most one connection per key.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from ...common.config import ConnectionType, ModbusSettings
from ...common.exceptions import (
    AlreadyConnectedError,
    InvalidParamsError,
    NotConnectedError,
    TransportError,
)
from ...common.logging_setup import get_service_logger
from ...common.outcome import Outcome
from .modbus_client import ModbusRtuTransport, ModbusTcpTransport, ModbusTransport
from .models import DeviceConnection, connection_key

logger = get_service_logger("device.registry")

TransportFactory = Callable[..., ModbusTransport]


def build_transport(
    kind: ConnectionType,
    address: str,
    slave_id: int,
    settings: ModbusSettings,
    baud_rate: int | None = None,
    port: int | None = None,
) -> ModbusTransport:
    """Create an unopened transport for the given kind, filling gaps from settings"""
    if kind == ConnectionType.TCP:
        return ModbusTcpTransport(
            address,
            slave_id=slave_id,
            port=port or settings.tcp_port,
            timeout=settings.timeout_s,
        )
    return ModbusRtuTransport(
        address,
        slave_id=slave_id,
        baudrate=baud_rate or settings.baudrate,
        parity=settings.parity,
        stopbits=settings.stopbits,
        bytesize=settings.bytesize,
        timeout=settings.timeout_s,
    )


def parse_connection_type(value: ConnectionType | str | None) -> ConnectionType:
    """Accept "RTU"/"TCP" in any case; default is RTU"""
    if value is None:
        return ConnectionType.RTU
    if isinstance(value, ConnectionType):
        return value
    try:
        return ConnectionType(str(value).upper())
    except ValueError:
        raise InvalidParamsError(f"invalid connection type: {value}")


class ConnectionRegistry:
    """
    Registry of device connections.

    - One entry per (address, unit id); a second connect is a no-op
    - Entries appear only after the transport confirms the open
    - Entries disappear only after the transport closes cleanly
    - Connections on the same address share one bus lock, so calls
      on one RS485 bus or TCP gateway never interleave
    """

    def __init__(
        self,
        settings: ModbusSettings | None = None,
        transport_factory: TransportFactory | None = None,
    ):
        self._settings = settings or ModbusSettings()
        self._transport_factory = transport_factory or build_transport
        self._connections: dict[str, DeviceConnection] = {}
        self._bus_locks: dict[str, asyncio.Lock] = {}
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._key_users: dict[str, int] = {}

    @asynccontextmanager
    async def _key_guard(self, key: str) -> AsyncIterator[None]:
        """Serialize connect/disconnect per key; the lock is dropped once idle"""
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        self._key_users[key] = self._key_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._key_users[key] -= 1
            if self._key_users[key] == 0:
                del self._key_users[key]
                del self._key_locks[key]

    def __len__(self) -> int:
        return len(self._connections)

    def get(self, address: str, slave_id: int) -> DeviceConnection | None:
        return self._connections.get(connection_key(address, slave_id))

    def connections(self) -> list[DeviceConnection]:
        """Snapshot of registered connections"""
        return list(self._connections.values())

    async def connect(
        self,
        type: ConnectionType | str | None,
        address: str,
        slave_id: int,
        baud_rate: int | None = None,
        port: int | None = None,
    ) -> Outcome:
        """
        Open a connection to (address, slave_id) unless one exists.

        Returns:
            Outcome with a confirmation message, "device already connected",
            or the transport error
        """
        try:
            kind = parse_connection_type(type)
        except InvalidParamsError as e:
            return Outcome.failure(e)

        key = connection_key(address, slave_id)

        async with self._key_guard(key):
            if key in self._connections:
                return Outcome(
                    result=AlreadyConnectedError(address, slave_id).message,
                    code=AlreadyConnectedError.code,
                )

            try:
                transport = self._transport_factory(
                    kind, address, slave_id, self._settings,
                    baud_rate=baud_rate, port=port,
                )
                await transport.connect()
            except TransportError as e:
                logger.warning(f"Connection to {address} (slave {slave_id}) failed: {e.message}")
                return Outcome.failure(e)

            self._connections[key] = DeviceConnection(
                address=address,
                slave_id=slave_id,
                type=kind,
                transport=transport,
                bus_lock=self._bus_locks.setdefault(address, asyncio.Lock()),
                connected=True,
            )

        logger.info(
            f"Connected to {kind.value} device {address} with slave ID {slave_id}",
            extra={"address": address, "slave_id": slave_id, "type": kind.value},
        )
        return Outcome.success(
            f"Connected to Modbus device on {address} with slave ID {slave_id}"
        )

    async def disconnect(self, address: str, slave_id: int) -> Outcome:
        """
        Close and remove the connection for (address, slave_id).

        On close failure the entry stays registered and the error is returned.
        """
        key = connection_key(address, slave_id)

        async with self._key_guard(key):
            connection = self._connections.get(key)
            if connection is None or not connection.connected:
                return Outcome.failure(NotConnectedError(address, slave_id))

            # Calls queued on the bus must see connected=False once it is released
            async with connection.bus_lock:
                try:
                    await connection.transport.close()
                except TransportError as e:
                    logger.error(f"Failed to close {address} (slave {slave_id}): {e.message}")
                    return Outcome.failure(e)
                self._remove(connection)

        return Outcome.success(
            f"Disconnected from device on {address} with slave ID {slave_id}"
        )

    def list_connections(self) -> list[dict]:
        """Snapshot of (address, slaveId) pairs for every registered connection"""
        return [
            {
                "address": connection.address,
                "slaveId": connection.slave_id,
                "type": connection.type.value,
            }
            for connection in self._connections.values()
        ]

    async def close_all(self) -> None:
        """Cancel every poll timer, close every transport and clear the registry"""
        for connection in self.connections():
            async with connection.bus_lock:
                try:
                    await connection.transport.close()
                except TransportError as e:
                    logger.warning(
                        f"Error closing {connection.address} (slave {connection.slave_id}) "
                        f"during shutdown: {e.message}"
                    )
                self._remove(connection)

        logger.info("Connection registry closed")

    def _remove(self, connection: DeviceConnection) -> None:
        """Drop a connection whose transport is closed, cancelling its timers first"""
        cancelled = connection.cancel_intervals()
        connection.connected = False
        self._connections.pop(connection.key, None)

        if not any(c.address == connection.address for c in self._connections.values()):
            self._bus_locks.pop(connection.address, None)

        logger.info(
            f"Removed connection {connection.address} (slave {connection.slave_id}), "
            f"cancelled {cancelled} intervals"
        )

    def get_stats(self) -> dict:
        """Get registry statistics"""
        return {
            "total_connections": len(self._connections),
            "connections": {
                key: {
                    "type": connection.type.value,
                    "connected": connection.connected,
                    "connected_at": connection.connected_at.isoformat(),
                    "intervals": len(connection.intervals),
                }
                for key, connection in self._connections.items()
            },
        }
