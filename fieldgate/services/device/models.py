"""
Device connection and poll entry records
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ...common.config import ConnectionType, ModbusMethod
from ...common.scheduler import RecurringTimer
from .modbus_client import ModbusTransport


def connection_key(address: str, slave_id: int) -> str:
    """Registry key for an (address, unit id) pair"""
    return f"{address}_{slave_id}"


def poll_key(method_name: str, address_offset: int) -> str:
    """Poll entry key for a (method, offset) pair within one connection"""
    return f"{method_name}_{address_offset}"


@dataclass
class PollEntry:
    """A recurring invocation owned by one DeviceConnection"""
    key: str
    method: ModbusMethod
    address_offset: int
    interval_ms: float
    timer: RecurringTimer
    params: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class DeviceConnection:
    """One open channel to one device"""
    address: str
    slave_id: int
    type: ConnectionType
    transport: ModbusTransport
    bus_lock: asyncio.Lock  # Shared by every connection on the same address
    connected: bool = False
    intervals: dict[str, PollEntry] = field(default_factory=dict)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> str:
        return connection_key(self.address, self.slave_id)

    def cancel_intervals(self) -> int:
        """Stop every poll timer and clear the mapping; returns how many were stopped"""
        count = len(self.intervals)
        for entry in self.intervals.values():
            entry.timer.stop()
        self.intervals.clear()
        return count
