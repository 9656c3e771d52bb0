"""
Polling Manager

Schedules, replaces and cancels recurring Method Invoker calls per
connection. Tick results are only logged; nothing is published.
"""

from typing import Any

from ...common.config import ModbusMethod
from ...common.exceptions import (
    InvalidParamsError,
    NoSuchIntervalError,
    NotConnectedError,
    UnsupportedMethodError,
)
from ...common.logging_setup import get_service_logger, log_poll_tick
from ...common.outcome import Outcome
from ...common.scheduler import RecurringTimer
from .connection_registry import ConnectionRegistry
from .method_invoker import MethodInvoker, resolve_method
from .models import DeviceConnection, PollEntry, poll_key

logger = get_service_logger("device.poll")


class PollManager:
    """
    Per-connection recurring invocations.

    Poll key is (method name, address offset). Setting an existing key
    stops the old timer before the new one is installed, so a key never
    has two live timers. A failed tick keeps the timer running.
    """

    def __init__(self, registry: ConnectionRegistry, invoker: MethodInvoker):
        self.registry = registry
        self.invoker = invoker

    async def set_interval(
        self,
        connection: DeviceConnection | None,
        method_name: ModbusMethod | str,
        offset: int,
        interval_ms: float,
        length: int | None = None,
        value: Any = None,
        values: list | None = None,
    ) -> Outcome:
        """Install (or replace) the recurring call for (method_name, offset)"""
        try:
            method = resolve_method(method_name)
        except UnsupportedMethodError as e:
            return Outcome.failure(e)

        if connection is None or not connection.connected:
            return Outcome.failure(NotConnectedError())

        if (
            isinstance(interval_ms, bool)
            or not isinstance(interval_ms, (int, float))
            or interval_ms <= 0
        ):
            return Outcome.failure(
                InvalidParamsError(f"invalid interval: {interval_ms}")
            )

        key = poll_key(method.value, offset)

        previous = connection.intervals.pop(key, None)
        if previous is not None:
            previous.timer.stop()
            logger.debug(f"Replacing interval {key} on {connection.key}")

        async def tick() -> None:
            outcome = await self.invoker.invoke(
                connection, method, offset, length, value, values
            )
            if outcome.ok:
                log_poll_tick(logger, connection.address, connection.slave_id, key, outcome.result)
            else:
                log_poll_tick(
                    logger, connection.address, connection.slave_id, key,
                    outcome.error, success=False,
                )

        timer = RecurringTimer(interval_ms / 1000.0, tick, name=f"{connection.key}:{key}")
        connection.intervals[key] = PollEntry(
            key=key,
            method=method,
            address_offset=offset,
            interval_ms=interval_ms,
            timer=timer,
            params={"length": length, "value": value, "values": values},
        )
        await timer.start()

        logger.info(
            f"Interval {key} set on {connection.address} (slave {connection.slave_id}) "
            f"every {interval_ms}ms"
        )
        return Outcome.success(
            f"Interval set for {method.value} at offset {offset} every {interval_ms}ms"
        )

    async def remove_interval(
        self,
        connection: DeviceConnection | None,
        method_name: ModbusMethod | str,
        offset: int,
    ) -> Outcome:
        """Cancel and drop the recurring call for (method_name, offset)"""
        if connection is None or not connection.connected:
            return Outcome.failure(NotConnectedError())

        name = method_name.value if isinstance(method_name, ModbusMethod) else str(method_name)
        key = poll_key(name, offset)

        entry = connection.intervals.pop(key, None)
        if entry is None:
            return Outcome.failure(NoSuchIntervalError(key))

        entry.timer.stop()
        logger.info(f"Interval {key} removed from {connection.address} (slave {connection.slave_id})")
        return Outcome.success(f"Interval removed for {name} at offset {offset}")

    def list_intervals(self) -> list[dict]:
        """Snapshot of every poll entry across all connections"""
        return [
            {
                "address": connection.address,
                "slaveId": connection.slave_id,
                "methodName": entry.method.value,
                "addressOffset": entry.address_offset,
                "key": entry.key,
                "interval": entry.interval_ms,
            }
            for connection in self.registry.connections()
            for entry in list(connection.intervals.values())
        ]

    def interval_count(self) -> int:
        return sum(len(c.intervals) for c in self.registry.connections())
