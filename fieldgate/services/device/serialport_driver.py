"""
Serial Port Driver

Dispatcher-facing "serialport" driver: lists local serial endpoints
with their identifying metadata via pyserial.
"""

import asyncio

import serial.tools.list_ports

from ...common.logging_setup import get_service_logger
from ...common.outcome import Outcome
from .driver import Driver, Operation

logger = get_service_logger("device.serialport")


def _hex_id(value: int | None) -> str | None:
    if value is None:
        return None
    return f"{value:04x}"


def describe_port(port) -> dict:
    """Flatten a pyserial ListPortInfo into the wire shape"""
    return {
        "path": port.device,
        "manufacturer": port.manufacturer,
        "serialNumber": port.serial_number,
        "pnpId": port.hwid,
        "locationId": port.location,
        "vendorId": _hex_id(port.vid),
        "productId": _hex_id(port.pid),
    }


class SerialPortDriver(Driver):
    """Enumerates serial ports available to the gateway"""

    name = "serialport"

    def __init__(self):
        self.ports: list[dict] = []

    def operations(self) -> dict[str, Operation]:
        return {
            "detect": self.detect,
            "list": self.detect,
        }

    async def detect(self, params: dict | None = None) -> Outcome:
        """List serial ports; comports() blocks, so it runs in a worker thread"""
        try:
            found = await asyncio.to_thread(serial.tools.list_ports.comports)
        except Exception as e:
            logger.error(f"Error detecting serial ports: {e}")
            return Outcome.failure(str(e) or repr(e))

        self.ports = [describe_port(port) for port in found]
        logger.info(f"Found {len(self.ports)} serial ports: {[p['path'] for p in self.ports]}")
        return Outcome.success(self.ports)
