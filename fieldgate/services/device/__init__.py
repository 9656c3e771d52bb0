"""
Device layer - Modbus connections and serial ports

Responsibilities:
- Keep one connection per (address, unit id)
- Execute single Modbus reads/writes on a connection
- Run recurring polls per connection
- Enumerate local serial ports
"""

from .connection_registry import ConnectionRegistry
from .method_invoker import MethodInvoker
from .poll_manager import PollManager
from .modbus_driver import ModbusDriver
from .serialport_driver import SerialPortDriver

__all__ = [
    "ConnectionRegistry",
    "MethodInvoker",
    "PollManager",
    "ModbusDriver",
    "SerialPortDriver",
]
