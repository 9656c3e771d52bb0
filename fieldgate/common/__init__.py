"""
Common Utilities

Shared modules used across the gateway:
- config.py - Configuration dataclasses and enums
- exceptions.py - Custom exception classes
- outcome.py - Structured operation outcome
- logging_setup.py - Structured logging setup
- scheduler.py - Recurring timer for poll entries
"""

from .config import (
    GatewayConfig,
    MqttSettings,
    TopicSettings,
    ModbusSettings,
    ServiceSettings,
    ConnectionType,
    ModbusMethod,
    load_gateway_config,
    load_config_file,
)
from .exceptions import (
    GatewayError,
    ConfigError,
    AlreadyConnectedError,
    NotConnectedError,
    UnsupportedMethodError,
    TransportError,
    UnknownTargetError,
    InvalidParamsError,
    NoSuchIntervalError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    set_log_level,
    log_command,
    log_poll_tick,
)
from .outcome import Outcome
from .scheduler import RecurringTimer

__all__ = [
    # Config
    "GatewayConfig",
    "MqttSettings",
    "TopicSettings",
    "ModbusSettings",
    "ServiceSettings",
    "ConnectionType",
    "ModbusMethod",
    "load_gateway_config",
    "load_config_file",
    # Exceptions
    "GatewayError",
    "ConfigError",
    "AlreadyConnectedError",
    "NotConnectedError",
    "UnsupportedMethodError",
    "TransportError",
    "UnknownTargetError",
    "InvalidParamsError",
    "NoSuchIntervalError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "set_log_level",
    "log_command",
    "log_poll_tick",
    # Outcome / timers
    "Outcome",
    "RecurringTimer",
]
