"""
Configuration Dataclasses

Type-safe configuration structures for the gateway.
Configuration is read from a YAML file at startup; every section
is optional and falls back to the defaults below.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from .exceptions import ConfigError


class ConnectionType(str, Enum):
    """Modbus transport kinds"""
    RTU = "RTU"
    TCP = "TCP"


class ModbusMethod(str, Enum):
    """Fixed capability set of a Modbus transport handle"""
    READ_COILS = "readCoils"
    READ_DISCRETE_INPUTS = "readDiscreteInputs"
    READ_HOLDING_REGISTERS = "readHoldingRegisters"
    READ_INPUT_REGISTERS = "readInputRegisters"
    WRITE_COIL = "writeCoil"
    WRITE_REGISTER = "writeRegister"
    WRITE_COILS = "writeCoils"
    WRITE_REGISTERS = "writeRegisters"


@dataclass
class MqttSettings:
    """Message bus connection settings"""
    host: str = "127.0.0.1"
    port: int = 21883
    client_id: str = "fieldgate"
    username: str | None = None
    password: str | None = None
    keepalive: int = 60
    reconnect_interval_s: float = 5.0


@dataclass
class TopicSettings:
    """Command/response/error topics (derived from main when unset)"""
    main: str = "device"
    command: str | None = None
    response: str | None = None
    error: str | None = None

    @property
    def command_topic(self) -> str:
        return self.command or f"{self.main}/command"

    @property
    def response_topic(self) -> str:
        return self.response or f"{self.main}/response"

    @property
    def error_topic(self) -> str:
        return self.error or f"{self.main}/error"


@dataclass
class ModbusSettings:
    """Transport defaults applied when a connect command omits them"""
    timeout_s: float = 3.0
    tcp_port: int = 502
    baudrate: int = 9600
    parity: str = "N"             # N=None, E=Even, O=Odd
    stopbits: int = 1             # 1 or 2
    bytesize: int = 8


@dataclass
class ServiceSettings:
    """Service runtime configuration"""
    health_port: int = 8090
    health_host: str = "127.0.0.1"
    log_level: str = "INFO"


@dataclass
class GatewayConfig:
    """Complete gateway configuration"""
    mqtt: MqttSettings = field(default_factory=MqttSettings)
    topics: TopicSettings = field(default_factory=TopicSettings)
    modbus: ModbusSettings = field(default_factory=ModbusSettings)
    service: ServiceSettings = field(default_factory=ServiceSettings)


def load_gateway_config(data: dict | None) -> GatewayConfig:
    """Load GatewayConfig from dictionary (e.g., from a YAML file)"""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("top-level configuration must be a mapping")

    mqtt_data = data.get("mqtt") or {}
    mqtt = MqttSettings(
        host=mqtt_data.get("host", "127.0.0.1"),
        port=int(mqtt_data.get("port", 21883)),
        client_id=mqtt_data.get("client_id", "fieldgate"),
        username=mqtt_data.get("username"),
        password=mqtt_data.get("password"),
        keepalive=int(mqtt_data.get("keepalive", 60)),
        reconnect_interval_s=float(mqtt_data.get("reconnect_interval_s", 5.0)),
    )

    topic_data = data.get("topics") or {}
    topics = TopicSettings(
        main=topic_data.get("main", "device"),
        command=topic_data.get("command"),
        response=topic_data.get("response"),
        error=topic_data.get("error"),
    )

    modbus_data = data.get("modbus") or {}
    parity = str(modbus_data.get("parity", "N")).upper()
    if parity not in ("N", "E", "O"):
        raise ConfigError(f"invalid parity '{parity}' (expected N, E or O)")
    modbus = ModbusSettings(
        timeout_s=float(modbus_data.get("timeout_s", 3.0)),
        tcp_port=int(modbus_data.get("tcp_port", 502)),
        baudrate=int(modbus_data.get("baudrate", 9600)),
        parity=parity,
        stopbits=int(modbus_data.get("stopbits", 1)),
        bytesize=int(modbus_data.get("bytesize", 8)),
    )

    service_data = data.get("service") or {}
    service = ServiceSettings(
        health_port=int(service_data.get("health_port", 8090)),
        health_host=service_data.get("health_host", "127.0.0.1"),
        log_level=service_data.get("log_level", "INFO"),
    )

    return GatewayConfig(mqtt=mqtt, topics=topics, modbus=modbus, service=service)


def load_config_file(config_path: str | Path | None) -> GatewayConfig:
    """
    Load configuration from a YAML file.

    A missing path yields the default configuration.

    Raises:
        ConfigError: file exists but cannot be parsed
    """
    if config_path is None:
        return GatewayConfig()

    path = Path(config_path)
    if not path.exists():
        return GatewayConfig()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e

    return load_gateway_config(data)
