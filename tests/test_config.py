"""Tests for configuration loading."""
import pytest

from fieldgate.common.config import GatewayConfig, load_config_file, load_gateway_config
from fieldgate.common.exceptions import ConfigError


def test_defaults():
    config = load_gateway_config(None)

    assert config == GatewayConfig()
    assert config.topics.command_topic == "device/command"
    assert config.topics.response_topic == "device/response"
    assert config.topics.error_topic == "device/error"
    assert config.modbus.baudrate == 9600


def test_topic_overrides():
    config = load_gateway_config({"topics": {"main": "plant", "error": "alerts/gateway"}})

    assert config.topics.command_topic == "plant/command"
    assert config.topics.error_topic == "alerts/gateway"


def test_invalid_parity():
    with pytest.raises(ConfigError, match="invalid parity"):
        load_gateway_config({"modbus": {"parity": "X"}})


def test_load_yaml_file(tmp_path):
    path = tmp_path / "gateway.yaml"
    path.write_text(
        "mqtt:\n"
        "  host: broker.local\n"
        "  port: 1883\n"
        "modbus:\n"
        "  timeout_s: 1.5\n"
        "  parity: e\n"
        "service:\n"
        "  health_port: 9000\n"
    )

    config = load_config_file(path)

    assert config.mqtt.host == "broker.local"
    assert config.mqtt.port == 1883
    assert config.modbus.timeout_s == 1.5
    assert config.modbus.parity == "E"
    assert config.service.health_port == 9000


def test_missing_file_uses_defaults(tmp_path):
    assert load_config_file(tmp_path / "absent.yaml") == GatewayConfig()


def test_malformed_yaml(tmp_path):
    path = tmp_path / "gateway.yaml"
    path.write_text("mqtt: [unclosed\n")

    with pytest.raises(ConfigError):
        load_config_file(path)
