"""
Bus layer - MQTT commands in, envelopes out
"""

from .dispatcher import CommandDispatcher
from .envelope import CommandEnvelope, ResponseEnvelope
from .mqtt_bus import MqttBus
from .service import GatewayService

__all__ = [
    "CommandDispatcher",
    "CommandEnvelope",
    "ResponseEnvelope",
    "MqttBus",
    "GatewayService",
]
