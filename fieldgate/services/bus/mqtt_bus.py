"""
MQTT Bus

aiomqtt-backed transport for the dispatcher: subscribes to the command
topic, hands each message to the handler in its own task, and publishes
response/error envelopes. Reconnects with a fixed delay when the broker
connection drops.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Awaitable, Callable
from uuid import uuid4

import aiomqtt

from ...common.config import MqttSettings
from ...common.logging_setup import get_service_logger

logger = get_service_logger("bus.mqtt")

MessageHandler = Callable[[bytes], Awaitable[object]]


class MqttBus:
    """Command subscriber and envelope publisher"""

    def __init__(
        self,
        settings: MqttSettings,
        command_topic: str,
        error_topic: str,
    ):
        self.settings = settings
        self.command_topic = command_topic
        self.error_topic = error_topic

        self._client: aiomqtt.Client | None = None
        self._handler: MessageHandler | None = None
        self._inflight: set[asyncio.Task] = set()
        self._running = False

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def set_handler(self, handler: MessageHandler) -> None:
        self._handler = handler

    def _create_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self.settings.host,
            port=self.settings.port,
            identifier=self.settings.client_id,
            username=self.settings.username,
            password=self.settings.password,
            keepalive=self.settings.keepalive,
        )

    async def publish(self, topic: str, payload: str) -> None:
        """
        Publish one payload.

        Raises:
            ConnectionError: not connected to the broker
            aiomqtt.MqttError: broker rejected the publish
        """
        if self._client is None:
            raise ConnectionError("not connected to MQTT broker")
        await self._client.publish(topic, payload=payload)
        logger.debug(f"Published to {topic}")

    async def run(self) -> None:
        """Connect, subscribe and consume commands until stop() is called"""
        self._running = True

        while self._running:
            try:
                async with self._create_client() as client:
                    self._client = client
                    logger.info(
                        f"Connected to MQTT broker {self.settings.host}:{self.settings.port}"
                    )
                    if not await self._subscribe(client):
                        # Broker is up but refused the subscription; retry after the delay
                        raise aiomqtt.MqttError("subscription refused")

                    async for message in client.messages:
                        self._dispatch(message.payload)
            except aiomqtt.MqttError as e:
                logger.warning(
                    f"MQTT connection lost ({e}); reconnecting in "
                    f"{self.settings.reconnect_interval_s}s"
                )
            finally:
                self._client = None

            if self._running:
                await asyncio.sleep(self.settings.reconnect_interval_s)

    async def stop(self) -> None:
        """Stop consuming and wait for in-flight commands to finish"""
        self._running = False
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("MQTT bus stopped")

    async def _subscribe(self, client: aiomqtt.Client) -> bool:
        try:
            await client.subscribe(self.command_topic)
        except aiomqtt.MqttError as e:
            logger.error(f"Failed to subscribe to command topic: {e}")
            envelope = {
                "uniqueID": str(uuid4()),
                "date": datetime.now(timezone.utc).isoformat(),
                "message": f"Failed to subscribe to command topic: {e}",
            }
            try:
                await client.publish(self.error_topic, payload=json.dumps(envelope))
            except aiomqtt.MqttError as publish_error:
                logger.error(f"Failed to publish subscribe error: {publish_error}")
            return False

        logger.info(f"Subscribed to command topic: {self.command_topic}")
        return True

    def _dispatch(self, payload) -> None:
        if self._handler is None:
            logger.warning("Dropping command: no handler registered")
            return

        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        elif not isinstance(payload, (bytes, bytearray)):
            payload = json.dumps(payload).encode("utf-8")

        task = asyncio.create_task(self._handler(bytes(payload)))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
