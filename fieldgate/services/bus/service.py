"""
Gateway Service - command bus to field devices

Responsible for:
- Building the connection registry, invoker, poll manager and drivers
- Consuming commands from MQTT and publishing responses/errors
- Health/introspection HTTP endpoints
- Graceful shutdown (cancel every timer, close every connection)
"""

import asyncio
import signal
from datetime import datetime, timezone

from aiohttp import web

from ...common.config import GatewayConfig
from ...common.logging_setup import get_service_logger
from ..device.connection_registry import ConnectionRegistry, TransportFactory
from ..device.method_invoker import MethodInvoker
from ..device.modbus_driver import ModbusDriver
from ..device.poll_manager import PollManager
from ..device.serialport_driver import SerialPortDriver
from .dispatcher import CommandDispatcher
from .mqtt_bus import MqttBus

logger = get_service_logger("gateway")


class GatewayService:
    """
    Gateway Service

    Owns every piece of mutable state (registry, poll timers, drivers)
    for one process; nothing is kept at module level.
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        transport_factory: TransportFactory | None = None,
    ):
        self.config = config or GatewayConfig()
        topics = self.config.topics

        # Initialize components
        self.registry = ConnectionRegistry(self.config.modbus, transport_factory)
        self.invoker = MethodInvoker(self.registry)
        self.poll_manager = PollManager(self.registry, self.invoker)

        self.bus = MqttBus(self.config.mqtt, topics.command_topic, topics.error_topic)
        self.dispatcher = CommandDispatcher(
            self.bus, topics.response_topic, topics.error_topic,
        )
        self.dispatcher.register_driver(
            ModbusDriver.name,
            ModbusDriver(self.registry, self.invoker, self.poll_manager),
        )
        self.dispatcher.register_driver(SerialPortDriver.name, SerialPortDriver())
        self.bus.set_handler(self.dispatcher.handle)

        self._start_time = datetime.now(timezone.utc)

        # Health server
        self._health_app: web.Application | None = None
        self._health_runner: web.AppRunner | None = None

        # State
        self._running = False
        self._bus_task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the gateway and block until a shutdown signal"""
        logger.info("Starting Gateway Service")

        self._running = True
        self._start_time = datetime.now(timezone.utc)

        await self._start_health_server()

        self._bus_task = asyncio.create_task(self.bus.run())

        logger.info(
            f"Gateway Service started (drivers: {', '.join(self.dispatcher.drivers)})",
            extra={"command_topic": self.config.topics.command_topic},
        )

        self._setup_signal_handlers()

        await self._shutdown_event.wait()
        await self.stop()

    async def stop(self) -> None:
        """Stop the bus, tear down every connection and the health server"""
        if not self._running:
            return
        logger.info("Stopping Gateway Service")

        self._running = False

        if self._bus_task:
            self._bus_task.cancel()
            try:
                await self._bus_task
            except asyncio.CancelledError:
                pass
            self._bus_task = None
        await self.bus.stop()

        await self.registry.close_all()

        await self._stop_health_server()

        logger.info("Gateway Service stopped")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown)
            except NotImplementedError:
                signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(self._handle_shutdown))

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal"""
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    def create_health_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/connections", self._connections_handler)
        app.router.add_get("/intervals", self._intervals_handler)
        return app

    async def _start_health_server(self) -> None:
        """Start the health check HTTP server"""
        settings = self.config.service
        self._health_app = self.create_health_app()

        self._health_runner = web.AppRunner(self._health_app)
        await self._health_runner.setup()

        site = web.TCPSite(self._health_runner, settings.health_host, settings.health_port)
        await site.start()

        logger.info(f"Health server started on port {settings.health_port}")

    async def _stop_health_server(self) -> None:
        """Stop the health check HTTP server"""
        if self._health_runner:
            await self._health_runner.cleanup()
            self._health_runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Handle health check requests"""
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()

        return web.json_response({
            "status": "healthy" if self._running else "unhealthy",
            "service": "gateway",
            "uptime": int(uptime),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "bus_connected": self.bus.is_connected,
            "connections": len(self.registry),
            "intervals": self.poll_manager.interval_count(),
        })

    async def _connections_handler(self, request: web.Request) -> web.Response:
        """Return registry statistics"""
        return web.json_response(self.registry.get_stats())

    async def _intervals_handler(self, request: web.Request) -> web.Response:
        """Return every active poll entry"""
        return web.json_response(self.poll_manager.list_intervals())
