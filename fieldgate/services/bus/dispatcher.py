"""
Command Dispatcher

Routes inbound command envelopes to a registered driver operation and
publishes exactly one response or error envelope per command.

Per command:
1. Parse envelope
2. Resolve driver name, then operation name (unknown -> error topic)
3. Call with *params (list) or params (mapping); other shapes -> error
4. Publish Outcome.result to the response topic, Outcome.error to the
   error topic
5. Anything raised on the way is caught here and sent to the error topic
"""

from typing import Any, Protocol

from ...common.exceptions import ConfigError, GatewayError, InvalidParamsError, UnknownTargetError
from ...common.logging_setup import get_service_logger, log_command
from ...common.outcome import Outcome
from ..device.driver import Driver
from .envelope import CommandEnvelope, ResponseEnvelope

logger = get_service_logger("bus.dispatcher")


class Publisher(Protocol):
    async def publish(self, topic: str, payload: str) -> None: ...


class CommandDispatcher:
    """
    Dispatches commands to drivers registered by name.

    The driver set is frozen on the first dispatch; registering a
    driver afterwards raises ConfigError.
    """

    def __init__(self, publisher: Publisher, response_topic: str, error_topic: str):
        self.publisher = publisher
        self.response_topic = response_topic
        self.error_topic = error_topic
        self._drivers: dict[str, Driver] = {}
        self._operations: dict[str, dict] = {}
        self._started = False

    @property
    def drivers(self) -> list[str]:
        return list(self._drivers)

    def register_driver(self, name: str, driver: Driver) -> None:
        if self._started:
            raise ConfigError(f"cannot register driver '{name}' after dispatch has started")
        self._drivers[name] = driver
        self._operations[name] = driver.operations()
        logger.info(f"Registered driver '{name}' ({len(self._operations[name])} operations)")

    async def handle(self, payload: bytes | str | dict) -> ResponseEnvelope:
        """Process one inbound command; returns the envelope that was published"""
        self._started = True

        try:
            command = CommandEnvelope.parse(payload)
        except InvalidParamsError as e:
            logger.warning(f"Rejected command payload: {e.message}")
            return await self._publish_error("", e.message)

        logger.debug(
            f"Received command {command.driver}.{command.method} [{command.unique_id}]"
        )

        try:
            outcome = await self._invoke(command)
        except GatewayError as e:
            outcome = Outcome.failure(e)
        except Exception as e:
            logger.error(
                f"Unhandled error in {command.driver}.{command.method}: {e}",
                exc_info=True,
            )
            outcome = Outcome.failure(str(e) or repr(e))

        if not outcome.ok:
            log_command(
                logger, command.unique_id, command.driver, command.method,
                success=False, error=outcome.error,
            )
            return await self._publish_error(command.unique_id, outcome.error, outcome)

        log_command(logger, command.unique_id, command.driver, command.method)
        envelope = ResponseEnvelope(command.unique_id, outcome.result, outcome.date)
        await self._publish(self.response_topic, envelope)
        return envelope

    async def _invoke(self, command: CommandEnvelope) -> Outcome:
        operation = self._operations.get(command.driver, {}).get(command.method)
        if operation is None:
            raise UnknownTargetError(command.driver, command.method)

        params: Any = command.params
        if isinstance(params, list):
            outcome = await operation(*params)
        elif isinstance(params, dict):
            outcome = await operation(params)
        else:
            raise InvalidParamsError()

        if not isinstance(outcome, Outcome):
            return Outcome.success(outcome)
        return outcome

    async def _publish_error(
        self,
        unique_id: str,
        message: str,
        outcome: Outcome | None = None,
    ) -> ResponseEnvelope:
        envelope = ResponseEnvelope(unique_id, message)
        if outcome is not None:
            envelope.date = outcome.date
        await self._publish(self.error_topic, envelope)
        return envelope

    async def _publish(self, topic: str, envelope: ResponseEnvelope) -> None:
        """Best-effort publish: failures are logged, never retried"""
        try:
            await self.publisher.publish(topic, envelope.to_json())
        except Exception as e:
            logger.error(f"Failed to publish to {topic} [{envelope.unique_id}]: {e}")
