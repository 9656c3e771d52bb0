"""
Structured Logging Setup

Consistent logging configuration across all gateway components.
Uses JSON format for structured logs in production.
"""

import logging
import sys
import os
from datetime import datetime, timezone
from typing import Any
import json


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in (
                "name", "msg", "args", "levelname", "levelno", "pathname",
                "filename", "module", "exc_info", "exc_text", "stack_info",
                "lineno", "funcName", "created", "msecs", "relativeCreated",
                "thread", "threadName", "processName", "process", "service",
                "message", "taskName",
            ):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a component.

    Args:
        service_name: Name of the component (e.g., "device.registry", "bus")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"fieldgate.{service_name}")
    logger.setLevel(numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Args:
        service_name: Name of the component

    Returns:
        Logger adapter with service name in all logs
    """
    # Check for environment variable override
    log_level = os.environ.get("FIELDGATE_LOG_LEVEL", "INFO")
    json_format = os.environ.get("FIELDGATE_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def set_log_level(log_level: str) -> None:
    """Apply a log level to every fieldgate logger already created"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    manager = logging.Logger.manager
    for name, logger in list(manager.loggerDict.items()):
        if not name.startswith("fieldgate.") or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(numeric_level)
        for handler in logger.handlers:
            handler.setLevel(numeric_level)


# Convenience loggers for common operations
def log_command(
    logger: logging.Logger,
    unique_id: str,
    driver: str,
    method: str,
    success: bool = True,
    error: str | None = None,
) -> None:
    """Log the outcome of a dispatched command"""
    if success:
        logger.info(
            f"Command {driver}.{method} [{unique_id}] succeeded",
            extra={"unique_id": unique_id, "driver": driver, "method": method},
        )
    else:
        logger.warning(
            f"Command {driver}.{method} [{unique_id}] failed: {error}",
            extra={
                "unique_id": unique_id,
                "driver": driver,
                "method": method,
                "error": error,
            },
        )


def log_poll_tick(
    logger: logging.Logger,
    address: str,
    slave_id: int,
    key: str,
    value: Any,
    success: bool = True,
) -> None:
    """Log one tick of a recurring poll"""
    if success:
        logger.debug(
            f"Poll {address}/{slave_id} {key} = {value}",
            extra={"address": address, "slave_id": slave_id, "key": key, "value": value},
        )
    else:
        logger.warning(
            f"Poll {address}/{slave_id} {key} failed: {value}",
            extra={"address": address, "slave_id": slave_id, "key": key, "error": value},
        )
