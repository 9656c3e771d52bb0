#!/usr/bin/env python3
"""
fieldgate - Main Entry Point

Usage:
    fieldgate                          # Use gateway.yaml if present, else defaults
    fieldgate --config my.yaml         # Use custom config file
    fieldgate --dry-run                # Print config and exit

The gateway will:
1. Load configuration from YAML file
2. Connect to the MQTT broker and subscribe to the command topic
3. Serve Modbus and serial port commands until stopped
"""

import argparse
import asyncio
import sys

from .common.config import GatewayConfig, load_config_file
from .common.exceptions import ConfigError
from .common.logging_setup import get_service_logger, set_log_level
from .services.bus.service import GatewayService

logger = get_service_logger("main")


def print_config_summary(config: GatewayConfig) -> None:
    """Print a summary of the configuration."""
    print("\n" + "=" * 60)
    print("  FIELDGATE DEVICE GATEWAY")
    print("=" * 60)

    mqtt = config.mqtt
    print(f"\n  Broker: {mqtt.host}:{mqtt.port} (client id {mqtt.client_id})")

    topics = config.topics
    print(f"\n  Topics:")
    print(f"    - Command:  {topics.command_topic}")
    print(f"    - Response: {topics.response_topic}")
    print(f"    - Error:    {topics.error_topic}")

    modbus = config.modbus
    print(f"\n  Modbus Defaults:")
    print(f"    - Timeout: {modbus.timeout_s}s")
    print(f"    - TCP Port: {modbus.tcp_port}")
    print(f"    - Serial: {modbus.baudrate} {modbus.bytesize}{modbus.parity}{modbus.stopbits}")

    print(f"\n  Health: http://{config.service.health_host}:{config.service.health_port}/health")
    print("=" * 60 + "\n")


async def main_async(config: GatewayConfig) -> None:
    service = GatewayService(config)
    try:
        await service.start()
    except asyncio.CancelledError:
        logger.info("Gateway cancelled")
        await service.stop()
    except Exception as e:
        logger.error(f"Gateway error: {e}")
        await service.stop()
        raise


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="MQTT command gateway for Modbus field devices"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="gateway.yaml",
        help="Path to configuration file (default: gateway.yaml)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print configuration and exit without starting the gateway"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging"
    )

    args = parser.parse_args()

    try:
        config = load_config_file(args.config)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    set_log_level("DEBUG" if args.verbose else config.service.log_level)

    print_config_summary(config)

    if args.dry_run:
        print("Dry run mode - exiting without starting gateway")
        sys.exit(0)

    logger.info("Starting gateway...")
    print("Press Ctrl+C to stop\n")

    try:
        asyncio.run(main_async(config))
    except KeyboardInterrupt:
        print("\nStopped by user")


if __name__ == "__main__":
    main()
