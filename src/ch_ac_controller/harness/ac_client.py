"""End-to-end AC client harness with structured logging and metrics.

Connects to one unit, optionally switches it on or off, then logs every
status reply until ``--duration`` expires.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

import uvloop

from ch_ac_controller.const import (
    CHAC_DEVICE_PORT,
    CHAC_METRICS_PORT,
    CHAC_UPDATE_INTERVAL,
    CHAC_VERSION,
)
from ch_ac_controller.correlation import correlation_context
from ch_ac_controller.devices.ac_device import AcDevice
from ch_ac_controller.logging_abstraction import configure_logging, get_logger
from ch_ac_controller.metrics import start_metrics_server
from ch_ac_controller.transport.exceptions import NotConnectedError, TransportError
from ch_ac_controller.transport.types import DeviceOptions, DeviceSnapshot

logger = get_logger(__name__)


def setup_logging(log_level: str) -> None:
    """Route package logs to stdout at ``log_level``."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    configure_logging(log_format="human", human_output="stdout", level=level, force=True)


def build_options(args: argparse.Namespace, connected: asyncio.Event) -> DeviceOptions:
    """Wire CLI arguments and logging callbacks into DeviceOptions."""

    def on_connected(snapshot: DeviceSnapshot, success: bool) -> None:
        if success:
            logger.info(
                "Connected to %s (%s)",
                snapshot.device_id,
                snapshot.name or "unnamed",
                extra={"host": snapshot.host, "address": snapshot.address},
            )
            connected.set()
        else:
            logger.warning("Bind reply arrived before discovery", extra={"host": snapshot.host})

    def on_status(snapshot: DeviceSnapshot) -> None:
        logger.info("Status", extra=dict(snapshot.props))

    def on_update(snapshot: DeviceSnapshot) -> None:
        logger.info("Command applied", extra=dict(snapshot.props))

    def on_error(snapshot: DeviceSnapshot, error: Exception) -> None:
        logger.warning("Device error: %s", error, extra={"host": snapshot.host, "state": snapshot.state.value})

    def on_disconnected(snapshot: DeviceSnapshot) -> None:
        connected.clear()
        logger.warning("Disconnected from %s, will retry", snapshot.host, extra={"host": snapshot.host})

    return DeviceOptions(
        host=args.host,
        local_port=args.local_port,
        device_port=args.device_port,
        update_interval=args.update_interval,
        on_connected=on_connected,
        on_status=on_status,
        on_update=on_update,
        on_error=on_error,
        on_disconnected=on_disconnected,
    )


async def main_async(args: argparse.Namespace) -> int:
    """Async main entry point."""
    if args.metrics_port > 0:
        try:
            start_metrics_server(args.metrics_port)
            logger.info("Metrics server started on port %d", args.metrics_port)
        except OSError as e:
            logger.error("Failed to start metrics server: %s", e)
            return 1

    connected = asyncio.Event()
    device = AcDevice(build_options(args, connected))

    async with device:
        try:
            await asyncio.wait_for(connected.wait(), timeout=args.connect_timeout)
        except TimeoutError:
            logger.error(
                "No bind within %.1fs (state: %s)",
                args.connect_timeout,
                device.state.value,
                extra={"host": args.host},
            )
            return 1

        if args.power is not None:
            try:
                device.set_power(args.power == "on")
            except (NotConnectedError, TransportError) as e:
                logger.error("Power command failed: %s", e, extra={"host": args.host})
                return 1
            logger.info("Power set %s", args.power, extra={"host": args.host})

        if args.duration > 0:
            await asyncio.sleep(args.duration)

    logger.info("Client finished", extra={"host": args.host})
    return 0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Connect to a Cooper&Hunter / Gree air conditioner and log its status"
    )
    parser.add_argument(
        "--host",
        required=True,
        help="Device IP address or hostname",
    )
    parser.add_argument(
        "--local-port",
        type=int,
        default=None,
        help="Local UDP port (default: 8000 + last octet of the host)",
    )
    parser.add_argument(
        "--device-port",
        type=int,
        default=CHAC_DEVICE_PORT,
        help=f"Device UDP port (default: {CHAC_DEVICE_PORT})",
    )
    parser.add_argument(
        "--update-interval",
        type=float,
        default=CHAC_UPDATE_INTERVAL,
        help=f"Seconds between status polls (default: {CHAC_UPDATE_INTERVAL})",
    )
    parser.add_argument(
        "--power",
        choices=["on", "off"],
        default=None,
        help="Switch the unit on or off once bound",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=15.0,
        help="Seconds to wait for the bind handshake (default: 15)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Seconds to keep logging status after binding (default: 10)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=CHAC_METRICS_PORT,
        help=f"Prometheus metrics port, 0 disables (default: {CHAC_METRICS_PORT})",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    with correlation_context():
        logger.info("Starting ch-ac-client", extra={"version": CHAC_VERSION, "host": args.host})
        try:
            return uvloop.run(main_async(args))
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
            return 130


if __name__ == "__main__":
    sys.exit(main())
