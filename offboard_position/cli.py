#!/usr/bin/env python3
"""
cli.py - Offboard Position Command Line

Usage:
    offboard-position <connection_url>
    python3 -m offboard_position udp://:14540
    python3 -m offboard_position serial:///dev/ttyACM0:57600 --land-timeout 60

Exit codes:
    0 - landed, disarmed, clean exit
    1 - bad usage, connection, arm, offboard start or land failure
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Callable, List, Optional

from .common.capabilities import Connection
from .common.drone_helpers import SleepFunc, setup_logging
from .common.errors import FlightError
from .config import FlightConfig
from .flight import run
from .mavlink_connection import ConnectionUrl, InvalidConnectionUrl, usage, validate_url

logger = logging.getLogger(__name__)

DEFAULT_PROG = "offboard-position"


class UsageError(Exception):
    """Raised by the argument parser instead of exiting."""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad usage as an exception."""

    def error(self, message):
        raise UsageError(message)


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0: {value!r}")
    return number


def create_argument_parser(prog: str = DEFAULT_PROG) -> argparse.ArgumentParser:
    """
    Create the argument parser.

    Args:
        prog: Program name shown in help output.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    parser = _ArgumentParser(
        prog=prog,
        description="Arm, fly a scripted offboard position pattern and land",
        add_help=False,
    )
    parser.add_argument(
        "connection_url",
        nargs="?",
        help="tcp://[server_host][:server_port], udp://[bind_host][:bind_port] "
             "or serial:///path/to/serial/dev[:baudrate]",
    )
    parser.add_argument(
        "--connect-timeout",
        type=_positive_float,
        default=None,
        help="Seconds to wait for a heartbeat. "
             "Default: OFFBOARD_CONNECT_TIMEOUT env or wait forever",
    )
    parser.add_argument(
        "--land-timeout",
        type=_positive_float,
        default=None,
        help="Seconds to wait for touchdown. "
             "Default: OFFBOARD_LAND_TIMEOUT env or wait forever",
    )
    parser.add_argument(
        "--wait-for-health",
        action="store_true",
        help="Wait for every health flag before arming (default: log gyro only)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable coloured console output",
    )
    # Help goes through the usage path so it never exits 0
    parser.add_argument(
        "--help",
        "-h",
        action="store_true",
        help="Show usage and exit",
    )
    return parser


def _default_connection() -> Connection:
    from .common.mavsdk_adapter import MavsdkConnection

    return MavsdkConnection()


def main(
    argv: Optional[List[str]] = None,
    connection_factory: Callable[[], Connection] = _default_connection,
    sleep: SleepFunc = asyncio.sleep,
) -> int:
    """
    Main entry point.

    Args:
        argv: Command line arguments without the program name.
        connection_factory: Builds the Connection (MAVSDK by default).
        sleep: Sleep coroutine function used for all pacing.

    Returns:
        int: Process exit code.
    """
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else DEFAULT_PROG

    parser = create_argument_parser(prog)
    try:
        args = parser.parse_args(argv)
    except UsageError:
        print(usage(prog))
        return 1

    if args.help or args.connection_url is None:
        print(usage(prog))
        if args.help:
            print()
            parser.print_help()
        return 1

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        color=False if args.no_color else None,
    )

    try:
        url = ConnectionUrl.parse(args.connection_url)
    except InvalidConnectionUrl as e:
        logger.error(f"Connection failed: {e}")
        print(usage(prog))
        return 1

    for warning in validate_url(url):
        logger.warning(warning)
    logger.info(f"Connection: {url.describe()}")

    config = FlightConfig.from_args(
        connect_timeout=args.connect_timeout,
        land_timeout=args.land_timeout,
        wait_for_health=args.wait_for_health,
    )
    logger.debug(f"Flight config: {config.to_dict()}")

    connection = connection_factory()
    try:
        asyncio.run(run(connection, args.connection_url, config, sleep=sleep))
    except FlightError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
