#!/usr/bin/env python3
"""
drone_helpers.py - Common Flight Script Helpers

Provides shared functionality for the flight script:
- Logging setup with the coloured console output operators expect
- A polling wait loop with injectable sleep/clock, optional timeout and
  optional cancellation

Usage:
    from offboard_position.common import setup_logging, wait_until

    setup_logging()
    await wait_until(connection.is_connected, interval=1.0,
                     on_wait=lambda: logger.info("Waiting..."))
"""

import asyncio
import logging
import sys
import time
from typing import Awaitable, Callable, Optional

from .errors import WaitCancelledError, WaitTimeoutError

# Module-level logger
logger = logging.getLogger(__name__)

# Telemetry status lines go through this logger and are printed in blue
TELEMETRY_LOGGER_NAME = "offboard_position.telemetry"

ERROR_CONSOLE_TEXT = "\033[31m"  # Red
WARNING_CONSOLE_TEXT = "\033[33m"  # Yellow
TELEMETRY_CONSOLE_TEXT = "\033[34m"  # Blue
NORMAL_CONSOLE_TEXT = "\033[0m"

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


def get_telemetry_logger() -> logging.Logger:
    """Logger for telemetry status lines."""
    return logging.getLogger(TELEMETRY_LOGGER_NAME)


class ColorFormatter(logging.Formatter):
    """
    Formatter that wraps errors in red, warnings in yellow and telemetry
    lines in blue.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            color = ERROR_CONSOLE_TEXT
        elif record.levelno >= logging.WARNING:
            color = WARNING_CONSOLE_TEXT
        elif record.name == TELEMETRY_LOGGER_NAME:
            color = TELEMETRY_CONSOLE_TEXT
        else:
            return message
        return f"{color}{message}{NORMAL_CONSOLE_TEXT}"


def setup_logging(
    level: int = logging.INFO,
    format_string: str = "%(asctime)s [%(levelname)s] %(message)s",
    datefmt: str = "%H:%M:%S",
    color: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure logging for the flight script.

    Args:
        level: Logging level (default: INFO).
        format_string: Log message format.
        datefmt: Date format string.
        color: Colour console output. None = only when stderr is a TTY.

    Returns:
        logging.Logger: Configured root logger.
    """
    if color is None:
        color = sys.stderr.isatty()

    formatter_cls = ColorFormatter if color else logging.Formatter
    handler = logging.StreamHandler()
    handler.setFormatter(formatter_cls(format_string, datefmt=datefmt))

    logging.basicConfig(level=level, handlers=[handler])
    root = logging.getLogger()
    root.setLevel(level)
    return root


async def wait_until(
    predicate: Callable[[], Awaitable[bool]],
    interval: float = 1.0,
    timeout: Optional[float] = None,
    on_wait: Optional[Callable[[], None]] = None,
    sleep: SleepFunc = asyncio.sleep,
    clock: ClockFunc = time.monotonic,
    cancel_event: Optional[asyncio.Event] = None,
    description: str = "condition",
) -> int:
    """
    Poll an async predicate until it returns True.

    The predicate is checked first; when it is false, on_wait is called and
    the loop sleeps for `interval` before checking again. There is no timeout
    unless one is given.

    Args:
        predicate: Coroutine function returning the condition.
        interval: Seconds between polls.
        timeout: Give up after this many seconds (None = wait forever).
        on_wait: Called after every false poll, before sleeping.
        sleep: Sleep coroutine function (injectable for tests).
        clock: Monotonic clock in seconds (injectable for tests).
        cancel_event: Abort the wait once this event is set.
        description: Name of the condition for error messages.

    Returns:
        int: Number of times the predicate was evaluated.

    Raises:
        WaitTimeoutError: If the timeout expires first.
        WaitCancelledError: If cancel_event gets set first.
    """
    start_time = clock()
    polls = 0

    while True:
        polls += 1
        if await predicate():
            logger.debug(f"{description} satisfied after {polls} poll(s)")
            return polls

        if cancel_event is not None and cancel_event.is_set():
            raise WaitCancelledError(f"Waiting for {description} cancelled")

        elapsed = clock() - start_time
        if timeout is not None and elapsed >= timeout:
            raise WaitTimeoutError(
                f"Timeout waiting for {description} after {elapsed:.1f}s"
            )

        if on_wait is not None:
            on_wait()
        await sleep(interval)
