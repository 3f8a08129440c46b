#!/usr/bin/env python3
"""
mavlink_connection.py - Connection URL Grammar

Parses, validates and formats the connection URLs accepted on the command
line and handed to MAVSDK:

    tcp://[server_host][:server_port]
    udp://[bind_host][:bind_port]
    serial:///path/to/serial/dev[:baudrate]

Current MAVSDK releases also understand the explicit direction schemes
udpin://, udpout://, tcpin:// and tcpout://, which are accepted as well.

Usage:
    from offboard_position.mavlink_connection import ConnectionUrl

    url = ConnectionUrl.parse("udp://:14540")
    print(url.port)   # 14540
    print(str(url))   # udp://:14540
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class ConnectionType(Enum):
    """MAVLink transport kinds."""
    TCP = "tcp"
    TCP_IN = "tcpin"
    TCP_OUT = "tcpout"
    UDP = "udp"
    UDP_IN = "udpin"
    UDP_OUT = "udpout"
    SERIAL = "serial"

    @property
    def is_udp(self) -> bool:
        return self in (ConnectionType.UDP, ConnectionType.UDP_IN, ConnectionType.UDP_OUT)


# Default values filled in when the URL omits them
DEFAULTS = {
    "udp_port": 14540,  # PX4 SITL offboard API port
    "tcp_port": 5760,
    "serial_baud": 57600,  # Standard for TELEM2
}

STANDARD_BAUD_RATES = [9600, 19200, 38400, 57600, 115200, 230400, 460800, 921600]

SIMULATOR_EXAMPLE_URL = "udp://:14540"


class InvalidConnectionUrl(ValueError):
    """Raised when a connection URL does not match the supported grammar."""


@dataclass(frozen=True)
class ConnectionUrl:
    """
    Parsed connection URL.

    Attributes:
        kind: Transport kind.
        host: Host or bind address for network transports ("" = any).
        port: Port for network transports.
        device: Device path for serial transports.
        baudrate: Baud rate for serial transports.
    """
    kind: ConnectionType
    host: str = ""
    port: Optional[int] = None
    device: str = ""
    baudrate: Optional[int] = None

    @classmethod
    def parse(cls, url: str) -> "ConnectionUrl":
        """
        Parse a connection URL.

        Args:
            url: URL string, e.g. "udp://:14540" or "serial:///dev/ttyUSB0:57600".

        Returns:
            ConnectionUrl: Parsed URL with defaults filled in.

        Raises:
            InvalidConnectionUrl: If the URL does not match the grammar.
        """
        if not url or "://" not in url:
            raise InvalidConnectionUrl(f"Missing scheme in connection URL: {url!r}")

        scheme, _, rest = url.partition("://")
        try:
            kind = ConnectionType(scheme)
        except ValueError:
            # MAVSDK matches schemes case-sensitively
            raise InvalidConnectionUrl(
                f"Unknown connection scheme '{scheme}'. Use tcp, udp or serial (lowercase)."
            ) from None

        if kind == ConnectionType.SERIAL:
            return cls._parse_serial(url, rest)
        return cls._parse_network(url, kind, rest)

    @classmethod
    def _parse_serial(cls, url: str, rest: str) -> "ConnectionUrl":
        # Device paths may contain colons; only an all-digit suffix is a baud rate
        device, baudrate = rest, DEFAULTS["serial_baud"]
        head, sep, tail = rest.rpartition(":")
        if sep and tail.isdigit():
            device, baudrate = head, int(tail)

        if not device:
            raise InvalidConnectionUrl(f"Missing serial device in {url!r}")
        if baudrate <= 0:
            raise InvalidConnectionUrl(f"Invalid baud rate {baudrate} in {url!r}")

        return cls(kind=ConnectionType.SERIAL, device=device, baudrate=baudrate)

    @classmethod
    def _parse_network(cls, url: str, kind: ConnectionType, rest: str) -> "ConnectionUrl":
        if "/" in rest:
            raise InvalidConnectionUrl(f"Unexpected path in {url!r}")

        default_port = DEFAULTS["udp_port"] if kind.is_udp else DEFAULTS["tcp_port"]
        host, sep, port_str = rest.rpartition(":")
        if not sep:
            host, port_str = rest, ""

        if port_str == "":
            port = default_port
        elif port_str.isdigit():
            port = int(port_str)
        else:
            raise InvalidConnectionUrl(f"Invalid port '{port_str}' in {url!r}")

        if port < 1 or port > 65535:
            raise InvalidConnectionUrl(f"Port {port} out of range in {url!r}")

        return cls(kind=kind, host=host, port=port)

    def __str__(self) -> str:
        if self.kind == ConnectionType.SERIAL:
            return f"serial://{self.device}:{self.baudrate}"
        return f"{self.kind.value}://{self.host}:{self.port}"

    def describe(self) -> str:
        """Short human-readable description of the endpoint."""
        if self.kind == ConnectionType.SERIAL:
            return f"SERIAL: {self.device} @ {self.baudrate} baud"
        return f"{self.kind.value.upper()}: {self.host or '*'}:{self.port}"


def check_serial_port(device: str) -> dict:
    """
    Check if a serial port exists and is accessible.

    Args:
        device: Serial device path to check.

    Returns:
        dict: Status information about the port.
    """
    result = {
        "device": device,
        "exists": False,
        "readable": False,
        "writable": False,
        "error": None,
    }

    if not os.path.exists(device):
        result["error"] = "Device does not exist"
        return result

    result["exists"] = True
    result["readable"] = os.access(device, os.R_OK)
    result["writable"] = os.access(device, os.W_OK)

    if not result["readable"] or not result["writable"]:
        result["error"] = (
            "Permission denied. Add user to dialout group: "
            "sudo usermod -aG dialout $USER"
        )

    return result


def validate_url(url: ConnectionUrl) -> list:
    """
    Collect non-fatal warnings about a parsed URL.

    Grammar errors are raised by ConnectionUrl.parse; this only flags things
    that may still work, such as a missing serial device that shows up later.

    Args:
        url: Parsed connection URL.

    Returns:
        list: Warning strings, empty if nothing looks off.
    """
    warnings = []

    if url.kind == ConnectionType.SERIAL:
        status = check_serial_port(url.device)
        if status["error"]:
            warnings.append(f"{url.device}: {status['error']}")
        if url.baudrate not in STANDARD_BAUD_RATES:
            warnings.append(
                f"Non-standard baud rate: {url.baudrate}. "
                f"Common rates: {STANDARD_BAUD_RATES}"
            )
    elif url.kind == ConnectionType.UDP:
        # udp:// still works but MAVSDK logs a deprecation in favour of udpin://
        logger.debug("udp:// is treated as udpin:// by current MAVSDK releases")

    return warnings


def usage(bin_name: str) -> str:
    """
    Build the usage text printed on bad invocation.

    Args:
        bin_name: Program name shown in the first line.

    Returns:
        str: Multi-line usage text.
    """
    return "\n".join([
        f"Usage : {bin_name} <connection_url>",
        "Connection URL format should be :",
        " For TCP : tcp://[server_host][:server_port]",
        " For UDP : udp://[bind_host][:bind_port]",
        " For Serial : serial:///path/to/serial/dev[:baudrate]",
        f"For example, to connect to the simulator use URL: {SIMULATOR_EXAMPLE_URL}",
    ])
