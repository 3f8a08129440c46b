#!/usr/bin/env python3
"""
config.py - Flight Script Configuration

Centralized configuration for the offboard position script: flight geometry,
pacing and the optional wait limits. The geometry and pacing values define
the scripted flight and are not exposed on the command line.

Environment Variables:
    OFFBOARD_CONNECT_TIMEOUT  - Seconds to wait for a heartbeat (default: forever)
    OFFBOARD_LAND_TIMEOUT     - Seconds to wait for touchdown (default: forever)
    OFFBOARD_WAIT_FOR_HEALTH  - "1"/"true" to gate arming on full health
    OFFBOARD_POLL_INTERVAL    - Seconds between connection/landing polls (default: 1.0)

Usage:
    from offboard_position.config import FlightConfig

    config = FlightConfig.from_env()
"""

import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    """Read a positive float from the environment, keeping the default otherwise."""
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}")
        return default
    if not number > 0:
        logger.warning(f"Ignoring non-positive {name}={value!r}")
        return default
    return number


@dataclass
class FlightConfig:
    """
    Configuration for the scripted offboard flight.

    Attributes:
        height_m: Hover height of the script (meters above home).
        nudge_north_m: Lateral offset flown at hover height.
        ramp_steps: Number of interpolated descent setpoints.
        ramp_margin_m: Offset added to every descent ramp setpoint.
        pause_home_s: Pause after the first (home) setpoint.
        pause_climb_s: Pause after the climb setpoint.
        pause_nudge_s: Pause after the lateral nudge.
        pause_return_s: Pause after returning to center.
        pause_ramp_step_s: Pause after each descent ramp setpoint.
        poll_interval_s: Seconds between heartbeat / in-air polls.
        settle_s: Pause after discovery before reading health.
        disarm_grace_s: Pause after disarming before exit.
        connect_timeout_s: Heartbeat wait limit (None = wait forever).
        land_timeout_s: Touchdown wait limit (None = wait forever).
        wait_for_health: Gate arming on every health flag being set.
    """

    # Flight geometry
    height_m: float = 0.75
    nudge_north_m: float = 0.2
    ramp_steps: int = 5
    ramp_margin_m: float = 0.15

    # Pacing between setpoints; the sequence is dead-reckoned on these
    pause_home_s: float = 1.0
    pause_climb_s: float = 4.0
    pause_nudge_s: float = 2.0
    pause_return_s: float = 2.0
    pause_ramp_step_s: float = 0.4

    poll_interval_s: float = 1.0
    settle_s: float = 1.0
    disarm_grace_s: float = 3.0

    # Optional limits, off by default
    connect_timeout_s: Optional[float] = None
    land_timeout_s: Optional[float] = None
    wait_for_health: bool = False

    @classmethod
    def from_env(cls) -> "FlightConfig":
        """
        Create configuration from environment variables.

        Returns:
            FlightConfig: Defaults overridden by the environment.
        """
        config = cls()
        config.connect_timeout_s = _env_float("OFFBOARD_CONNECT_TIMEOUT", None)
        config.land_timeout_s = _env_float("OFFBOARD_LAND_TIMEOUT", None)
        config.poll_interval_s = _env_float(
            "OFFBOARD_POLL_INTERVAL", config.poll_interval_s
        )
        config.wait_for_health = (
            os.environ.get("OFFBOARD_WAIT_FOR_HEALTH", "").lower() in _TRUE_VALUES
        )
        return config

    @classmethod
    def from_args(
        cls,
        connect_timeout: Optional[float] = None,
        land_timeout: Optional[float] = None,
        wait_for_health: Optional[bool] = None,
    ) -> "FlightConfig":
        """
        Create configuration from arguments with environment fallback.

        Args:
            connect_timeout: Heartbeat wait limit in seconds.
            land_timeout: Touchdown wait limit in seconds.
            wait_for_health: Gate arming on full health.

        Returns:
            FlightConfig: Configuration with argument overrides.
        """
        config = cls.from_env()

        if connect_timeout is not None:
            config.connect_timeout_s = connect_timeout
        if land_timeout is not None:
            config.land_timeout_s = land_timeout
        if wait_for_health:
            config.wait_for_health = True

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)
