#!/usr/bin/env python3
"""
flight.py - Scripted Offboard Position Flight

Runs the scripted flight against any implementation of the capability
interfaces:
1. Connect and wait for a heartbeat
2. Acquire action / offboard / telemetry handles and log gyro health
3. Arm
4. Fly the offboard position script (climb, nudge, return, descent ramp)
5. Land and wait until the vehicle is on the ground
6. Disarm

The script is dead-reckoned: every setpoint is followed by a fixed pause
that gives the vehicle time to reach it. Checked commands (connect, arm,
offboard start, land) raise a FlightError on failure; nothing is retried.
Setpoints and disarm are fire-and-forget.

Usage:
    from offboard_position.flight import run

    await run(MavsdkConnection(), "udp://:14540")
"""

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from .common.capabilities import (
    Action,
    Connection,
    HealthSnapshot,
    Offboard,
    PositionSetpoint,
    RemoteSystem,
    Result,
    Telemetry,
    VelocitySetpoint,
    result_str,
)
from .common.drone_helpers import ClockFunc, SleepFunc, get_telemetry_logger, wait_until
from .common.errors import (
    ArmError,
    DroneConnectionError,
    FlightError,
    LandError,
    OffboardStartError,
)
from .config import FlightConfig

logger = logging.getLogger(__name__)
telemetry_logger = get_telemetry_logger()

OFFBOARD_MODE = "NED"

ScriptStep = Tuple[str, PositionSetpoint, float]


def offboard_log(msg: str) -> None:
    """Log a line tagged with the offboard mode."""
    logger.info(f"[{OFFBOARD_MODE}] {msg}")


def scripted_setpoints(config: Optional[FlightConfig] = None) -> List[ScriptStep]:
    """
    Build the scripted list of position setpoints.

    Args:
        config: Flight geometry and pacing (defaults if None).

    Returns:
        list: (log label, setpoint, pause after sending in seconds) tuples,
        in the order they are flown.
    """
    config = config or FlightConfig()
    height = config.height_m
    home = PositionSetpoint(0.0, 0.0, 0.0, 0.0)
    hover = PositionSetpoint(0.0, 0.0, -height, 0.0)
    nudge = PositionSetpoint(config.nudge_north_m, 0.0, -height, 0.0)

    steps = [
        (f"Going to {home}", home, config.pause_home_s),
        (f"Going to {hover}", hover, config.pause_climb_s),
        (f"Going to {nudge}", nudge, config.pause_nudge_s),
        (f"Going to {hover}", hover, config.pause_return_s),
    ]

    # Linear descent raised by ramp_margin_m; the land command takes it from
    # there. Labels carry the height without the margin
    for i in range(config.ramp_steps):
        nominal = -height + height / config.ramp_steps * i
        setpoint = PositionSetpoint(0.0, 0.0, nominal + config.ramp_margin_m, 0.0)
        steps.append((f"Descending to {nominal:.2f}", setpoint, config.pause_ramp_step_s))

    steps.append((f"Going to {home}", home, 0.0))
    return steps


async def establish_connection(
    connection: Connection,
    url: str,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
    clock: ClockFunc = time.monotonic,
    cancel_event: Optional[asyncio.Event] = None,
) -> RemoteSystem:
    """
    Add the connection and wait for the autopilot's heartbeat.

    Args:
        connection: Connection capability.
        url: Connection URL.
        config: Poll interval and optional connect timeout.
        sleep: Sleep coroutine function.
        clock: Monotonic clock.
        cancel_event: Abort the heartbeat wait when set.

    Returns:
        RemoteSystem: The discovered autopilot.

    Raises:
        DroneConnectionError: If the connection cannot be added.
        WaitTimeoutError: If a connect timeout is configured and expires.
    """
    config = config or FlightConfig()

    result = await connection.connect(url)
    if result != Result.SUCCESS:
        raise DroneConnectionError("Connection failed", result)

    await wait_until(
        connection.is_connected,
        interval=config.poll_interval_s,
        timeout=config.connect_timeout_s,
        on_wait=lambda: logger.info("Wait for system to connect via heartbeat"),
        sleep=sleep,
        clock=clock,
        cancel_event=cancel_event,
        description="heartbeat",
    )
    logger.info("System discovered")
    return connection.discover_system()


async def probe_health(
    telemetry: Telemetry,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> HealthSnapshot:
    """
    Read one health snapshot and report gyro calibration.

    Informational only; the result never gates arming.
    """
    config = config or FlightConfig()

    await sleep(config.settle_s)
    health = await telemetry.health()

    if health.is_gyrometer_calibration_ok:
        logger.info("Gyro is calibrated")
        await sleep(config.settle_s)
    else:
        logger.debug("Gyro calibration not reported")

    return health


async def wait_for_health(
    telemetry: Telemetry,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
    clock: ClockFunc = time.monotonic,
    cancel_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Block until every health flag is set. Only used with --wait-for-health.

    Returns:
        int: Number of health polls.
    """
    config = config or FlightConfig()

    async def healthy() -> bool:
        health = await telemetry.health()
        if not health.all_ok:
            telemetry_logger.info(
                f"Gyro: {health.is_gyrometer_calibration_ok} "
                f"Local Position: {health.is_local_position_ok} "
                f"Home Position: {health.is_home_position_ok}"
            )
        return health.all_ok

    polls = await wait_until(
        healthy,
        interval=config.poll_interval_s,
        on_wait=lambda: logger.info("Waiting for system to be ready"),
        sleep=sleep,
        clock=clock,
        cancel_event=cancel_event,
        description="system health",
    )
    logger.info("System is ready")
    return polls


async def arm(action: Action) -> None:
    """Arm the vehicle, raising ArmError on any failure."""
    result = await action.arm()
    if result != Result.SUCCESS:
        raise ArmError("Arming failed", result)
    logger.info("Armed")


async def offboard_ctrl_ned(
    offboard: Offboard,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> bool:
    """
    Fly the scripted setpoints in local NED coordinates.

    A zero velocity setpoint is sent first, otherwise the autopilot rejects
    the switch to offboard mode.

    Args:
        offboard: Offboard capability.
        config: Flight geometry and pacing.
        sleep: Sleep coroutine function.

    Returns:
        bool: True once every setpoint has been sent.

    Raises:
        OffboardStartError: If offboard mode cannot be started.
    """
    await offboard.set_velocity_ned(VelocitySetpoint(0.0, 0.0, 0.0, 0.0))

    result = await offboard.start()
    if result != Result.SUCCESS:
        raise OffboardStartError("Offboard start failed", result)
    offboard_log("Offboard started")

    for label, setpoint, pause in scripted_setpoints(config):
        offboard_log(label)
        await offboard.set_position_ned(setpoint)
        if pause > 0:
            await sleep(pause)

    return True


async def land_and_wait(
    action: Action,
    telemetry: Telemetry,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
    clock: ClockFunc = time.monotonic,
    cancel_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Command a landing and poll the in-air flag until touchdown.

    Returns:
        int: Number of in-air polls.

    Raises:
        LandError: If the land command is rejected.
        WaitTimeoutError: If a land timeout is configured and expires.
    """
    config = config or FlightConfig()

    result = await action.land()
    if result != Result.SUCCESS:
        raise LandError("Landing failed", result)

    async def landed() -> bool:
        return not await telemetry.in_air()

    polls = await wait_until(
        landed,
        interval=config.poll_interval_s,
        timeout=config.land_timeout_s,
        on_wait=lambda: telemetry_logger.info("Vehicle is landing..."),
        sleep=sleep,
        clock=clock,
        cancel_event=cancel_event,
        description="touchdown",
    )
    logger.info("Landed!")
    return polls


async def disarm(
    action: Action,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> None:
    """
    Disarm without checking the result.

    The autopilot auto-disarms after landing, so a rejected disarm is only
    reported. Waits disarm_grace_s before returning.
    """
    config = config or FlightConfig()

    result = await action.disarm()
    if result != Result.SUCCESS:
        logger.warning(f"Disarm not confirmed ({result_str(result)}), relying on auto-disarm")

    await sleep(config.disarm_grace_s)
    logger.info("Finished...")


async def run(
    connection: Connection,
    url: str,
    config: Optional[FlightConfig] = None,
    sleep: SleepFunc = asyncio.sleep,
    clock: ClockFunc = time.monotonic,
    cancel_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Execute the whole flight.

    Args:
        connection: Connection capability (MAVSDK or simulated).
        url: Connection URL.
        config: Flight configuration (defaults if None).
        sleep: Sleep coroutine function used for all pacing.
        clock: Monotonic clock used for wait timeouts.
        cancel_event: Abort the polling waits when set.

    Raises:
        FlightError: On the first checked failure.
    """
    config = config or FlightConfig()

    system = await establish_connection(
        connection, url, config, sleep=sleep, clock=clock, cancel_event=cancel_event
    )
    action = system.action()
    offboard = system.offboard()
    telemetry = system.telemetry()

    await probe_health(telemetry, config, sleep=sleep)
    if config.wait_for_health:
        await wait_for_health(
            telemetry, config, sleep=sleep, clock=clock, cancel_event=cancel_event
        )

    await arm(action)

    if not await offboard_ctrl_ned(offboard, config, sleep=sleep):
        raise FlightError("Offboard control failed")

    await land_and_wait(
        action, telemetry, config, sleep=sleep, clock=clock, cancel_event=cancel_event
    )
    await disarm(action, config, sleep=sleep)
