#!/usr/bin/env python3
"""
mavsdk_adapter.py - MAVSDK Implementation of the Capability Interfaces

Bridges the flight script's capability interfaces onto MAVSDK-Python:

    MavsdkConnection   -> mavsdk.System.connect / core.connection_state
    MavsdkAction       -> System.action (arm, disarm, land)
    MavsdkOffboard     -> System.offboard (start, stop, setpoints)
    MavsdkTelemetry    -> System.telemetry (health, in_air)

MAVSDK signals command failures by raising ActionError / OffboardError; these
are translated into Result values here so the flight script decides what is
fatal. Telemetry in MAVSDK is stream based, so single reads take the first
value of the stream.

Usage:
    connection = MavsdkConnection()
    result = await connection.connect("udp://:14540")
"""

import logging
from typing import Optional

from mavsdk import System
from mavsdk.action import ActionError
from mavsdk.offboard import OffboardError, PositionNedYaw, VelocityNedYaw

from ..mavlink_connection import ConnectionUrl, InvalidConnectionUrl
from .capabilities import (
    Action,
    Connection,
    HealthSnapshot,
    Offboard,
    PositionSetpoint,
    RemoteSystem,
    Result,
    Telemetry,
    VelocitySetpoint,
)

logger = logging.getLogger(__name__)


def to_result(error: Exception) -> Result:
    """
    Translate a MAVSDK plugin error into a Result.

    MAVSDK plugin errors carry the plugin's result object in `_result`; its
    enum member names match Result where both know the outcome.

    Args:
        error: ActionError or OffboardError raised by MAVSDK.

    Returns:
        Result: Matching Result, UNKNOWN if there is no equivalent.
    """
    sdk_result = getattr(error, "_result", None)
    if sdk_result is None:
        return Result.UNKNOWN

    logger.debug(f"MAVSDK result: {sdk_result.result} ({sdk_result.result_str})")
    return Result.__members__.get(sdk_result.result.name, Result.UNKNOWN)


async def _first(stream, name: str):
    """Return the first value of a MAVSDK telemetry stream."""
    async for value in stream:
        return value
    raise RuntimeError(f"{name} stream ended without a value")


class MavsdkAction(Action):
    """Action plugin bound to a MAVSDK System."""

    def __init__(self, system: System):
        self._system = system

    async def arm(self) -> Result:
        try:
            await self._system.action.arm()
        except ActionError as e:
            return to_result(e)
        return Result.SUCCESS

    async def disarm(self) -> Result:
        try:
            await self._system.action.disarm()
        except ActionError as e:
            return to_result(e)
        return Result.SUCCESS

    async def land(self) -> Result:
        try:
            await self._system.action.land()
        except ActionError as e:
            return to_result(e)
        return Result.SUCCESS


class MavsdkOffboard(Offboard):
    """Offboard plugin bound to a MAVSDK System."""

    def __init__(self, system: System):
        self._system = system

    async def start(self) -> Result:
        try:
            await self._system.offboard.start()
        except OffboardError as e:
            return to_result(e)
        return Result.SUCCESS

    async def stop(self) -> Result:
        try:
            await self._system.offboard.stop()
        except OffboardError as e:
            return to_result(e)
        return Result.SUCCESS

    async def set_position_ned(self, setpoint: PositionSetpoint) -> None:
        try:
            await self._system.offboard.set_position_ned(
                PositionNedYaw(
                    setpoint.north_m,
                    setpoint.east_m,
                    setpoint.down_m,
                    setpoint.yaw_deg,
                )
            )
        except OffboardError as e:
            # Setpoints are streamed fire-and-forget
            logger.debug(f"Position setpoint {setpoint} not acknowledged: {to_result(e)}")

    async def set_velocity_ned(self, setpoint: VelocitySetpoint) -> None:
        try:
            await self._system.offboard.set_velocity_ned(
                VelocityNedYaw(
                    setpoint.north_m_s,
                    setpoint.east_m_s,
                    setpoint.down_m_s,
                    setpoint.yaw_deg,
                )
            )
        except OffboardError as e:
            logger.debug(f"Velocity setpoint {setpoint} not acknowledged: {to_result(e)}")


class MavsdkTelemetry(Telemetry):
    """Telemetry plugin bound to a MAVSDK System."""

    def __init__(self, system: System):
        self._system = system

    async def health(self) -> HealthSnapshot:
        health = await _first(self._system.telemetry.health(), "health")
        return HealthSnapshot(
            is_gyrometer_calibration_ok=health.is_gyrometer_calibration_ok,
            is_accelerometer_calibration_ok=health.is_accelerometer_calibration_ok,
            is_magnetometer_calibration_ok=health.is_magnetometer_calibration_ok,
            is_local_position_ok=health.is_local_position_ok,
            is_global_position_ok=health.is_global_position_ok,
            is_home_position_ok=health.is_home_position_ok,
            is_armable=health.is_armable,
        )

    async def in_air(self) -> bool:
        return await _first(self._system.telemetry.in_air(), "in_air")


class MavsdkRemoteSystem(RemoteSystem):
    """The autopilot discovered through a MavsdkConnection."""

    def __init__(self, system: System):
        self._system = system

    def action(self) -> Action:
        return MavsdkAction(self._system)

    def offboard(self) -> Offboard:
        return MavsdkOffboard(self._system)

    def telemetry(self) -> Telemetry:
        return MavsdkTelemetry(self._system)


class MavsdkConnection(Connection):
    """
    Connection to a single autopilot through mavsdk_server.

    Attributes:
        system: Underlying MAVSDK System instance.
    """

    def __init__(
        self,
        mavsdk_server_address: Optional[str] = None,
        port: int = 50051,
        system: Optional[System] = None,
    ):
        """
        Initialize the connection.

        Args:
            mavsdk_server_address: Address of an already running mavsdk_server
                (None = start the bundled server).
            port: gRPC port of mavsdk_server.
            system: Pre-built System, mainly for tests.
        """
        if system is None:
            system = System(mavsdk_server_address=mavsdk_server_address, port=port)
        self.system = system

    async def connect(self, url: str) -> Result:
        try:
            ConnectionUrl.parse(url)
        except InvalidConnectionUrl as e:
            logger.error(str(e))
            return Result.CONNECTION_URL_INVALID

        logger.info(f"Connecting to drone: {url}")
        try:
            await self.system.connect(system_address=url)
        except Exception as e:
            logger.error(f"MAVSDK connect failed: {e}")
            return Result.CONNECTION_ERROR
        return Result.SUCCESS

    async def is_connected(self) -> bool:
        state = await _first(self.system.core.connection_state(), "connection_state")
        return state.is_connected

    def discover_system(self) -> RemoteSystem:
        return MavsdkRemoteSystem(self.system)
