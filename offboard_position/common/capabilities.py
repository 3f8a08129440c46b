#!/usr/bin/env python3
"""
capabilities.py - Drone Capability Interfaces

Minimal interfaces the flight script talks to, so the sequencing logic does
not depend on a specific SDK binding:

    Connection    - connect to an autopilot and discover the remote system
    RemoteSystem  - the discovered autopilot, hands out capability handles
    Action        - arm / disarm / land
    Offboard      - start / stop offboard mode and stream setpoints
    Telemetry     - health snapshot and in-air flag

The production implementation lives in mavsdk_adapter.py, the in-process
one used by tests in simulated.py.

Usage:
    from offboard_position.common.capabilities import Result, result_str

    result = await action.arm()
    if result != Result.SUCCESS:
        print(f"Arming failed: {result_str(result)}")
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class Result(Enum):
    """Outcome of a checked SDK call (connect, arm, land, offboard start...)."""
    SUCCESS = "success"
    UNKNOWN = "unknown"
    NO_SYSTEM = "no_system"
    CONNECTION_ERROR = "connection_error"
    CONNECTION_URL_INVALID = "connection_url_invalid"
    BUSY = "busy"
    COMMAND_DENIED = "command_denied"
    COMMAND_DENIED_NOT_LANDED = "command_denied_not_landed"
    NO_SETPOINT_SET = "no_setpoint_set"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


_RESULT_DESCRIPTIONS = {
    Result.SUCCESS: "Success",
    Result.UNKNOWN: "Unknown error",
    Result.NO_SYSTEM: "No system connected",
    Result.CONNECTION_ERROR: "Connection error",
    Result.CONNECTION_URL_INVALID: "Invalid connection URL",
    Result.BUSY: "System busy",
    Result.COMMAND_DENIED: "Command denied",
    Result.COMMAND_DENIED_NOT_LANDED: "Command denied, vehicle not landed",
    Result.NO_SETPOINT_SET: "No setpoint set",
    Result.TIMEOUT: "Timeout",
    Result.UNSUPPORTED: "Unsupported",
    Result.FAILED: "Failed",
}


def result_str(result: Result) -> str:
    """
    Human-readable description of a Result.

    Args:
        result: Result to describe.

    Returns:
        str: Description suitable for console output.
    """
    return _RESULT_DESCRIPTIONS.get(result, "Unknown error")


@dataclass(frozen=True)
class PositionSetpoint:
    """
    Desired pose in the local NED frame.

    Attributes:
        north_m: North offset in meters.
        east_m: East offset in meters.
        down_m: Down offset in meters (negative is up).
        yaw_deg: Heading in degrees.
    """
    north_m: float = 0.0
    east_m: float = 0.0
    down_m: float = 0.0
    yaw_deg: float = 0.0

    def __str__(self) -> str:
        return f"{self.north_m:g}, {self.east_m:g}, {self.down_m:g}"


@dataclass(frozen=True)
class VelocitySetpoint:
    """Desired velocity in the local NED frame with a yaw target."""
    north_m_s: float = 0.0
    east_m_s: float = 0.0
    down_m_s: float = 0.0
    yaw_deg: float = 0.0


@dataclass(frozen=True)
class HealthSnapshot:
    """
    Read-only calibration and readiness flags reported by the autopilot.

    Attributes:
        is_gyrometer_calibration_ok: Gyro calibrated.
        is_accelerometer_calibration_ok: Accelerometer calibrated.
        is_magnetometer_calibration_ok: Magnetometer calibrated.
        is_local_position_ok: Local position estimate good enough.
        is_global_position_ok: Global position estimate good enough.
        is_home_position_ok: Home position initialized.
        is_armable: Autopilot reports it can be armed.
    """
    is_gyrometer_calibration_ok: bool = False
    is_accelerometer_calibration_ok: bool = False
    is_magnetometer_calibration_ok: bool = False
    is_local_position_ok: bool = False
    is_global_position_ok: bool = False
    is_home_position_ok: bool = False
    is_armable: bool = False

    @property
    def all_ok(self) -> bool:
        """True when every flag is set."""
        return all((
            self.is_gyrometer_calibration_ok,
            self.is_accelerometer_calibration_ok,
            self.is_magnetometer_calibration_ok,
            self.is_local_position_ok,
            self.is_global_position_ok,
            self.is_home_position_ok,
            self.is_armable,
        ))


class Action(ABC):
    """Command capability: arm, disarm and land."""

    @abstractmethod
    async def arm(self) -> Result:
        ...

    @abstractmethod
    async def disarm(self) -> Result:
        ...

    @abstractmethod
    async def land(self) -> Result:
        ...


class Offboard(ABC):
    """
    Offboard control capability.

    A setpoint must be sent before start() or the autopilot rejects the
    mode switch. Setpoint calls do not report a result.
    """

    @abstractmethod
    async def start(self) -> Result:
        ...

    @abstractmethod
    async def stop(self) -> Result:
        ...

    @abstractmethod
    async def set_position_ned(self, setpoint: PositionSetpoint) -> None:
        ...

    @abstractmethod
    async def set_velocity_ned(self, setpoint: VelocitySetpoint) -> None:
        ...


class Telemetry(ABC):
    """Telemetry capability, read one value at a time."""

    @abstractmethod
    async def health(self) -> HealthSnapshot:
        ...

    @abstractmethod
    async def in_air(self) -> bool:
        ...


class RemoteSystem(ABC):
    """Discovered autopilot. Capability handles reference it, never own it."""

    @abstractmethod
    def action(self) -> Action:
        ...

    @abstractmethod
    def offboard(self) -> Offboard:
        ...

    @abstractmethod
    def telemetry(self) -> Telemetry:
        ...


class Connection(ABC):
    """Entry point: transport connection plus heartbeat-based discovery."""

    @abstractmethod
    async def connect(self, url: str) -> Result:
        ...

    @abstractmethod
    async def is_connected(self) -> bool:
        ...

    @abstractmethod
    def discover_system(self) -> RemoteSystem:
        ...
