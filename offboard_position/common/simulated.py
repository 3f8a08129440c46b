#!/usr/bin/env python3
"""
simulated.py - In-Process Simulated Drone

Implements the capability interfaces without any autopilot so the flight
script can be exercised end to end in tests. Every call is recorded, and
each checked command returns a configurable Result.

The simulated offboard plugin enforces the autopilot rule that a setpoint
must be sent before offboard mode can start.

Usage:
    drone = SimulatedDrone(arm_result=Result.COMMAND_DENIED)
    await run(drone, "udp://:14540")   # raises ArmError
    print(drone.calls)                 # ['connect', 'is_connected', ...]
"""

import logging
from typing import List, Optional

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

HEALTHY = HealthSnapshot(
    is_gyrometer_calibration_ok=True,
    is_accelerometer_calibration_ok=True,
    is_magnetometer_calibration_ok=True,
    is_local_position_ok=True,
    is_global_position_ok=True,
    is_home_position_ok=True,
    is_armable=True,
)


class SimulatedAction(Action):
    """Action plugin of a SimulatedDrone."""

    def __init__(self, drone: "SimulatedDrone"):
        self._drone = drone

    async def arm(self) -> Result:
        result = self._drone.record("arm", self._drone.arm_result)
        if result == Result.SUCCESS:
            self._drone.armed = True
        return result

    async def disarm(self) -> Result:
        result = self._drone.record("disarm", self._drone.disarm_result)
        if result == Result.SUCCESS:
            self._drone.armed = False
        return result

    async def land(self) -> Result:
        result = self._drone.record("land", self._drone.land_result)
        if result == Result.SUCCESS:
            self._drone.offboard_active = False
        return result


class SimulatedOffboard(Offboard):
    """Offboard plugin of a SimulatedDrone."""

    def __init__(self, drone: "SimulatedDrone"):
        self._drone = drone
        self._setpoint_sent = False

    async def start(self) -> Result:
        if not self._setpoint_sent:
            return self._drone.record("start", Result.NO_SETPOINT_SET)
        result = self._drone.record("start", self._drone.offboard_start_result)
        if result == Result.SUCCESS:
            self._drone.offboard_active = True
        return result

    async def stop(self) -> Result:
        result = self._drone.record("stop", self._drone.offboard_stop_result)
        if result == Result.SUCCESS:
            self._drone.offboard_active = False
        return result

    async def set_position_ned(self, setpoint: PositionSetpoint) -> None:
        self._drone.record("set_position_ned")
        self._drone.position_setpoints.append(setpoint)
        self._setpoint_sent = True

    async def set_velocity_ned(self, setpoint: VelocitySetpoint) -> None:
        self._drone.record("set_velocity_ned")
        self._drone.velocity_setpoints.append(setpoint)
        self._setpoint_sent = True


class SimulatedTelemetry(Telemetry):
    """Telemetry plugin of a SimulatedDrone."""

    def __init__(self, drone: "SimulatedDrone"):
        self._drone = drone

    async def health(self) -> HealthSnapshot:
        self._drone.record("health")
        if self._drone.health_sequence:
            return self._drone.health_sequence.pop(0)
        return self._drone.health

    async def in_air(self) -> bool:
        self._drone.record("in_air")
        if self._drone.in_air_polls > 0:
            self._drone.in_air_polls -= 1
            return True
        return False


class SimulatedDrone(Connection, RemoteSystem):
    """
    Simulated autopilot connection and remote system.

    Attributes:
        connect_result: Result returned by connect().
        heartbeat_after: Number of is_connected() polls answered False first.
        arm_result: Result returned by arm().
        disarm_result: Result returned by disarm().
        land_result: Result returned by land().
        offboard_start_result: Result returned by offboard start().
        offboard_stop_result: Result returned by offboard stop().
        in_air_polls: Number of in_air() polls answered True first.
        health: Snapshot returned by health() once health_sequence is empty.
        health_sequence: Snapshots returned by successive health() calls.
        calls: Names of every capability call, in order.
        position_setpoints: Position setpoints received, in order.
        velocity_setpoints: Velocity setpoints received, in order.
    """

    def __init__(
        self,
        connect_result: Result = Result.SUCCESS,
        heartbeat_after: int = 0,
        arm_result: Result = Result.SUCCESS,
        disarm_result: Result = Result.SUCCESS,
        land_result: Result = Result.SUCCESS,
        offboard_start_result: Result = Result.SUCCESS,
        offboard_stop_result: Result = Result.SUCCESS,
        in_air_polls: int = 0,
        health: HealthSnapshot = HEALTHY,
        health_sequence: Optional[List[HealthSnapshot]] = None,
    ):
        self.connect_result = connect_result
        self.heartbeat_after = heartbeat_after
        self.arm_result = arm_result
        self.disarm_result = disarm_result
        self.land_result = land_result
        self.offboard_start_result = offboard_start_result
        self.offboard_stop_result = offboard_stop_result
        self.in_air_polls = in_air_polls
        self.health = health
        self.health_sequence = list(health_sequence or [])

        self.calls: List[str] = []
        self.position_setpoints: List[PositionSetpoint] = []
        self.velocity_setpoints: List[VelocitySetpoint] = []
        self.connected_url: Optional[str] = None
        self.armed = False
        self.offboard_active = False

        self._action = SimulatedAction(self)
        self._offboard = SimulatedOffboard(self)
        self._telemetry = SimulatedTelemetry(self)

    def record(self, name: str, result: Optional[Result] = None) -> Optional[Result]:
        """Log a call and pass its result through."""
        self.calls.append(name)
        logger.debug("Simulated %s -> %s", name, result)
        return result

    def count(self, name: str) -> int:
        """Number of recorded calls with the given name."""
        return self.calls.count(name)

    async def connect(self, url: str) -> Result:
        self.connected_url = url
        return self.record("connect", self.connect_result)

    async def is_connected(self) -> bool:
        self.record("is_connected")
        if self.heartbeat_after > 0:
            self.heartbeat_after -= 1
            return False
        return True

    def discover_system(self) -> RemoteSystem:
        self.record("discover_system")
        return self

    def action(self) -> Action:
        return self._action

    def offboard(self) -> Offboard:
        return self._offboard

    def telemetry(self) -> Telemetry:
        return self._telemetry
