#!/usr/bin/env python3
"""
test_flight.py - Tests for the Scripted Offboard Flight

Tests for:
- Setpoint script contents and pacing
- Connection, health probe, arm, offboard, landing steps
- Fatal-on-first-error behaviour of the full run

Run with:
    pytest tests/test_flight.py -v
"""

import asyncio
import logging

import pytest

from offboard_position.common.capabilities import HealthSnapshot, PositionSetpoint, Result, VelocitySetpoint
from offboard_position.common.errors import (
    ArmError,
    DroneConnectionError,
    LandError,
    OffboardStartError,
    WaitCancelledError,
    WaitTimeoutError,
)
from offboard_position.common.simulated import HEALTHY
from offboard_position.config import FlightConfig
from offboard_position.flight import (
    disarm,
    establish_connection,
    land_and_wait,
    offboard_ctrl_ned,
    probe_health,
    run,
    scripted_setpoints,
    wait_for_health,
)

HEIGHT = 0.75

EXPECTED_SETPOINTS = [
    (0.0, 0.0, 0.0, 0.0),
    (0.0, 0.0, -HEIGHT, 0.0),
    (0.2, 0.0, -HEIGHT, 0.0),
    (0.0, 0.0, -HEIGHT, 0.0),
] + [
    (0.0, 0.0, -HEIGHT + HEIGHT * i / 5 + 0.15, 0.0) for i in range(5)
] + [
    (0.0, 0.0, 0.0, 0.0),
]


def as_tuples(setpoints):
    return [(s.north_m, s.east_m, s.down_m, s.yaw_deg) for s in setpoints]


# =============================================================================
# Setpoint Script Tests
# =============================================================================


class TestScriptedSetpoints:
    """Tests for the scripted setpoint list."""

    def test_setpoint_count(self):
        """Test the script has 4 fixed points, 5 ramp points and home."""
        assert len(scripted_setpoints()) == 10

    def test_setpoint_values(self):
        """Test setpoints match the documented flight."""
        setpoints = [setpoint for _, setpoint, _ in scripted_setpoints()]
        for actual, expected in zip(as_tuples(setpoints), EXPECTED_SETPOINTS):
            assert actual == pytest.approx(expected)

    def test_pauses(self):
        """Test each setpoint is followed by its settle pause."""
        pauses = [pause for _, _, pause in scripted_setpoints()]
        assert pauses == pytest.approx([1.0, 4.0, 2.0, 2.0, 0.4, 0.4, 0.4, 0.4, 0.4, 0.0])

    def test_ramp_ends_at_home_level(self):
        """Test the descent ramp steps down to home level; landing finishes it."""
        ramp = [setpoint for _, setpoint, _ in scripted_setpoints()][4:-1]
        assert len(ramp) == 5
        assert all(setpoint.down_m <= 0.0 + 1e-9 for setpoint in ramp)
        assert ramp[0].down_m == pytest.approx(-0.6)
        assert ramp[-1].down_m == pytest.approx(0.0, abs=1e-6)

    def test_ramp_labels_omit_margin(self):
        """Test ramp log labels show the nominal height without the margin."""
        labels = [label for label, _, _ in scripted_setpoints()][4:-1]
        assert labels[0] == "Descending to -0.75"
        assert labels[-1] == "Descending to -0.15"

    def test_custom_height(self):
        """Test geometry follows the configured height."""
        config = FlightConfig(height_m=2.0)
        setpoints = [setpoint for _, setpoint, _ in scripted_setpoints(config)]
        assert setpoints[1].down_m == pytest.approx(-2.0)
        assert setpoints[4].down_m == pytest.approx(-2.0 + 0.15)

    def test_all_yaw_zero(self):
        """Test every setpoint keeps yaw at 0."""
        assert all(setpoint.yaw_deg == 0.0 for _, setpoint, _ in scripted_setpoints())


# =============================================================================
# Step Tests
# =============================================================================


class TestEstablishConnection:
    """Tests for connection establishment."""

    @pytest.mark.asyncio
    async def test_connect_failure_raises(self, make_drone, clock):
        """Test a failed connect raises without polling for heartbeat."""
        drone = make_drone(connect_result=Result.CONNECTION_ERROR)
        with pytest.raises(DroneConnectionError) as exc_info:
            await establish_connection(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)
        assert exc_info.value.result == Result.CONNECTION_ERROR
        assert "Connection failed" in str(exc_info.value)
        assert drone.count("is_connected") == 0

    @pytest.mark.asyncio
    async def test_waits_for_heartbeat(self, make_drone, clock):
        """Test heartbeat polling is paced at 1 second."""
        drone = make_drone(heartbeat_after=2)
        system = await establish_connection(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)
        assert system is drone
        assert drone.count("is_connected") == 3
        assert clock.sleeps == [1.0, 1.0]
        assert drone.connected_url == "udp://:14540"

    @pytest.mark.asyncio
    async def test_connect_timeout(self, make_drone, clock):
        """Test the optional connect timeout."""
        drone = make_drone(heartbeat_after=100)
        config = FlightConfig(connect_timeout_s=3.0)
        with pytest.raises(WaitTimeoutError):
            await establish_connection(
                drone, "udp://:14540", config, sleep=clock.sleep, clock=clock.time
            )
        assert drone.count("is_connected") == 4

    @pytest.mark.asyncio
    async def test_cancel_event(self, make_drone, clock):
        """Test the heartbeat wait honours a set cancel event."""
        drone = make_drone(heartbeat_after=100)
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(WaitCancelledError):
            await establish_connection(
                drone, "udp://:14540", sleep=clock.sleep, clock=clock.time, cancel_event=cancel
            )
        assert drone.count("is_connected") == 1


class TestHealth:
    """Tests for the health probe and the optional health gate."""

    @pytest.mark.asyncio
    async def test_probe_logs_gyro(self, make_drone, clock, caplog):
        """Test gyro calibration is logged with its settle pause."""
        drone = make_drone()
        with caplog.at_level(logging.INFO):
            health = await probe_health(drone.telemetry(), sleep=clock.sleep)
        assert health.is_gyrometer_calibration_ok
        assert "Gyro is calibrated" in caplog.text
        assert clock.sleeps == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_probe_does_not_gate(self, make_drone, clock, caplog):
        """Test an unhealthy vehicle still passes the probe."""
        drone = make_drone(health=HealthSnapshot())
        with caplog.at_level(logging.INFO):
            health = await probe_health(drone.telemetry(), sleep=clock.sleep)
        assert not health.all_ok
        assert "Gyro is calibrated" not in caplog.text
        assert clock.sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_wait_for_health_polls(self, make_drone, clock):
        """Test the opt-in health gate polls until every flag is set."""
        drone = make_drone(health_sequence=[HealthSnapshot(), HealthSnapshot()])
        polls = await wait_for_health(drone.telemetry(), sleep=clock.sleep, clock=clock.time)
        assert polls == 3
        assert clock.sleeps == [1.0, 1.0]


class TestOffboard:
    """Tests for the offboard sequence."""

    @pytest.mark.asyncio
    async def test_primes_before_start(self, make_drone, clock):
        """Test a velocity setpoint precedes offboard start."""
        drone = make_drone()
        assert await offboard_ctrl_ned(drone.offboard(), sleep=clock.sleep) is True
        assert drone.calls[:2] == ["set_velocity_ned", "start"]
        assert drone.velocity_setpoints == [VelocitySetpoint(0.0, 0.0, 0.0, 0.0)]
        assert drone.offboard_active

    @pytest.mark.asyncio
    async def test_sequence_and_pacing(self, make_drone, clock):
        """Test setpoints and pauses of a complete sequence."""
        drone = make_drone()
        await offboard_ctrl_ned(drone.offboard(), sleep=clock.sleep)

        assert len(drone.position_setpoints) == 10
        assert drone.position_setpoints[-1] == PositionSetpoint(0.0, 0.0, 0.0, 0.0)
        assert clock.sleeps == pytest.approx([1.0, 4.0, 2.0, 2.0, 0.4, 0.4, 0.4, 0.4, 0.4])

    @pytest.mark.asyncio
    async def test_start_failure(self, make_drone, clock):
        """Test a rejected start raises and sends no position setpoints."""
        drone = make_drone(offboard_start_result=Result.COMMAND_DENIED)
        with pytest.raises(OffboardStartError) as exc_info:
            await offboard_ctrl_ned(drone.offboard(), sleep=clock.sleep)
        assert exc_info.value.result == Result.COMMAND_DENIED
        assert drone.position_setpoints == []
        assert len(drone.velocity_setpoints) == 1
        assert clock.sleeps == []


class TestLanding:
    """Tests for landing and disarm."""

    @pytest.mark.asyncio
    async def test_polls_until_on_ground(self, make_drone, clock):
        """Test in-air true for 3 polls gives exactly 4 polls, 1 s apart."""
        drone = make_drone(in_air_polls=3)
        polls = await land_and_wait(
            drone.action(), drone.telemetry(), sleep=clock.sleep, clock=clock.time
        )
        assert polls == 4
        assert drone.count("in_air") == 4
        assert clock.sleeps == [1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_zero_poll_interval_env_keeps_pacing(self, make_drone, clock, monkeypatch):
        """Test OFFBOARD_POLL_INTERVAL=0 cannot turn the touchdown wait into a busy loop."""
        monkeypatch.setenv("OFFBOARD_POLL_INTERVAL", "0")
        drone = make_drone(in_air_polls=3)
        await land_and_wait(
            drone.action(), drone.telemetry(), FlightConfig.from_args(),
            sleep=clock.sleep, clock=clock.time,
        )
        assert clock.sleeps == [1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_land_failure(self, make_drone, clock):
        """Test a rejected land command raises before polling."""
        drone = make_drone(land_result=Result.COMMAND_DENIED)
        with pytest.raises(LandError):
            await land_and_wait(drone.action(), drone.telemetry(), sleep=clock.sleep, clock=clock.time)
        assert drone.count("in_air") == 0

    @pytest.mark.asyncio
    async def test_land_timeout(self, make_drone, clock):
        """Test the optional land timeout."""
        drone = make_drone(in_air_polls=100)
        config = FlightConfig(land_timeout_s=2.0)
        with pytest.raises(WaitTimeoutError):
            await land_and_wait(
                drone.action(), drone.telemetry(), config, sleep=clock.sleep, clock=clock.time
            )

    @pytest.mark.asyncio
    async def test_disarm_failure_ignored(self, make_drone, clock, caplog):
        """Test a rejected disarm only warns and still waits the grace period."""
        drone = make_drone(disarm_result=Result.COMMAND_DENIED)
        with caplog.at_level(logging.INFO):
            await disarm(drone.action(), sleep=clock.sleep)
        assert clock.sleeps == [3.0]
        assert "auto-disarm" in caplog.text
        assert "Finished..." in caplog.text


# =============================================================================
# Full Run Tests
# =============================================================================


class TestRun:
    """Tests for the complete flight."""

    @pytest.mark.asyncio
    async def test_successful_flight(self, make_drone, clock):
        """Test the complete call order and setpoints of a good flight."""
        drone = make_drone(in_air_polls=2)
        await run(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)

        for actual, expected in zip(as_tuples(drone.position_setpoints), EXPECTED_SETPOINTS):
            assert actual == pytest.approx(expected)
        assert len(drone.position_setpoints) == 10
        assert len(drone.velocity_setpoints) == 1

        order = [name for name in drone.calls if name not in ("set_position_ned", "in_air")]
        assert order == [
            "connect",
            "is_connected",
            "discover_system",
            "health",
            "arm",
            "set_velocity_ned",
            "start",
            "land",
            "disarm",
        ]
        assert clock.sleeps == pytest.approx(
            [1.0, 1.0, 1.0, 4.0, 2.0, 2.0, 0.4, 0.4, 0.4, 0.4, 0.4, 1.0, 1.0, 3.0]
        )

    @pytest.mark.asyncio
    async def test_connect_failure_never_arms(self, make_drone, clock):
        """Test a failed connect stops before arming."""
        drone = make_drone(connect_result=Result.CONNECTION_ERROR)
        with pytest.raises(DroneConnectionError):
            await run(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)
        assert drone.count("arm") == 0

    @pytest.mark.asyncio
    async def test_arm_failure_never_enters_offboard(self, make_drone, clock):
        """Test a failed arm stops before the offboard sequence."""
        drone = make_drone(arm_result=Result.COMMAND_DENIED)
        with pytest.raises(ArmError) as exc_info:
            await run(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)
        assert str(exc_info.value) == "Arming failed: Command denied"
        assert drone.velocity_setpoints == []
        assert drone.position_setpoints == []
        assert drone.count("start") == 0

    @pytest.mark.asyncio
    async def test_offboard_failure_never_lands(self, make_drone, clock):
        """Test a failed offboard start sends only the priming setpoint."""
        drone = make_drone(offboard_start_result=Result.TIMEOUT)
        with pytest.raises(OffboardStartError):
            await run(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)
        assert len(drone.velocity_setpoints) == 1
        assert drone.position_setpoints == []
        assert drone.count("land") == 0

    @pytest.mark.asyncio
    async def test_unhealthy_still_arms(self, make_drone, clock):
        """Test health never gates arming by default."""
        drone = make_drone(health=HealthSnapshot())
        await run(drone, "udp://:14540", sleep=clock.sleep, clock=clock.time)
        assert drone.count("arm") == 1
        assert drone.count("health") == 1

    @pytest.mark.asyncio
    async def test_health_gate_enabled(self, make_drone, clock):
        """Test --wait-for-health polls health before arming."""
        drone = make_drone(health_sequence=[HealthSnapshot(), HealthSnapshot()], health=HEALTHY)
        config = FlightConfig(wait_for_health=True)
        await run(drone, "udp://:14540", config, sleep=clock.sleep, clock=clock.time)
        # Probe reads the first snapshot, the gate polls the second and HEALTHY
        arm_index = drone.calls.index("arm")
        assert drone.calls[:arm_index].count("health") == 3
