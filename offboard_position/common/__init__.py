"""
Common utilities for the offboard position flight script.

Modules:
    capabilities: Drone capability interfaces and value types.
    errors: Flight script error taxonomy.
    drone_helpers: Logging setup and the polling wait loop.
    simulated: In-process simulated drone.
    mavsdk_adapter: MAVSDK implementation of the capabilities (imported
        directly, it needs the mavsdk package).
"""

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
    result_str,
)

from .errors import (
    FlightError,
    DroneConnectionError,
    ArmError,
    OffboardStartError,
    LandError,
    WaitTimeoutError,
    WaitCancelledError,
)

from .drone_helpers import (
    ColorFormatter,
    get_telemetry_logger,
    setup_logging,
    wait_until,
)

from .simulated import SimulatedDrone

__all__ = [
    # capabilities
    "Action",
    "Connection",
    "HealthSnapshot",
    "Offboard",
    "PositionSetpoint",
    "RemoteSystem",
    "Result",
    "Telemetry",
    "VelocitySetpoint",
    "result_str",
    # errors
    "FlightError",
    "DroneConnectionError",
    "ArmError",
    "OffboardStartError",
    "LandError",
    "WaitTimeoutError",
    "WaitCancelledError",
    # drone_helpers
    "ColorFormatter",
    "get_telemetry_logger",
    "setup_logging",
    "wait_until",
    # simulated
    "SimulatedDrone",
]
