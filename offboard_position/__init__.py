"""
Offboard Position Flight Script

Connects to a PX4 autopilot through MAVSDK, arms, flies a short scripted
sequence of offboard NED position setpoints and lands.

Modules:
    flight.py             - The scripted flight and its individual steps
    cli.py                - Command line entry point
    config.py             - Flight geometry, pacing and wait limits
    mavlink_connection.py - Connection URL grammar

Common Module:
    common/               - Capability interfaces, MAVSDK adapter,
                            simulated drone, logging and polling helpers

Usage:
    # Connect to PX4 SITL:
    offboard-position udp://:14540

    # Serial link to the flight controller:
    offboard-position serial:///dev/ttyACM0:57600
"""

__version__ = "0.1.0"
