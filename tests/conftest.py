"""
Pytest configuration and shared fixtures for the flight script tests.

This module provides:
- Async test support via pytest-asyncio
- A fake clock whose sleep records durations instead of waiting
- A factory for simulated drones
- Test markers configuration
"""

import sys
from typing import List

import pytest

# Add project root to path
sys.path.insert(0, sys.path[0] + "/..")

from offboard_position.common.simulated import SimulatedDrone


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "asyncio: mark test as async"
    )


class FakeClock:
    """
    Clock whose sleep advances time instantly.

    Attributes:
        now: Current fake time in seconds.
        sleeps: Every duration passed to sleep(), in order.
    """

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    """
    Fixture providing a FakeClock.

    Returns:
        FakeClock: Fresh clock starting at t=0.
    """
    return FakeClock()


@pytest.fixture
def make_drone():
    """
    Fixture providing a SimulatedDrone factory.

    Returns:
        Callable: Accepts SimulatedDrone keyword arguments.
    """
    def _make(**kwargs) -> SimulatedDrone:
        return SimulatedDrone(**kwargs)

    return _make
