"""
errors.py - Flight Script Errors

Every checked failure in the flight script raises one of these. None of
them is retried; the CLI catches FlightError once at the top and exits 1.
"""

from typing import Optional

from .capabilities import Result, result_str


class FlightError(Exception):
    """
    Base class for terminal flight script failures.

    Attributes:
        message: Context of the failure, e.g. "Arming failed".
        result: SDK result that caused it, if any.
    """

    def __init__(self, message: str, result: Optional[Result] = None):
        self.message = message
        self.result = result
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.result is None:
            return self.message
        return f"{self.message}: {result_str(self.result)}"


class DroneConnectionError(FlightError):
    """Adding the connection failed."""


class ArmError(FlightError):
    """Arm command was rejected."""


class OffboardStartError(FlightError):
    """Offboard mode could not be started."""


class LandError(FlightError):
    """Land command was rejected."""


class WaitTimeoutError(FlightError):
    """A polling wait ran past its caller-supplied timeout."""


class WaitCancelledError(FlightError):
    """A polling wait was cancelled through its cancel event."""
