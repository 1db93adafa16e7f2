"""Error types raised by the Glowglobe core.

Unrecognized telemetry is not an error: the decoder simply returns None
for it. Everything here is raised for command traffic to the robot.
"""

from __future__ import annotations


class GlowglobeError(Exception):
    """Base class for all Glowglobe errors."""


class NotConnected(GlowglobeError):
    """A command was attempted while no robot is bound to the gateway."""

    def __init__(self, message: str = "No robot is connected.") -> None:
        super().__init__(message)


class TransportError(GlowglobeError):
    """The gateway rejected a command or failed to deliver it.

    Args:
        command: Name of the gateway command that failed (e.g. "roll").
        reason: Human-readable failure description.
    """

    def __init__(self, command: str, reason: str = "") -> None:
        self.command = command
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Command '{command}' failed{detail}")
