"""Desktop stub implementation of the device gateway.

Enables development and testing without a robot:
- records every command sent, in order
- pushes telemetry frames to subscribers on demand
- replays telemetry recorded in a YAML file
- simulates rejected commands
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import yaml

from src.core.errors import TransportError
from src.hardware.interfaces import DeviceGateway, FrameHandler, Subscription
from src.telemetry.decoder import TelemetryFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentCommand:
    """One command as the stub received it."""

    name: str
    args: tuple[Any, ...] = field(default_factory=tuple)


def load_telemetry(path: Path) -> list[TelemetryFrame]:
    """Load a list of telemetry frames from a YAML file.

    The file holds a YAML list of mappings, e.g.::

        - type: collision_detected
          impact_acceleration: [0.0, 1.0]
          impact_power: [0, 0]

    Args:
        path: Path to the YAML telemetry log.

    Returns:
        Frames in file order. Empty list if the file is empty.

    Raises:
        ValueError: If the file is not a list of mappings.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if not data:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Telemetry file '{path}' must contain a list of frames")
    return [TelemetryFrame.from_dict(item) for item in data]


class StubDeviceGateway(DeviceGateway):
    """In-memory gateway that records commands instead of sending them.

    Args:
        robot_id: Identifier reported for the bound robot.
        connected: Whether a robot starts out bound.
    """

    def __init__(self, robot_id: str = "stub-robot", connected: bool = True) -> None:
        self._robot_id = robot_id
        self.connected = connected
        self.commands: list[SentCommand] = []
        self.fail_on: set[str] = set()
        self._subscriptions: dict[int, Subscription] = {}

    @property
    def robot_id(self) -> str:
        return self._robot_id if self.connected else ""

    def is_connected(self) -> bool:
        return self.connected

    def subscribe(self, robot_id: str, handler: FrameHandler) -> Subscription:
        subscription = Subscription(robot_id=robot_id, handler=handler)
        self._subscriptions[subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def set_light(self, red: int, green: int, blue: int) -> None:
        for component in (red, green, blue):
            if not 0 <= component <= 255:
                raise ValueError(f"Light component out of range 0-255: {component}")
        self._record("set_light", red, green, blue)

    async def roll(self, heading: float, speed: float, duration_ms: int = 0) -> None:
        self._record("roll", heading, speed, duration_ms)

    async def calibrate(self, heading: float, speed: float = 0.0) -> None:
        self._record("calibrate", heading, speed)

    async def stop_roll(self) -> None:
        self._record("stop_roll")

    async def configure_collision_detection(
        self,
        method: int,
        x_threshold: int,
        y_threshold: int,
        x_speed_weight: int,
        y_speed_weight: int,
        window_ms: int,
    ) -> None:
        self._record(
            "configure_collision_detection",
            method, x_threshold, y_threshold,
            x_speed_weight, y_speed_weight, window_ms,
        )

    async def disable_collision_detection(self) -> None:
        self._record("disable_collision_detection")

    async def disconnect(self) -> None:
        self._record("disconnect")
        self.connected = False
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    async def emit(self, frame: TelemetryFrame) -> None:
        """Deliver one frame to every subscriber, in subscription order."""
        for subscription in list(self._subscriptions.values()):
            await subscription.handler(frame)

    async def replay(self, frames: Iterable[TelemetryFrame] | Path) -> int:
        """Deliver a sequence of frames, or frames loaded from a YAML file.

        Returns:
            Number of frames delivered.
        """
        if isinstance(frames, Path):
            frames = load_telemetry(frames)
        delivered = 0
        for frame in frames:
            await self.emit(frame)
            delivered += 1
        logger.info("Replayed %d telemetry frames.", delivered)
        return delivered

    def command_names(self) -> list[str]:
        """Names of all recorded commands, in order."""
        return [c.name for c in self.commands]

    def clear(self) -> None:
        """Forget recorded commands."""
        self.commands = []

    def _record(self, name: str, *args: Any) -> None:
        if not self.connected:
            raise TransportError(name, "robot not connected")
        if name in self.fail_on:
            raise TransportError(name, "rejected by robot")
        self.commands.append(SentCommand(name, args))
        logger.debug("[ROBOT] %s%r", name, args)
