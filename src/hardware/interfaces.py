"""Abstract device gateway for the Glowglobe robot.

All code that talks to the robot goes through DeviceGateway. Concrete
transports (Bluetooth, vendor SDK bindings) implement it; the core never
imports a transport library directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import count
from typing import Awaitable, Callable

from src.telemetry.decoder import TelemetryFrame

FrameHandler = Callable[[TelemetryFrame], Awaitable[None]]

_subscription_ids = count(1)


@dataclass(frozen=True)
class Subscription:
    """Handle returned by DeviceGateway.subscribe().

    Attributes:
        robot_id: Robot whose telemetry is delivered.
        handler: Async callback invoked with each frame.
        id: Unique handle id.
    """

    robot_id: str
    handler: FrameHandler = field(compare=False)
    id: int = field(default_factory=lambda: next(_subscription_ids))


class DeviceGateway(ABC):
    """Connection to one robot: telemetry in, commands out.

    Command methods are asynchronous requests. They raise TransportError
    if the robot rejects the command or it cannot be delivered.
    """

    @property
    @abstractmethod
    def robot_id(self) -> str:
        """Identifier of the bound robot ("" when none is bound)."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if a robot is currently bound."""
        ...

    @abstractmethod
    def subscribe(self, robot_id: str, handler: FrameHandler) -> Subscription:
        """Start delivering the robot's asynchronous frames to handler.

        Args:
            robot_id: Robot to listen to.
            handler: Async callback invoked with each TelemetryFrame.

        Returns:
            Subscription handle to pass to unsubscribe().
        """
        ...

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """Stop delivering frames for a subscription. Unknown handles are ignored."""
        ...

    @abstractmethod
    async def set_light(self, red: int, green: int, blue: int) -> None:
        """Set the robot's RGB light.

        Args:
            red: Red component, 0-255.
            green: Green component, 0-255.
            blue: Blue component, 0-255.
        """
        ...

    @abstractmethod
    async def roll(self, heading: float, speed: float, duration_ms: int = 0) -> None:
        """Roll the robot.

        Args:
            heading: Heading in degrees.
            speed: Speed from 0.0 to 1.0.
            duration_ms: Roll duration; 0 rolls until told otherwise.
        """
        ...

    @abstractmethod
    async def calibrate(self, heading: float, speed: float = 0.0) -> None:
        """Rotate the robot's heading reference.

        Args:
            heading: New zero heading in degrees.
            speed: Speed to hold while calibrating, 0.0 to 1.0.
        """
        ...

    @abstractmethod
    async def stop_roll(self) -> None:
        """Stop rolling immediately (zero-speed roll)."""
        ...

    @abstractmethod
    async def configure_collision_detection(
        self,
        method: int,
        x_threshold: int,
        y_threshold: int,
        x_speed_weight: int,
        y_speed_weight: int,
        window_ms: int,
    ) -> None:
        """Enable collision detection streaming with the given parameters."""
        ...

    @abstractmethod
    async def disable_collision_detection(self) -> None:
        """Disable collision detection streaming."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the robot connection."""
        ...
