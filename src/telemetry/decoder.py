"""Telemetry decoder — filters asynchronous robot data down to collisions.

The gateway delivers every asynchronous frame the robot streams. Only
collision frames matter to the motion logic, so everything else is
dropped here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger(__name__)

COLLISION_DETECTED = "collision_detected"
SENSOR_DATA = "sensor_data"
POWER_NOTIFICATION = "power_notification"


@dataclass(frozen=True)
class Vector2:
    """A planar (x, y) reading."""

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def of(cls, value: Any) -> Vector2:
        """Build from a Vector2, a 2-sequence, or None (zero vector)."""
        if isinstance(value, Vector2):
            return value
        if value is None:
            return cls()
        x, y = value
        return cls(float(x), float(y))


@dataclass(frozen=True)
class TelemetryFrame:
    """Normalized asynchronous data frame received from the robot.

    Attributes:
        type: Frame kind — "collision_detected", "sensor_data",
              "power_notification", or any tag the gateway passes through.
        impact_acceleration: Impact acceleration (for type="collision_detected").
        impact_power: Impact power (for type="collision_detected").
    """

    type: str
    impact_acceleration: Vector2 = Vector2()
    impact_power: Vector2 = Vector2()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TelemetryFrame:
        """Create a frame from a plain mapping (e.g. a YAML telemetry log).

        Raises:
            ValueError: If the mapping has no "type" entry.
        """
        if "type" not in data:
            raise ValueError(f"Telemetry frame missing 'type': {dict(data)!r}")
        return cls(
            type=str(data["type"]),
            impact_acceleration=Vector2.of(data.get("impact_acceleration")),
            impact_power=Vector2.of(data.get("impact_power")),
        )


@dataclass(frozen=True)
class CollisionEvent:
    """A decoded collision: where the robot was pushed and how hard."""

    acceleration: Vector2
    power: Vector2


def decode(frame: object) -> CollisionEvent | None:
    """Extract a collision event from a raw frame.

    Args:
        frame: Any object delivered by the gateway.

    Returns:
        CollisionEvent for collision frames, None for every other kind
        and for collision frames whose readings are not (x, y) pairs.
    """
    kind = getattr(frame, "type", None)
    if kind != COLLISION_DETECTED:
        logger.debug("Skipping telemetry frame of kind %r", kind)
        return None
    try:
        return CollisionEvent(
            acceleration=Vector2.of(getattr(frame, "impact_acceleration", None)),
            power=Vector2.of(getattr(frame, "impact_power", None)),
        )
    except (TypeError, ValueError) as e:
        logger.warning("Dropping malformed collision frame: %s", e)
        return None
