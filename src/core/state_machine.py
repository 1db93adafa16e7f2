"""Motion state machine definitions.

Defines the session, motion and light states, and the pure transition
function that turns one collision event into the next motion state and
the single command to issue.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto

from src.telemetry.decoder import CollisionEvent, Vector2

DEFAULT_COLLISION_THRESHOLD = 50.0


class SessionState(Enum):
    """States of the session controller.

    Transitions:
        IDLE → ARMED (user pressed start)
        ARMED → IDLE (user pressed stop, or teardown)
    """

    IDLE = auto()
    ARMED = auto()


class MotionState(Enum):
    """What the robot is doing while a session is armed.

    Transitions (on each collision event):
        WAITING → MOVING (roll issued)
        MOVING → WAITING (impact above threshold, stop issued)
        MOVING → MOVING (impact at or below threshold, fresh roll issued)
    """

    WAITING = auto()
    MOVING = auto()


class LightState(Enum):
    """Light indicator, mirrors whether the session is armed."""

    ON = auto()
    OFF = auto()


class ActionKind(Enum):
    ROLL = auto()
    STOP = auto()


@dataclass(frozen=True)
class Action:
    """Command decided by the state machine.

    Attributes:
        kind: ROLL or STOP.
        heading: Roll heading in degrees [0, 360) (for kind=ROLL).
    """

    kind: ActionKind
    heading: float = 0.0

    @classmethod
    def roll(cls, heading: float) -> Action:
        return cls(ActionKind.ROLL, heading)

    @classmethod
    def stop(cls) -> Action:
        return cls(ActionKind.STOP)


@dataclass(frozen=True)
class Transition:
    """Result of one collision: the next state and the action to issue."""

    state: MotionState
    action: Action


def collision_magnitude(event: CollisionEvent) -> float:
    """Impact strength as |power.x| + |power.y|."""
    return abs(event.power.x) + abs(event.power.y)


def heading_from_acceleration(acceleration: Vector2) -> float:
    """Roll heading in degrees [0, 360) derived from impact acceleration."""
    radians = math.atan2(acceleration.x * 100, acceleration.y * 100)
    return math.degrees(radians) % 360.0


def on_collision(
    state: MotionState,
    event: CollisionEvent,
    threshold: float = DEFAULT_COLLISION_THRESHOLD,
) -> Transition:
    """Decide the next motion state for one collision event.

    The caller must only invoke this while the session is armed, once per
    event, in arrival order.

    The decision runs in two steps. While MOVING, an impact strictly above
    ``threshold`` stops the robot and ends the decision. Otherwise (WAITING,
    or MOVING with a weaker impact) a fresh roll is issued away from the
    impact and the machine is MOVING.

    Args:
        state: Current motion state.
        event: Decoded collision event.
        threshold: Impact magnitude above which a moving robot stops.

    Returns:
        Transition carrying exactly one action.
    """
    if state == MotionState.MOVING and collision_magnitude(event) > threshold:
        return Transition(MotionState.WAITING, Action.stop())

    heading = heading_from_acceleration(event.acceleration)
    return Transition(MotionState.MOVING, Action.roll(heading))
