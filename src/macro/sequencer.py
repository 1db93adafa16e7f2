"""Command sequencer — plays short scripted command sequences on the robot.

A script is a calibrate followed by a roll. The sequencer issues the two
back-to-back as one unit, and lets the caller abort a script at any point
so that nothing from it reaches the robot afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Union

from src.core.errors import NotConnected, TransportError
from src.hardware.interfaces import DeviceGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Calibrate:
    """Set the robot's zero heading.

    Attributes:
        heading: New zero heading in degrees.
        speed: Speed held while calibrating (0.0 to 1.0).
    """

    heading: float
    speed: float = 0.0


@dataclass(frozen=True)
class Roll:
    """Roll along a heading relative to the calibrated zero.

    Attributes:
        speed: Speed from 0.0 to 1.0.
        heading: Heading in degrees.
        duration_ms: How long to roll; 0 rolls until stopped.
    """

    speed: float
    heading: float = 0.0
    duration_ms: int = 0


Command = Union[Calibrate, Roll]


@dataclass(frozen=True)
class CommandScript:
    """An ordered, immutable command sequence bound to one robot.

    Attributes:
        robot_id: Robot captured when the script was built.
        commands: Commands in play order (at most two).
    """

    robot_id: str
    commands: tuple[Command, ...]

    def __post_init__(self) -> None:
        if len(self.commands) > 2:
            raise ValueError(
                f"A command script holds at most two commands, got {len(self.commands)}"
            )


def build_roll_script(
    robot_id: str,
    heading: float,
    roll_speed: float,
    roll_duration_ms: int,
    calibrate_speed: float = 0.0,
) -> CommandScript:
    """Build the calibrate-then-roll script that sends the robot along heading.

    Args:
        robot_id: Robot the script targets.
        heading: Direction to roll, in degrees.
        roll_speed: Roll speed, 0.0 to 1.0.
        roll_duration_ms: Roll duration in milliseconds.
        calibrate_speed: Speed held while calibrating.

    Returns:
        Two-command script.
    """
    return CommandScript(
        robot_id=robot_id,
        commands=(
            Calibrate(heading, calibrate_speed),
            Roll(roll_speed, 0.0, roll_duration_ms),
        ),
    )


class CommandSequencer:
    """Plays at most one CommandScript at a time on a gateway.

    Every submission gets a generation number. A command is only issued
    while its script's generation is current, so cancelling or superseding
    a script suppresses whatever part of it has not been sent yet.

    Args:
        gateway: Connection to the robot.
        on_error: Called with the TransportError that aborted a script.
    """

    def __init__(
        self,
        gateway: DeviceGateway,
        on_error: Callable[[TransportError], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._on_error = on_error
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def is_playing(self) -> bool:
        """Check if a script is still being issued."""
        return self._task is not None and not self._task.done()

    def submit(self, script: CommandScript) -> None:
        """Replace any in-flight script with this one and start playing it.

        Returns as soon as the script is scheduled; delivery failures are
        reported through on_error.

        Raises:
            NotConnected: If no robot is bound. Nothing is scheduled.
        """
        if not self._gateway.is_connected():
            raise NotConnected()
        self.discard()
        self._task = asyncio.create_task(self._play(script, self._generation))
        logger.debug(
            "Script submitted (robot=%s, generation=%d, commands=%d)",
            script.robot_id,
            self._generation,
            len(script.commands),
        )

    async def cancel(self) -> None:
        """Abort the in-flight script and stop the robot.

        After this returns no command from an earlier submission reaches
        the gateway.

        Raises:
            NotConnected: If no robot is bound. The script is still
                discarded, but no stop is sent.
            TransportError: If the stop command itself fails.
        """
        self.discard()
        if not self._gateway.is_connected():
            raise NotConnected()
        await self._gateway.stop_roll()
        logger.info("Script cancelled, robot stopped.")

    def discard(self) -> None:
        """Abort the in-flight script without sending anything."""
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _play(self, script: CommandScript, generation: int) -> None:
        """Issue the script's commands while its generation is current."""
        name = ""
        try:
            for command in script.commands:
                if generation != self._generation:
                    return
                name = type(command).__name__.lower()
                await self._issue(command)
        except asyncio.CancelledError:
            raise
        except TransportError as e:
            logger.error("Script aborted: %s", e)
            self._report(e)
        except Exception as e:
            logger.exception("Script aborted by unexpected gateway error")
            self._report(TransportError(name, repr(e)))

    def _report(self, error: TransportError) -> None:
        if self._on_error is not None:
            self._on_error(error)

    async def _issue(self, command: Command) -> None:
        if isinstance(command, Calibrate):
            await self._gateway.calibrate(command.heading, command.speed)
        else:
            await self._gateway.roll(command.heading, command.speed, command.duration_ms)
