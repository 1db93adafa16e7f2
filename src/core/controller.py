"""Session controller — ties the toggle button, telemetry and motion together.

Manages the session state machine: IDLE (robot at rest, light off) →
ARMED (light on, collisions drive rolls) → IDLE. While armed, each
collision reported by the robot is run through the motion state machine
and the resulting roll or stop is sent through the command sequencer.
"""

from __future__ import annotations

import asyncio
import logging

from src.core.config import Settings
from src.core.errors import GlowglobeError, NotConnected, TransportError
from src.core.state_machine import (
    ActionKind,
    LightState,
    MotionState,
    SessionState,
    collision_magnitude,
    on_collision,
)
from src.hardware.interfaces import DeviceGateway, Subscription
from src.macro.sequencer import CommandSequencer, build_roll_script
from src.telemetry.decoder import TelemetryFrame, decode

logger = logging.getLogger(__name__)

_LIGHT_OFF = (0, 0, 0)


class SessionController:
    """Owns one robot session: armed flag, light, motion state and script.

    All state changes are serialized through a single lock, so a stop
    request and a collision arriving at the same time cannot interleave.
    Once stop() has returned, no further roll is sent.

    Args:
        gateway: Connection to the robot, supplied by the caller.
        settings: Application settings.
    """

    def __init__(self, gateway: DeviceGateway, settings: Settings) -> None:
        self._gateway = gateway
        self._settings = settings

        self._state = SessionState.IDLE
        self._motion = MotionState.WAITING
        self._light = LightState.OFF
        self._heading = 0.0

        self._lock = asyncio.Lock()
        self._sequencer = CommandSequencer(gateway, on_error=self._on_script_error)
        self._subscription: Subscription | None = None
        self._detection_enabled = False
        self._torn_down = False
        self._last_error: GlowglobeError | None = None

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Arm the session: light on, collision streaming on.

        Returns:
            True if the session is armed, False if the robot rejected a
            setup command (the session stays IDLE with the light off).

        Raises:
            NotConnected: If no robot is bound. No command is sent.
        """
        async with self._lock:
            if self._state == SessionState.ARMED:
                logger.warning("start() ignored: session already armed.")
                return True
            return await self._arm()

    async def stop(self) -> None:
        """Disarm the session: stop the robot, light off, streaming off.

        Calling stop() on an idle session does nothing.
        """
        async with self._lock:
            if self._state != SessionState.ARMED:
                logger.debug("stop() ignored: session not armed.")
                return
            await self._disarm()

    async def toggle(self) -> None:
        """The single user control: start when idle, stop when armed.

        The branch is chosen under the session lock, so rapid presses
        alternate between start and stop in the order they arrive.
        """
        try:
            async with self._lock:
                if self._state == SessionState.ARMED:
                    await self._disarm()
                else:
                    await self._arm()
        except NotConnected as e:
            logger.warning("Toggle ignored: %s", e)
            self._last_error = e

    async def teardown(self) -> None:
        """Stop the session and release the robot. Safe to call repeatedly."""
        async with self._lock:
            if self._torn_down:
                return
            self._torn_down = True

            if self._state == SessionState.ARMED:
                await self._disarm()
            else:
                await self._release_telemetry()
            self._sequencer.discard()

            if self._gateway.is_connected():
                try:
                    await self._gateway.disconnect()
                except TransportError as e:
                    logger.error("Disconnect failed: %s", e)
                    self._last_error = e
            logger.info("Teardown complete.")

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    async def handle_frame(self, frame: TelemetryFrame) -> None:
        """Telemetry callback: react to one asynchronous frame from the robot."""
        event = decode(frame)
        if event is None:
            return
        if not self.armed:
            logger.debug("Collision dropped: session not armed.")
            return

        async with self._lock:
            # stop() may have won the lock while this frame was waiting
            if self._state != SessionState.ARMED:
                logger.debug("Collision dropped: session disarmed.")
                return

            logger.debug(
                "Collision power=%.1f threshold=%.1f state=%s",
                collision_magnitude(event),
                self._settings.collision_threshold,
                self._motion.name,
            )
            transition = on_collision(
                self._motion, event, self._settings.collision_threshold
            )
            action = transition.action

            try:
                if action.kind == ActionKind.STOP:
                    await self._sequencer.cancel()
                else:
                    self._sequencer.submit(
                        build_roll_script(
                            self._robot_id(),
                            action.heading,
                            self._settings.roll_speed,
                            self._settings.roll_duration_ms,
                            self._settings.calibrate_speed,
                        )
                    )
            except GlowglobeError as e:
                logger.error(
                    "%s command not accepted, staying %s: %s",
                    action.kind.name, self._motion.name, e,
                )
                self._last_error = e
                return

            if action.kind == ActionKind.ROLL:
                self._heading = action.heading
                logger.info("Rolling @ %.1f degrees.", action.heading)
            else:
                logger.info("Impact above threshold, robot stopped.")
            self._motion = transition.state

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session_state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def armed(self) -> bool:
        return self._state == SessionState.ARMED

    @property
    def motion_state(self) -> MotionState:
        """Current motion state."""
        return self._motion

    @property
    def light_state(self) -> LightState:
        return self._light

    @property
    def heading(self) -> float:
        """Heading of the last roll issued, in degrees."""
        return self._heading

    @property
    def last_error(self) -> GlowglobeError | None:
        """Most recent command failure, if any."""
        return self._last_error

    # ------------------------------------------------------------------
    # Helpers (callers hold the lock)
    # ------------------------------------------------------------------

    def _robot_id(self) -> str:
        return self._settings.robot_id or self._gateway.robot_id

    def _subscribe(self) -> None:
        if self._subscription is None:
            self._subscription = self._gateway.subscribe(
                self._robot_id(), self.handle_frame
            )

    async def _enable_detection(self) -> None:
        cfg = self._settings.collision_detection
        await self._gateway.configure_collision_detection(
            cfg.method,
            cfg.x_threshold,
            cfg.y_threshold,
            cfg.x_speed_weight,
            cfg.y_speed_weight,
            cfg.window_ms,
        )
        self._detection_enabled = True

    async def _arm(self) -> bool:
        """Bring an idle session to ARMED, rolling back on failure."""
        if not self._gateway.is_connected():
            raise NotConnected()

        try:
            self._subscribe()
            await self._enable_detection()
            await self._gateway.set_light(*self._settings.light_on_color)
        except TransportError as e:
            logger.error("Failed to start session: %s", e)
            self._last_error = e
            await self._release_telemetry()
            return False

        self._light = LightState.ON
        self._motion = MotionState.WAITING
        self._heading = 0.0
        self._state = SessionState.ARMED
        logger.info("Session armed (robot=%s).", self._robot_id())
        return True

    async def _disarm(self) -> None:
        """Bring an armed session back to IDLE, even if commands fail."""
        try:
            await self._sequencer.cancel()
        except GlowglobeError as e:
            logger.error("Stop command failed: %s", e)
            self._last_error = e
        try:
            await self._gateway.set_light(*_LIGHT_OFF)
        except TransportError as e:
            logger.error("Light off failed: %s", e)
            self._last_error = e

        self._light = LightState.OFF
        self._motion = MotionState.WAITING
        self._state = SessionState.IDLE
        await self._release_telemetry()
        logger.info("Session stopped.")

    async def _release_telemetry(self) -> None:
        if self._detection_enabled:
            self._detection_enabled = False
            try:
                await self._gateway.disable_collision_detection()
            except TransportError as e:
                logger.error("Disabling collision detection failed: %s", e)
                self._last_error = e
        if self._subscription is not None:
            self._gateway.unsubscribe(self._subscription)
            self._subscription = None

    def _on_script_error(self, error: TransportError) -> None:
        logger.warning(
            "Roll script failed mid-flight, motion state left at %s.",
            self._motion.name,
        )
        self._last_error = error
