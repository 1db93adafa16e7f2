"""Tests for the console entry point."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent
from unittest.mock import patch

from src.core.config import CollisionDetectionConfig, Settings
from src.hardware.stubs import StubDeviceGateway
from src.main import _parse_args, run


def _make_settings() -> Settings:
    return Settings(
        robot_id="",
        collision_threshold=50.0,
        roll_speed=0.3,
        roll_duration_ms=1000,
        calibrate_speed=0.0,
        light_on_color=(255, 255, 255),
        collision_detection=CollisionDetectionConfig(),
        session_duration_ms=120000,
        log_level="INFO",
    )


class TestParseArgs:
    def test_defaults(self) -> None:
        args = _parse_args([])
        assert args.telemetry is None
        assert args.env is None
        assert args.config is None

    def test_telemetry_path(self) -> None:
        args = _parse_args(["--telemetry", "frames.yaml"])
        assert args.telemetry == Path("frames.yaml")


class TestRun:
    async def test_toggle_replay_and_quit(self, tmp_path: Path) -> None:
        telemetry = tmp_path / "frames.yaml"
        telemetry.write_text(dedent("""\
            - type: collision_detected
              impact_acceleration: [0.0, 1.0]
              impact_power: [0, 0]
            - type: collision_detected
              impact_power: [60, 0]
        """))
        gateway = StubDeviceGateway()

        with patch("src.main.StubDeviceGateway", return_value=gateway), \
                patch("builtins.input", side_effect=["", "q"]):
            await run(_make_settings(), telemetry)

        # the hard impact cancels the first roll before it is issued
        assert gateway.command_names() == [
            "configure_collision_detection",
            "set_light",
            "stop_roll",
            "stop_roll",
            "set_light",
            "disable_collision_detection",
            "disconnect",
        ]
        assert not gateway.is_connected()

    async def test_end_of_input_tears_down(self) -> None:
        gateway = StubDeviceGateway()

        with patch("src.main.StubDeviceGateway", return_value=gateway), \
                patch("builtins.input", side_effect=["", EOFError()]):
            await run(_make_settings())

        assert gateway.command_names()[-4:] == [
            "stop_roll",
            "set_light",
            "disable_collision_detection",
            "disconnect",
        ]
