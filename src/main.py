"""Console entry point for the Glowglobe controller.

Press Enter to toggle the session, type "q" to quit. With --telemetry,
the stub robot replays recorded collision frames after the session is
first armed.

    python -m src.main --telemetry config/sample_telemetry.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from src.core.config import Settings, load_settings
from src.core.controller import SessionController
from src.hardware.stubs import StubDeviceGateway

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Glowglobe robot controller")
    parser.add_argument(
        "--telemetry",
        type=Path,
        default=None,
        help="YAML file of telemetry frames for the stub robot to replay",
    )
    parser.add_argument("--env", type=Path, default=None, help="Path to .env file")
    parser.add_argument("--config", type=Path, default=None, help="Path to YAML config")
    return parser.parse_args(argv)


async def run(settings: Settings, telemetry: Path | None = None) -> None:
    gateway = StubDeviceGateway(robot_id=settings.robot_id or "stub-robot")
    controller = SessionController(gateway, settings)
    replayed = False
    logger.info("Controller ready (robot=%s).", gateway.robot_id)

    loop = asyncio.get_event_loop()
    try:
        while True:
            line = await loop.run_in_executor(
                None, input, "[Enter] toggle, [q] quit > "
            )
            if line.strip().lower() == "q":
                break
            await controller.toggle()
            print(
                f"session={controller.session_state.name} "
                f"light={controller.light_state.name} "
                f"motion={controller.motion_state.name}"
            )
            if controller.armed and telemetry and not replayed:
                replayed = True
                await gateway.replay(telemetry)
                print(f"motion={controller.motion_state.name} heading={controller.heading:.1f}")
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await controller.teardown()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = load_settings(env_path=args.env, yaml_path=args.config)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run(settings, args.telemetry))


if __name__ == "__main__":
    main()
