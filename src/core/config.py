"""Configuration loader for the Glowglobe robot controller.

Loads settings from environment variables (.env file) and config/default.yaml,
with environment variables taking precedence over YAML defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


# Project root is two levels up from this file (src/core/config.py -> project root)
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


@dataclass(frozen=True)
class CollisionDetectionConfig:
    """Parameters passed through to the robot's collision detector.

    Attributes:
        method: Detection method id (0 disables detection).
        x_threshold: Impact threshold on the x axis.
        y_threshold: Impact threshold on the y axis.
        x_speed_weight: How much robot speed raises the x threshold.
        y_speed_weight: How much robot speed raises the y threshold.
        window_ms: Dead time after a collision before the next can fire.
    """

    method: int = 1
    x_threshold: int = 5
    y_threshold: int = 5
    x_speed_weight: int = 100
    y_speed_weight: int = 100
    window_ms: int = 100


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for the Glowglobe robot controller."""

    # Robot
    robot_id: str

    # Motion
    collision_threshold: float
    roll_speed: float
    roll_duration_ms: int
    calibrate_speed: float

    # Light
    light_on_color: tuple[int, int, int]

    # Collision detection
    collision_detection: CollisionDetectionConfig

    # Session (kept for compatibility, no timer reads it)
    session_duration_ms: int

    # Logging
    log_level: str


def _load_yaml_defaults(yaml_path: Path) -> dict[str, Any]:
    """Load default values from a YAML config file.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Dictionary of configuration values. Empty dict if file not found.
    """
    if not yaml_path.exists():
        return {}
    with open(yaml_path) as f:
        data = yaml.safe_load(f)
    return data if data else {}


def _get(env_key: str, yaml_defaults: dict[str, Any], yaml_key: str, default: Any = None) -> Any:
    """Get a config value with precedence: env var > yaml default > hardcoded default.

    Args:
        env_key: Environment variable name.
        yaml_defaults: Dictionary from YAML config file.
        yaml_key: Dot-separated key path in YAML (e.g., "motion.roll_speed").
        default: Fallback default value.

    Returns:
        The resolved configuration value.
    """
    # Environment variable takes precedence
    env_val = os.environ.get(env_key)
    if env_val is not None and env_val != "":
        return env_val

    # Walk nested YAML keys
    parts = yaml_key.split(".")
    node = yaml_defaults
    for part in parts:
        if isinstance(node, dict) and part in node:
            node = node[part]
        else:
            return default
    return node if node is not None else default


def _parse_color(value: Any) -> tuple[int, int, int]:
    """Parse "r,g,b" or a 3-item list into a validated RGB tuple."""
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
    else:
        parts = list(value)
    if len(parts) != 3:
        raise ValueError(f"Light colour needs three components, got: {value!r}")
    color = tuple(int(p) for p in parts)
    for component in color:
        if not 0 <= component <= 255:
            raise ValueError(f"Light colour component out of range 0-255: {component}")
    return color  # type: ignore[return-value]


def _check_speed(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")
    return value


def load_settings(
    env_path: Path | None = None,
    yaml_path: Path | None = None,
) -> Settings:
    """Load settings from .env and config/default.yaml.

    Environment variables take precedence over YAML defaults.

    Args:
        env_path: Path to .env file. Defaults to PROJECT_ROOT/.env.
        yaml_path: Path to YAML config. Defaults to PROJECT_ROOT/config/default.yaml.

    Returns:
        Frozen Settings dataclass with all configuration values.

    Raises:
        ValueError: If a value is out of range (negative threshold, speed
            outside 0-1, colour component outside 0-255).
    """
    if env_path is None:
        env_path = PROJECT_ROOT / ".env"
    if yaml_path is None:
        yaml_path = PROJECT_ROOT / "config" / "default.yaml"

    load_dotenv(env_path, override=False)
    y = _load_yaml_defaults(yaml_path)

    collision_threshold = float(
        _get("COLLISION_THRESHOLD", y, "motion.collision_threshold", 50)
    )
    if collision_threshold < 0:
        raise ValueError(
            f"collision_threshold must not be negative, got {collision_threshold}"
        )

    detection = CollisionDetectionConfig(
        method=int(_get("COLLISION_METHOD", y, "collision_detection.method", 1)),
        x_threshold=int(_get("COLLISION_X_THRESHOLD", y, "collision_detection.x_threshold", 5)),
        y_threshold=int(_get("COLLISION_Y_THRESHOLD", y, "collision_detection.y_threshold", 5)),
        x_speed_weight=int(
            _get("COLLISION_X_SPEED_WEIGHT", y, "collision_detection.x_speed_weight", 100)
        ),
        y_speed_weight=int(
            _get("COLLISION_Y_SPEED_WEIGHT", y, "collision_detection.y_speed_weight", 100)
        ),
        window_ms=int(_get("COLLISION_WINDOW_MS", y, "collision_detection.window_ms", 100)),
    )

    return Settings(
        robot_id=str(_get("ROBOT_ID", y, "robot.id", "")),
        collision_threshold=collision_threshold,
        roll_speed=_check_speed(
            "roll_speed", float(_get("ROLL_SPEED", y, "motion.roll_speed", 0.3))
        ),
        roll_duration_ms=int(
            _get("ROLL_DURATION_MS", y, "motion.roll_duration_ms", 1000)
        ),
        calibrate_speed=_check_speed(
            "calibrate_speed", float(_get("CALIBRATE_SPEED", y, "motion.calibrate_speed", 0.0))
        ),
        light_on_color=_parse_color(
            _get("LIGHT_ON_COLOR", y, "light.on_color", (255, 255, 255))
        ),
        collision_detection=detection,
        session_duration_ms=int(
            _get("SESSION_DURATION_MS", y, "session.duration_ms", 120000)
        ),
        log_level=str(
            _get("LOG_LEVEL", y, "logging.level", "INFO")
        ),
    )
