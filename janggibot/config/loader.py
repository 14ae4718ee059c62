"""Configuration loader for janggibot.

Loads configuration from YAML files and environment variables.
Environment variables override YAML values using the JANGGIBOT_ prefix.
Nested keys use double underscores: JANGGIBOT_ORCHESTRATOR__MAX_RETRIES=2

The resulting Config is frozen; sessions receive it as an immutable snapshot.
"""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from janggibot.models.board import Formation, PlayerSide

ENV_PREFIX = "JANGGIBOT_"


class PlayMode(StrEnum):
    """Time control modes."""

    RAPID = "rapid"
    CLASSIC = "classic"
    FLEXIBLE = "flexible"


class ControllerBackend(StrEnum):
    """Available device controller backends."""

    SIMULATED = "simulated"
    ADB = "adb"


class MatchConfig(BaseModel):
    """Match setup."""

    formation: Formation = Field(default=Formation.MASANG_SANGMA)
    our_side: PlayerSide = Field(default=PlayerSide.BLUE)
    run_start_flow: bool = Field(default=False, description="Tap through the match start dialogs")

    model_config = {"frozen": True}

    @field_validator("formation", mode="before")
    @classmethod
    def _parse_formation(cls, value: Any) -> Formation:
        return Formation.parse(value)


class TimeConfig(BaseModel):
    """Session and per-move time budgets."""

    mode: PlayMode = Field(default=PlayMode.CLASSIC)
    session_budget_s: float = Field(default=600.0, gt=0)
    rapid_move_ms: int = Field(default=250, ge=1)
    classic_move_ms: int = Field(default=1000, ge=1)
    increment_ms: int = Field(default=0, ge=0, description="Credited per confirmed move")
    flexible_moves_to_go: int = Field(default=30, ge=1)
    flexible_min_move_ms: int = Field(default=100, ge=1)
    engine_grace_ms: int = Field(default=50, ge=0, description="Wait after early-stop request")

    model_config = {"frozen": True}


class OrchestratorConfig(BaseModel):
    """Turn loop settings."""

    confidence_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    max_retries: int = Field(default=1, ge=1, le=10)
    connect_timeout_ms: int = Field(default=10000, ge=1)
    capture_timeout_ms: int = Field(default=2000, ge=1)
    inject_timeout_ms: int = Field(default=2000, ge=1)
    poll_interval_ms: int = Field(default=500, ge=1)
    opponent_stall_timeout_s: float = Field(default=120.0, gt=0)
    diagnostic_history: int = Field(default=10, ge=1, le=1000)

    model_config = {"frozen": True}


class OverlayTemplateConfig(BaseModel):
    """A dismissible overlay known by its appearance."""

    id: str = Field(..., min_length=1)
    image_path: str = Field(..., min_length=1)
    region: tuple[int, int, int, int] = Field(..., description="(x, y, width, height)")
    dismiss_x: int = Field(..., ge=0)
    dismiss_y: int = Field(..., ge=0)
    threshold: float = Field(default=0.9, ge=0.0, le=1.0)

    model_config = {"frozen": True}


class RecoveryConfig(BaseModel):
    """Anomaly detection and recovery settings."""

    settle_threshold: float = Field(default=0.02, ge=0.0, le=1.0)
    settle_backoff_ms: int = Field(default=100, ge=1)
    settle_backoff_factor: float = Field(default=2.0, ge=1.0)
    settle_max_attempts: int = Field(default=4, ge=1)
    drift_tolerance_px: float = Field(default=12.0, ge=0.0)
    overlays: list[OverlayTemplateConfig] = Field(default_factory=list)

    model_config = {"frozen": True}


class ControllerConfig(BaseModel):
    """Device controller selection."""

    backend: ControllerBackend = Field(default=ControllerBackend.SIMULATED)
    serial: str = Field(default="127.0.0.1:5555")
    adb_path: str = Field(default="adb")
    tap_interval_ms: int = Field(default=30, ge=0)
    opponent_script: list[str] = Field(
        default_factory=list, description="Opponent moves played by the simulated device"
    )

    model_config = {"frozen": True}


class EngineConfig(BaseModel):
    """Engine selection."""

    backend: str = Field(default="scripted", description="'scripted' or 'module:Class'")
    script: list[str] = Field(default_factory=list, description="Moves for the scripted engine")

    model_config = {"frozen": True}


class VisionConfig(BaseModel):
    """Recognizer selection."""

    backend: str = Field(default="simulated", description="'simulated' or 'module:Class'")

    model_config = {"frozen": True}


class EventsConfig(BaseModel):
    """Event publishing settings."""

    queue_size: int = Field(default=1000, ge=1)
    replay_buffer_size: int = Field(default=500, ge=1)
    log_events: bool = Field(default=True)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="readable", pattern="^(readable|json)$")

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration model."""

    match: MatchConfig = Field(default_factory=MatchConfig)
    time: TimeConfig = Field(default_factory=TimeConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    controller: ControllerConfig = Field(default_factory=ControllerConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def with_overrides(self, updates: dict[str, Any]) -> Config:
        """Return a validated copy with nested ``updates`` merged in."""
        merged = _deep_merge(self.model_dump(), updates)
        return Config.model_validate(merged)


def _get_env_value(key: str) -> str | None:
    """Get environment variable with JANGGIBOT_ prefix."""
    return os.environ.get(f"{ENV_PREFIX}{key.upper()}")


def _apply_env_overrides(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Apply environment variable overrides to config data.

    Only keys present in ``data`` are overridable; values are converted to
    the type of the value they replace. Lists are read as comma-separated
    items.
    """
    result = data.copy()

    for key, value in result.items():
        env_key = f"{prefix}__{key}" if prefix else key

        if isinstance(value, dict):
            result[key] = _apply_env_overrides(value, env_key)
        else:
            env_value = _get_env_value(env_key)
            if env_value is not None:
                if isinstance(value, bool):
                    result[key] = env_value.lower() in ("true", "1", "yes")
                elif isinstance(value, int):
                    result[key] = int(env_value)
                elif isinstance(value, float):
                    result[key] = float(env_value)
                elif isinstance(value, list):
                    result[key] = [item.strip() for item in env_value.split(",") if item.strip()]
                else:
                    result[key] = env_value

    return result


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep merge updates into base dict."""
    result = base.copy()
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def default_config_path() -> Path:
    """Path of the bundled default configuration."""
    return Path(__file__).resolve().parent.parent.parent / "configs" / "default.yaml"


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default.yaml.

    Returns:
        Validated, frozen Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config values are invalid.
    """
    path = default_config_path() if config_path is None else Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    # Overrides are resolved against the full default tree so that keys
    # omitted from the YAML file can still be set from the environment.
    data = _deep_merge(Config().model_dump(mode="json"), data)
    data = _apply_env_overrides(data)

    return Config.model_validate(data)


def get_default_config() -> Config:
    """Get default configuration without loading from file."""
    return Config()
