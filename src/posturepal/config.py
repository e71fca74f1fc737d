from __future__ import annotations

from dataclasses import dataclass, fields, replace
from numbers import Real
from pathlib import Path
from typing import Any

import yaml

from posturepal.classifier import DEFAULT_SENSITIVITY, SENSITIVITY_MAX, SENSITIVITY_MIN, SENSITIVITY_STEP

DEFAULT_STATS_PATH = "~/.posturepal/history.json"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class MonitorSettings:
    sensitivity: int = DEFAULT_SENSITIVITY
    sound_enabled: bool = True
    notifications_enabled: bool = True
    stats_path: str = DEFAULT_STATS_PATH
    display_fps: float = 30.0
    background_interval_s: float = 1.0

    def __post_init__(self) -> None:
        validate_sensitivity(self.sensitivity)
        for name in ("sound_enabled", "notifications_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")
        if not isinstance(self.stats_path, str):
            raise ConfigError(f"stats_path must be a path string, got {self.stats_path!r}")
        for name in ("display_fps", "background_interval_s"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ConfigError(f"{name} must be a number, got {value!r}")
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")

    def with_overrides(self, **overrides: Any) -> "MonitorSettings":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def validate_sensitivity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"sensitivity must be an integer, got {value!r}")
    if not SENSITIVITY_MIN <= value <= SENSITIVITY_MAX:
        raise ConfigError(f"sensitivity must be between {SENSITIVITY_MIN} and {SENSITIVITY_MAX}, got {value}")
    if value % SENSITIVITY_STEP:
        raise ConfigError(f"sensitivity must be a multiple of {SENSITIVITY_STEP}, got {value}")
    return value


def _load_doc(config_path: Path) -> dict:
    if not config_path.exists():
        return {}

    with config_path.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise ConfigError(f"Config root in {config_path} must be a mapping")
    return doc


def load_settings(config_path: Path) -> MonitorSettings:
    section = _load_doc(config_path).get("settings") or {}
    if not isinstance(section, dict):
        raise ConfigError(f"settings in {config_path} must be a mapping")
    known = {f.name for f in fields(MonitorSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {config_path}: {', '.join(unknown)}")
    return MonitorSettings(**section)


def load_model_config(config_path: Path, model_name: str) -> dict:
    models = _load_doc(config_path).get("models", {})
    return models.get(model_name, {})
