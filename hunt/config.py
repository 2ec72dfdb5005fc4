"""Load settings and env configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from hunt.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
REPORTS_DIR: Path = ROOT_DIR / "reports"
DATA_DIR: Path = Path(os.environ.get("HUNT_DATA_DIR", "") or ROOT_DIR / "data").expanduser()

DEFAULTS: dict[str, dict[str, Any]] = {
    "matching": {
        "fuzzy_threshold": 0.8,
        # 0 keeps substring containment an unconditional duplicate signal
        "substring_min_length": 0,
        "workers": 1,
        "batch_size": 500,
    },
    "scoring": {
        "pay_ceiling": 300_000,
    },
}


@dataclass(frozen=True)
class MatchSettings:
    fuzzy_threshold: float = 0.8
    substring_min_length: int = 0
    workers: int = 1
    batch_size: int = 500


@dataclass(frozen=True)
class ScoreSettings:
    pay_ceiling: int = 300_000


@dataclass(frozen=True)
class Settings:
    matching: MatchSettings = field(default_factory=MatchSettings)
    scoring: ScoreSettings = field(default_factory=ScoreSettings)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _settings_path() -> Path:
    override = get_env("HUNT_SETTINGS")
    return Path(override).expanduser() if override else SETTINGS_PATH


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def settings_from_dict(data: dict[str, Any]) -> Settings:
    merged = _merge(DEFAULTS, data or {})
    m = merged["matching"]
    s = merged["scoring"]
    matching = MatchSettings(
        fuzzy_threshold=float(m["fuzzy_threshold"]),
        substring_min_length=int(m["substring_min_length"]),
        workers=max(1, int(m["workers"])),
        batch_size=max(1, int(m["batch_size"])),
    )
    pay_ceiling = int(s["pay_ceiling"])
    if pay_ceiling <= 0:
        log.warning("scoring.pay_ceiling must be positive (got %d); using default", pay_ceiling)
        pay_ceiling = ScoreSettings.pay_ceiling
    return Settings(matching=matching, scoring=ScoreSettings(pay_ceiling=pay_ceiling))


def load_settings(path: Path | None = None) -> Settings:
    """Read settings.yaml over the built-in defaults. A missing file means defaults."""
    path = path or _settings_path()
    if not path.exists():
        log.debug("No settings file at %s; using defaults", path)
        return settings_from_dict({})
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return settings_from_dict(data)

