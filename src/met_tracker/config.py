"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_PROJECT_ROOT / 'data' / 'met_tracker.db'}"


class Settings(BaseSettings):
    """All runtime configuration for the activity tracker.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Variable names are the upper-cased field
    names (``WINDOW_DURATION_MS``, ``DATABASE_URL``, ...).
    """

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Feature extraction ────────────────────────────────────
    window_duration_ms: int = 5000
    min_window_samples: int = 30
    min_rate_samples: int = 10
    min_sampling_rate_hz: float = 20.0

    # ── Classification & hysteresis ───────────────────────────
    classifier: Literal["rules"] = "rules"
    confidence_floor: float = 0.3
    hysteresis_margin: float = 0.1
    feature_queue_size: int = 64

    # ── Sessions & records ────────────────────────────────────
    min_session_ms: int = 30_000
    save_interval_seconds: int = 60
    retention_months: int = 1

    # ── Acquisition ───────────────────────────────────────────
    acquisition_source: Literal["push", "synthetic", "none"] = "push"
    synthetic_profile: Literal["still", "walking", "running"] = "still"
    default_sampling_period_us: int = 20_000  # 50 Hz

    # ── Battery-adaptive sampling ─────────────────────────────
    battery_source: Literal["fixed", "sysfs"] = "fixed"
    battery_fixed_level: int = 100
    battery_sysfs_path: str = "/sys/class/power_supply/BAT0/capacity"
    battery_check_interval_seconds: int = 300
    battery_low_threshold: int = 20
    battery_medium_threshold: int = 50
    battery_low_period_us: int = 40_000  # 25 Hz
    battery_medium_period_us: int = 30_000  # ~33 Hz
    battery_high_period_us: int = 20_000  # 50 Hz
    battery_hysteresis_pct: int = 0  # 0 = switch exactly on the threshold

    # ── Service behaviour ─────────────────────────────────────
    tracking_autostart: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
