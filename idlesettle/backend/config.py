"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class BackendSettings:
    database_url: str | None
    host: str
    port: int
    log_level: str
    json_logs: bool


@dataclass(frozen=True)
class SettlementSettings:
    max_offline_hours: float = 24.0
    min_settlement_seconds: float = 60.0
    base_experience_per_hour: float = 50.0
    base_gold_per_hour: float = 10.0
    battle_speed_multiplier: float = 1.0
    initial_difficulty: float = 1.0
    time_decay_enabled: bool = False
    decay_threshold_hours: float = 48.0
    decay_factor: float = 0.8
    max_clock_skew_minutes: float = 5.0
    max_raw_offline_days: float = 30.0
    batch_max_concurrency: int = 10

    @property
    def max_offline(self) -> timedelta:
        return timedelta(hours=self.max_offline_hours)

    @property
    def min_settlement(self) -> timedelta:
        return timedelta(seconds=self.min_settlement_seconds)

    @property
    def decay_threshold(self) -> timedelta:
        return timedelta(hours=self.decay_threshold_hours)

    @property
    def max_clock_skew(self) -> timedelta:
        return timedelta(minutes=self.max_clock_skew_minutes)

    @property
    def max_raw_offline(self) -> timedelta:
        return timedelta(days=self.max_raw_offline_days)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return default if raw is None else float(raw)


def load_settings() -> BackendSettings:
    port_raw = os.getenv("IDLESETTLE_PORT", "8000")
    return BackendSettings(
        database_url=os.getenv("IDLESETTLE_DATABASE_URL"),
        host=os.getenv("IDLESETTLE_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("IDLESETTLE_LOG_LEVEL", "INFO").upper(),
        json_logs=_env_bool("IDLESETTLE_JSON_LOGS", False),
    )


def load_settlement_settings() -> SettlementSettings:
    """Read engine tuning from IDLESETTLE_* variables, falling back to the game defaults."""
    defaults = SettlementSettings()
    settings = SettlementSettings(
        max_offline_hours=_env_float("IDLESETTLE_MAX_OFFLINE_HOURS", defaults.max_offline_hours),
        min_settlement_seconds=_env_float("IDLESETTLE_MIN_SETTLEMENT_SECONDS", defaults.min_settlement_seconds),
        base_experience_per_hour=_env_float("IDLESETTLE_BASE_EXPERIENCE_PER_HOUR", defaults.base_experience_per_hour),
        base_gold_per_hour=_env_float("IDLESETTLE_BASE_GOLD_PER_HOUR", defaults.base_gold_per_hour),
        battle_speed_multiplier=_env_float("IDLESETTLE_BATTLE_SPEED_MULTIPLIER", defaults.battle_speed_multiplier),
        initial_difficulty=_env_float("IDLESETTLE_INITIAL_DIFFICULTY", defaults.initial_difficulty),
        time_decay_enabled=_env_bool("IDLESETTLE_TIME_DECAY_ENABLED", defaults.time_decay_enabled),
        decay_threshold_hours=_env_float("IDLESETTLE_DECAY_THRESHOLD_HOURS", defaults.decay_threshold_hours),
        decay_factor=_env_float("IDLESETTLE_DECAY_FACTOR", defaults.decay_factor),
        max_clock_skew_minutes=_env_float("IDLESETTLE_MAX_CLOCK_SKEW_MINUTES", defaults.max_clock_skew_minutes),
        max_raw_offline_days=_env_float("IDLESETTLE_MAX_RAW_OFFLINE_DAYS", defaults.max_raw_offline_days),
        batch_max_concurrency=int(os.getenv("IDLESETTLE_BATCH_MAX_CONCURRENCY", str(defaults.batch_max_concurrency))),
    )
    if settings.max_offline_hours <= 0:
        raise ValueError("IDLESETTLE_MAX_OFFLINE_HOURS must be positive")
    if settings.battle_speed_multiplier <= 0:
        raise ValueError("IDLESETTLE_BATTLE_SPEED_MULTIPLIER must be positive")
    if settings.batch_max_concurrency < 1:
        raise ValueError("IDLESETTLE_BATCH_MAX_CONCURRENCY must be at least 1")
    return settings
