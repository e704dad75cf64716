import pytest

from idlesettle.backend.config import load_settings, load_settlement_settings

_SETTLEMENT_VARS = (
    "IDLESETTLE_MAX_OFFLINE_HOURS",
    "IDLESETTLE_MIN_SETTLEMENT_SECONDS",
    "IDLESETTLE_BASE_EXPERIENCE_PER_HOUR",
    "IDLESETTLE_BASE_GOLD_PER_HOUR",
    "IDLESETTLE_BATTLE_SPEED_MULTIPLIER",
    "IDLESETTLE_INITIAL_DIFFICULTY",
    "IDLESETTLE_TIME_DECAY_ENABLED",
    "IDLESETTLE_DECAY_THRESHOLD_HOURS",
    "IDLESETTLE_DECAY_FACTOR",
    "IDLESETTLE_MAX_CLOCK_SKEW_MINUTES",
    "IDLESETTLE_MAX_RAW_OFFLINE_DAYS",
    "IDLESETTLE_BATCH_MAX_CONCURRENCY",
)


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("IDLESETTLE_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("IDLESETTLE_HOST", "localhost")
    monkeypatch.setenv("IDLESETTLE_PORT", "9000")
    monkeypatch.setenv("IDLESETTLE_LOG_LEVEL", "debug")
    monkeypatch.setenv("IDLESETTLE_JSON_LOGS", "true")

    settings = load_settings()

    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is True


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in ("IDLESETTLE_DATABASE_URL", "IDLESETTLE_HOST", "IDLESETTLE_PORT", "IDLESETTLE_LOG_LEVEL", "IDLESETTLE_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
    assert settings.json_logs is False


def test_load_settlement_settings_applies_defaults(monkeypatch) -> None:
    for name in _SETTLEMENT_VARS:
        monkeypatch.delenv(name, raising=False)

    settings = load_settlement_settings()

    assert settings.max_offline_hours == 24
    assert settings.min_settlement_seconds == 60
    assert settings.base_experience_per_hour == 50
    assert settings.base_gold_per_hour == 10
    assert settings.time_decay_enabled is False
    assert settings.batch_max_concurrency == 10
    assert settings.max_offline.total_seconds() == 24 * 3600


def test_load_settlement_settings_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("IDLESETTLE_MAX_OFFLINE_HOURS", "12")
    monkeypatch.setenv("IDLESETTLE_BATTLE_SPEED_MULTIPLIER", "2.5")
    monkeypatch.setenv("IDLESETTLE_TIME_DECAY_ENABLED", "yes")
    monkeypatch.setenv("IDLESETTLE_BATCH_MAX_CONCURRENCY", "4")

    settings = load_settlement_settings()

    assert settings.max_offline_hours == 12
    assert settings.battle_speed_multiplier == 2.5
    assert settings.time_decay_enabled is True
    assert settings.batch_max_concurrency == 4


def test_load_settlement_settings_rejects_bad_boolean(monkeypatch) -> None:
    monkeypatch.setenv("IDLESETTLE_TIME_DECAY_ENABLED", "maybe")

    with pytest.raises(ValueError):
        load_settlement_settings()


def test_load_settlement_settings_rejects_non_positive_cap(monkeypatch) -> None:
    monkeypatch.setenv("IDLESETTLE_MAX_OFFLINE_HOURS", "0")

    with pytest.raises(ValueError):
        load_settlement_settings()


def test_load_settlement_settings_rejects_zero_concurrency(monkeypatch) -> None:
    monkeypatch.setenv("IDLESETTLE_BATCH_MAX_CONCURRENCY", "0")

    with pytest.raises(ValueError):
        load_settlement_settings()
