from datetime import datetime, timedelta, timezone

from idlesettle.backend.config import SettlementSettings
from idlesettle.backend.window import check_offline_window, decay_factor_for, resolve_offline_window

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_resolve_offline_window_skips_sub_minute_absence() -> None:
    window = resolve_offline_window(NOW - timedelta(seconds=30), NOW)

    assert window.raw == timedelta(seconds=30)
    assert window.needs_settlement is False
    assert window.over_limit is False


def test_resolve_offline_window_keeps_short_absence() -> None:
    window = resolve_offline_window(NOW - timedelta(hours=2), NOW)

    assert window.effective == timedelta(hours=2)
    assert window.needs_settlement is True
    assert window.decay_factor == 1.0


def test_resolve_offline_window_caps_long_absence() -> None:
    window = resolve_offline_window(NOW - timedelta(hours=30), NOW)

    assert window.raw == timedelta(hours=30)
    assert window.effective == timedelta(hours=24)
    assert window.over_limit is True


def test_resolve_offline_window_clamps_future_activity_to_zero() -> None:
    window = resolve_offline_window(NOW + timedelta(minutes=1), NOW)

    assert window.raw == timedelta(0)
    assert window.effective == timedelta(0)
    assert window.needs_settlement is False


def test_resolve_offline_window_respects_custom_cap() -> None:
    settings = SettlementSettings(max_offline_hours=8)

    window = resolve_offline_window(NOW - timedelta(hours=10), NOW, settings)

    assert window.effective == timedelta(hours=8)


def test_decay_factor_is_neutral_when_disabled() -> None:
    assert decay_factor_for(timedelta(days=10), SettlementSettings()) == 1.0


def test_decay_factor_applies_per_day_past_threshold() -> None:
    settings = SettlementSettings(time_decay_enabled=True)

    assert decay_factor_for(timedelta(hours=24), settings) == 1.0
    assert decay_factor_for(timedelta(hours=72), settings) == 0.8


def test_decay_factor_never_drops_below_half() -> None:
    settings = SettlementSettings(time_decay_enabled=True)

    factor = decay_factor_for(timedelta(days=25), settings)

    assert factor == 0.5


def test_check_offline_window_rejects_future_activity_beyond_skew() -> None:
    reason = check_offline_window(NOW + timedelta(minutes=10), NOW, SettlementSettings())

    assert reason is not None
    assert "clock" in reason


def test_check_offline_window_tolerates_small_skew() -> None:
    assert check_offline_window(NOW + timedelta(minutes=2), NOW, SettlementSettings()) is None


def test_check_offline_window_rejects_implausible_absence() -> None:
    reason = check_offline_window(NOW - timedelta(days=31), NOW, SettlementSettings())

    assert reason == "offline duration exceeds the plausible maximum"
