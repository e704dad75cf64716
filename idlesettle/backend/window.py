"""Offline window resolution: clamp, decay and anomaly checks."""

from __future__ import annotations

from datetime import datetime, timedelta

from idlesettle.backend.config import SettlementSettings
from idlesettle.backend.models import OfflineWindow

_ZERO = timedelta(0)
_MIN_DECAY = 0.5


def resolve_offline_window(
    last_active_at: datetime,
    now: datetime,
    settings: SettlementSettings | None = None,
) -> OfflineWindow:
    """Clamp raw elapsed time to the settlement window and decide whether settlement is needed."""
    active_settings = settings if settings is not None else SettlementSettings()
    raw = max(now - last_active_at, _ZERO)
    effective = min(raw, active_settings.max_offline)
    return OfflineWindow(
        raw=raw,
        effective=effective,
        needs_settlement=effective >= active_settings.min_settlement,
        over_limit=raw > active_settings.max_offline,
        decay_factor=decay_factor_for(raw, active_settings),
    )


def decay_factor_for(raw: timedelta, settings: SettlementSettings) -> float:
    if not settings.time_decay_enabled or raw <= settings.decay_threshold:
        return 1.0
    excess_days = (raw - settings.decay_threshold).total_seconds() / 86400
    return max(_MIN_DECAY, settings.decay_factor**excess_days)


def check_offline_window(last_active_at: datetime, now: datetime, settings: SettlementSettings) -> str | None:
    """Return a rejection reason for implausible offline windows, or None when the window is usable."""
    if last_active_at - now > settings.max_clock_skew:
        return "last activity lies in the future; client clock out of sync"
    if now - last_active_at > settings.max_raw_offline:
        return "offline duration exceeds the plausible maximum"
    return None
