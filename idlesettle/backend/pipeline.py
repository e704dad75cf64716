"""Single-player simulation pipeline: strategy selection and dispatch."""

from __future__ import annotations

import random

from idlesettle.backend.activities import select_activity
from idlesettle.backend.combat import simulate_combat
from idlesettle.backend.config import SettlementSettings
from idlesettle.backend.models import Activity, ActivityOutcome, PlayerSnapshot
from idlesettle.backend.simulators import simulate_crafting, simulate_gathering, simulate_idle


def simulate_offline_progress(
    snapshot: PlayerSnapshot,
    hours: float,
    rng: random.Random,
    settings: SettlementSettings,
) -> ActivityOutcome:
    activity = select_activity(snapshot.current_activity)
    if activity is Activity.COMBAT:
        return simulate_combat(
            hours,
            level=snapshot.level,
            profession=snapshot.battle_profession,
            rng=rng,
            base_experience_per_hour=settings.base_experience_per_hour,
            base_gold_per_hour=settings.base_gold_per_hour,
            speed_multiplier=settings.battle_speed_multiplier,
            initial_difficulty=settings.initial_difficulty,
        )
    if activity is Activity.GATHERING:
        return simulate_gathering(hours)
    if activity is Activity.CRAFTING:
        return simulate_crafting(hours)
    return simulate_idle(hours, settings.base_experience_per_hour, settings.base_gold_per_hour)
