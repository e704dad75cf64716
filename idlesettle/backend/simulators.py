"""Closed-form throughput simulators for gathering, crafting and idle time."""

from __future__ import annotations

import math

from idlesettle.backend.models import Activity, ActivityOutcome, RewardCategory, RewardEntry

GATHERING_PER_HOUR = 5
GATHERING_EXPERIENCE = 20
GATHERING_GOLD = 5

CRAFTING_PER_HOUR = 3
CRAFTING_EXPERIENCE = 50
CRAFTING_GOLD = 15

IDLE_EXPERIENCE_RATE = 0.5


def _simulate_actions(
    activity: Activity,
    category: RewardCategory,
    label: str,
    hours: float,
    per_hour: int,
    unit_experience: int,
    unit_gold: int,
) -> ActivityOutcome:
    count = math.floor(max(hours, 0.0) * per_hour)
    experience = count * unit_experience
    gold = count * unit_gold
    reward = RewardEntry(
        category=category,
        description=f"Offline {label} x{count}",
        experience=experience,
        gold=gold,
        details={"actions": count},
    )
    return ActivityOutcome(activity=activity, experience=experience, gold=gold, rewards=(reward,))


def simulate_gathering(hours: float) -> ActivityOutcome:
    return _simulate_actions(
        Activity.GATHERING,
        RewardCategory.GATHERING,
        "gathering",
        hours,
        GATHERING_PER_HOUR,
        GATHERING_EXPERIENCE,
        GATHERING_GOLD,
    )


def simulate_crafting(hours: float) -> ActivityOutcome:
    return _simulate_actions(
        Activity.CRAFTING,
        RewardCategory.CRAFTING,
        "crafting",
        hours,
        CRAFTING_PER_HOUR,
        CRAFTING_EXPERIENCE,
        CRAFTING_GOLD,
    )


def simulate_idle(hours: float, base_experience_per_hour: float, base_gold_per_hour: float) -> ActivityOutcome:
    """Idle time earns half the combat experience baseline and the full gold baseline."""
    hours = max(hours, 0.0)
    experience = math.floor(hours * base_experience_per_hour * IDLE_EXPERIENCE_RATE)
    gold = math.floor(hours * base_gold_per_hour)
    reward = RewardEntry(
        category=RewardCategory.IDLE,
        description=f"Offline rest {hours:.1f}h",
        experience=experience,
        gold=gold,
        details={"hours": round(hours, 4)},
    )
    return ActivityOutcome(activity=Activity.IDLE, experience=experience, gold=gold, rewards=(reward,))
