"""Result aggregation and the experience-to-level update of player snapshots."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Iterable

from idlesettle.backend.models import (
    Activity,
    ActivityOutcome,
    BattleOutcome,
    CombatRating,
    LevelChange,
    PlayerSnapshot,
    RewardEntry,
    SettlementResult,
)

EXPERIENCE_PER_LEVEL = 100
HEALTH_PER_LEVEL = 10


def zero_result(
    player_id: str,
    offline_duration: timedelta,
    activity: Activity = Activity.IDLE,
    settled_at: datetime | None = None,
) -> SettlementResult:
    return SettlementResult(
        player_id=player_id,
        offline_duration=offline_duration,
        total_experience=0,
        total_gold=0,
        activity=activity,
        settled_at=settled_at or datetime.now(timezone.utc),
    )


def merge_outcomes(
    player_id: str,
    offline_duration: timedelta,
    outcomes: Iterable[ActivityOutcome],
    *,
    activity: Activity | None = None,
    extra_rewards: Iterable[RewardEntry] = (),
    warnings: Iterable[str] = (),
    settled_at: datetime | None = None,
) -> SettlementResult:
    """Additively merge simulator outputs into one immutable settlement result."""
    battles: list[BattleOutcome] = []
    rewards: list[RewardEntry] = []
    experience = 0
    gold = 0
    rating: CombatRating | None = None
    first_activity: Activity | None = None
    for outcome in outcomes:
        experience += outcome.experience
        gold += outcome.gold
        battles.extend(outcome.battles)
        rewards.extend(outcome.rewards)
        if rating is None:
            rating = outcome.combat_rating
        if first_activity is None:
            first_activity = outcome.activity
    for entry in extra_rewards:
        experience += entry.experience
        gold += entry.gold
        rewards.append(entry)

    return SettlementResult(
        player_id=player_id,
        offline_duration=offline_duration,
        total_experience=max(0, experience),
        total_gold=max(0, gold),
        battles=tuple(battles),
        rewards=tuple(rewards),
        activity=activity or first_activity or Activity.IDLE,
        combat_rating=rating,
        warnings=tuple(warnings),
        settled_at=settled_at or datetime.now(timezone.utc),
    )


def apply_decay(result: SettlementResult, factor: float) -> SettlementResult:
    """Scale totals and reward entries down for very long absences."""
    if factor >= 1.0:
        return result
    rewards = tuple(
        replace(entry, experience=int(entry.experience * factor), gold=int(entry.gold * factor))
        for entry in result.rewards
    )
    return replace(
        result,
        total_experience=int(result.total_experience * factor),
        total_gold=int(result.total_gold * factor),
        rewards=rewards,
        warnings=result.warnings + (f"rewards decayed to {factor:.1%} after a long absence",),
    )


def level_for_experience(experience: int) -> int:
    return max(1, experience // EXPERIENCE_PER_LEVEL + 1)


def apply_settlement(snapshot: PlayerSnapshot, result: SettlementResult, settled_at: datetime) -> LevelChange:
    """Return an updated copy of the snapshot with rewards, level and health applied."""
    experience = snapshot.experience + max(0, result.total_experience)
    gold = snapshot.gold + max(0, result.total_gold)
    new_level = max(snapshot.level, level_for_experience(experience))
    levels_gained = new_level - snapshot.level

    max_health = snapshot.max_health
    health = snapshot.health
    if levels_gained > 0:
        max_health += HEALTH_PER_LEVEL * levels_gained
        health = max_health

    updated = replace(
        snapshot,
        experience=experience,
        gold=gold,
        level=new_level,
        max_health=max_health,
        health=health,
        last_active_at=settled_at,
    )
    return LevelChange(snapshot=updated, levels_gained=levels_gained)
