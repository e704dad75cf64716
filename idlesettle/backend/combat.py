"""Hour-stepped progressive combat simulation with wave and fatigue tracking."""

from __future__ import annotations

import math
import random
import uuid
from dataclasses import replace
from datetime import timedelta

from idlesettle.backend.activities import profession_multiplier
from idlesettle.backend.models import (
    Activity,
    ActivityOutcome,
    BattleOutcome,
    BattleProfession,
    CombatRating,
    CombatSession,
    EnemyCategory,
    RewardCategory,
    RewardEntry,
)

MAX_FATIGUE = 0.9
REST_THRESHOLD = 0.6
REST_HOURS = 0.5
REST_RECOVERY = 0.3
BLOCK_FATIGUE = 0.01
VICTORY_RECOVERY = 0.02
DEFEAT_FATIGUE = 0.05

MIN_WIN_RATE = 0.10
MAX_WIN_RATE = 0.95
BASE_WIN_RATE = 0.7

STREAK_BONUS_EVERY = 5
STREAK_BONUS_RATE = 0.2
WAVE_UP_EVERY = 3
WAVE_DOWN_AFTER = 3

DEFEAT_EXPERIENCE_RATE = 0.2
DEFEAT_GOLD_RATE = 0.15

_RATING_THRESHOLDS: tuple[tuple[float, CombatRating], ...] = (
    (200, CombatRating.LEGENDARY),
    (150, CombatRating.EPIC),
    (100, CombatRating.EXCELLENT),
    (80, CombatRating.GOOD),
    (60, CombatRating.AVERAGE),
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def combat_efficiency(level: int, multiplier: float) -> float:
    return 1.0 + level * 0.1 * multiplier


def battle_win_rate(efficiency: float, difficulty: float, fatigue: float) -> float:
    raw = BASE_WIN_RATE * efficiency * (1 - difficulty * 0.1) * (1 - fatigue * 0.2)
    return _clamp(raw, MIN_WIN_RATE, MAX_WIN_RATE)


def wave_multiplier(wave: int) -> float:
    return 1 + (wave - 1) * 0.15


def enemy_category_for(wave: int) -> EnemyCategory:
    if wave % 10 == 0:
        return EnemyCategory.BOSS
    if wave >= 5:
        return EnemyCategory.ELITE
    return EnemyCategory.NORMAL


def battle_difficulty(initial_difficulty: float, wave: int, fatigue: float) -> float:
    return initial_difficulty + (wave - 1) * 0.1 + fatigue * 0.2


def resolve_battle(
    rng: random.Random,
    *,
    level: int,
    profession: str | BattleProfession | None,
    wave: int,
    fatigue: float,
    difficulty: float,
    base_experience: float,
    base_gold: float,
    reward_multiplier: float = 1.0,
) -> BattleOutcome:
    """Resolve one simulated battle against the current wave."""
    efficiency = combat_efficiency(level, profession_multiplier(profession))
    win_rate = battle_win_rate(efficiency, difficulty, fatigue)
    battle_id = str(uuid.UUID(int=rng.getrandbits(128), version=4))
    victory = rng.random() < win_rate
    multiplier = wave_multiplier(wave)

    if victory:
        experience = base_experience * multiplier * rng.uniform(0.8, 1.2)
        gold = base_gold * multiplier * rng.uniform(0.8, 1.2)
    else:
        experience = base_experience * DEFEAT_EXPERIENCE_RATE
        gold = base_gold * DEFEAT_GOLD_RATE

    duration_minutes = 5 * (1 + (wave - 1) * 0.1) * (1 + difficulty * 0.1)
    return BattleOutcome(
        battle_id=battle_id,
        victory=victory,
        experience=max(0, int(experience * reward_multiplier)),
        gold=max(0, int(gold * reward_multiplier)),
        duration=timedelta(minutes=duration_minutes),
        enemy_category=enemy_category_for(wave),
        details={
            "wave": wave,
            "difficulty": round(difficulty, 4),
            "win_rate": round(win_rate, 4),
            "fatigue": round(fatigue, 4),
            "wave_multiplier": round(multiplier, 4),
        },
    )


def rate_combat(win_rate: float, max_wave: int, battles: int) -> CombatRating:
    score = combat_score(win_rate, max_wave, battles)
    for threshold, rating in _RATING_THRESHOLDS:
        if score >= threshold:
            return rating
    return CombatRating.BEGINNER


def combat_score(win_rate: float, max_wave: int, battles: int) -> float:
    return win_rate * 100 + max_wave * 10 + min(battles, 100) * 0.5


def _after_victory(session: CombatSession) -> CombatSession:
    streak = session.consecutive_victories + 1
    wave = session.wave + 1 if streak % WAVE_UP_EVERY == 0 else session.wave
    return replace(
        session,
        victories=session.victories + 1,
        consecutive_victories=streak,
        consecutive_defeats=0,
        wave=wave,
        max_wave=max(session.max_wave, wave),
        fatigue=max(0.0, session.fatigue - VICTORY_RECOVERY),
    )


def _after_defeat(session: CombatSession) -> CombatSession:
    losses = session.consecutive_defeats + 1
    wave = session.wave
    if losses >= WAVE_DOWN_AFTER:
        wave = max(1, wave - 1)
        losses = 0
    return replace(
        session,
        consecutive_defeats=losses,
        consecutive_victories=0,
        wave=wave,
        fatigue=min(MAX_FATIGUE, session.fatigue + DEFEAT_FATIGUE),
    )


def _end_hour_block(session: CombatSession) -> CombatSession:
    session = replace(session, fatigue=min(MAX_FATIGUE, session.fatigue + BLOCK_FATIGUE))
    if session.fatigue > REST_THRESHOLD:
        session = replace(
            session,
            current_hour=session.current_hour + REST_HOURS,
            fatigue=max(0.0, session.fatigue - REST_RECOVERY),
        )
    return session


def simulate_combat(
    hours: float,
    *,
    level: int,
    profession: str | BattleProfession | None,
    rng: random.Random,
    base_experience_per_hour: float = 50.0,
    base_gold_per_hour: float = 10.0,
    speed_multiplier: float = 1.0,
    initial_difficulty: float = 1.0,
    team_multiplier: float = 1.0,
) -> ActivityOutcome:
    """Run the progressive combat loop over `hours` of offline time.

    Each hour block fights `battles_per_hour` battles, then accrues block
    fatigue and forces a half-hour rest once fatigue passes the rest
    threshold. Every block consumes at least the remaining time or one
    hour, so the loop is bounded; the block limit below is an extra guard
    against floating point drift.
    """
    hours = max(hours, 0.0)
    session = CombatSession()
    outcomes: list[BattleOutcome] = []
    total_experience = 0
    total_gold = 0
    streak_bonus_total = 0
    block_limit = 2 * math.ceil(hours) + 2
    blocks = 0

    while session.current_hour < hours and blocks < block_limit:
        blocks += 1
        battles_per_hour = max(1, math.floor(speed_multiplier * (1 - session.fatigue * 0.3)))
        step = 1.0 / battles_per_hour

        for _ in range(battles_per_hour):
            if session.current_hour >= hours:
                break
            difficulty = battle_difficulty(initial_difficulty, session.wave, session.fatigue)
            outcome = resolve_battle(
                rng,
                level=level,
                profession=profession,
                wave=session.wave,
                fatigue=session.fatigue,
                difficulty=difficulty,
                base_experience=base_experience_per_hour,
                base_gold=base_gold_per_hour,
                reward_multiplier=team_multiplier,
            )
            session = replace(session, battles=session.battles + 1)
            if outcome.victory:
                session = _after_victory(session)
                if session.consecutive_victories % STREAK_BONUS_EVERY == 0:
                    bonus = int(outcome.experience * STREAK_BONUS_RATE)
                    streak_bonus_total += bonus
                    outcome = replace(
                        outcome,
                        experience=outcome.experience + bonus,
                        details={**outcome.details, "streak_bonus": bonus},
                    )
            else:
                session = _after_defeat(session)

            total_experience += outcome.experience
            total_gold += outcome.gold
            outcomes.append(outcome)
            session = replace(session, current_hour=session.current_hour + step)

        session = _end_hour_block(session)

    win_rate = session.victories / session.battles if session.battles else 0.0
    rating = rate_combat(win_rate, session.max_wave, session.battles)

    rewards: tuple[RewardEntry, ...] = ()
    if outcomes:
        rewards = (
            RewardEntry(
                category=RewardCategory.COMBAT,
                description=(
                    f"Offline combat x{session.battles} "
                    f"({session.victories} victories, max wave {session.max_wave})"
                ),
                experience=total_experience,
                gold=total_gold,
                details={
                    "battles": session.battles,
                    "victories": session.victories,
                    "win_rate": round(win_rate, 4),
                    "max_wave": session.max_wave,
                    "final_wave": session.wave,
                    "final_fatigue": round(session.fatigue, 4),
                    "streak_bonus": streak_bonus_total,
                    "score": round(combat_score(win_rate, session.max_wave, session.battles), 2),
                    "rating": rating.value,
                },
            ),
        )

    return ActivityOutcome(
        activity=Activity.COMBAT,
        experience=total_experience,
        gold=total_gold,
        battles=tuple(outcomes),
        rewards=rewards,
        combat_rating=rating,
    )
