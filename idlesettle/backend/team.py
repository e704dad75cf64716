"""Team synchronization analysis and cooperative offline settlement."""

from __future__ import annotations

import asyncio
import random
import statistics
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Callable, Mapping, Sequence

from idlesettle.backend.combat import simulate_combat
from idlesettle.backend.config import SettlementSettings
from idlesettle.backend.models import (
    ActivityOutcome,
    CooperationMode,
    PlayerSnapshot,
    RewardCategory,
    RewardEntry,
    SettlementResult,
    TeamProgressSummary,
    TeamSyncInfo,
)
from idlesettle.backend.pipeline import simulate_offline_progress

REFERENCE_SPREAD_HOURS = 12.0

HIGH_SYNC_THRESHOLD = 0.8
MEDIUM_SYNC_THRESHOLD = 0.5
LOW_SYNC_THRESHOLD = 0.2

MEMBER_BONUS = 0.15
SYNC_BONUS = 0.3
MEDIUM_SYNC_SCALE = 0.7
MEDIUM_SYNC_SEGMENT = 0.6

LEVEL_BONUS_CAP = 0.20
LEVEL_BONUS_EXPERIENCE_SCALE = 5000.0
LOYALTY_BONUS_CAP = 0.15
LOYALTY_BONUS_SCALE = 0.2


@dataclass(frozen=True)
class MemberSimulation:
    player_id: str
    cooperative: timedelta
    individual: timedelta
    outcomes: tuple[ActivityOutcome, ...]

    @property
    def experience(self) -> int:
        return sum(outcome.experience for outcome in self.outcomes)

    @property
    def gold(self) -> int:
        return sum(outcome.gold for outcome in self.outcomes)


def _hours(duration: timedelta) -> float:
    return duration.total_seconds() / 3600


def cooperation_mode_for(sync_rate: float) -> CooperationMode:
    if sync_rate >= HIGH_SYNC_THRESHOLD:
        return CooperationMode.HIGH_SYNC
    if sync_rate >= MEDIUM_SYNC_THRESHOLD:
        return CooperationMode.MEDIUM_SYNC
    if sync_rate >= LOW_SYNC_THRESHOLD:
        return CooperationMode.LOW_SYNC
    return CooperationMode.INDIVIDUAL


def analyze_team_sync(durations: Mapping[str, timedelta]) -> TeamSyncInfo:
    """Summarize how closely aligned the members' offline windows are."""
    if not durations:
        raise ValueError("team sync analysis needs at least one member duration")
    hours = [_hours(duration) for duration in durations.values()]
    std_dev = statistics.pstdev(hours)
    sync_rate = max(0.0, min(1.0, 1 - std_dev / REFERENCE_SPREAD_HOURS))
    return TeamSyncInfo(
        member_durations=dict(durations),
        mean=timedelta(hours=statistics.fmean(hours)),
        minimum=min(durations.values()),
        maximum=max(durations.values()),
        std_dev=timedelta(hours=std_dev),
        sync_rate=sync_rate,
        mode=cooperation_mode_for(sync_rate),
    )


def cooperative_team_bonus(team_size: int, sync: TeamSyncInfo) -> float:
    bonus = 1 + (team_size - 1) * MEMBER_BONUS + sync.sync_rate * SYNC_BONUS
    if sync.mode is CooperationMode.MEDIUM_SYNC:
        # never below the solo rate
        return max(1.0, bonus * MEDIUM_SYNC_SCALE)
    if sync.mode is CooperationMode.HIGH_SYNC:
        return bonus
    return 1.0


def cooperative_segment(sync: TeamSyncInfo, player_id: str) -> timedelta:
    """Shared offline time a member spends fighting alongside the team."""
    own = sync.member_durations[player_id]
    if sync.mode is CooperationMode.HIGH_SYNC:
        return min(sync.minimum, own)
    if sync.mode is CooperationMode.MEDIUM_SYNC:
        return min(sync.mean * MEDIUM_SYNC_SEGMENT, own)
    return timedelta(0)


def simulate_member(
    snapshot: PlayerSnapshot,
    sync: TeamSyncInfo,
    team_size: int,
    rng: random.Random,
    settings: SettlementSettings,
) -> MemberSimulation:
    """Settle one member's cooperative segment and individual remainder."""
    own = sync.member_durations[snapshot.player_id]
    cooperative = cooperative_segment(sync, snapshot.player_id)
    if cooperative < settings.min_settlement:
        cooperative = timedelta(0)
    individual = own - cooperative
    outcomes: list[ActivityOutcome] = []

    if cooperative:
        bonus = cooperative_team_bonus(team_size, sync)
        shared = simulate_combat(
            _hours(cooperative),
            level=snapshot.level,
            profession=snapshot.battle_profession,
            rng=rng,
            base_experience_per_hour=settings.base_experience_per_hour,
            base_gold_per_hour=settings.base_gold_per_hour,
            speed_multiplier=settings.battle_speed_multiplier,
            initial_difficulty=settings.initial_difficulty,
            team_multiplier=bonus,
        )
        details = {
            "team_bonus": round(bonus, 4),
            "team_size": team_size,
            "sync_rate": round(sync.sync_rate, 4),
            "cooperative_hours": round(_hours(cooperative), 4),
            "mode": sync.mode.value,
        }
        rewards = tuple(
            replace(
                entry,
                category=RewardCategory.TEAM_COOPERATION,
                description=f"Team cooperative combat {_hours(cooperative):.1f}h (x{bonus:.2f})",
                details={**entry.details, **details},
            )
            for entry in shared.rewards
        )
        outcomes.append(replace(shared, rewards=rewards))

    if individual >= settings.min_settlement:
        outcomes.append(simulate_offline_progress(snapshot, _hours(individual), rng, settings))

    return MemberSimulation(
        player_id=snapshot.player_id,
        cooperative=cooperative,
        individual=individual,
        outcomes=tuple(outcomes),
    )


def team_bonus_rewards(
    simulations: Sequence[MemberSimulation],
    sync: TeamSyncInfo,
) -> dict[str, tuple[RewardEntry, ...]]:
    """Level and loyalty bonuses applied once every member has been simulated."""
    if not simulations:
        return {}
    team_size = len(simulations)
    average_experience = sum(sim.experience for sim in simulations) / team_size
    level_rate = min(LEVEL_BONUS_CAP, average_experience / LEVEL_BONUS_EXPERIENCE_SCALE)
    loyalty_rate = min(LOYALTY_BONUS_CAP, sync.sync_rate * LOYALTY_BONUS_SCALE)

    bonuses: dict[str, tuple[RewardEntry, ...]] = {}
    for sim in simulations:
        entries: list[RewardEntry] = []
        level_bonus = int(sim.experience * level_rate)
        if level_bonus > 0:
            entries.append(
                RewardEntry(
                    category=RewardCategory.TEAM_BONUS,
                    description=f"Team level bonus +{level_rate:.1%} experience",
                    experience=level_bonus,
                    gold=0,
                    details={"rate": round(level_rate, 4), "team_size": team_size},
                )
            )
        loyalty_bonus = int(sim.gold * loyalty_rate)
        if loyalty_bonus > 0:
            entries.append(
                RewardEntry(
                    category=RewardCategory.TEAM_BONUS,
                    description=f"Team loyalty bonus +{loyalty_rate:.1%} gold",
                    experience=0,
                    gold=loyalty_bonus,
                    details={
                        "rate": round(loyalty_rate, 4),
                        "team_size": team_size,
                        "sync_rate": round(sync.sync_rate, 4),
                    },
                )
            )
        bonuses[sim.player_id] = tuple(entries)
    return bonuses


async def orchestrate_team(
    members: Sequence[PlayerSnapshot],
    sync: TeamSyncInfo,
    rng_for: Callable[[str], random.Random],
    settings: SettlementSettings,
) -> tuple[list[MemberSimulation], dict[str, tuple[RewardEntry, ...]]]:
    """Simulate every member in a worker thread, then compute the team-wide bonuses.

    Generators are drawn from `rng_for` in member order before any work
    starts, so the outcome does not depend on thread scheduling. The gather
    is the barrier: bonuses need every member's totals.
    """
    team_size = len(members)
    rngs = [rng_for(member.player_id) for member in members]
    simulations = await asyncio.gather(
        *(
            asyncio.to_thread(simulate_member, member, sync, team_size, rng, settings)
            for member, rng in zip(members, rngs)
        )
    )
    return list(simulations), team_bonus_rewards(simulations, sync)


def summarize_team(results: Sequence[SettlementResult], members: Sequence[PlayerSnapshot]) -> TeamProgressSummary:
    total_experience = sum(result.total_experience for result in results)
    total_offline = sum((result.offline_duration for result in results), timedelta(0))
    offline_hours = max(_hours(total_offline), 1 / 60)
    per_hour = total_experience / offline_hours
    if per_hour >= 100:
        performance = "Excellent"
    elif per_hour >= 50:
        performance = "Good"
    elif per_hour >= 20:
        performance = "Average"
    else:
        performance = "Poor"
    return TeamProgressSummary(
        total_experience=total_experience,
        total_gold=sum(result.total_gold for result in results),
        total_battles=sum(len(result.battles) for result in results),
        average_level=sum(member.level for member in members) / len(members) if members else 0.0,
        total_offline_time=total_offline,
        overall_performance=performance,
    )
