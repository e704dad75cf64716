"""Domain models for offline settlement inputs, results and service outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping


class Activity(str, Enum):
    COMBAT = "combat"
    GATHERING = "gathering"
    CRAFTING = "crafting"
    IDLE = "idle"


class BattleProfession(str, Enum):
    WARRIOR = "warrior"
    ARCHER = "archer"
    MAGE = "mage"
    OTHER = "other"


class EnemyCategory(str, Enum):
    NORMAL = "normal"
    ELITE = "elite"
    BOSS = "boss"


class CombatRating(str, Enum):
    LEGENDARY = "Legendary"
    EPIC = "Epic"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    BEGINNER = "Beginner"


class CooperationMode(str, Enum):
    INDIVIDUAL = "Individual"
    LOW_SYNC = "LowSync"
    MEDIUM_SYNC = "MediumSync"
    HIGH_SYNC = "HighSync"


class RewardCategory(str, Enum):
    COMBAT = "Combat"
    GATHERING = "Gathering"
    CRAFTING = "Crafting"
    IDLE = "Idle"
    TEAM_COOPERATION = "TeamCooperation"
    TEAM_BONUS = "TeamBonus"


class SettlementStatus(str, Enum):
    SETTLED = "settled"
    ALREADY_CURRENT = "already_current"
    NOT_FOUND = "not_found"
    NO_VALID_MEMBERS = "no_valid_members"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class PlayerSnapshot:
    player_id: str
    name: str
    level: int
    experience: int
    gold: int
    health: int
    max_health: int
    current_activity: str
    battle_profession: str
    last_active_at: datetime


@dataclass(frozen=True)
class TeamSnapshot:
    team_id: str
    member_ids: tuple[str, ...]
    captain_id: str


@dataclass(frozen=True)
class BattleOutcome:
    battle_id: str
    victory: bool
    experience: int
    gold: int
    duration: timedelta
    enemy_category: EnemyCategory
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RewardEntry:
    category: RewardCategory
    description: str
    experience: int
    gold: int
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActivityOutcome:
    """Output of one simulator run over one segment of offline time."""

    activity: Activity
    experience: int
    gold: int
    battles: tuple[BattleOutcome, ...] = ()
    rewards: tuple[RewardEntry, ...] = ()
    combat_rating: CombatRating | None = None


@dataclass(frozen=True)
class SettlementResult:
    player_id: str
    offline_duration: timedelta
    total_experience: int
    total_gold: int
    battles: tuple[BattleOutcome, ...] = ()
    rewards: tuple[RewardEntry, ...] = ()
    activity: Activity = Activity.IDLE
    combat_rating: CombatRating | None = None
    warnings: tuple[str, ...] = ()
    settled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class CombatSession:
    """Transient state of one progressive combat run."""

    current_hour: float = 0.0
    wave: int = 1
    fatigue: float = 0.0
    consecutive_victories: int = 0
    consecutive_defeats: int = 0
    battles: int = 0
    victories: int = 0
    max_wave: int = 1


@dataclass(frozen=True)
class TeamSyncInfo:
    member_durations: Mapping[str, timedelta]
    mean: timedelta
    minimum: timedelta
    maximum: timedelta
    std_dev: timedelta
    sync_rate: float
    mode: CooperationMode


@dataclass(frozen=True)
class OfflineWindow:
    raw: timedelta
    effective: timedelta
    needs_settlement: bool
    over_limit: bool
    decay_factor: float = 1.0


@dataclass(frozen=True)
class LevelChange:
    snapshot: PlayerSnapshot
    levels_gained: int


@dataclass(frozen=True)
class PlayerSettlement:
    player_id: str
    status: SettlementStatus
    message: str
    result: SettlementResult | None = None
    levels_gained: int = 0

    @property
    def success(self) -> bool:
        return self.status in (SettlementStatus.SETTLED, SettlementStatus.ALREADY_CURRENT)


@dataclass(frozen=True)
class TeamProgressSummary:
    total_experience: int
    total_gold: int
    total_battles: int
    average_level: float
    total_offline_time: timedelta
    overall_performance: str


@dataclass(frozen=True)
class TeamSettlement:
    team_id: str
    status: SettlementStatus
    message: str
    results: tuple[SettlementResult, ...] = ()
    sync: TeamSyncInfo | None = None
    summary: TeamProgressSummary | None = None
    failed_members: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.status == SettlementStatus.SETTLED


@dataclass(frozen=True)
class BatchSettlement:
    items: tuple[PlayerSettlement, ...]
    success_count: int
    error_count: int
    errors: tuple[str, ...] = ()

    @property
    def total_processed(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class RevenueEstimate:
    player_id: str
    status: SettlementStatus
    message: str
    window: OfflineWindow | None = None
    result: SettlementResult | None = None
