"""FastAPI endpoints for player, team and batch offline settlement."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .config import load_settings, load_settlement_settings
from .logging_config import configure_logging
from .models import (
    BattleOutcome,
    PlayerSettlement,
    RewardEntry,
    SettlementResult,
    SettlementStatus,
    TeamSyncInfo,
)
from .settlement import OfflineSettlementService
from .store import create_store

_STATUS_CODES: dict[SettlementStatus, int] = {
    SettlementStatus.NOT_FOUND: 404,
    SettlementStatus.NO_VALID_MEMBERS: 422,
    SettlementStatus.REJECTED: 409,
    SettlementStatus.FAILED: 500,
}


class BattleOutcomeResponse(BaseModel):
    battle_id: str
    victory: bool
    experience: int
    gold: int
    duration_seconds: float
    enemy_category: str
    details: dict[str, Any]

    @classmethod
    def from_outcome(cls, outcome: BattleOutcome) -> "BattleOutcomeResponse":
        return cls(
            battle_id=outcome.battle_id,
            victory=outcome.victory,
            experience=outcome.experience,
            gold=outcome.gold,
            duration_seconds=outcome.duration.total_seconds(),
            enemy_category=outcome.enemy_category.value,
            details=dict(outcome.details),
        )


class RewardEntryResponse(BaseModel):
    category: str
    description: str
    experience: int
    gold: int
    details: dict[str, Any]

    @classmethod
    def from_entry(cls, entry: RewardEntry) -> "RewardEntryResponse":
        return cls(
            category=entry.category.value,
            description=entry.description,
            experience=entry.experience,
            gold=entry.gold,
            details=dict(entry.details),
        )


class SettlementResultResponse(BaseModel):
    player_id: str
    offline_seconds: float
    total_experience: int
    total_gold: int
    activity: str
    combat_rating: str | None
    battles: list[BattleOutcomeResponse]
    rewards: list[RewardEntryResponse]
    warnings: list[str]
    settled_at: str

    @classmethod
    def from_result(cls, result: SettlementResult) -> "SettlementResultResponse":
        return cls(
            player_id=result.player_id,
            offline_seconds=result.offline_duration.total_seconds(),
            total_experience=result.total_experience,
            total_gold=result.total_gold,
            activity=result.activity.value,
            combat_rating=result.combat_rating.value if result.combat_rating else None,
            battles=[BattleOutcomeResponse.from_outcome(outcome) for outcome in result.battles],
            rewards=[RewardEntryResponse.from_entry(entry) for entry in result.rewards],
            warnings=list(result.warnings),
            settled_at=result.settled_at.isoformat(),
        )


class PlayerSettlementResponse(BaseModel):
    player_id: str
    status: str
    message: str
    levels_gained: int = 0
    result: SettlementResultResponse | None = None

    @classmethod
    def from_settlement(cls, settlement: PlayerSettlement) -> "PlayerSettlementResponse":
        return cls(
            player_id=settlement.player_id,
            status=settlement.status.value,
            message=settlement.message,
            levels_gained=settlement.levels_gained,
            result=SettlementResultResponse.from_result(settlement.result) if settlement.result else None,
        )


class TeamSyncResponse(BaseModel):
    mode: str
    sync_rate: float
    mean_offline_seconds: float
    min_offline_seconds: float
    max_offline_seconds: float

    @classmethod
    def from_sync(cls, sync: TeamSyncInfo) -> "TeamSyncResponse":
        return cls(
            mode=sync.mode.value,
            sync_rate=sync.sync_rate,
            mean_offline_seconds=sync.mean.total_seconds(),
            min_offline_seconds=sync.minimum.total_seconds(),
            max_offline_seconds=sync.maximum.total_seconds(),
        )


class TeamSettlementResponse(BaseModel):
    team_id: str
    message: str
    sync: TeamSyncResponse
    overall_performance: str
    total_experience: int
    total_gold: int
    total_battles: int
    results: list[SettlementResultResponse]
    failed_members: list[str] = []


class BatchRequest(BaseModel):
    player_ids: list[str] = Field(min_length=1, max_length=500)
    prioritize: bool = True


class BatchResponse(BaseModel):
    total_processed: int
    success_count: int
    error_count: int
    errors: list[str]
    items: list[PlayerSettlementResponse]


class EstimateResponse(BaseModel):
    player_id: str
    status: str
    raw_offline_seconds: float
    effective_offline_seconds: float
    over_limit: bool
    decay_factor: float
    estimated_experience: int
    estimated_gold: int
    result: SettlementResultResponse | None = None


def _raise_for_status(status: SettlementStatus, message: str) -> None:
    code = _STATUS_CODES.get(status)
    if code is not None:
        raise HTTPException(status_code=code, detail=message)


def _default_service() -> OfflineSettlementService:
    backend_settings = load_settings()
    configure_logging(backend_settings.log_level, backend_settings.json_logs)
    return OfflineSettlementService(
        store=create_store(backend_settings.database_url),
        settings=load_settlement_settings(),
    )


def create_app(service: OfflineSettlementService | None = None) -> FastAPI:
    app = FastAPI(title="Offline Settlement API", version="0.1.0")
    settlement_service = service if service is not None else _default_service()
    app.state.settlement_service = settlement_service

    def get_service() -> OfflineSettlementService:
        return settlement_service

    @app.post("/api/offline-settlement/player/{player_id}", response_model=PlayerSettlementResponse)
    async def settle_player(
        player_id: str,
        local_service: OfflineSettlementService = Depends(get_service),
    ) -> PlayerSettlementResponse:
        settlement = await local_service.settle_player(player_id)
        _raise_for_status(settlement.status, settlement.message)
        return PlayerSettlementResponse.from_settlement(settlement)

    @app.post("/api/offline-settlement/team/{team_id}", response_model=TeamSettlementResponse)
    async def settle_team(
        team_id: str,
        local_service: OfflineSettlementService = Depends(get_service),
    ) -> TeamSettlementResponse:
        settlement = await local_service.settle_team(team_id)
        _raise_for_status(settlement.status, settlement.message)
        if settlement.sync is None or settlement.summary is None:
            raise HTTPException(status_code=500, detail="team settlement returned no summary")
        return TeamSettlementResponse(
            team_id=settlement.team_id,
            message=settlement.message,
            sync=TeamSyncResponse.from_sync(settlement.sync),
            overall_performance=settlement.summary.overall_performance,
            total_experience=settlement.summary.total_experience,
            total_gold=settlement.summary.total_gold,
            total_battles=settlement.summary.total_battles,
            results=[SettlementResultResponse.from_result(result) for result in settlement.results],
            failed_members=list(settlement.failed_members),
        )

    @app.post("/api/offline-settlement/batch", response_model=BatchResponse)
    async def settle_batch(
        payload: BatchRequest,
        local_service: OfflineSettlementService = Depends(get_service),
    ) -> BatchResponse:
        batch = await local_service.settle_batch(payload.player_ids, prioritize=payload.prioritize)
        return BatchResponse(
            total_processed=batch.total_processed,
            success_count=batch.success_count,
            error_count=batch.error_count,
            errors=list(batch.errors),
            items=[PlayerSettlementResponse.from_settlement(item) for item in batch.items],
        )

    @app.get("/api/offline-settlement/estimate/{player_id}", response_model=EstimateResponse)
    async def estimate_player(
        player_id: str,
        hours: float | None = Query(default=None, ge=0, le=24 * 30),
        local_service: OfflineSettlementService = Depends(get_service),
    ) -> EstimateResponse:
        offline = timedelta(hours=hours) if hours is not None else None
        estimate = await local_service.estimate_player(player_id, offline_duration=offline)
        _raise_for_status(estimate.status, estimate.message)
        if estimate.window is None or estimate.result is None:
            raise HTTPException(status_code=500, detail="estimate returned no result")
        return EstimateResponse(
            player_id=estimate.player_id,
            status=estimate.status.value,
            raw_offline_seconds=estimate.window.raw.total_seconds(),
            effective_offline_seconds=estimate.window.effective.total_seconds(),
            over_limit=estimate.window.over_limit,
            decay_factor=estimate.window.decay_factor,
            estimated_experience=estimate.result.total_experience,
            estimated_gold=estimate.result.total_gold,
            result=SettlementResultResponse.from_result(estimate.result),
        )

    return app


app = create_app()
