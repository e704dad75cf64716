"""Offline settlement service: single player, team and batch entry points.

The simulators are pure and synchronous. This module owns the I/O around
them: it reads snapshots from the store, runs the CPU-bound simulations in
worker threads so an event loop is never blocked by a long combat run,
applies the leveling update and writes the snapshot and the audit record
back. Every entry point reports a typed status instead of raising; an
unexpected error fails only the player or team member being settled.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

import structlog

from idlesettle.backend.activities import select_activity
from idlesettle.backend.config import SettlementSettings
from idlesettle.backend.leveling import apply_decay, apply_settlement, merge_outcomes, zero_result
from idlesettle.backend.logging_config import safe_log_id
from idlesettle.backend.models import (
    BatchSettlement,
    OfflineWindow,
    PlayerSettlement,
    PlayerSnapshot,
    RevenueEstimate,
    SettlementResult,
    SettlementStatus,
    TeamSettlement,
)
from idlesettle.backend.pipeline import simulate_offline_progress
from idlesettle.backend.store import SettlementStore
from idlesettle.backend.team import analyze_team_sync, orchestrate_team, summarize_team
from idlesettle.backend.window import check_offline_window, resolve_offline_window

logger = structlog.get_logger(__name__)

RngFactory = Callable[[], random.Random]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _window_warnings(window: OfflineWindow) -> list[str]:
    if window.over_limit:
        hours = window.effective.total_seconds() / 3600
        return [f"offline time capped at {hours:.0f}h"]
    return []


def batch_priority(snapshot: PlayerSnapshot | None, now: datetime) -> int:
    """1 = settle first. Engaged high-level players on short absences go ahead of the rest."""
    if snapshot is None:
        return 3
    offline = now - snapshot.last_active_at
    if snapshot.level >= 20 and offline <= timedelta(hours=6):
        return 1
    if snapshot.level >= 10 or offline <= timedelta(hours=24):
        return 2
    return 3


class OfflineSettlementService:
    def __init__(
        self,
        store: SettlementStore,
        settings: SettlementSettings | None = None,
        rng_factory: RngFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings if settings is not None else SettlementSettings()
        self._rng_factory = rng_factory if rng_factory is not None else random.Random
        self._clock = clock if clock is not None else _utc_now

    @property
    def settings(self) -> SettlementSettings:
        return self._settings

    async def settle_player(self, player_id: str) -> PlayerSettlement:
        log = logger.bind(player_id=safe_log_id(player_id))
        log.info("player_settlement_started")
        try:
            snapshot = await asyncio.to_thread(self._store.get_player, player_id)
            if snapshot is None:
                return PlayerSettlement(player_id, SettlementStatus.NOT_FOUND, "player not found")

            now = self._clock()
            rejection = check_offline_window(snapshot.last_active_at, now, self._settings)
            if rejection is not None:
                log.warning("player_settlement_rejected", reason=rejection, last_active_at=snapshot.last_active_at.isoformat())
                return PlayerSettlement(player_id, SettlementStatus.REJECTED, rejection)

            window = resolve_offline_window(snapshot.last_active_at, now, self._settings)
            if not window.needs_settlement:
                return PlayerSettlement(
                    player_id,
                    SettlementStatus.ALREADY_CURRENT,
                    "offline time too short to settle",
                    result=zero_result(player_id, window.effective, select_activity(snapshot.current_activity), now),
                )

            rng = self._rng_factory()
            result = await asyncio.to_thread(self._simulate_player, snapshot, window, rng, now)
            return await self._commit(snapshot, result, now)
        except Exception as exc:
            log.error("player_settlement_failed", error=str(exc), exc_info=True)
            return PlayerSettlement(player_id, SettlementStatus.FAILED, f"settlement failed: {exc}")

    async def settle_team(self, team_id: str) -> TeamSettlement:
        log = logger.bind(team_id=safe_log_id(team_id))
        log.info("team_settlement_started")
        try:
            team = await asyncio.to_thread(self._store.get_team, team_id)
            if team is None:
                return TeamSettlement(team_id, SettlementStatus.NOT_FOUND, "team not found")

            member_ids = list(dict.fromkeys(team.member_ids))
            snapshots = await asyncio.gather(
                *(asyncio.to_thread(self._store.get_player, member_id) for member_id in member_ids)
            )
            now = self._clock()
            members: list[PlayerSnapshot] = []
            for snapshot in snapshots:
                if snapshot is None:
                    continue
                rejection = check_offline_window(snapshot.last_active_at, now, self._settings)
                if rejection is not None:
                    log.warning("team_member_skipped", player_id=safe_log_id(snapshot.player_id), reason=rejection)
                    continue
                members.append(snapshot)
            if not members:
                return TeamSettlement(team_id, SettlementStatus.NO_VALID_MEMBERS, "team has no valid members")

            windows = {
                member.player_id: resolve_offline_window(member.last_active_at, now, self._settings)
                for member in members
            }
            sync = analyze_team_sync({player_id: window.effective for player_id, window in windows.items()})
            log.info("team_sync_analyzed", mode=sync.mode.value, sync_rate=round(sync.sync_rate, 4), members=len(members))

            rng = self._rng_factory()
            seeds = {member.player_id: rng.getrandbits(64) for member in members}
            simulations, bonuses = await orchestrate_team(
                members,
                sync,
                lambda player_id: random.Random(seeds[player_id]),
                self._settings,
            )
        except Exception as exc:
            log.error("team_settlement_failed", error=str(exc), exc_info=True)
            return TeamSettlement(team_id, SettlementStatus.FAILED, f"team settlement failed: {exc}")

        results: list[SettlementResult] = []
        failed: list[str] = []
        for member, simulation in zip(members, simulations):
            window = windows[member.player_id]
            activity = select_activity(member.current_activity)
            if not window.needs_settlement:
                results.append(zero_result(member.player_id, window.effective, activity, now))
                continue
            try:
                result = merge_outcomes(
                    member.player_id,
                    window.effective,
                    simulation.outcomes,
                    activity=activity,
                    extra_rewards=bonuses.get(member.player_id, ()),
                    warnings=_window_warnings(window),
                    settled_at=now,
                )
                result = apply_decay(result, window.decay_factor)
                await self._commit(member, result, now)
            except Exception as exc:
                log.error("team_member_commit_failed", player_id=safe_log_id(member.player_id), error=str(exc), exc_info=True)
                failed.append(member.player_id)
                continue
            results.append(result)

        if not results:
            return TeamSettlement(
                team_id,
                SettlementStatus.FAILED,
                "team settlement failed: no member could be saved",
                sync=sync,
                failed_members=tuple(failed),
            )

        summary = summarize_team(results, [member for member in members if member.player_id not in failed])
        log.info(
            "team_settlement_completed",
            members=len(results),
            failed_members=len(failed),
            total_experience=summary.total_experience,
            total_battles=summary.total_battles,
            performance=summary.overall_performance,
        )
        message = f"team settled; {len(failed)} member(s) failed to save" if failed else "team settled"
        return TeamSettlement(
            team_id,
            SettlementStatus.SETTLED,
            message,
            results=tuple(results),
            sync=sync,
            summary=summary,
            failed_members=tuple(failed),
        )

    async def settle_batch(self, player_ids: Sequence[str], prioritize: bool = True) -> BatchSettlement:
        """Settle many players with bounded concurrency; one failure never aborts the batch.

        A player listed more than once is settled once per listing, one
        listing after another, so later listings see the saved snapshot.
        """
        semaphore = asyncio.Semaphore(self._settings.batch_max_concurrency)

        async def run(player_id: str) -> PlayerSettlement:
            async with semaphore:
                return await self.settle_player(player_id)

        rounds: list[list[int]] = []
        seen: dict[str, int] = {}
        for index, player_id in enumerate(player_ids):
            occurrence = seen.get(player_id, 0)
            seen[player_id] = occurrence + 1
            if occurrence == len(rounds):
                rounds.append([])
            rounds[occurrence].append(index)

        settled: dict[int, PlayerSettlement] = {}
        for indices in rounds:
            groups = await self._priority_groups(player_ids, indices) if prioritize else [indices]
            for group in groups:
                outcomes = await asyncio.gather(*(run(player_ids[index]) for index in group))
                settled.update(zip(group, outcomes))

        items = tuple(settled[index] for index in range(len(player_ids)))
        errors = tuple(f"{safe_log_id(item.player_id)}: {item.message}" for item in items if not item.success)
        success_count = len(items) - len(errors)
        logger.info("batch_settlement_completed", success_count=success_count, error_count=len(errors))
        return BatchSettlement(items=items, success_count=success_count, error_count=len(errors), errors=errors)

    async def estimate_player(self, player_id: str, offline_duration: timedelta | None = None) -> RevenueEstimate:
        """Preview a settlement without touching stored state."""
        try:
            snapshot = await asyncio.to_thread(self._store.get_player, player_id)
            if snapshot is None:
                return RevenueEstimate(player_id, SettlementStatus.NOT_FOUND, "player not found")

            now = self._clock()
            last_active_at = snapshot.last_active_at if offline_duration is None else now - offline_duration
            rejection = check_offline_window(last_active_at, now, self._settings)
            if rejection is not None:
                return RevenueEstimate(player_id, SettlementStatus.REJECTED, rejection)

            window = resolve_offline_window(last_active_at, now, self._settings)
            if not window.needs_settlement:
                return RevenueEstimate(
                    player_id,
                    SettlementStatus.ALREADY_CURRENT,
                    "offline time too short to settle",
                    window=window,
                    result=zero_result(player_id, window.effective, select_activity(snapshot.current_activity), now),
                )

            result = await asyncio.to_thread(self._simulate_player, snapshot, window, self._rng_factory(), now)
            return RevenueEstimate(player_id, SettlementStatus.SETTLED, "estimate ready", window=window, result=result)
        except Exception as exc:
            logger.error("revenue_estimate_failed", player_id=safe_log_id(player_id), error=str(exc), exc_info=True)
            return RevenueEstimate(player_id, SettlementStatus.FAILED, f"estimate failed: {exc}")

    def _simulate_player(
        self,
        snapshot: PlayerSnapshot,
        window: OfflineWindow,
        rng: random.Random,
        now: datetime,
    ) -> SettlementResult:
        hours = window.effective.total_seconds() / 3600
        outcome = simulate_offline_progress(snapshot, hours, rng, self._settings)
        result = merge_outcomes(
            snapshot.player_id,
            window.effective,
            [outcome],
            warnings=_window_warnings(window),
            settled_at=now,
        )
        return apply_decay(result, window.decay_factor)

    async def _commit(self, snapshot: PlayerSnapshot, result: SettlementResult, now: datetime) -> PlayerSettlement:
        change = apply_settlement(snapshot, result, now)
        await asyncio.to_thread(self._store.save_player, change.snapshot)
        await asyncio.to_thread(self._store.save_settlement_record, result)
        logger.info(
            "player_settlement_completed",
            player_id=safe_log_id(snapshot.player_id),
            activity=result.activity.value,
            experience=result.total_experience,
            gold=result.total_gold,
            battles=len(result.battles),
            levels_gained=change.levels_gained,
        )
        return PlayerSettlement(
            snapshot.player_id,
            SettlementStatus.SETTLED,
            "offline settlement complete",
            result=result,
            levels_gained=change.levels_gained,
        )

    async def _priority_groups(self, player_ids: Sequence[str], indices: Sequence[int]) -> list[list[int]]:
        now = self._clock()

        async def lookup(player_id: str) -> PlayerSnapshot | None:
            try:
                return await asyncio.to_thread(self._store.get_player, player_id)
            except Exception as exc:
                logger.warning("batch_priority_lookup_failed", player_id=safe_log_id(player_id), error=str(exc))
                return None

        snapshots = await asyncio.gather(*(lookup(player_ids[index]) for index in indices))
        groups: dict[int, list[int]] = {1: [], 2: [], 3: []}
        for index, snapshot in zip(indices, snapshots):
            groups[batch_priority(snapshot, now)].append(index)
        return [groups[priority] for priority in sorted(groups) if groups[priority]]
