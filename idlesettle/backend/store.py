"""Persistence interfaces and implementations for settlement inputs and audit records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any, Protocol
import uuid

from idlesettle.backend.models import PlayerSnapshot, SettlementResult, TeamSnapshot


class SettlementStore(Protocol):
    def get_player(self, player_id: str) -> PlayerSnapshot | None:
        """Return the stored player snapshot, or None when the player is unknown."""

    def get_team(self, team_id: str) -> TeamSnapshot | None:
        """Return the stored team, or None when the team is unknown."""

    def save_player(self, snapshot: PlayerSnapshot) -> None:
        """Persist an updated player snapshot."""

    def save_settlement_record(self, result: SettlementResult) -> None:
        """Append a settlement result to the audit trail."""


def settlement_record(result: SettlementResult) -> dict[str, Any]:
    """JSON-ready audit payload for one settlement."""
    return {
        "playerId": result.player_id,
        "offlineSeconds": result.offline_duration.total_seconds(),
        "totalExperience": result.total_experience,
        "totalGold": result.total_gold,
        "activity": result.activity.value,
        "combatRating": result.combat_rating.value if result.combat_rating else None,
        "battleCount": len(result.battles),
        "victories": sum(1 for battle in result.battles if battle.victory),
        "rewards": [
            {
                "category": entry.category.value,
                "description": entry.description,
                "experience": entry.experience,
                "gold": entry.gold,
                "details": dict(entry.details),
            }
            for entry in result.rewards
        ],
        "warnings": list(result.warnings),
        "settledAt": result.settled_at.isoformat(),
    }


@dataclass
class InMemorySettlementStore:
    players: dict[str, PlayerSnapshot] = field(default_factory=dict)
    teams: dict[str, TeamSnapshot] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    def add_player(self, snapshot: PlayerSnapshot) -> None:
        self.players[snapshot.player_id] = snapshot

    def add_team(self, team: TeamSnapshot) -> None:
        self.teams[team.team_id] = team

    def get_player(self, player_id: str) -> PlayerSnapshot | None:
        return self.players.get(player_id)

    def get_team(self, team_id: str) -> TeamSnapshot | None:
        return self.teams.get(team_id)

    def save_player(self, snapshot: PlayerSnapshot) -> None:
        self.players[snapshot.player_id] = snapshot

    def save_settlement_record(self, result: SettlementResult) -> None:
        record = settlement_record(result)
        record["id"] = str(uuid.uuid4())
        self.records.append(record)


def _player_from_row(row: tuple) -> PlayerSnapshot:
    (
        player_id,
        name,
        level,
        experience,
        gold,
        health,
        max_health,
        current_activity,
        battle_profession,
        last_active_at,
    ) = row
    if last_active_at.tzinfo is None:
        last_active_at = last_active_at.replace(tzinfo=timezone.utc)
    return PlayerSnapshot(
        player_id=player_id,
        name=name,
        level=int(level),
        experience=int(experience),
        gold=int(gold),
        health=int(health),
        max_health=int(max_health),
        current_activity=current_activity,
        battle_profession=battle_profession,
        last_active_at=last_active_at,
    )


@dataclass
class PostgresSettlementStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def get_player(self, player_id: str) -> PlayerSnapshot | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, name, level, experience, gold, health, max_health,
                           current_activity, battle_profession, last_active_at
                    FROM players
                    WHERE id = %s
                    """,
                    (player_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _player_from_row(row)

    def get_team(self, team_id: str) -> TeamSnapshot | None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT id, captain_id FROM teams WHERE id = %s", (team_id,))
                team_row = cur.fetchone()
                if team_row is None:
                    return None
                cur.execute(
                    """
                    SELECT player_id
                    FROM team_members
                    WHERE team_id = %s
                    ORDER BY position
                    """,
                    (team_id,),
                )
                member_rows = cur.fetchall()

        return TeamSnapshot(
            team_id=team_row[0],
            captain_id=team_row[1],
            member_ids=tuple(row[0] for row in member_rows),
        )

    def save_player(self, snapshot: PlayerSnapshot) -> None:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE players
                    SET level = %s, experience = %s, gold = %s, health = %s, max_health = %s,
                        last_active_at = %s, updated_at = %s
                    WHERE id = %s
                    """,
                    (
                        snapshot.level,
                        snapshot.experience,
                        snapshot.gold,
                        snapshot.health,
                        snapshot.max_health,
                        snapshot.last_active_at,
                        now,
                        snapshot.player_id,
                    ),
                )
            conn.commit()

    def save_settlement_record(self, result: SettlementResult) -> None:
        record = settlement_record(result)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO offline_settlements
                        (id, player_id, offline_seconds, total_experience, total_gold,
                         battle_count, activity, payload_json, settled_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s::jsonb, %s)
                    """,
                    (
                        str(uuid.uuid4()),
                        result.player_id,
                        record["offlineSeconds"],
                        result.total_experience,
                        result.total_gold,
                        record["battleCount"],
                        record["activity"],
                        json.dumps(record),
                        result.settled_at,
                    ),
                )
            conn.commit()


SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")


def apply_schema(store: PostgresSettlementStore) -> None:
    """Create the settlement tables on the store's database if they are missing."""
    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    with store._connect() as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        conn.commit()


def create_store(database_url: str | None) -> SettlementStore:
    if database_url:
        return PostgresSettlementStore(database_url=database_url)
    return InMemorySettlementStore()
