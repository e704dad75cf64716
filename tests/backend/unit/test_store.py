import json
from datetime import datetime, timedelta, timezone

from idlesettle.backend.models import (
    Activity,
    CombatRating,
    PlayerSnapshot,
    RewardCategory,
    RewardEntry,
    SettlementResult,
    TeamSnapshot,
)
from idlesettle.backend.store import (
    InMemorySettlementStore,
    PostgresSettlementStore,
    apply_schema,
    create_store,
    settlement_record,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _snapshot(player_id: str = "p-1") -> PlayerSnapshot:
    return PlayerSnapshot(
        player_id=player_id,
        name="Ayla",
        level=3,
        experience=250,
        gold=40,
        health=100,
        max_health=120,
        current_activity="gathering",
        battle_profession="archer",
        last_active_at=NOW - timedelta(hours=2),
    )


def _result() -> SettlementResult:
    return SettlementResult(
        player_id="p-1",
        offline_duration=timedelta(hours=2),
        total_experience=200,
        total_gold=50,
        rewards=(RewardEntry(RewardCategory.GATHERING, "Offline gathering x10", 200, 50, {"actions": 10}),),
        activity=Activity.GATHERING,
        combat_rating=CombatRating.GOOD,
        warnings=("offline time capped at 24h",),
        settled_at=NOW,
    )


def test_create_store_returns_postgres_store_when_database_url_present() -> None:
    store = create_store(database_url="postgresql://local")

    assert isinstance(store, PostgresSettlementStore)


def test_create_store_returns_in_memory_store_when_database_url_missing() -> None:
    store = create_store(database_url=None)

    assert isinstance(store, InMemorySettlementStore)


def test_in_memory_store_round_trips_players_and_teams() -> None:
    store = InMemorySettlementStore()
    store.add_player(_snapshot())
    store.add_team(TeamSnapshot(team_id="t-1", member_ids=("p-1",), captain_id="p-1"))

    assert store.get_player("p-1") == _snapshot()
    assert store.get_player("missing") is None
    assert store.get_team("t-1").member_ids == ("p-1",)
    assert store.get_team("missing") is None


def test_in_memory_store_appends_audit_records() -> None:
    store = InMemorySettlementStore()

    store.save_settlement_record(_result())
    store.save_settlement_record(_result())

    assert len(store.records) == 2
    assert store.records[0]["id"] != store.records[1]["id"]
    assert store.records[0]["playerId"] == "p-1"


def test_settlement_record_is_json_ready() -> None:
    record = settlement_record(_result())

    assert record["offlineSeconds"] == 7200
    assert record["totalExperience"] == 200
    assert record["activity"] == "gathering"
    assert record["combatRating"] == "Good"
    assert record["battleCount"] == 0
    assert record["rewards"][0]["category"] == "Gathering"
    assert record["settledAt"] == "2024-01-01T12:00:00+00:00"
    assert json.loads(json.dumps(record)) == record


class _FakeCursor:
    def __init__(self, rows: list | None = None) -> None:
        self.commands: list[tuple[str, tuple | None]] = []
        self.rows = list(rows or [])

    def execute(self, sql: str, params: tuple | None = None) -> None:
        self.commands.append((sql, params))

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def fetchall(self):
        rows = self.rows.pop(0) if self.rows else []
        return rows

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _FakeConnection:
    def __init__(self, rows: list | None = None) -> None:
        self.cursor_instance = _FakeCursor(rows)
        self.committed = False

    def cursor(self) -> _FakeCursor:
        return self.cursor_instance

    def commit(self) -> None:
        self.committed = True

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _PostgresStoreWithFakeConnection(PostgresSettlementStore):
    def __init__(self, rows: list | None = None) -> None:
        super().__init__(database_url="postgresql://local")
        self.fake_connection = _FakeConnection(rows)

    def _connect(self) -> _FakeConnection:
        return self.fake_connection


def test_postgres_get_player_maps_row_and_assumes_utc() -> None:
    naive = datetime(2024, 1, 1, 10, 0)
    row = ("p-1", "Ayla", 3, 250, 40, 100, 120, "combat", "mage", naive)
    store = _PostgresStoreWithFakeConnection(rows=[row])

    snapshot = store.get_player("p-1")

    assert snapshot is not None
    assert snapshot.level == 3
    assert snapshot.battle_profession == "mage"
    assert snapshot.last_active_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    sql, params = store.fake_connection.cursor_instance.commands[0]
    assert "FROM players" in sql
    assert params == ("p-1",)


def test_postgres_get_player_returns_none_for_unknown_id() -> None:
    store = _PostgresStoreWithFakeConnection()

    assert store.get_player("missing") is None


def test_postgres_get_team_reads_members_in_order() -> None:
    store = _PostgresStoreWithFakeConnection(rows=[("t-1", "p-2"), [("p-2",), ("p-1",)]])

    team = store.get_team("t-1")

    assert team == TeamSnapshot(team_id="t-1", member_ids=("p-2", "p-1"), captain_id="p-2")
    commands = store.fake_connection.cursor_instance.commands
    assert len(commands) == 2
    assert "FROM team_members" in commands[1][0]


def test_postgres_get_team_returns_none_for_unknown_team() -> None:
    store = _PostgresStoreWithFakeConnection()

    assert store.get_team("missing") is None
    assert len(store.fake_connection.cursor_instance.commands) == 1


def test_postgres_save_player_updates_and_commits() -> None:
    store = _PostgresStoreWithFakeConnection()

    store.save_player(_snapshot())

    sql, params = store.fake_connection.cursor_instance.commands[0]
    assert "UPDATE players" in sql
    assert params[0] == 3
    assert params[-1] == "p-1"
    assert store.fake_connection.committed is True


def test_postgres_save_settlement_record_inserts_json_payload() -> None:
    store = _PostgresStoreWithFakeConnection()

    store.save_settlement_record(_result())

    sql, params = store.fake_connection.cursor_instance.commands[0]
    assert "INSERT INTO offline_settlements" in sql
    assert params[1] == "p-1"
    assert json.loads(params[7])["totalGold"] == 50
    assert store.fake_connection.committed is True


def test_apply_schema_executes_schema_file() -> None:
    store = _PostgresStoreWithFakeConnection()

    apply_schema(store)

    sql, params = store.fake_connection.cursor_instance.commands[0]
    assert "CREATE TABLE IF NOT EXISTS offline_settlements" in sql
    assert params is None
    assert store.fake_connection.committed is True
