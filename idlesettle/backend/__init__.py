"""Backend package for offline progression settlement."""

from .config import BackendSettings, SettlementSettings, load_settings, load_settlement_settings
from .settlement import OfflineSettlementService
from .store import InMemorySettlementStore, PostgresSettlementStore, SettlementStore, create_store

__all__ = [
    "BackendSettings",
    "create_store",
    "InMemorySettlementStore",
    "load_settings",
    "load_settlement_settings",
    "OfflineSettlementService",
    "PostgresSettlementStore",
    "SettlementSettings",
    "SettlementStore",
]
