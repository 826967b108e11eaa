"""Storage adapters that turn compiled conditions into native filters."""
from __future__ import annotations

from abilitykit.adapters.base import AdapterRegistry, StorageAdapter
from abilitykit.adapters.memory import InMemoryAdapter, RecordFilter
from abilitykit.adapters.mongo import MongoQueryAdapter
from abilitykit.adapters.sqlalchemy import SQLAlchemyAdapter


def default_adapters() -> AdapterRegistry:
    """Return a new registry holding the SQLAlchemy and MongoDB adapters."""
    return AdapterRegistry([SQLAlchemyAdapter(), MongoQueryAdapter()])


__all__ = [
    "AdapterRegistry",
    "InMemoryAdapter",
    "MongoQueryAdapter",
    "RecordFilter",
    "SQLAlchemyAdapter",
    "StorageAdapter",
    "default_adapters",
]
