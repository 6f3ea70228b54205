"""Persistence layer - document store adapters."""

from basekit.persistence.adapter import DataStoreAdapter, DuplicateKeyError
from basekit.persistence.config import DatabaseConfig, create_adapter
from basekit.persistence.memory import MemoryAdapter
from basekit.persistence.query import Query

__all__ = [
    "DataStoreAdapter",
    "DatabaseConfig",
    "DuplicateKeyError",
    "MemoryAdapter",
    "Query",
    "create_adapter",
]
