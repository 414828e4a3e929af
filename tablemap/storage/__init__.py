"""
Storage package for tablemap.

Re-exports the storage engine protocol, condition helpers and the TableStore
data access layer so downstream code can import from `tablemap.storage`.
"""

from tablemap.storage.abstract import Condition, StorageEngine, parse_condition_key, parse_conditions
from tablemap.storage.table_store import TableStore

__all__ = [
    "Condition",
    "StorageEngine",
    "TableStore",
    "parse_condition_key",
    "parse_conditions",
]
