"""
Infrastructure package for tablemap.

Centralizes I/O collaborators: PostgreSQL connectivity (factory, pooling and
the storage engine) and the HTTP client used to fetch remote payloads. Keep
this layer focused on I/O and resource management, decoupled from the mapping
engine.
"""

from tablemap.infrastructure.db_factory import build_dsn, get_sync_connection, get_sync_pool
from tablemap.infrastructure.http_client import ApiClient
from tablemap.infrastructure.postgres import PostgresEngine

__all__ = [
    "ApiClient",
    "PostgresEngine",
    "build_dsn",
    "get_sync_connection",
    "get_sync_pool",
]
