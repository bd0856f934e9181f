"""
Storage Layer for the IoT Device Ledger

Provides:
- WorldState abstraction (InMemory for dev, Postgres for prod)
- Environment-based configuration
"""

from .store import (
    WorldState,
    InMemoryWorldState,
    PostgresWorldState,
)
from .config import (
    DatabaseConfig,
    WorldStateDriver,
    get_database_config,
    get_database_url,
    get_worldstate_driver,
)

__all__ = [
    "WorldState",
    "InMemoryWorldState",
    "PostgresWorldState",
    "DatabaseConfig",
    "WorldStateDriver",
    "get_database_config",
    "get_database_url",
    "get_worldstate_driver",
]
