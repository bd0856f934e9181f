"""
Shared World State

Builds the WorldState and DeviceLedgerService used by the API and CLI.
Supports both in-memory (development) and PostgreSQL (production) modes.

Mode is determined by environment variables:
- WORLDSTATE_DRIVER: Explicit driver selection (memory, psycopg2)
- DATABASE_URL or DATABASE_HOST: Database connection (auto-selects psycopg2)
- Neither set: Use in-memory (default for development)

Unlike a silent fallback, a configured-but-unreachable database is an
error: the service refuses to start rather than run on empty state.
"""

from threading import Lock
from typing import Optional

import psycopg2

from iotledger.core import DeviceLedgerService
from iotledger.db.config import (
    DatabaseConfig,
    WorldStateDriver,
    get_database_config,
    get_worldstate_driver,
)
from iotledger.db.store import InMemoryWorldState, PostgresWorldState, WorldState
from iotledger.observability import get_logger

logger = get_logger(__name__)

_lock = Lock()
_world_state: Optional[WorldState] = None
_service: Optional[DeviceLedgerService] = None


def create_world_state() -> WorldState:
    """
    Create the appropriate WorldState based on configuration.

    Returns:
        InMemoryWorldState for development/testing
        PostgresWorldState when a database is configured
    """
    driver = get_worldstate_driver()

    if driver == WorldStateDriver.MEMORY:
        logger.info("Using in-memory world state (no persistence)")
        return InMemoryWorldState()

    config = get_database_config()
    if config is None:
        raise RuntimeError(
            f"WORLDSTATE_DRIVER is {driver.value} but no database is configured. "
            "Set DATABASE_URL or DATABASE_HOST."
        )
    return create_postgres_world_state(config)


def create_postgres_world_state(config: DatabaseConfig) -> PostgresWorldState:
    """Create PostgresWorldState with psycopg2 and make sure its table exists."""
    def connection_factory():
        return psycopg2.connect(config.to_dsn())

    state = PostgresWorldState(
        connection_factory,
        statement_timeout_ms=config.statement_timeout_ms,
    )
    state.ensure_schema()

    logger.info(
        "PostgreSQL world state ready",
        database_url=config.to_url(include_password=False),
    )
    return state


def get_world_state() -> WorldState:
    """Get the shared world state, creating it on first use."""
    global _world_state
    with _lock:
        if _world_state is None:
            _world_state = create_world_state()
        return _world_state


def get_service() -> DeviceLedgerService:
    """Get the shared DeviceLedgerService."""
    global _service
    state = get_world_state()
    with _lock:
        if _service is None or _service.world_state is not state:
            _service = DeviceLedgerService(state)
        return _service


def set_world_state(state: Optional[WorldState]) -> None:
    """Replace the shared world state (tests, embedding). None resets it."""
    global _world_state, _service
    with _lock:
        _world_state = state
        _service = None
