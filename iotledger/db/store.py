"""
World State Abstraction

This module defines the WorldState interface and provides two implementations:
- InMemoryWorldState: For development and testing
- PostgresWorldState: For deployments that need durability

The WorldState is responsible for:
- Durable key -> bytes storage (get/put)
- Deterministic composite key construction
- Ordered range reads over a partial composite key
- Isolation between concurrent writers (its own business, not the core's)

The ledger core retains responsibility for:
- Entity validation and serialization
- Registration uniqueness and referential integrity
- The data record verification state machine

FAILURE CONTRACT:
A key that was never written reads as None. That is NOT an error.
A read or write that fails for any other reason raises LedgerIOError,
so callers can always tell "absent" from "broken".
"""

from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable, Iterator, Optional, Sequence

import psycopg2

from ..core.errors import InvalidKeyError, LedgerIOError
from ..core.keys import MAX_UNICODE_RUNE, create_composite_key
from ..observability import get_logger, get_metrics

logger = get_logger(__name__)


# ============================================================
# ABSTRACT BASE CLASS
# ============================================================

class WorldState(ABC):
    """
    Abstract base class for the key-value world state.

    Implementations must ensure:
    1. get_state returns the most recently written value, or None
    2. put_state replaces any prior value for the key
    3. Genuine I/O failures raise LedgerIOError, never return None
    4. Range reads come back ordered by key
    """

    @abstractmethod
    def get_state(self, key: str) -> Optional[bytes]:
        """
        Read the value stored under a key.

        Returns:
            The stored bytes, or None if the key was never written
        """
        pass

    @abstractmethod
    def put_state(self, key: str, value: bytes) -> None:
        """Associate key with value, replacing any prior value."""
        pass

    @abstractmethod
    def _range(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]:
        """Internal: ordered (key, value) pairs with start_key <= key < end_key."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of keys currently stored."""
        pass

    def create_composite_key(self, category: str, attributes: Sequence[str]) -> str:
        """Build a composite key. See core.keys for the encoding."""
        return create_composite_key(category, attributes)

    def get_state_by_partial_composite_key(
        self,
        category: str,
        attributes: Sequence[str],
    ) -> Iterator[tuple[str, bytes]]:
        """
        Iterate over every composite key that starts with the given attributes.

        Args:
            category: Composite key category
            attributes: Leading attributes to match (may be empty)

        Yields:
            (key, value) pairs ordered by key
        """
        start_key = self.create_composite_key(category, attributes)
        end_key = start_key + MAX_UNICODE_RUNE
        return self._range(start_key, end_key)


# ============================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================

class InMemoryWorldState(WorldState):
    """
    In-memory implementation of WorldState.

    Suitable for:
    - Development
    - Testing

    NOT suitable for:
    - Production (no durability)
    - Multi-instance deployments (no shared state)
    """

    def __init__(self):
        self._data: dict[str, bytes] = {}
        self._lock = Lock()

    def get_state(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put_state(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise LedgerIOError(
                f"Value for {key!r} must be bytes, got {type(value).__name__}",
                key=key,
            )
        with self._lock:
            self._data[key] = bytes(value)
        get_metrics().record_write()

    def _range(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]:
        # Snapshot under the lock so callers never iterate a changing dict
        with self._lock:
            items = sorted(
                (k, v) for k, v in self._data.items() if start_key <= k < end_key
            )
        return iter(items)

    def count(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self) -> None:
        """Clear all state (for testing)."""
        with self._lock:
            self._data.clear()


# ============================================================
# POSTGRESQL IMPLEMENTATION (SYNC)
# ============================================================

class PostgresWorldState(WorldState):
    """
    PostgreSQL implementation of WorldState.

    Provides:
    - Durability (state survives restarts)
    - Multi-instance support (shared database)
    - Statement timeouts to prevent hanging

    Keys are stored as UTF-8 BYTEA because composite keys contain U+0000,
    which PostgreSQL TEXT cannot hold. Byte order of UTF-8 matches code
    point order, so range reads agree with InMemoryWorldState.

    Every call runs on its own connection and transaction. Any psycopg2
    failure surfaces as LedgerIOError.

    Usage:
        state = PostgresWorldState(lambda: psycopg2.connect(dsn))
        state.ensure_schema()
    """

    STATEMENT_TIMEOUT_MS = 10000  # 10 seconds

    SCHEMA_SQL = """
        CREATE TABLE IF NOT EXISTS world_state (
            key BYTEA PRIMARY KEY,
            value BYTEA NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """

    def __init__(
        self,
        connection_factory: Callable[[], Any],
        statement_timeout_ms: int = STATEMENT_TIMEOUT_MS,
    ):
        """
        Initialize PostgreSQL world state.

        Args:
            connection_factory: Callable that returns a psycopg2 connection.
            statement_timeout_ms: Max statement execution time (ms). Default 10000.
        """
        self._connection_factory = connection_factory
        self._statement_timeout_ms = statement_timeout_ms

    def _execute(self, sql: str, params: tuple = (), fetch: str = "none") -> Any:
        """
        Run one statement in its own transaction.

        Args:
            fetch: "none", "one" or "all"
        """
        try:
            conn = self._connection_factory()
        except psycopg2.Error as e:
            raise LedgerIOError(f"Could not connect to world state: {e}") from e

        try:
            # psycopg2: `with conn` commits on success, rolls back on error
            with conn:
                with conn.cursor() as cursor:
                    cursor.execute(
                        f"SET LOCAL statement_timeout = '{self._statement_timeout_ms}ms'"
                    )
                    cursor.execute(sql, params)
                    if fetch == "one":
                        return cursor.fetchone()
                    if fetch == "all":
                        return cursor.fetchall()
                    return None
        except psycopg2.Error as e:
            raise LedgerIOError(f"World state query failed: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _encode_key(key: str) -> bytes:
        try:
            return key.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidKeyError(f"Key {key!r} is not valid UTF-8", key=key) from e

    def ensure_schema(self) -> None:
        """Create the world_state table if it does not exist."""
        self._execute(self.SCHEMA_SQL)
        logger.info("World state schema ready")

    def get_state(self, key: str) -> Optional[bytes]:
        row = self._execute(
            "SELECT value FROM world_state WHERE key = %s",
            (self._encode_key(key),),
            fetch="one",
        )
        if row is None:
            return None
        return bytes(row[0])

    def put_state(self, key: str, value: bytes) -> None:
        self._execute(
            """
            INSERT INTO world_state (key, value, updated_at)
            VALUES (%s, %s, now())
            ON CONFLICT (key) DO UPDATE
                SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
            """,
            (self._encode_key(key), bytes(value)),
        )
        get_metrics().record_write()

    def _range(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]:
        rows = self._execute(
            """
            SELECT key, value FROM world_state
            WHERE key >= %s AND key < %s
            ORDER BY key
            """,
            (self._encode_key(start_key), self._encode_key(end_key)),
            fetch="all",
        )
        return iter([(bytes(k).decode("utf-8"), bytes(v)) for k, v in rows])

    def count(self) -> int:
        row = self._execute("SELECT COUNT(*) FROM world_state", fetch="one")
        return row[0]
