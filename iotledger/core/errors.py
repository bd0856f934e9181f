"""
Ledger Errors

Every failure the ledger reports carries the entity kind and the
storage key it was working on, so a caller can tell which slot of
the world state was involved without parsing the message.

Nothing here is retried. Errors go straight back to the caller.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger errors."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.entity = entity
        self.key = key


class AlreadyExistsError(LedgerError):
    """Raised when registering an id that is already present."""
    pass


class NotFoundError(LedgerError):
    """Raised when a device or data record key is absent."""
    pass


class DeviceNotRegisteredError(LedgerError):
    """Raised when data is submitted for an unknown device."""
    pass


class DeserializationError(LedgerError):
    """Raised when stored bytes do not parse into the expected entity."""
    pass


class InvalidKeyError(LedgerError):
    """Raised when a storage key cannot be built, split or accepted."""
    pass


class LedgerIOError(LedgerError):
    """Raised when the world state read or write itself fails."""
    pass
