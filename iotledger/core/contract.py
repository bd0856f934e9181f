"""
Device Ledger Service - The Public Operation Surface

One object, seven operations, each a self-contained unit of work:

    register_device(device_id, owner, location)
    device_exists(device_id)
    get_device(device_id)
    submit_data(device_id, timestamp, data)
    get_data_record(device_id, timestamp)
    list_data_records(device_id)
    verify_data(device_id, timestamp, verifier_id, is_valid)

Every operation does its validation reads first and writes at most
once, so a rejected request never leaves a partial write behind.

The service keeps no state between calls. Everything lives in the
WorldState handed to the constructor; two services over the same
WorldState see the same ledger.
"""

import time
from functools import wraps
from typing import TYPE_CHECKING, Callable, TypeVar

from ..observability import get_logger, get_metrics
from ..schemas import DataRecord, Device
from .errors import LedgerError
from .records import DataRecordStore
from .registry import DeviceRegistry
from .verification import VerificationWorkflow

if TYPE_CHECKING:
    from ..db.store import WorldState

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable)


def _instrumented(func: F) -> F:
    """Record latency and rejection metrics around a ledger operation."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        rejected = False
        try:
            return func(*args, **kwargs)
        except LedgerError as e:
            rejected = True
            logger.debug(
                "Ledger operation failed",
                operation=func.__name__,
                error_type=type(e).__name__,
                entity=e.entity,
                key=repr(e.key) if e.key is not None else None,
            )
            raise
        finally:
            latency_ms = (time.perf_counter() - start) * 1000
            get_metrics().record_operation(latency_ms, rejected=rejected)
    return wrapper  # type: ignore[return-value]


class DeviceLedgerService:
    """
    The device ledger.

    Wires the registry, record store and verification workflow to a
    single WorldState and exposes their operations.
    """

    def __init__(self, state: "WorldState"):
        """
        Initialize the service.

        Args:
            state: WorldState implementation for persistence.
        """
        self._state = state
        self.registry = DeviceRegistry(state)
        self.records = DataRecordStore(state, self.registry)
        self.verification = VerificationWorkflow(self.records)

    @property
    def world_state(self) -> "WorldState":
        """Get the underlying world state."""
        return self._state

    # ================================================================
    # DEVICES
    # ================================================================

    @_instrumented
    def register_device(self, device_id: str, owner: str, location: str) -> Device:
        return self.registry.register_device(device_id, owner, location)

    @_instrumented
    def device_exists(self, device_id: str) -> bool:
        return self.registry.device_exists(device_id)

    @_instrumented
    def get_device(self, device_id: str) -> Device:
        return self.registry.get_device(device_id)

    # ================================================================
    # DATA RECORDS
    # ================================================================

    @_instrumented
    def submit_data(self, device_id: str, timestamp: str, data: str) -> DataRecord:
        return self.records.submit_data(device_id, timestamp, data)

    @_instrumented
    def get_data_record(self, device_id: str, timestamp: str) -> DataRecord:
        return self.records.get_data_record(device_id, timestamp)

    @_instrumented
    def list_data_records(self, device_id: str) -> list[DataRecord]:
        return self.records.list_data_records(device_id)

    # ================================================================
    # VERIFICATION
    # ================================================================

    @_instrumented
    def verify_data(
        self,
        device_id: str,
        timestamp: str,
        verifier_id: str,
        is_valid: bool,
    ) -> DataRecord:
        return self.verification.verify_data(device_id, timestamp, verifier_id, is_valid)
