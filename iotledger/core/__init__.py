# Core ledger services
from .codec import EntityCodec
from .contract import DeviceLedgerService
from .errors import (
    LedgerError,
    AlreadyExistsError,
    NotFoundError,
    DeviceNotRegisteredError,
    DeserializationError,
    InvalidKeyError,
    LedgerIOError,
)
from .keys import create_composite_key, split_composite_key
from .records import DataRecordStore, DATA_RECORD_CATEGORY
from .registry import DeviceRegistry
from .verification import VerificationWorkflow

__all__ = [
    "EntityCodec",
    "DeviceLedgerService",
    "LedgerError",
    "AlreadyExistsError",
    "NotFoundError",
    "DeviceNotRegisteredError",
    "DeserializationError",
    "InvalidKeyError",
    "LedgerIOError",
    "create_composite_key",
    "split_composite_key",
    "DataRecordStore",
    "DATA_RECORD_CATEGORY",
    "DeviceRegistry",
    "VerificationWorkflow",
]
