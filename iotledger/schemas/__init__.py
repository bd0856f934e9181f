# Canonical Schemas for the IoT Device Ledger
# These are the only shapes the world state is allowed to hold.

from .device import Device, DeviceStatus
from .data_record import DataRecord, RecordStatus

__all__ = [
    # Device
    "Device",
    "DeviceStatus",
    # DataRecord
    "DataRecord",
    "RecordStatus",
]
