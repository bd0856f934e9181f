"""
Data Record Store

Owns DataRecord entities, addressed by the composite key
("DataRecord", [device_id, timestamp]).

Rules (enforced in code):
- A record can only be written for a registered device
- New records start PENDING with no verifier
- Resubmitting the same (device_id, timestamp) overwrites the previous record
"""

from typing import TYPE_CHECKING

from ..observability import get_logger
from ..schemas import DataRecord, RecordStatus
from .codec import EntityCodec
from .errors import DeviceNotRegisteredError, NotFoundError

if TYPE_CHECKING:
    from ..db.store import WorldState
    from .registry import DeviceRegistry

logger = get_logger(__name__)

# Composite key category for data records
DATA_RECORD_CATEGORY = "DataRecord"


class DataRecordStore:
    """
    Submission and lookup of device data records.
    """

    ENTITY = "DataRecord"

    def __init__(self, state: "WorldState", registry: "DeviceRegistry"):
        self._state = state
        self._registry = registry

    def record_key(self, device_id: str, timestamp: str) -> str:
        """Storage key for the record of device_id at timestamp."""
        return self._state.create_composite_key(
            DATA_RECORD_CATEGORY, [device_id, timestamp]
        )

    def load(self, device_id: str, timestamp: str) -> tuple[str, DataRecord]:
        """
        Read a record together with the key it lives under.

        Raises:
            NotFoundError: If no record exists for (device_id, timestamp)
            DeserializationError: If the stored bytes are not a DataRecord
        """
        key = self.record_key(device_id, timestamp)
        raw = self._state.get_state(key)
        if not raw:
            raise NotFoundError(
                f"Data record for device {device_id} at {timestamp} does not exist",
                entity=self.ENTITY,
                key=key,
            )
        return key, EntityCodec.decode_data_record(raw, key=key)

    def save(self, key: str, record: DataRecord) -> None:
        self._state.put_state(key, EntityCodec.encode(record))

    def submit_data(self, device_id: str, timestamp: str, data: str) -> DataRecord:
        """
        Store a new PENDING data record for a registered device.

        Raises:
            DeviceNotRegisteredError: If device_id is not registered
            InvalidKeyError: If device_id or timestamp cannot be encoded in a key
            LedgerIOError: If the world state read or write fails
        """
        if not self._registry.device_exists(device_id):
            logger.warning(
                "Data submission for unregistered device rejected",
                device_id=device_id,
                timestamp=timestamp,
            )
            raise DeviceNotRegisteredError(
                f"Device {device_id} not registered",
                entity=self._registry.ENTITY,
                key=device_id,
            )

        key = self.record_key(device_id, timestamp)
        record = DataRecord(
            device_id=device_id,
            timestamp=timestamp,
            data=data,
            status=RecordStatus.PENDING,
            verifier_id="",
        )
        self.save(key, record)

        logger.info("Data record submitted", device_id=device_id, timestamp=timestamp)
        return record

    def get_data_record(self, device_id: str, timestamp: str) -> DataRecord:
        """
        Fetch the data record for (device_id, timestamp).

        Raises:
            NotFoundError: If the record does not exist
            DeserializationError: If the stored bytes are not a DataRecord
            LedgerIOError: If the read fails
        """
        _, record = self.load(device_id, timestamp)
        return record

    def list_data_records(self, device_id: str) -> list[DataRecord]:
        """
        All records of one device, ordered by storage key.

        Only exact device_id matches are returned: a device whose id
        merely starts with device_id is a different key prefix.
        """
        return [
            EntityCodec.decode_data_record(raw, key=key)
            for key, raw in self._state.get_state_by_partial_composite_key(
                DATA_RECORD_CATEGORY, [device_id]
            )
        ]
