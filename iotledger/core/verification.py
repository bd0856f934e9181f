"""
Verification Workflow

Moves a data record out of PENDING.

    PENDING ──is_valid──> VERIFIED
       └────not valid───> REJECTED

The transition does not look at the current status: verifying an
already VERIFIED or REJECTED record overrides both the status and
the verifier. The record is read before anything is written, so a
failed write leaves the stored record exactly as it was.
"""

from typing import TYPE_CHECKING

from ..observability import get_logger
from ..schemas import DataRecord, RecordStatus

if TYPE_CHECKING:
    from .records import DataRecordStore

logger = get_logger(__name__)


def resolve_status(is_valid: bool) -> RecordStatus:
    return RecordStatus.VERIFIED if is_valid else RecordStatus.REJECTED


class VerificationWorkflow:
    """
    Applies verifier decisions to stored data records.
    """

    def __init__(self, records: "DataRecordStore"):
        self._records = records

    def verify_data(
        self,
        device_id: str,
        timestamp: str,
        verifier_id: str,
        is_valid: bool,
    ) -> DataRecord:
        """
        Record a verifier's decision on a data record.

        Raises:
            NotFoundError: If no record exists for (device_id, timestamp)
            DeserializationError: If the stored bytes are not a DataRecord
            LedgerIOError: If the read or the write-back fails
        """
        key, record = self._records.load(device_id, timestamp)

        if record.status != RecordStatus.PENDING:
            logger.info(
                "Overriding earlier verification",
                device_id=device_id,
                timestamp=timestamp,
                previous_status=record.status.value,
                previous_verifier=record.verifier_id,
            )

        updated = record.model_copy(
            update={
                "status": resolve_status(is_valid),
                "verifier_id": verifier_id,
            }
        )
        self._records.save(key, updated)

        logger.info(
            "Data record verified",
            device_id=device_id,
            timestamp=timestamp,
            verifier_id=verifier_id,
            status=updated.status.value,
        )
        return updated
