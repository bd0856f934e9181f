"""
Device Registry

Owns Device entities. A device id is the storage key itself.

Rules (enforced in code):
- A device id is registered at most once
- Registration always produces an ACTIVE device
- Registered devices are never overwritten or deleted here
- Absence is a normal answer (False / NotFoundError), a failed read is not
"""

from typing import TYPE_CHECKING, Optional

from ..observability import get_logger
from ..schemas import Device, DeviceStatus
from .codec import EntityCodec
from .errors import AlreadyExistsError, InvalidKeyError, NotFoundError
from .keys import validate_simple_key

if TYPE_CHECKING:
    from ..db.store import WorldState

logger = get_logger(__name__)


class DeviceRegistry:
    """
    Registration and lookup of IoT devices.

    Holds nothing but the world state handle it was given.
    """

    ENTITY = "Device"

    def __init__(self, state: "WorldState"):
        self._state = state

    def device_exists(self, device_id: str) -> bool:
        """
        Check whether a device is registered.

        Raises:
            LedgerIOError: If the read itself fails
        """
        return bool(self._read(device_id))

    def _read(self, device_id: str) -> Optional[bytes]:
        # Ids that could never be registered (composite keys, bad UTF-8) find nothing
        try:
            validate_simple_key(device_id)
        except InvalidKeyError:
            return None
        return self._state.get_state(device_id)

    def register_device(self, device_id: str, owner: str, location: str) -> Device:
        """
        Register a new device.

        Raises:
            InvalidKeyError: If device_id cannot be used as a storage key
            AlreadyExistsError: If device_id is already registered
            LedgerIOError: If the world state read or write fails
        """
        validate_simple_key(device_id)

        if self.device_exists(device_id):
            logger.warning("Duplicate device registration rejected", device_id=device_id)
            raise AlreadyExistsError(
                f"Device {device_id} already registered",
                entity=self.ENTITY,
                key=device_id,
            )

        device = Device(
            id=device_id,
            owner=owner,
            location=location,
            status=DeviceStatus.ACTIVE,
        )
        self._state.put_state(device_id, EntityCodec.encode(device))

        logger.info("Device registered", device_id=device_id, owner=owner)
        return device

    def get_device(self, device_id: str) -> Device:
        """
        Fetch a registered device.

        Raises:
            NotFoundError: If no device is stored under device_id
            DeserializationError: If the stored bytes are not a Device
            LedgerIOError: If the read fails
        """
        raw = self._read(device_id)
        if not raw:
            raise NotFoundError(
                f"Device {device_id} does not exist",
                entity=self.ENTITY,
                key=device_id,
            )
        return EntityCodec.decode_device(raw, key=device_id)
