"""
Canonical Device Schema

A device is registered once and never overwritten.
Its id doubles as its storage key.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DeviceStatus(str, Enum):
    """
    Operational state of a device.

    Registration always produces ACTIVE. Nothing in the ledger
    moves a device to INACTIVE yet.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"


class Device(BaseModel):
    """
    An IoT device known to the ledger.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "dev-1",
                "owner": "alice",
                "location": "lab-A",
                "status": "active",
            }
        },
    )

    id: str = Field(
        ...,
        description="Globally unique device id, used verbatim as the storage key"
    )

    owner: str = Field(
        ...,
        description="Opaque identifier of the registering party"
    )

    location: str = Field(
        ...,
        description="Free-form location descriptor"
    )

    status: DeviceStatus = Field(
        ...,
        description="Operational state"
    )
