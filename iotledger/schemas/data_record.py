"""
Canonical DataRecord Schema

A reading submitted by a registered device, addressed by
(deviceID, timestamp). The payload is opaque to the ledger.

Wire field names follow the camelCase used on the ledger
(deviceID, verifierID); Python code uses snake_case.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RecordStatus(str, Enum):
    """
    Verification state of a data record.

    PENDING is the only initial state. VERIFIED and REJECTED are
    terminal, but a later verification may still override them.
    """
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class DataRecord(BaseModel):
    """
    A single data submission from a device.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "deviceID": "dev-1",
                "timestamp": "2024-01-01T00:00:00Z",
                "data": "temp=21.5",
                "status": "verified",
                "verifierID": "ver-1",
            }
        },
    )

    device_id: str = Field(
        ...,
        alias="deviceID",
        description="Id of the registered device that produced the data"
    )

    timestamp: str = Field(
        ...,
        description="Caller-supplied timestamp; part of the storage key"
    )

    data: str = Field(
        ...,
        description="Opaque payload"
    )

    status: RecordStatus = Field(
        ...,
        description="Verification state"
    )

    verifier_id: str = Field(
        default="",
        alias="verifierID",
        description="Verifier that last transitioned the record, empty until then"
    )
