"""
API Routes for the IoT Device Ledger

Command endpoints:
- POST /devices                                        - Register a device
- POST /devices/{device_id}/records                    - Submit a data record
- POST /devices/{device_id}/records/{timestamp}/verify - Verify a data record

Query endpoints:
- GET /devices/{device_id}                             - Get device details
- GET /devices/{device_id}/exists                      - Check registration
- GET /devices/{device_id}/records                     - List a device's records
- GET /devices/{device_id}/records/{timestamp}         - Get one data record

Route handlers are plain `def`: the world state may block on I/O,
so FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..core import (
    AlreadyExistsError,
    DeserializationError,
    DeviceLedgerService,
    DeviceNotRegisteredError,
    InvalidKeyError,
    LedgerError,
    LedgerIOError,
    NotFoundError,
)
from ..schemas import DataRecord, Device
from ..shared_state import get_service


router = APIRouter()


def get_ledger() -> DeviceLedgerService:
    return get_service()


# ============================================================
# Error Mapping
# ============================================================

_STATUS_FOR_ERROR: dict[type[LedgerError], int] = {
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DeviceNotRegisteredError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidKeyError: status.HTTP_400_BAD_REQUEST,
    DeserializationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    LedgerIOError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def ledger_http_error(e: LedgerError) -> HTTPException:
    """Translate a ledger error into the matching HTTP error."""
    code = _STATUS_FOR_ERROR.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=str(e))


# ============================================================
# Request/Response Models
# ============================================================

class RegisterDeviceRequest(BaseModel):
    """Request to register a new device."""
    device_id: str = Field(..., min_length=1)
    owner: str
    location: str


class SubmitDataRequest(BaseModel):
    """Request to submit a data record for a device."""
    timestamp: str = Field(..., min_length=1)
    data: str


class VerifyDataRequest(BaseModel):
    """A verifier's decision on a data record."""
    verifier_id: str = Field(..., min_length=1)
    is_valid: bool


class DeviceExistsResponse(BaseModel):
    device_id: str
    exists: bool


# ============================================================
# Command Endpoints
# ============================================================

@router.post(
    "/devices",
    response_model=Device,
    status_code=status.HTTP_201_CREATED,
    tags=["Devices"],
    summary="Register a device",
)
def register_device(
    request: RegisterDeviceRequest,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    """
    Register a new IoT device.

    A device id can be registered only once; the device starts active.
    """
    try:
        return ledger.register_device(request.device_id, request.owner, request.location)
    except LedgerError as e:
        raise ledger_http_error(e) from e


@router.post(
    "/devices/{device_id}/records",
    response_model=DataRecord,
    status_code=status.HTTP_201_CREATED,
    tags=["Data Records"],
    summary="Submit a data record",
)
def submit_data(
    device_id: str,
    request: SubmitDataRequest,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    """
    Store a pending data record for a registered device.

    Submitting the same timestamp again replaces the earlier record.
    """
    try:
        return ledger.submit_data(device_id, request.timestamp, request.data)
    except LedgerError as e:
        raise ledger_http_error(e) from e


@router.post(
    "/devices/{device_id}/records/{timestamp}/verify",
    response_model=DataRecord,
    tags=["Verification"],
    summary="Verify or reject a data record",
)
def verify_data(
    device_id: str,
    timestamp: str,
    request: VerifyDataRequest,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    """
    Mark a data record verified (is_valid=true) or rejected.

    A later decision overrides an earlier one.
    """
    try:
        return ledger.verify_data(
            device_id, timestamp, request.verifier_id, request.is_valid
        )
    except LedgerError as e:
        raise ledger_http_error(e) from e


# ============================================================
# Query Endpoints
# ============================================================

@router.get(
    "/devices/{device_id}",
    response_model=Device,
    tags=["Devices"],
    summary="Get a device",
)
def get_device(
    device_id: str,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    try:
        return ledger.get_device(device_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e


@router.get(
    "/devices/{device_id}/exists",
    response_model=DeviceExistsResponse,
    tags=["Devices"],
    summary="Check whether a device is registered",
)
def device_exists(
    device_id: str,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    try:
        exists = ledger.device_exists(device_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e
    return DeviceExistsResponse(device_id=device_id, exists=exists)


@router.get(
    "/devices/{device_id}/records",
    response_model=list[DataRecord],
    tags=["Data Records"],
    summary="List a device's data records",
)
def list_data_records(
    device_id: str,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    try:
        return ledger.list_data_records(device_id)
    except LedgerError as e:
        raise ledger_http_error(e) from e


@router.get(
    "/devices/{device_id}/records/{timestamp}",
    response_model=DataRecord,
    tags=["Data Records"],
    summary="Get a data record",
)
def get_data_record(
    device_id: str,
    timestamp: str,
    ledger: DeviceLedgerService = Depends(get_ledger),
):
    try:
        return ledger.get_data_record(device_id, timestamp)
    except LedgerError as e:
        raise ledger_http_error(e) from e
