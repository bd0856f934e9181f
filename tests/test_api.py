"""
Tests for the HTTP API.

Runs the FastAPI app against a fresh in-memory world state per test.
"""

import pytest
from fastapi.testclient import TestClient

from iotledger.core.errors import LedgerIOError
from iotledger.db.store import InMemoryWorldState
from iotledger.main import app
from iotledger.shared_state import set_world_state

TS = "2024-01-01T00:00:00Z"


class BrokenWorldState(InMemoryWorldState):
    def get_state(self, key):
        raise LedgerIOError("disk on fire", key=key)


@pytest.fixture
def state():
    state = InMemoryWorldState()
    set_world_state(state)
    yield state
    set_world_state(None)


@pytest.fixture
def client(state):
    with TestClient(app) as client:
        yield client


def _register(client, device_id="dev-1"):
    return client.post(
        "/api/v1/devices",
        json={"device_id": device_id, "owner": "alice", "location": "lab-A"},
    )


class TestDeviceEndpoints:

    def test_register_device(self, client):
        response = _register(client)
        assert response.status_code == 201
        assert response.json() == {
            "id": "dev-1",
            "owner": "alice",
            "location": "lab-A",
            "status": "active",
        }

    def test_duplicate_registration_conflicts(self, client):
        _register(client)
        response = _register(client)
        assert response.status_code == 409
        assert "already registered" in response.json()["detail"]

    def test_get_device(self, client):
        _register(client)
        response = client.get("/api/v1/devices/dev-1")
        assert response.status_code == 200
        assert response.json()["owner"] == "alice"

    def test_get_missing_device(self, client):
        assert client.get("/api/v1/devices/ghost").status_code == 404

    def test_device_exists(self, client):
        _register(client)
        assert client.get("/api/v1/devices/dev-1/exists").json() == {
            "device_id": "dev-1",
            "exists": True,
        }
        assert client.get("/api/v1/devices/dev-2/exists").json()["exists"] is False

    def test_empty_device_id_rejected(self, client):
        assert _register(client, device_id="").status_code == 422


class TestRecordEndpoints:

    @pytest.fixture
    def registered(self, client):
        _register(client)
        return client

    def test_submit_and_get(self, registered):
        response = registered.post(
            "/api/v1/devices/dev-1/records",
            json={"timestamp": TS, "data": "temp=21.5"},
        )
        assert response.status_code == 201
        assert response.json()["status"] == "pending"

        record = registered.get(f"/api/v1/devices/dev-1/records/{TS}").json()
        assert record["deviceID"] == "dev-1"
        assert record["data"] == "temp=21.5"
        assert record["verifierID"] == ""

    def test_submit_for_unregistered_device(self, client):
        response = client.post(
            "/api/v1/devices/ghost/records",
            json={"timestamp": TS, "data": "x"},
        )
        assert response.status_code == 422
        assert "not registered" in response.json()["detail"]

    def test_get_missing_record(self, registered):
        assert registered.get("/api/v1/devices/dev-1/records/never").status_code == 404

    def test_list_records(self, registered):
        for ts in ("t2", "t1"):
            registered.post("/api/v1/devices/dev-1/records", json={"timestamp": ts, "data": ts})
        records = registered.get("/api/v1/devices/dev-1/records").json()
        assert [r["timestamp"] for r in records] == ["t1", "t2"]

    def test_verify_flow(self, registered):
        registered.post("/api/v1/devices/dev-1/records", json={"timestamp": TS, "data": "temp=21.5"})

        response = registered.post(
            f"/api/v1/devices/dev-1/records/{TS}/verify",
            json={"verifier_id": "ver-1", "is_valid": True},
        )
        assert response.status_code == 200
        assert response.json() == {
            "deviceID": "dev-1",
            "timestamp": TS,
            "data": "temp=21.5",
            "status": "verified",
            "verifierID": "ver-1",
        }

        response = registered.post(
            f"/api/v1/devices/dev-1/records/{TS}/verify",
            json={"verifier_id": "ver-2", "is_valid": False},
        )
        assert response.json()["status"] == "rejected"
        assert response.json()["verifierID"] == "ver-2"

    def test_verify_missing_record(self, registered):
        response = registered.post(
            "/api/v1/devices/dev-1/records/never/verify",
            json={"verifier_id": "ver-1", "is_valid": True},
        )
        assert response.status_code == 404


class TestSystemEndpoints:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_health_detailed(self, client, state):
        state.put_state("k", b"v")
        body = client.get("/health/detailed").json()
        assert body["status"] == "healthy"
        assert body["checks"]["world_state"]["key_count"] == 1

    def test_metrics(self, client):
        _register(client)
        summary = client.get("/metrics").json()
        assert summary["operations_total"] >= 1
        assert summary["state_writes"] >= 1

    def test_request_id_header(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


def test_ledger_io_error_maps_to_503():
    set_world_state(BrokenWorldState())
    try:
        with TestClient(app) as client:
            assert client.get("/api/v1/devices/dev-1").status_code == 503
    finally:
        set_world_state(None)
