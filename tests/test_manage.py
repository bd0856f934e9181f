"""
Tests for the management CLI.
"""

import json

import pytest

from iotledger.db.store import InMemoryWorldState
from tools.manage import main

TS = "2024-01-01T00:00:00Z"


@pytest.fixture
def state():
    return InMemoryWorldState()


def run(state, capsys, *argv):
    code = main(list(argv), state=state)
    out = capsys.readouterr()
    return code, out


def test_full_lifecycle(state, capsys):
    code, _ = run(state, capsys, "register-device", "dev-1", "--owner", "alice", "--location", "lab-A")
    assert code == 0

    code, _ = run(state, capsys, "submit-data", "dev-1", TS, "temp=21.5")
    assert code == 0

    code, out = run(state, capsys, "verify-data", "dev-1", TS, "--verifier", "ver-1", "--valid")
    assert code == 0
    assert json.loads(out.out)["status"] == "verified"

    code, out = run(state, capsys, "get-record", "dev-1", TS)
    assert json.loads(out.out) == {
        "deviceID": "dev-1",
        "timestamp": TS,
        "data": "temp=21.5",
        "status": "verified",
        "verifierID": "ver-1",
    }


def test_reject_with_invalid_flag(state, capsys):
    run(state, capsys, "register-device", "dev-1", "--owner", "alice", "--location", "lab-A")
    run(state, capsys, "submit-data", "dev-1", TS, "x")

    code, out = run(state, capsys, "verify-data", "dev-1", TS, "--verifier", "ver-1", "--invalid")
    assert code == 0
    assert json.loads(out.out)["status"] == "rejected"


def test_ledger_error_exit_code(state, capsys):
    code, out = run(state, capsys, "submit-data", "ghost", TS, "x")
    assert code == 1
    assert "DeviceNotRegisteredError" in out.err


def test_device_queries(state, capsys):
    run(state, capsys, "register-device", "dev-1", "--owner", "alice", "--location", "lab-A")

    _, out = run(state, capsys, "device-exists", "dev-1")
    assert json.loads(out.out) == {"device_id": "dev-1", "exists": True}

    _, out = run(state, capsys, "get-device", "dev-1")
    assert json.loads(out.out)["status"] == "active"

    _, out = run(state, capsys, "list-records", "dev-1")
    assert json.loads(out.out) == []


def test_init_db_is_noop_in_memory(state, capsys):
    code, out = run(state, capsys, "init-db")
    assert code == 0
    assert "nothing to initialize" in out.out
