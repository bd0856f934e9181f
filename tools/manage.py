#!/usr/bin/env python3
"""
IoT Device Ledger Management CLI

Commands for working with the ledger from a shell:
- init-db: Create the world_state table (PostgreSQL only)
- register-device: Register a device
- device-exists: Check whether a device is registered
- get-device: Show a device
- submit-data: Submit a data record
- get-record: Show a data record
- list-records: List a device's data records
- verify-data: Verify or reject a data record
- health-check: Run health checks against the configured world state

Every command prints its result as JSON. Exit code is 0 on success
and 1 when the ledger rejects the request.

Usage:
    python -m tools.manage <command> [options]

Examples:
    python -m tools.manage register-device dev-1 --owner alice --location lab-A
    python -m tools.manage submit-data dev-1 2024-01-01T00:00:00Z "temp=21.5"
    python -m tools.manage verify-data dev-1 2024-01-01T00:00:00Z --verifier ver-1 --valid
"""

import argparse
import json
import sys

from iotledger.core import DeviceLedgerService, EntityCodec, LedgerError
from iotledger.db.config import get_database_url, get_worldstate_driver
from iotledger.db.store import PostgresWorldState, WorldState
from iotledger.observability import check_health
from iotledger.shared_state import create_world_state


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _service(state: WorldState) -> DeviceLedgerService:
    return DeviceLedgerService(state)


def cmd_init_db(args, state: WorldState):
    """Create the world_state table."""
    if not isinstance(state, PostgresWorldState):
        print("In-memory world state configured - nothing to initialize")
        return 0
    state.ensure_schema()
    print("[OK] world_state table ready")
    return 0


def cmd_register_device(args, state: WorldState):
    device = _service(state).register_device(args.device_id, args.owner, args.location)
    _print_json(EntityCodec.to_dict(device))
    return 0


def cmd_device_exists(args, state: WorldState):
    exists = _service(state).device_exists(args.device_id)
    _print_json({"device_id": args.device_id, "exists": exists})
    return 0


def cmd_get_device(args, state: WorldState):
    device = _service(state).get_device(args.device_id)
    _print_json(EntityCodec.to_dict(device))
    return 0


def cmd_submit_data(args, state: WorldState):
    record = _service(state).submit_data(args.device_id, args.timestamp, args.data)
    _print_json(EntityCodec.to_dict(record))
    return 0


def cmd_get_record(args, state: WorldState):
    record = _service(state).get_data_record(args.device_id, args.timestamp)
    _print_json(EntityCodec.to_dict(record))
    return 0


def cmd_list_records(args, state: WorldState):
    records = _service(state).list_data_records(args.device_id)
    _print_json([EntityCodec.to_dict(r) for r in records])
    return 0


def cmd_verify_data(args, state: WorldState):
    record = _service(state).verify_data(
        args.device_id, args.timestamp, args.verifier, args.valid
    )
    _print_json(EntityCodec.to_dict(record))
    return 0


def cmd_health_check(args, state: WorldState):
    """Run health checks."""
    db_url = get_database_url()
    print("=== IoT Device Ledger Health Check ===\n")
    print(f"Driver: {get_worldstate_driver().value}")
    print(f"Database configured: {'yes' if db_url else 'no'}\n")

    health = check_health(world_state=state)
    _print_json({
        "status": "healthy" if health.healthy else "unhealthy",
        "checks": health.checks,
        "duration_ms": health.duration_ms,
    })
    return 0 if health.healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="IoT Device Ledger Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-db", help="Create the world_state table")

    p_register = subparsers.add_parser("register-device", help="Register a device")
    p_register.add_argument("device_id")
    p_register.add_argument("--owner", required=True, help="Owning party")
    p_register.add_argument("--location", required=True, help="Location descriptor")

    p_exists = subparsers.add_parser("device-exists", help="Check device registration")
    p_exists.add_argument("device_id")

    p_device = subparsers.add_parser("get-device", help="Show a device")
    p_device.add_argument("device_id")

    p_submit = subparsers.add_parser("submit-data", help="Submit a data record")
    p_submit.add_argument("device_id")
    p_submit.add_argument("timestamp")
    p_submit.add_argument("data")

    p_record = subparsers.add_parser("get-record", help="Show a data record")
    p_record.add_argument("device_id")
    p_record.add_argument("timestamp")

    p_list = subparsers.add_parser("list-records", help="List a device's data records")
    p_list.add_argument("device_id")

    p_verify = subparsers.add_parser("verify-data", help="Verify or reject a data record")
    p_verify.add_argument("device_id")
    p_verify.add_argument("timestamp")
    p_verify.add_argument("--verifier", required=True, help="Verifier id")
    decision = p_verify.add_mutually_exclusive_group(required=True)
    decision.add_argument("--valid", dest="valid", action="store_true", help="Mark verified")
    decision.add_argument("--invalid", dest="valid", action="store_false", help="Mark rejected")

    subparsers.add_parser("health-check", help="Run health checks")

    return parser


COMMANDS = {
    "init-db": cmd_init_db,
    "register-device": cmd_register_device,
    "device-exists": cmd_device_exists,
    "get-device": cmd_get_device,
    "submit-data": cmd_submit_data,
    "get-record": cmd_get_record,
    "list-records": cmd_list_records,
    "verify-data": cmd_verify_data,
    "health-check": cmd_health_check,
}


def main(argv=None, state: WorldState = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if state is None:
        state = create_world_state()

    try:
        return COMMANDS[args.command](args, state)
    except LedgerError as e:
        print(f"[FAIL] {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
