"""Provenance CLI: command-line interface for the product registry.

Usage:
    python -m provenance.cli status
    python -m provenance.cli configure-authority --principal ST2AUTHORITY
    python -m provenance.cli add-producer --id ST1PRODUCER
    python -m provenance.cli register --caller ST1PRODUCER --product-id PROD001 \\
        --hash <metadata-hash> --description "Organic Coffee Beans" \\
        --origin Ethiopia --category food
    python -m provenance.cli update --caller ST1PRODUCER --id 0 --hash ... \\
        --description ... --origin ...
    python -m provenance.cli get --id 0
    python -m provenance.cli verify --id 0
    python -m provenance.cli exists --product-id PROD001
    python -m provenance.cli check-invariants
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from provenance.config import RegistrySettings
from provenance.models.product import ProductCategory
from provenance.service import ProvenanceService, RegistryResult


logger = logging.getLogger(__name__)


def _load_settings(args: argparse.Namespace) -> RegistrySettings:
    if args.config is not None:
        settings = RegistrySettings.from_config_file(args.config)
    else:
        settings = RegistrySettings.from_env(env_file=args.env_file)
    if args.data_dir is not None:
        settings = replace(settings, data_dir=args.data_dir)
    return settings


def _make_service(args: argparse.Namespace) -> ProvenanceService:
    """Create a ProvenanceService with durable persistence.

    The clock resumes at the stored height of the last write, so heights
    never move backwards across invocations.
    """
    return ProvenanceService.from_settings(_load_settings(args))


def _report_failure(result: RegistryResult) -> int:
    error = result.error
    if error is None:
        print("Failed: unknown error", file=sys.stderr)
    else:
        print(f"Failed [{error.code} {error.kind.value}]: {error}", file=sys.stderr)
    return 1


def _report_warnings(result: RegistryResult) -> None:
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_configure_authority(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.configure_authority(args.principal)
    if not result.success:
        return _report_failure(result)
    _report_warnings(result)
    print(f"Authority configured: {result.value}")
    return 0


def cmd_set_fee(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.set_registration_fee(args.fee)
    if not result.success:
        return _report_failure(result)
    _report_warnings(result)
    print(f"Registration fee: {result.value}")
    return 0


def cmd_add_producer(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.authorize_producer(args.id)
    if not result.success:
        return _report_failure(result)
    _report_warnings(result)
    print(f"Authorized producer: {result.value}")
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.register_product(
        caller=args.caller,
        product_id=args.product_id,
        metadata_hash=args.hash,
        description=args.description,
        origin=args.origin,
        category=args.category,
        height=args.height,
    )
    if not result.success:
        return _report_failure(result)
    _report_warnings(result)
    print(f"Registered product {args.product_id} as id {result.value}")
    return 0


def cmd_update(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.update_product(
        caller=args.caller,
        numeric_id=args.id,
        new_metadata_hash=args.hash,
        new_description=args.description,
        new_origin=args.origin,
        height=args.height,
    )
    if not result.success:
        return _report_failure(result)
    _report_warnings(result)
    print(f"Updated product {args.id}")
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    service = _make_service(args)
    record = service.get_product(args.id)
    if record is None:
        print(f"Product not found: {args.id}", file=sys.stderr)
        return 1
    data = {"id": args.id, **record.to_dict()}
    update = service.get_product_update(args.id)
    data["last_update"] = update.to_dict() if update is not None else None
    print(json.dumps(data, indent=2))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.verify_product(args.id)
    if not result.success:
        return _report_failure(result)
    print(json.dumps({"id": args.id, "status": result.value}))
    return 0


def cmd_count(args: argparse.Namespace) -> int:
    service = _make_service(args)
    print(service.get_product_count().value)
    return 0


def cmd_exists(args: argparse.Namespace) -> int:
    service = _make_service(args)
    result = service.check_product_existence(args.product_id)
    print(json.dumps({"product_id": args.product_id, "exists": result.value}))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run registry invariant checks against the stored snapshot."""
    service = _make_service(args)
    violations = service.check_invariants()
    if violations:
        for violation in violations:
            print(f"FAIL: {violation}", file=sys.stderr)
        return 1
    print("All registry invariants hold.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="provenance",
        description="Product provenance registry CLI",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="JSON settings file (default: PROVENANCE_* environment)",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="Path to a .env file (default: search upwards for .env)",
    )
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Directory for state.json and events.jsonl",
    )
    parser.add_argument(
        "--log-level", default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: settings log_level)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show registry status")

    # configure-authority
    p_auth = sub.add_parser("configure-authority", help="Set the registry authority (once)")
    p_auth.add_argument("--principal", required=True, help="Authority identity")

    # set-fee
    p_fee = sub.add_parser("set-fee", help="Change the registration fee")
    p_fee.add_argument("--fee", required=True, type=int, help="New fee (units)")

    # add-producer
    p_prod = sub.add_parser("add-producer", help="Authorize a producer identity")
    p_prod.add_argument("--id", required=True, help="Producer identity")

    # register
    p_reg = sub.add_parser("register", help="Register a product")
    p_reg.add_argument("--caller", required=True, help="Acting producer identity")
    p_reg.add_argument("--product-id", required=True, help="Business product ID")
    p_reg.add_argument("--hash", required=True, help="Metadata hash")
    p_reg.add_argument("--description", required=True, help="Product description")
    p_reg.add_argument("--origin", required=True, help="Place of origin")
    p_reg.add_argument(
        "--category", required=True,
        choices=[c.value for c in ProductCategory],
        help="Product category",
    )
    p_reg.add_argument(
        "--height", type=int, default=None,
        help="Logical height (default: height of the last write)",
    )

    # update
    p_upd = sub.add_parser("update", help="Amend a product")
    p_upd.add_argument("--caller", required=True, help="Acting producer identity")
    p_upd.add_argument("--id", required=True, type=int, help="Numeric product id")
    p_upd.add_argument("--hash", required=True, help="New metadata hash")
    p_upd.add_argument("--description", required=True, help="New description")
    p_upd.add_argument("--origin", required=True, help="New origin")
    p_upd.add_argument(
        "--height", type=int, default=None,
        help="Logical height (default: height of the last write)",
    )

    # get / verify
    p_get = sub.add_parser("get", help="Show a product")
    p_get.add_argument("--id", required=True, type=int, help="Numeric product id")
    p_ver = sub.add_parser("verify", help="Show a product's status flag")
    p_ver.add_argument("--id", required=True, type=int, help="Numeric product id")

    # count / exists
    sub.add_parser("count", help="Number of registered products")
    p_ex = sub.add_parser("exists", help="Check whether a product ID is registered")
    p_ex.add_argument("--product-id", required=True, help="Business product ID")

    # check-invariants
    sub.add_parser("check-invariants", help="Run registry invariant checks")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    level = args.log_level
    if level is None:
        try:
            level = _load_settings(args).log_level
        except ValueError as e:
            print(f"Invalid settings: {e}", file=sys.stderr)
            return 2
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "status": cmd_status,
        "configure-authority": cmd_configure_authority,
        "set-fee": cmd_set_fee,
        "add-producer": cmd_add_producer,
        "register": cmd_register,
        "update": cmd_update,
        "get": cmd_get,
        "verify": cmd_verify,
        "count": cmd_count,
        "exists": cmd_exists,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ValueError as e:
        # Corrupt snapshot, tampered event log, or malformed settings
        logger.error("%s failed: %s", args.command, e)
        print(f"Failed: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
