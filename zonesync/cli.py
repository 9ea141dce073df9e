"""Zonesync CLI: inspect and reconcile DNS zones from the command line.

Usage examples::

    zonesync diff remote.json local.json
    zonesync records --provider aws --zone-id Z123 --zone-name example.com
    zonesync apply --provider aws --zone-id Z123 --zone-name example.com local.json --dry-run

Record files hold a JSON list of record sets, e.g.
``[{"name": "www", "dns_type": "A", "dns_value": "1.2.3.4", "ttl": 300}]``.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

from zonesync.base.exceptions import ZonesyncError
from zonesync.base.logger import zs_logger
from zonesync.recordset import DnsRecordSet


def _add_zone_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--provider", "-p", required=True, help="Cloud provider (aws, gcp)")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="{}",
        help='JSON config string (e.g. \'{"region_name":"us-east-1"}\')',
    )
    parser.add_argument("--zone-id", required=True, help="Provider identifier of the zone")
    parser.add_argument("--zone-name", required=True, help="Zone domain name")
    parser.add_argument(
        "--zone-type",
        default="PublicZone",
        choices=["PublicZone", "PrivateZone"],
        help="Zone type",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``zonesync`` CLI.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="zonesync",
        description="DNS zone reconciliation CLI",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: from settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    diff = sub.add_parser("diff", help="Diff two record-set files (remote, local)")
    diff.add_argument("remote", help="JSON file with the remote record sets")
    diff.add_argument("local", help="JSON file with the local record sets")

    records = sub.add_parser("records", help="List a remote zone's record sets")
    _add_zone_args(records)

    apply = sub.add_parser("apply", help="Push a local record-set file to a remote zone")
    _add_zone_args(apply)
    apply.add_argument("local", help="JSON file with the desired record sets")
    apply.add_argument("--dry-run", action="store_true", help="Only report what would change")
    return parser


def _load_records(path: str) -> list[DnsRecordSet]:
    raw = json.loads(Path(path).read_text())
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list of record sets")
    return [DnsRecordSet(**item) for item in raw]


def _dump(records: list[DnsRecordSet]) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json", exclude_none=True) for r in records]


def _fail(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Results are printed as JSON.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)

    from zonesync.base.config import SyncSettings

    zs_logger.set_level(ns.log_level or SyncSettings().log_level)

    if ns.command == "diff":
        try:
            remote, local = _load_records(ns.remote), _load_records(ns.local)
        except (OSError, ValueError) as e:
            _fail(f"Invalid record file: {e}")
        from zonesync.diffing import compare_record_sets

        common, add, delete, update = compare_record_sets(remote, local)
        out: Any = {
            "common": _dump(common),
            "add": _dump(add),
            "delete": _dump(delete),
            "update": _dump(update),
        }
        print(json.dumps(out, indent=2, default=str))
        return

    try:
        config: dict[str, Any] = json.loads(ns.config)
    except json.JSONDecodeError as e:
        _fail(f"Invalid --config JSON: {e}")

    # Lazy-import to avoid loading all SDKs unconditionally
    from zonesync.base.dns import ZoneHandle
    from zonesync.factory import provider_factory
    from zonesync.recordset import ZoneType

    try:
        driver = provider_factory(ns.provider, config)
    except ValueError as e:
        _fail(f"Error: {e}")
    zone = ZoneHandle(
        external_id=ns.zone_id, name=ns.zone_name.rstrip("."), zone_type=ZoneType(ns.zone_type)
    )

    if ns.command == "records":
        try:
            out = _dump(driver.list_record_sets(zone))
        except ZonesyncError as e:
            _fail(f"Operation failed: {e}")
        print(json.dumps(out, indent=2, default=str))
        return

    try:
        local = _load_records(ns.local)
    except (OSError, ValueError) as e:
        _fail(f"Invalid record file: {e}")
    from zonesync.sync import push_record_sets

    result = push_record_sets(driver, zone, local, dry_run=ns.dry_run)
    print(json.dumps(result.as_dict(), indent=2, default=str))
    if result.is_error():
        sys.exit(1)


if __name__ == "__main__":
    main()
