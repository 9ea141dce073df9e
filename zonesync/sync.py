"""Applying a record-set diff against a provider zone.

:func:`push_record_sets` makes the remote zone look like the local desired
state: local-only entries are created remotely, remote-only entries are
removed, and entries whose TTL differs are overwritten with the local
shape.  Failures are collected per record in the returned
:class:`~zonesync.diffing.SyncResult`; a failure to read the remote zone
is recorded as the result's global error and nothing is changed.
"""

from __future__ import annotations

from typing import Sequence

from .base.dns import DNSProviderBlueprint, ZoneHandle
from .base.exceptions import DNSError, RecordNotFoundError
from .base.logger import zs_logger
from .diffing import RecordSetDiff, SyncResult, compare_record_sets
from .recordset import DnsRecordSet, filter_system_records


def pushable(
    driver: DNSProviderBlueprint, records: Sequence[DnsRecordSet]
) -> list[DnsRecordSet]:
    """Local record sets that belong on *driver*'s side of a zone.

    Disabled records and types the provider cannot serve are left out,
    as are the apex NS/SOA records the provider owns.
    """
    return filter_system_records(
        [r for r in records if r.enabled and driver.is_support_dns_type(r.dns_type)]
    )


def plan_record_sets(
    driver: DNSProviderBlueprint, zone: ZoneHandle, local: Sequence[DnsRecordSet]
) -> RecordSetDiff:
    """Diff the remote zone against *local* without changing anything.

    Raises:
        DNSError: If the remote record sets cannot be listed.
    """
    remote = filter_system_records(driver.list_record_sets(zone))
    return compare_record_sets(remote, pushable(driver, local))


def push_record_sets(
    driver: DNSProviderBlueprint,
    zone: ZoneHandle,
    local: Sequence[DnsRecordSet],
    *,
    dry_run: bool = False,
) -> SyncResult:
    result = SyncResult()
    try:
        _, add, delete, update = plan_record_sets(driver, zone, local)
    except DNSError as e:
        result.error(e)
        return result

    zs_logger.info(
        f"push {zone.name}: add {len(add)} delete {len(delete)} update {len(update)}",
        provider=driver.provider,
        operation="push_record_sets",
    )
    if dry_run:
        for _ in add:
            result.add()
        for _ in delete:
            result.delete()
        for _ in update:
            result.update()
        return result

    by_id = {r.id: r for r in local if r.id}

    for rec in delete:
        try:
            driver.remove_record_set(zone, rec)
        except RecordNotFoundError:
            pass
        except DNSError as e:
            result.delete_error(f"{rec}: {e}")
            continue
        result.delete()

    for rec in add:
        try:
            driver.create_record_set(zone, rec)
        except DNSError as e:
            result.add_error(f"{rec}: {e}")
            continue
        result.add()

    for rec in update:
        desired = by_id.get(rec.id, rec).model_copy(update={"external_id": rec.external_id})
        try:
            driver.update_record_set(zone, desired)
        except DNSError as e:
            result.update_error(f"{rec}: {e}")
            continue
        result.update()

    if result.is_error():
        zs_logger.warning(
            f"push {zone.name} finished with errors: {result.result()}",
            provider=driver.provider,
            operation="push_record_sets",
        )
    return result
