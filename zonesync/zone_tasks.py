"""Zone tasks.

Each task runs one zone operation against the providers.  ``self.context``
is the :class:`~zonesync.zones.DnsZoneManager` that started it.  On
success the zone returns to ``available``; on failure it moves to the
task's ``failed_status`` with the error text as ``status_reason``.
Nothing is retried automatically.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .base.exceptions import (
    DNSError,
    ResourceNotFoundError,
    ZoneNotFoundError,
)
from .base.logger import zs_logger
from .diffing import SyncResult
from .models import DnsZone, ZoneCacheStatus, ZoneStatus
from .recordset import ZoneType
from .tasks import Task, register_task

if TYPE_CHECKING:
    from .zones import DnsZoneManager


class _DnsZoneTask(Task):
    failed_status: ZoneStatus = ZoneStatus.AVAILABLE

    @property
    def zones(self) -> DnsZoneManager:
        return self.context  # type: ignore[no-any-return]

    def on_init(self, obj_id: str, params: dict[str, Any]) -> None:
        zone = self.zones.store.zones.fetch_by_id(obj_id)
        self.execute(zone, params)

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        raise NotImplementedError

    def on_error(self, error: Exception) -> None:
        self.task_failed(self.obj_id, str(error))

    def task_failed(self, zone_id: str, reason: str) -> None:
        if self.zones.store.zones.get(zone_id) is not None:
            self.zones.set_zone_status(zone_id, self.failed_status, reason)
        self.set_stage_failed(reason)

    def task_complete(self, zone_id: str, data: Any = None) -> None:
        zone = self.zones.set_zone_status(zone_id, ZoneStatus.AVAILABLE)
        if zone.is_dirty:
            self.zones.arm_sync(zone_id)
        self.set_stage_complete(data)


def _materialize_cache(task: _DnsZoneTask, zone: DnsZone, cloudaccount_id: str) -> SyncResult | None:
    """Create the zone on one account and push the local record sets to it."""
    zones = task.zones
    cache = zones.register_cache(zone.id, cloudaccount_id)
    if cache.external_id:
        return None
    driver = zones.get_driver(cloudaccount_id)
    zones.set_cache_status(cache.id, ZoneCacheStatus.CREATING)
    try:
        handle = driver.create_zone(zone.name, zone.zone_type, comment=zone.description)
    except DNSError as e:
        zones.set_cache_status(cache.id, ZoneCacheStatus.CREATE_FAILED, str(e))
        raise

    def apply(c: Any) -> None:
        c.external_id = handle.external_id
        c.status = ZoneCacheStatus.AVAILABLE
        c.status_reason = ""

    zones.store.zone_caches.update(cache.id, apply)
    return zones.push_cache(zone.id, cache.id)


def _split_vpcs(task: _DnsZoneTask, vpc_ids: list[str]) -> tuple[list[Any], list[Any], str]:
    """Partition VPCs into unmanaged and managed ones plus the managing account."""
    unmanaged, managed, account_id = [], [], ""
    for vpc_id in vpc_ids:
        vpc = task.zones.store.vpcs.fetch_by_id(vpc_id)
        if not vpc.manager_id:
            unmanaged.append(vpc)
            continue
        managed.append(vpc)
        if not account_id:
            if not vpc.cloudaccount_id:
                raise ResourceNotFoundError("cloudaccount", f"for vpc {vpc.name or vpc.id}")
            account_id = vpc.cloudaccount_id
    return unmanaged, managed, account_id


def _attach_vpcs(task: _DnsZoneTask, zone: DnsZone, vpc_ids: list[str]) -> None:
    zones = task.zones
    unmanaged, managed, account_id = _split_vpcs(task, vpc_ids)
    for vpc in unmanaged:
        zones.link_vpc(zone.id, vpc.id)
    if not managed:
        return

    cache = zones.register_cache(zone.id, account_id)
    driver = zones.get_driver(account_id)
    if cache.external_id:
        handle = zones.zone_handle(zone, cache)
        for vpc in managed:
            driver.associate_vpc(handle, zones.vpc_ref(vpc))
            zones.link_vpc(zone.id, vpc.id)
        return

    # The remote private zone does not exist yet: create it on the first
    # managed VPC and record its id before associating the others.
    first, rest = managed[0], managed[1:]
    zones.set_cache_status(cache.id, ZoneCacheStatus.CREATING)
    try:
        handle = driver.create_zone(
            zone.name,
            ZoneType.PRIVATE,
            vpcs=[zones.vpc_ref(first)],
            comment=zone.description,
        )
    except DNSError as e:
        zones.set_cache_status(cache.id, ZoneCacheStatus.CREATE_FAILED, str(e))
        raise

    def apply(c: Any) -> None:
        c.external_id = handle.external_id
        c.status = ZoneCacheStatus.AVAILABLE
        c.status_reason = ""

    zones.store.zone_caches.update(cache.id, apply)
    zones.link_vpc(zone.id, first.id)
    for vpc in rest:
        driver.associate_vpc(handle, zones.vpc_ref(vpc))
        zones.link_vpc(zone.id, vpc.id)
    zones.push_cache(zone.id, cache.id)


@register_task
class DnsZoneCreateTask(_DnsZoneTask):
    failed_status = ZoneStatus.CREATE_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        if zone.zone_type is ZoneType.PRIVATE:
            _attach_vpcs(self, zone, list(params.get("vpc_ids", [])))
            self.task_complete(zone.id)
            return
        result = _materialize_cache(self, zone, params["cloudaccount_id"])
        self.task_complete(zone.id, result.as_dict() if result else None)


@register_task
class DnsZoneCacheCreateTask(_DnsZoneTask):
    failed_status = ZoneStatus.CACHE_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        result = _materialize_cache(self, zone, params["cloudaccount_id"])
        self.task_complete(zone.id, result.as_dict() if result else None)


@register_task
class DnsZoneCacheDeleteTask(_DnsZoneTask):
    failed_status = ZoneStatus.UNCACHE_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        zones = self.zones
        cache = zones.store.zone_caches.fetch_by_id(params["cache_id"])
        zones.set_cache_status(cache.id, ZoneCacheStatus.DELETING)
        if cache.external_id:
            driver = zones.get_driver(cache.cloudaccount_id)
            try:
                driver.delete_zone(zones.zone_handle(zone, cache))
            except ZoneNotFoundError:
                pass
            except DNSError as e:
                zones.set_cache_status(cache.id, ZoneCacheStatus.DELETE_FAILED, str(e))
                raise
        zones.store.zone_caches.delete(cache.id)
        self.task_complete(zone.id)


@register_task
class DnsZoneAddVpcsTask(_DnsZoneTask):
    failed_status = ZoneStatus.ADD_VPCS_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        _attach_vpcs(self, zone, list(params.get("vpc_ids", [])))
        self.task_complete(zone.id)


@register_task
class DnsZoneRemoveVpcsTask(_DnsZoneTask):
    failed_status = ZoneStatus.REMOVE_VPCS_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        zones = self.zones
        unmanaged, managed, account_id = _split_vpcs(self, list(params.get("vpc_ids", [])))
        for vpc in unmanaged:
            zones.unlink_vpc(zone.id, vpc.id)
        if managed:
            cache = zones.get_zone_cache(zone.id, account_id)
            if cache is not None and cache.external_id:
                driver = zones.get_driver(account_id)
                handle = zones.zone_handle(zone, cache)
                for vpc in managed:
                    driver.disassociate_vpc(handle, zones.vpc_ref(vpc))
                    zones.unlink_vpc(zone.id, vpc.id)
            else:
                for vpc in managed:
                    zones.unlink_vpc(zone.id, vpc.id)
        self.task_complete(zone.id)


@register_task
class DnsZoneSyncRecordSetsTask(_DnsZoneTask):
    """Push local record sets to every available cache of the zone."""

    failed_status = ZoneStatus.SYNC_RECORD_SETS_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        total = SyncResult()
        for cache in self.zones.get_zone_caches(zone.id):
            if not cache.external_id or cache.status is not ZoneCacheStatus.AVAILABLE:
                continue
            total.merge(self.zones.push_cache(zone.id, cache.id))
        self.task_complete(zone.id, total.as_dict())


@register_task
class DnsZoneSyncWithCloudTask(_DnsZoneTask):
    """Import one cache's remote record sets into the local zone."""

    failed_status = ZoneStatus.SYNC_RECORD_SETS_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        zones = self.zones
        cache = zones.store.zone_caches.fetch_by_id(params["cache_id"])
        account = zones.store.cloudaccounts.fetch_by_id(cache.cloudaccount_id)
        result = zones.sync_dns_record_sets(
            zone.id, account.provider, zones.get_driver(account.id), zones.zone_handle(zone, cache)
        )
        if result.is_generate_error():
            self.task_failed(zone.id, result.global_error or "")
            return
        self.task_complete(zone.id, result.as_dict())


@register_task
class DnsZoneDeleteTask(_DnsZoneTask):
    """Delete remote copies, then every local trace of the zone.

    With ``purge`` set, provider failures are logged and local cleanup
    happens regardless.
    """

    failed_status = ZoneStatus.DELETE_FAILED

    def execute(self, zone: DnsZone, params: dict[str, Any]) -> None:
        zones = self.zones
        purge = bool(params.get("purge"))
        caches = zones.get_zone_caches(zone.id)

        if not purge:
            for cache in caches:
                if cache.status in (ZoneCacheStatus.CREATING, ZoneCacheStatus.DELETING) and (
                    cache.external_id
                ):
                    self.task_failed(
                        zone.id, f"dns zone cache {cache.id} is in status {cache.status.value}"
                    )
                    return

        for cache in caches:
            if not cache.external_id:
                continue
            zones.set_cache_status(cache.id, ZoneCacheStatus.DELETING)
            try:
                zones.get_driver(cache.cloudaccount_id).delete_zone(zones.zone_handle(zone, cache))
            except ZoneNotFoundError:
                pass
            except (DNSError, ResourceNotFoundError, ValueError) as e:
                if not purge:
                    zones.set_cache_status(cache.id, ZoneCacheStatus.DELETE_FAILED, str(e))
                    raise
                zs_logger.error(
                    f"purge {zone.name}: failed to delete remote zone {cache.external_id}: {e}",
                    zone_id=zone.id,
                    task=self.name,
                )

        zones.remove_zone_locally(zone.id)
        self.set_stage_complete()
