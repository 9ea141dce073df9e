"""
DNS zone manager.

:class:`DnsZoneManager` owns the local desired state (zones, caches, VPC
links, record sets and their traffic policies) and drives every zone
through its status machine.  Request methods validate synchronously,
flip the zone status atomically and hand the provider work to a task
from :mod:`zonesync.zone_tasks`; tasks report back by moving the zone to
``available`` or to the matching ``*_failed`` status.

Record-set mutations mark the zone dirty and arm a debounce timer; once
the mutations stop, one :meth:`DnsZoneManager.sync_record_sets` pass
pushes the result to every materialized cache.

Example::

    manager = DnsZoneManager()
    account = manager.add_cloudaccount("prod", "aws", {"region_name": "us-east-1"})
    zone = manager.create_zone("example.com", "PublicZone", cloudaccount_id=account.id)
    manager.create_record_set(zone.id, "www", "A", "1.2.3.4")
"""

from __future__ import annotations

import re
import threading
from typing import Any, Callable, Iterable, Sequence

from . import zone_tasks  # noqa: F401  (registers the zone tasks)
from .base.config import SyncSettings
from .base.dns import DNSProviderBlueprint, VpcRef, ZoneHandle
from .base.exceptions import (
    ConflictError,
    DNSError,
    InvalidStatusError,
    MissingParameterError,
    NotSupportedError,
    ResourceNotFoundError,
    ValidationError,
    ZonesyncError,
)
from .base.logger import zs_logger
from .debounce import DebounceScheduler, TimerFactory
from .diffing import SyncResult, compare_record_sets
from .factory import get_driver_class, provider_factory, registered_providers
from .lockman import LockManager
from .models import (
    FAILED_ZONE_STATUSES,
    Cloudaccount,
    DnsRecordPolicyInput,
    DnsRecordSetRow,
    DnsZone,
    DnsZoneCache,
    DnsZoneVpc,
    Vpc,
    ZoneCacheStatus,
    ZoneStatus,
)
from .recordset import (
    DnsRecordSet,
    DnsType,
    PolicyType,
    ZoneType,
    filter_system_records,
    validate_policy_params,
)
from .store import Store
from .sync import push_record_sets
from .tasks import Task, TaskManager
from .trafficpolicy import TrafficPolicyRegistry

_DOMAIN_RE = re.compile(
    r"^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,61}[a-z0-9]$"
)
_LABEL = r"[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?"
_RECORD_NAME_RE = re.compile(rf"^(@|\*|(\*\.)?{_LABEL}(\.{_LABEL})*)$")

_MAX_TTL = 2147483647

DriverFactory = Callable[[str, dict], DNSProviderBlueprint]


def _as_policy_inputs(
    policies: Iterable[DnsRecordPolicyInput | dict[str, Any]] | None,
) -> list[DnsRecordPolicyInput]:
    out = []
    for p in policies or ():
        out.append(p if isinstance(p, DnsRecordPolicyInput) else DnsRecordPolicyInput(**p))
    return out


class DnsZoneManager:
    """Zone/cache reconciliation state machine.

    Args:
        store: Persistence for all entities; a fresh in-memory store by default.
        settings: Runtime settings (debounce delay, worker pool size).
        locks: Named lock manager shared with the traffic policy registry.
        driver_factory: ``(provider, config) -> driver``; defaults to
            :func:`zonesync.factory.provider_factory`.
        synchronous: Run tasks inline instead of on the worker pool.
        timer_factory: Timer constructor for the debounce scheduler.
    """

    def __init__(
        self,
        store: Store | None = None,
        settings: SyncSettings | None = None,
        *,
        locks: LockManager | None = None,
        driver_factory: DriverFactory | None = None,
        synchronous: bool = False,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.settings = settings or SyncSettings()
        self.store = store or Store()
        self.locks = locks or LockManager()
        self.policies = TrafficPolicyRegistry(self.store, self.locks)
        self.tasks = TaskManager(
            context=self, worker_count=self.settings.worker_count, synchronous=synchronous
        )
        self.debounce = DebounceScheduler(self.settings.debounce_delay, timer_factory)
        self._driver_factory = driver_factory or provider_factory

    def shutdown(self, wait: bool = True) -> None:
        self.debounce.shutdown()
        self.tasks.shutdown(wait=wait)

    # --- Accounts and VPCs ---

    def add_cloudaccount(
        self, name: str, provider: str, config: dict[str, Any] | None = None
    ) -> Cloudaccount:
        if provider not in registered_providers():
            raise NotSupportedError(f"Unsupported cloud provider: {provider}")
        return self.store.cloudaccounts.insert(
            Cloudaccount(name=name, provider=provider, config=dict(config or {}))
        )

    def add_vpc(
        self,
        name: str,
        *,
        external_id: str = "",
        cloudaccount_id: str | None = None,
        manager_id: str | None = None,
        region_id: str = "",
    ) -> Vpc:
        """Register a VPC.

        VPCs tied to a cloud account are managed: attaching them to a
        private zone materializes the zone on that account.  VPCs without
        an account are plain local bookkeeping.
        """
        if cloudaccount_id is not None:
            self.store.cloudaccounts.fetch_by_id(cloudaccount_id)
            manager_id = manager_id or cloudaccount_id
        return self.store.vpcs.insert(
            Vpc(
                name=name,
                external_id=external_id,
                cloudaccount_id=cloudaccount_id,
                manager_id=manager_id,
                region_id=region_id,
            )
        )

    # --- Lookup helpers ---

    def get_zone(self, ident: str) -> DnsZone:
        return self.store.zones.fetch_by_id_or_name(ident)

    def get_zone_caches(self, zone_id: str) -> list[DnsZoneCache]:
        return self.store.zone_caches.filter(dns_zone_id=zone_id)

    def get_zone_cache(self, zone_id: str, cloudaccount_id: str) -> DnsZoneCache | None:
        caches = self.store.zone_caches.filter(
            dns_zone_id=zone_id, cloudaccount_id=cloudaccount_id
        )
        if len(caches) > 1:
            raise ConflictError(f"zone {zone_id} has {len(caches)} caches for {cloudaccount_id}")
        return caches[0] if caches else None

    def get_zone_vpcs(self, zone_id: str) -> list[Vpc]:
        vpc_ids = [link.vpc_id for link in self.store.zone_vpcs.filter(dns_zone_id=zone_id)]
        return self.store.vpcs.query(lambda v: v.id in vpc_ids)

    def get_record_sets(self, zone_id: str) -> list[DnsRecordSetRow]:
        self.store.zones.fetch_by_id(zone_id)
        return self.store.record_sets.filter(dns_zone_id=zone_id)

    def get_record_set(self, record_id: str) -> DnsRecordSetRow:
        return self.store.record_sets.fetch_by_id(record_id)

    def get_capabilities(self) -> dict[str, dict[str, list[str]]]:
        """Zone, DNS and policy types each registered provider supports."""
        return {p: get_driver_class(p).capabilities() for p in registered_providers()}

    def get_driver(self, cloudaccount_id: str) -> DNSProviderBlueprint:
        account = self.store.cloudaccounts.fetch_by_id(cloudaccount_id)
        return self._driver_factory(account.provider, account.config)

    def zone_handle(self, zone: DnsZone, cache: DnsZoneCache) -> ZoneHandle:
        return ZoneHandle(external_id=cache.external_id, name=zone.name, zone_type=zone.zone_type)

    @staticmethod
    def vpc_ref(vpc: Vpc) -> VpcRef:
        return VpcRef(external_id=vpc.external_id, region_id=vpc.region_id)

    # --- Status machine ---

    def set_zone_status(self, zone_id: str, status: ZoneStatus, reason: str = "") -> DnsZone:
        def apply(zone: DnsZone) -> None:
            zone.status = status
            zone.status_reason = reason

        return self.store.zones.update(zone_id, apply)

    def set_cache_status(
        self, cache_id: str, status: ZoneCacheStatus, reason: str = ""
    ) -> DnsZoneCache:
        def apply(cache: DnsZoneCache) -> None:
            cache.status = status
            cache.status_reason = reason

        return self.store.zone_caches.update(cache_id, apply)

    def _transition(
        self,
        zone_id: str,
        status: ZoneStatus,
        allowed: Iterable[ZoneStatus] | None,
        *,
        clear_dirty: bool = False,
    ) -> DnsZone:
        """Atomically move the zone to *status* if it is in one of *allowed*.

        ``allowed=None`` accepts any current status.

        Raises:
            InvalidStatusError: The zone is in some other status.
        """
        allowed = None if allowed is None else frozenset(allowed)

        def apply(zone: DnsZone) -> None:
            if allowed is not None and zone.status not in allowed:
                raise InvalidStatusError(
                    f"dns zone {zone.name} can not enter {status.value} in status {zone.status.value}"
                )
            zone.status = status
            zone.status_reason = ""
            if clear_dirty:
                zone.is_dirty = False

        return self.store.zones.update(zone_id, apply)

    def _start_task(
        self,
        zone_id: str,
        task_name: str,
        status: ZoneStatus,
        allowed: Iterable[ZoneStatus] | None,
        params: dict[str, Any] | None = None,
        *,
        clear_dirty: bool = False,
    ) -> Task:
        self._transition(zone_id, status, allowed, clear_dirty=clear_dirty)
        task = self.tasks.new_task(task_name, zone_id, params)
        zs_logger.info(f"start {task_name}", zone_id=zone_id, task=task_name)
        task.schedule_run()
        return task

    # --- Zone lifecycle ---

    def _check_vpc_managers(self, vpcs: Sequence[Vpc], manager_id: str | None) -> None:
        for vpc in vpcs:
            if vpc.manager_id != manager_id:
                raise ConflictError(f"vpc {vpc.name or vpc.id} is not with the same account")

    def _check_private_zone_support(self, vpc: Vpc) -> None:
        if not vpc.cloudaccount_id:
            return
        account = self.store.cloudaccounts.fetch_by_id(vpc.cloudaccount_id)
        if not get_driver_class(account.provider).is_support_zone_type(ZoneType.PRIVATE):
            raise NotSupportedError(
                f"Not support {ZoneType.PRIVATE.value} for vpc {vpc.name or vpc.id}"
            )

    def create_zone(
        self,
        name: str,
        zone_type: ZoneType | str,
        *,
        vpc_ids: Sequence[str] | None = None,
        cloudaccount_id: str | None = None,
        options: dict[str, Any] | None = None,
        description: str = "",
    ) -> DnsZone:
        """Create a zone.

        A public zone without an account is purely local and immediately
        ``available``.  Otherwise the zone starts ``creating`` and
        ``DnsZoneCreateTask`` provisions it remotely.

        Raises:
            ValidationError: Bad domain name or zone type.
            ResourceNotFoundError: Unknown VPC or cloud account.
            ConflictError: Name already taken or VPCs from different accounts.
            NotSupportedError: The VPC's provider lacks private zones.
        """
        name = (name or "").strip().lower().rstrip(".")
        if not _DOMAIN_RE.match(name):
            raise ValidationError(f"invalid domain name {name}")
        if not zone_type:
            raise MissingParameterError("zone_type")
        try:
            zone_type = ZoneType(zone_type)
        except ValueError:
            raise ValidationError(f"unknown zone type {zone_type}") from None
        if self.store.zones.filter(name=name, zone_type=zone_type):
            raise ConflictError(f"dns zone {name} already exists")

        params: dict[str, Any] = {}
        if zone_type is ZoneType.PRIVATE:
            if not vpc_ids:
                raise MissingParameterError("vpc_ids")
            vpcs = [self.store.vpcs.fetch_by_id_or_name(v) for v in vpc_ids]
            for vpc in vpcs:
                self._check_private_zone_support(vpc)
            self._check_vpc_managers(vpcs, vpcs[0].manager_id)
            params["vpc_ids"] = [v.id for v in vpcs]
        elif cloudaccount_id:
            account = self.store.cloudaccounts.fetch_by_id_or_name(cloudaccount_id)
            params["cloudaccount_id"] = account.id

        status = ZoneStatus.CREATING if params else ZoneStatus.AVAILABLE
        zone = self.store.zones.insert(
            DnsZone(
                name=name,
                zone_type=zone_type,
                options=options,
                description=description,
                status=status,
            )
        )
        zs_logger.info(f"created dns zone {name}", zone_id=zone.id, operation="create_zone")
        if params:
            task = self.tasks.new_task("DnsZoneCreateTask", zone.id, params)
            task.schedule_run()
        return self.store.zones.fetch_by_id(zone.id)

    def register_cache(self, zone_id: str, cloudaccount_id: str) -> DnsZoneCache:
        """Return the zone's cache for the account, creating an empty one if needed."""
        with self.locks.lock("dns_zone", zone_id):
            cache = self.get_zone_cache(zone_id, cloudaccount_id)
            if cache is not None:
                return cache
            zone = self.store.zones.fetch_by_id(zone_id)
            return self.store.zone_caches.insert(
                DnsZoneCache(name=zone.name, dns_zone_id=zone_id, cloudaccount_id=cloudaccount_id)
            )

    def cache_zone(self, zone_id: str, cloudaccount_id: str) -> Task:
        """Materialize a public zone on one more cloud account."""
        zone = self.store.zones.fetch_by_id(zone_id)
        if zone.zone_type is not ZoneType.PUBLIC:
            raise NotSupportedError(f"Only {ZoneType.PUBLIC.value} support cache for account")
        if not cloudaccount_id:
            raise MissingParameterError("cloudaccount_id")
        account = self.store.cloudaccounts.fetch_by_id_or_name(cloudaccount_id)
        if zone.status not in (ZoneStatus.AVAILABLE, ZoneStatus.CACHE_FAILED):
            raise InvalidStatusError(f"dns zone can not cache in status {zone.status.value}")
        cache = self.register_cache(zone_id, account.id)
        if cache.external_id:
            raise ConflictError(f"account {account.name} has been cached")
        return self._start_task(
            zone_id,
            "DnsZoneCacheCreateTask",
            ZoneStatus.CACHING,
            (ZoneStatus.AVAILABLE, ZoneStatus.CACHE_FAILED),
            {"cloudaccount_id": account.id},
        )

    def uncache_zone(self, zone_id: str, cloudaccount_id: str) -> Task:
        """Remove a public zone from one cloud account."""
        zone = self.store.zones.fetch_by_id(zone_id)
        if zone.zone_type is not ZoneType.PUBLIC:
            raise NotSupportedError(f"Only {ZoneType.PUBLIC.value} support cache for account")
        if not cloudaccount_id:
            raise MissingParameterError("cloudaccount_id")
        account = self.store.cloudaccounts.fetch_by_id_or_name(cloudaccount_id)
        cache = self.get_zone_cache(zone_id, account.id)
        if cache is None:
            raise ResourceNotFoundError("dns_zonecache", f"{zone.name}/{account.name}")
        return self._start_task(
            zone_id,
            "DnsZoneCacheDeleteTask",
            ZoneStatus.UNCACHING,
            (ZoneStatus.AVAILABLE, ZoneStatus.UNCACHE_FAILED),
            {"cache_id": cache.id},
        )

    def _private_zone(self, zone_id: str) -> DnsZone:
        zone = self.store.zones.fetch_by_id(zone_id)
        if zone.zone_type is not ZoneType.PRIVATE:
            raise NotSupportedError(f"Only {ZoneType.PRIVATE.value} support vpc operations")
        return zone

    def add_vpcs(self, zone_id: str, vpc_ids: Sequence[str]) -> Task:
        """Attach VPCs to a private zone.

        Raises:
            MissingParameterError: No VPC ids given.
            ResourceNotFoundError: Unknown VPC.
            ConflictError: VPC already attached or from another account.
        """
        zone = self._private_zone(zone_id)
        if zone.status not in (ZoneStatus.AVAILABLE, ZoneStatus.ADD_VPCS_FAILED):
            raise InvalidStatusError(f"dns zone can not add vpcs in status {zone.status.value}")
        if not vpc_ids:
            raise MissingParameterError("vpc_ids")
        with self.locks.lock("dns_zone", zone_id):
            current = self.get_zone_vpcs(zone_id)
            current_ids = {v.id for v in current}
            vpcs = [self.store.vpcs.fetch_by_id_or_name(v) for v in vpc_ids]
            manager_id = current[0].manager_id if current else vpcs[0].manager_id
            self._check_vpc_managers(vpcs, manager_id)
            for vpc in vpcs:
                if vpc.id in current_ids:
                    raise ConflictError(f"vpc {vpc.id} has already in this dns zone")
                self._check_private_zone_support(vpc)
            return self._start_task(
                zone_id,
                "DnsZoneAddVpcsTask",
                ZoneStatus.ADD_VPCS,
                (ZoneStatus.AVAILABLE, ZoneStatus.ADD_VPCS_FAILED),
                {"vpc_ids": [v.id for v in vpcs]},
            )

    def remove_vpcs(self, zone_id: str, vpc_ids: Sequence[str]) -> Task:
        """Detach VPCs from a private zone.

        Raises:
            MissingParameterError: No VPC ids given.
            ResourceNotFoundError: A VPC is unknown or not attached to the zone.
        """
        zone = self._private_zone(zone_id)
        if zone.status not in (ZoneStatus.AVAILABLE, ZoneStatus.REMOVE_VPCS_FAILED):
            raise InvalidStatusError(
                f"dns zone can not remove vpcs in status {zone.status.value}"
            )
        if not vpc_ids:
            raise MissingParameterError("vpc_ids")
        with self.locks.lock("dns_zone", zone_id):
            current_ids = {v.id for v in self.get_zone_vpcs(zone_id)}
            vpcs = [self.store.vpcs.fetch_by_id_or_name(v) for v in vpc_ids]
            for vpc in vpcs:
                if vpc.id not in current_ids:
                    raise ResourceNotFoundError("dns_zone_vpc", vpc.id)
            return self._start_task(
                zone_id,
                "DnsZoneRemoveVpcsTask",
                ZoneStatus.REMOVE_VPCS,
                (ZoneStatus.AVAILABLE, ZoneStatus.REMOVE_VPCS_FAILED),
                {"vpc_ids": [v.id for v in vpcs]},
            )

    def link_vpc(self, zone_id: str, vpc_id: str) -> None:
        with self.locks.lock("dns_zone", zone_id):
            if not self.store.zone_vpcs.filter(dns_zone_id=zone_id, vpc_id=vpc_id):
                self.store.zone_vpcs.insert(DnsZoneVpc(dns_zone_id=zone_id, vpc_id=vpc_id))

    def unlink_vpc(self, zone_id: str, vpc_id: str) -> None:
        with self.locks.lock("dns_zone", zone_id):
            for link in self.store.zone_vpcs.filter(dns_zone_id=zone_id, vpc_id=vpc_id):
                self.store.zone_vpcs.delete(link.id)

    def delete_zone(self, zone_id: str) -> Task:
        """Delete a zone, its remote copies and all its record sets."""
        return self._start_task(
            zone_id,
            "DnsZoneDeleteTask",
            ZoneStatus.REMOVE_VPCS,
            (ZoneStatus.AVAILABLE, *FAILED_ZONE_STATUSES),
            {"purge": False},
        )

    def purge_zone(self, zone_id: str) -> Task:
        """Delete a zone from any status, finishing local cleanup even when providers fail."""
        return self._start_task(
            zone_id, "DnsZoneDeleteTask", ZoneStatus.REMOVE_VPCS, None, {"purge": True}
        )

    def remove_zone_locally(self, zone_id: str) -> None:
        """Drop a zone's VPC links, record sets, caches and the zone row."""
        self.debounce.cancel(zone_id)
        with self.locks.lock("dns_zone", zone_id):
            for link in self.store.zone_vpcs.filter(dns_zone_id=zone_id):
                self.store.zone_vpcs.delete(link.id)
            for row in self.store.record_sets.filter(dns_zone_id=zone_id):
                self._remove_local_record(row.id)
            for cache in self.store.zone_caches.filter(dns_zone_id=zone_id):
                self.store.zone_caches.delete(cache.id)
            self.store.zones.delete(zone_id)

    # --- Record sets ---

    def _validate_policies(
        self, dns_type: str, policies: list[DnsRecordPolicyInput]
    ) -> list[tuple[str, PolicyType, dict[str, Any] | None]]:
        seen: set[str] = set()
        out = []
        for policy in policies:
            if policy.provider in seen:
                raise ValidationError(f"duplicate traffic policy for provider {policy.provider}")
            seen.add(policy.provider)
            try:
                driver_cls = get_driver_class(policy.provider)
            except ValueError as e:
                raise NotSupportedError(str(e)) from None
            if not driver_cls.is_support_dns_type(dns_type):
                raise NotSupportedError(f"{policy.provider} not support dns type {dns_type}")
            if not driver_cls.is_support_policy_type(policy.policy_type):
                raise NotSupportedError(
                    f"{policy.provider} not support policy type {policy.policy_type.value}"
                )
            params = validate_policy_params(policy.policy_type, policy.policy_params)
            out.append((policy.provider, policy.policy_type, params))
        return out

    @staticmethod
    def _validate_record_fields(
        name: str | None = None,
        dns_type: str | None = None,
        dns_value: str | None = None,
        ttl: int | None = None,
    ) -> None:
        if name is not None and not _RECORD_NAME_RE.match(name):
            raise ValidationError(f"invalid record name {name!r}")
        if dns_type is not None:
            try:
                DnsType(dns_type)
            except ValueError:
                raise ValidationError(f"unknown dns type {dns_type}") from None
        if dns_value is not None and not dns_value.strip():
            raise MissingParameterError("dns_value")
        if ttl is not None and not 0 < ttl <= _MAX_TTL:
            raise ValidationError(f"invalid ttl {ttl}")

    def create_record_set(
        self,
        zone_id: str,
        name: str,
        dns_type: str,
        dns_value: str,
        ttl: int = 300,
        *,
        enabled: bool = True,
        policies: Iterable[DnsRecordPolicyInput | dict[str, Any]] | None = None,
    ) -> DnsRecordSetRow:
        """Add a record set to a zone and schedule a re-sync.

        Raises:
            ResourceNotFoundError: Unknown zone.
            ValidationError: Bad name, type, value, TTL or policy params.
            NotSupportedError: A policy's provider lacks the DNS or policy type.
        """
        zone = self.store.zones.fetch_by_id(zone_id)
        name = (name or "").strip().lower()
        dns_type = (dns_type or "").upper()
        self._validate_record_fields(name, dns_type, dns_value, ttl)
        resolved = self._validate_policies(dns_type, _as_policy_inputs(policies))

        row = self.store.record_sets.insert(
            DnsRecordSetRow(
                dns_zone_id=zone.id,
                name=name,
                dns_type=dns_type,
                dns_value=dns_value,
                ttl=ttl,
                enabled=enabled,
            )
        )
        for provider, policy_type, params in resolved:
            self.policies.set_traffic_policy(row.id, provider, policy_type, params)
        self.mark_dirty(zone.id)
        return row

    def update_record_set(
        self,
        record_id: str,
        *,
        name: str | None = None,
        dns_type: str | None = None,
        dns_value: str | None = None,
        ttl: int | None = None,
        enabled: bool | None = None,
        policies: Iterable[DnsRecordPolicyInput | dict[str, Any]] | None = None,
    ) -> DnsRecordSetRow:
        """Change fields or traffic policies of a record set and schedule a re-sync."""
        current = self.store.record_sets.fetch_by_id(record_id)
        name = name.strip().lower() if name is not None else None
        dns_type = dns_type.upper() if dns_type is not None else None
        self._validate_record_fields(name, dns_type, dns_value, ttl)
        resolved = self._validate_policies(
            dns_type or current.dns_type, _as_policy_inputs(policies)
        )

        def apply(row: DnsRecordSetRow) -> None:
            if name is not None:
                row.name = name
            if dns_type is not None:
                row.dns_type = dns_type
            if dns_value is not None:
                row.dns_value = dns_value
            if ttl is not None:
                row.ttl = ttl
            if enabled is not None:
                row.enabled = enabled

        with self.locks.lock("dns_recordset", record_id):
            row = self.store.record_sets.update(record_id, apply)
            for provider, policy_type, params in resolved:
                self.policies.set_traffic_policy(record_id, provider, policy_type, params)
        self.mark_dirty(row.dns_zone_id)
        return row

    def delete_record_set(self, record_id: str) -> None:
        row = self.store.record_sets.fetch_by_id(record_id)
        self._remove_local_record(record_id)
        self.mark_dirty(row.dns_zone_id)

    def _remove_local_record(self, record_id: str) -> None:
        with self.locks.lock("dns_recordset", record_id):
            self.policies.detach_all(record_id)
            self.store.record_sets.delete(record_id)

    def local_record_sets(self, zone_id: str, provider: str) -> list[DnsRecordSet]:
        """The zone's record sets as *provider* should see them."""
        records = []
        for row in self.store.record_sets.filter(dns_zone_id=zone_id):
            policy_type, params = self.policies.default_policy(row.id, provider)
            records.append(
                DnsRecordSet(
                    id=row.id,
                    external_id=row.external_id or None,
                    name=row.name,
                    dns_type=row.dns_type,
                    dns_value=row.dns_value,
                    ttl=row.ttl,
                    enabled=row.enabled,
                    status=row.status,
                    policy_type=policy_type,
                    policy_params=params,
                )
            )
        return records

    # --- Debounced re-sync ---

    def mark_dirty(self, zone_id: str) -> None:
        """Flag the zone for a re-sync once mutations settle."""

        def apply(zone: DnsZone) -> None:
            zone.is_dirty = True

        self.store.zones.update(zone_id, apply)
        self.arm_sync(zone_id)

    def arm_sync(self, zone_id: str) -> None:
        self.debounce.arm(zone_id, lambda: self.delay_sync(zone_id))

    def delay_sync(self, zone_id: str) -> Task | None:
        """Start one sync pass if the zone is still dirty.

        A zone busy with another operation keeps its flag and the timer is
        armed again.  A zone in a failed state keeps the flag only; the next
        operation that completes on it arms the timer.
        """
        with self.locks.lock("dns_zone", zone_id):
            zone = self.store.zones.get(zone_id)
            if zone is None or not zone.is_dirty:
                return None
            try:
                return self._start_task(
                    zone_id,
                    "DnsZoneSyncRecordSetsTask",
                    ZoneStatus.SYNC_RECORD_SETS,
                    (ZoneStatus.AVAILABLE, ZoneStatus.SYNC_RECORD_SETS_FAILED),
                    clear_dirty=True,
                )
            except InvalidStatusError:
                if zone.status in FAILED_ZONE_STATUSES:
                    zs_logger.warning(
                        f"dns zone {zone.name} is {zone.status.value}, sync left pending",
                        zone_id=zone_id,
                        operation="delay_sync",
                    )
                    return None
                zs_logger.info(
                    f"dns zone {zone.name} busy in {zone.status.value}, delaying sync",
                    zone_id=zone_id,
                    operation="delay_sync",
                )
                self.arm_sync(zone_id)
                return None

    # --- Record-set synchronization ---

    def sync_record_sets(self, zone_id: str) -> Task:
        """Push the local record sets to every materialized cache of the zone."""
        return self._start_task(
            zone_id,
            "DnsZoneSyncRecordSetsTask",
            ZoneStatus.SYNC_RECORD_SETS,
            (ZoneStatus.AVAILABLE, ZoneStatus.SYNC_RECORD_SETS_FAILED),
            clear_dirty=True,
        )

    def push_cache(self, zone_id: str, cache_id: str) -> SyncResult:
        """Push the zone's record sets to one cache."""
        with self.locks.lock("dns_zone", zone_id):
            zone = self.store.zones.fetch_by_id(zone_id)
            cache = self.store.zone_caches.fetch_by_id(cache_id)
            account = self.store.cloudaccounts.fetch_by_id(cache.cloudaccount_id)
            driver = self.get_driver(account.id)
            result = push_record_sets(
                driver, self.zone_handle(zone, cache), self.local_record_sets(zone_id, account.provider)
            )
        zs_logger.info(
            f"sync {cache.name} records for cloud: {result.result()}",
            provider=account.provider,
            zone_id=zone_id,
            operation="sync_record_sets",
        )
        return result

    def sync_with_cloud(self, zone_id: str, cloudaccount_id: str) -> Task:
        """Import one cache's remote record sets into the local zone."""
        if not cloudaccount_id:
            raise MissingParameterError("cloudaccount_id")
        account = self.store.cloudaccounts.fetch_by_id_or_name(cloudaccount_id)
        cache = self.get_zone_cache(zone_id, account.id)
        if cache is None or not cache.external_id:
            raise ResourceNotFoundError("dns_zonecache", f"{zone_id}/{account.name}")
        return self._start_task(
            zone_id,
            "DnsZoneSyncWithCloudTask",
            ZoneStatus.SYNC_RECORD_SETS,
            (ZoneStatus.AVAILABLE, ZoneStatus.SYNC_RECORD_SETS_FAILED),
            {"cache_id": cache.id},
        )

    def sync_dns_record_sets(
        self,
        zone_id: str,
        provider: str,
        driver: DNSProviderBlueprint,
        zone: ZoneHandle,
    ) -> SyncResult:
        """Bring the local record sets in line with a remote zone.

        Remote-only record sets are created locally, local-only ones are
        removed unless disabled, and for private zones differing enabled
        ones are overwritten with the remote shape.  Errors are collected
        per record.
        """
        result = SyncResult()
        with self.locks.lock("dns_zone", zone_id):
            local_zone = self.store.zones.fetch_by_id(zone_id)
            try:
                remote = driver.list_record_sets(zone)
            except DNSError as e:
                result.error(e)
                return result
            local = self.local_record_sets(zone_id, provider)
            # Disabled rows never reach a provider and stay local.
            disabled = {rec.id for rec in local if not rec.enabled}
            _, add, delete, update = compare_record_sets(
                filter_system_records(remote), filter_system_records(local)
            )

            for rec in delete:
                try:
                    self._create_local_from_remote(zone_id, provider, rec)
                except (ZonesyncError, ValueError) as e:
                    result.add_error(f"{rec}: {e}")
                    continue
                result.add()

            for rec in add:
                if rec.id in disabled:
                    continue
                try:
                    self._remove_local_record(rec.id)
                except (ZonesyncError, ValueError) as e:
                    result.delete_error(f"{rec}: {e}")
                    continue
                result.delete()

            if local_zone.zone_type is ZoneType.PRIVATE:
                for rec in update:
                    if rec.id in disabled:
                        continue
                    try:
                        self._update_local_from_remote(provider, rec)
                    except (ZonesyncError, ValueError) as e:
                        result.update_error(f"{rec}: {e}")
                        continue
                    result.update()

        zs_logger.info(
            f"sync {local_zone.name} records from cloud: {result.result()}",
            provider=provider,
            zone_id=zone_id,
            operation="sync_dns_record_sets",
        )
        return result

    def _create_local_from_remote(self, zone_id: str, provider: str, rec: DnsRecordSet) -> None:
        row = self.store.record_sets.insert(
            DnsRecordSetRow(
                dns_zone_id=zone_id,
                name=rec.name,
                dns_type=rec.dns_type,
                dns_value=rec.dns_value,
                ttl=rec.ttl,
                enabled=rec.enabled,
                status=rec.status or "available",
                external_id=rec.external_id or "",
            )
        )
        if rec.policy_type is not PolicyType.SIMPLE:
            self.policies.set_traffic_policy(row.id, provider, rec.policy_type, rec.policy_params)

    def _update_local_from_remote(self, provider: str, rec: DnsRecordSet) -> None:
        def apply(row: DnsRecordSetRow) -> None:
            row.ttl = rec.ttl
            row.enabled = rec.enabled
            row.external_id = rec.external_id or ""
            if rec.status:
                row.status = rec.status

        with self.locks.lock("dns_recordset", rec.id):
            self.store.record_sets.update(rec.id, apply)
            current = self.policies.get_record_policy(rec.id, provider)
            if rec.policy_type is not PolicyType.SIMPLE:
                self.policies.set_traffic_policy(
                    rec.id, provider, rec.policy_type, rec.policy_params
                )
            elif current is not None:
                self.policies.remove_policy(rec.id, current.id)
