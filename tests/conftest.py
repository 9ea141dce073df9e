"""Shared fixtures: an in-memory DNS provider and a hand-driven clock."""

from __future__ import annotations

import itertools
from typing import Any, Sequence

import pytest
from pydantic import BaseModel, ConfigDict

from zonesync.base.client_cache import DriverCache
from zonesync.base.config import CONFIG_REGISTRY, SyncSettings
from zonesync.base.dns import DNSProviderBlueprint, VpcRef, ZoneHandle
from zonesync.base.exceptions import (
    RecordNotFoundError,
    ZoneAlreadyExistsError,
    ZoneNotFoundError,
)
from zonesync.factory import register_provider, unregister_provider
from zonesync.recordset import DnsRecordSet, DnsType, PolicyType, ZoneType
from zonesync.zones import DnsZoneManager


class FakeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    account: str = "default"


class FakeDNS(DNSProviderBlueprint):
    """Provider double keeping zones and record sets in dicts.

    ``fail`` maps a method name to the exception it should raise next.
    """

    provider = "fake"
    supported_zone_types = frozenset({ZoneType.PUBLIC, ZoneType.PRIVATE})
    supported_dns_types = frozenset(DnsType) - {DnsType.CAA}
    supported_policy_types = frozenset(
        {PolicyType.SIMPLE, PolicyType.WEIGHTED, PolicyType.FAILOVER}
    )

    _ids = itertools.count(1)

    def __init__(self, config: Any = None) -> None:
        self.config = config
        self.zones: dict[str, dict[str, Any]] = {}
        self.records: dict[str, dict[str, DnsRecordSet]] = {}
        self.fail: dict[str, Exception] = {}
        self.calls: list[tuple[str, Any]] = []

    def _enter(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        if op in self.fail:
            raise self.fail.pop(op)

    def _zone(self, zone: ZoneHandle) -> dict[str, Any]:
        if zone.external_id not in self.zones:
            raise ZoneNotFoundError(f"Zone '{zone.external_id}' not found")
        return self.zones[zone.external_id]

    def create_zone(
        self,
        zone_name: str,
        zone_type: ZoneType = ZoneType.PUBLIC,
        vpcs: Sequence[VpcRef] = (),
        **kwargs: Any,
    ) -> ZoneHandle:
        self._enter("create_zone", zone_name)
        if any(z["name"] == zone_name for z in self.zones.values()):
            raise ZoneAlreadyExistsError(f"Zone '{zone_name}' already exists")
        zone_id = f"fz-{next(self._ids)}"
        self.zones[zone_id] = {
            "name": zone_name,
            "type": ZoneType(zone_type),
            "vpcs": [v.external_id for v in vpcs],
        }
        self.records[zone_id] = {
            f"{zone_id}-ns": DnsRecordSet(
                external_id=f"{zone_id}-ns", name="@", dns_type="NS",
                dns_value="ns1.fake.net.*ns2.fake.net.", ttl=172800,
            ),
            f"{zone_id}-soa": DnsRecordSet(
                external_id=f"{zone_id}-soa", name="@", dns_type="SOA",
                dns_value="ns1.fake.net. admin.fake.net. 1 7200 900 1209600 86400", ttl=900,
            ),
        }
        return ZoneHandle(external_id=zone_id, name=zone_name, zone_type=ZoneType(zone_type))

    def delete_zone(self, zone: ZoneHandle) -> None:
        self._enter("delete_zone", zone.external_id)
        self._zone(zone)
        del self.zones[zone.external_id]
        del self.records[zone.external_id]

    def list_zones(self) -> list[ZoneHandle]:
        return [
            ZoneHandle(external_id=zid, name=z["name"], zone_type=z["type"])
            for zid, z in self.zones.items()
        ]

    def list_record_sets(self, zone: ZoneHandle) -> list[DnsRecordSet]:
        self._enter("list_record_sets", zone.external_id)
        self._zone(zone)
        return list(self.records[zone.external_id].values())

    def create_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> str:
        self._enter("create_record_set", record)
        self._zone(zone)
        ext = f"rec-{next(self._ids)}"
        self.records[zone.external_id][ext] = record.model_copy(
            update={"id": None, "external_id": ext, "status": "", "enabled": True}
        )
        return ext

    def update_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        self._enter("update_record_set", record)
        self._zone(zone)
        records = self.records[zone.external_id]
        if record.external_id not in records:
            raise RecordNotFoundError(record.external_id or "")
        records[record.external_id] = record.model_copy(update={"id": None, "status": ""})

    def remove_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        self._enter("remove_record_set", record)
        self._zone(zone)
        records = self.records[zone.external_id]
        for ext, existing in list(records.items()):
            if ext == record.external_id or existing.sort_key() == record.sort_key():
                del records[ext]
                return
        raise RecordNotFoundError(str(record))

    def associate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        self._enter("associate_vpc", vpc.external_id)
        self._zone(zone)["vpcs"].append(vpc.external_id)

    def disassociate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        self._enter("disassociate_vpc", vpc.external_id)
        self._zone(zone)["vpcs"].remove(vpc.external_id)

    # test helpers

    def remote(self, zone_id: str) -> list[DnsRecordSet]:
        return [r for r in self.records[zone_id].values() if r.dns_type not in ("NS", "SOA")]

    def seed(self, zone_id: str, record: DnsRecordSet) -> str:
        ext = f"rec-{next(self._ids)}"
        self.records[zone_id][ext] = record.model_copy(update={"external_id": ext})
        return ext


class ManualClock:
    """Timer factory whose timers fire only when :meth:`advance` passes them."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def timer(self, delay: float, fn: Any) -> ManualTimer:
        t = ManualTimer(self, delay, fn)
        self.timers.append(t)
        return t

    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending() if t.deadline <= target]
            if not due:
                break
            t = min(due, key=lambda t: t.deadline)
            self.now = t.deadline
            t.fire()
        self.now = target


class ManualTimer:
    def __init__(self, clock: ManualClock, delay: float, fn: Any) -> None:
        self.clock = clock
        self.delay = delay
        self.fn = fn
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False
        self.deadline = 0.0

    def start(self) -> None:
        self.started = True
        self.deadline = self.clock.now + self.delay

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fired = True
        self.fn()


@pytest.fixture(autouse=True)
def fake_provider():
    register_provider("fake", FakeDNS, FakeConfig)
    DriverCache().clear()
    yield FakeDNS
    unregister_provider("fake")
    CONFIG_REGISTRY.pop("fake", None)
    DriverCache().clear()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def drivers():
    """Fake drivers keyed by the ``account`` field of the account config."""
    return {}


@pytest.fixture
def manager(clock, drivers):
    def factory(provider, config):
        key = config.get("account", "default")
        if key not in drivers:
            drivers[key] = FakeDNS(config)
        return drivers[key]

    mgr = DnsZoneManager(
        settings=SyncSettings(debounce_delay=10, worker_count=1),
        driver_factory=factory,
        synchronous=True,
        timer_factory=clock.timer,
    )
    yield mgr
    mgr.shutdown()
