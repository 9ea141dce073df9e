"""Persisted entities and their status vocabularies."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .recordset import PolicyType, ZoneType


def new_id() -> str:
    return str(uuid.uuid4())


class ZoneStatus(str, Enum):
    AVAILABLE = "available"
    CREATING = "creating"
    CREATE_FAILED = "create_failed"
    CACHING = "caching"
    CACHE_FAILED = "cache_failed"
    UNCACHING = "uncaching"
    UNCACHE_FAILED = "uncache_failed"
    ADD_VPCS = "add_vpcs"
    ADD_VPCS_FAILED = "add_vpcs_failed"
    REMOVE_VPCS = "remove_vpcs"
    REMOVE_VPCS_FAILED = "remove_vpcs_failed"
    SYNC_RECORD_SETS = "sync_record_sets"
    SYNC_RECORD_SETS_FAILED = "sync_record_sets_failed"
    DELETE_FAILED = "delete_failed"


FAILED_ZONE_STATUSES = frozenset(s for s in ZoneStatus if s.value.endswith("_failed"))


class ZoneCacheStatus(str, Enum):
    CREATING = "creating"
    CREATE_FAILED = "create_failed"
    AVAILABLE = "available"
    DELETING = "deleting"
    DELETE_FAILED = "delete_failed"


class _Row(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id)


class Cloudaccount(_Row):
    """A set of provider credentials zones can be materialized in."""

    name: str
    provider: str
    config: dict[str, Any] = Field(default_factory=dict)


class Vpc(_Row):
    """A network a private zone can be attached to.

    ``manager_id`` is empty for VPCs that are pure local bookkeeping.
    """

    name: str = ""
    external_id: str = ""
    manager_id: str | None = None
    cloudaccount_id: str | None = None
    region_id: str = ""


class DnsZone(_Row):
    name: str
    zone_type: ZoneType
    description: str = ""
    enabled: bool = True
    options: dict[str, Any] | None = None
    is_dirty: bool = False
    status: ZoneStatus = ZoneStatus.AVAILABLE
    status_reason: str = ""


class DnsZoneCache(_Row):
    """One zone materialized against one cloud account."""

    name: str = ""
    dns_zone_id: str
    cloudaccount_id: str
    external_id: str = ""
    status: ZoneCacheStatus = ZoneCacheStatus.CREATING
    status_reason: str = ""


class DnsZoneVpc(_Row):
    dns_zone_id: str
    vpc_id: str


class DnsRecordSetRow(_Row):
    """Locally stored record set (the desired state)."""

    dns_zone_id: str
    name: str
    dns_type: str
    dns_value: str
    ttl: int = 300
    enabled: bool = True
    status: str = "available"
    external_id: str = ""


class DnsTrafficPolicy(_Row):
    provider: str
    policy_type: PolicyType
    params: dict[str, Any] | None = None


class DnsRecordSetTrafficPolicy(_Row):
    dns_recordset_id: str
    dns_trafficpolicy_id: str


class DnsRecordPolicyInput(BaseModel):
    """Traffic policy requested for a record set on one provider."""

    provider: str
    policy_type: PolicyType = PolicyType.SIMPLE
    policy_params: dict[str, Any] | None = None
