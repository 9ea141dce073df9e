"""Zonesync: DNS zone reconciliation across AWS Route 53 and GCP Cloud DNS.

Keeps a locally owned set of DNS zones and record sets in line with the
zones materialized on cloud accounts::

    from zonesync import DnsZoneManager

    manager = DnsZoneManager()
    account = manager.add_cloudaccount("prod", "aws", {"region_name": "us-east-1"})
    zone = manager.create_zone("example.com", "PublicZone", cloudaccount_id=account.id)
"""

from .base import DNSProviderBlueprint, ZoneHandle
from .diffing import SyncResult, compare_record_sets
from .factory import provider_factory, register_provider
from .recordset import DnsRecordSet, PolicyType, ZoneType
from .zones import DnsZoneManager

__all__ = [
    "DNSProviderBlueprint",
    "ZoneHandle",
    "SyncResult",
    "compare_record_sets",
    "provider_factory",
    "register_provider",
    "DnsRecordSet",
    "PolicyType",
    "ZoneType",
    "DnsZoneManager",
]
