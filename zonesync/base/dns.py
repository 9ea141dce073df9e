"""DNS provider blueprint."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Sequence

from zonesync.recordset import DnsRecordSet, DnsType, PolicyType, ZoneType


@dataclass(frozen=True)
class ZoneHandle:
    """Reference to a zone that exists on a provider.

    Attributes:
        external_id: Provider identifier of the zone.
        name: Zone domain name, without the trailing dot.
        zone_type: Public or private.
    """

    external_id: str
    name: str
    zone_type: ZoneType = ZoneType.PUBLIC


@dataclass(frozen=True)
class VpcRef:
    """A VPC as the provider sees it."""

    external_id: str
    region_id: str = ""


class DNSProviderBlueprint(ABC):
    """Abstract interface for one DNS provider account.

    Maps to AWS Route 53 and GCP Cloud DNS.  Record sets cross this
    interface as :class:`~zonesync.recordset.DnsRecordSet` values with
    zone-relative names (``@`` for the apex) and provider-neutral traffic
    policies; each driver translates to and from its own wire shapes.
    """

    provider: ClassVar[str] = ""

    supported_zone_types: ClassVar[frozenset[ZoneType]] = frozenset({ZoneType.PUBLIC})
    supported_dns_types: ClassVar[frozenset[DnsType]] = frozenset(DnsType)
    supported_policy_types: ClassVar[frozenset[PolicyType]] = frozenset({PolicyType.SIMPLE})

    # --- Capabilities ---

    @classmethod
    def is_support_zone_type(cls, zone_type: ZoneType | str) -> bool:
        return ZoneType(zone_type) in cls.supported_zone_types

    @classmethod
    def is_support_dns_type(cls, dns_type: DnsType | str) -> bool:
        try:
            return DnsType(str(dns_type).upper()) in cls.supported_dns_types
        except ValueError:
            return False

    @classmethod
    def is_support_policy_type(cls, policy_type: PolicyType | str) -> bool:
        try:
            return PolicyType(policy_type) in cls.supported_policy_types
        except ValueError:
            return False

    @classmethod
    def capabilities(cls) -> dict[str, list[str]]:
        return {
            "zone_types": sorted(t.value for t in cls.supported_zone_types),
            "dns_types": sorted(t.value for t in cls.supported_dns_types),
            "policy_types": sorted(t.value for t in cls.supported_policy_types),
        }

    # --- Zone lifecycle ---

    @abstractmethod
    def create_zone(
        self,
        zone_name: str,
        zone_type: ZoneType = ZoneType.PUBLIC,
        vpcs: Sequence[VpcRef] = (),
        **kwargs: Any,
    ) -> ZoneHandle:
        """Create a zone and return a handle to it.

        Args:
            zone_name: Domain name (e.g. ``example.com``).
            zone_type: Public or private.
            vpcs: VPC a private zone is attached to from the start.  Callers
                pass one and associate the rest after storing the handle.

        Keyword Args:
            comment (str): Zone description.

        Raises:
            ZoneAlreadyExistsError: A zone with that name already exists.
            UnsupportedOperationError: The provider lacks the zone type.
        """

    @abstractmethod
    def delete_zone(self, zone: ZoneHandle) -> None:
        """Delete a zone.

        Raises:
            ZoneNotFoundError: If the zone does not exist.
        """

    @abstractmethod
    def list_zones(self) -> list[ZoneHandle]:
        """List zones visible to the account."""

    # --- Record sets ---

    @abstractmethod
    def list_record_sets(self, zone: ZoneHandle) -> list[DnsRecordSet]:
        """All record sets of *zone*, including the apex NS/SOA records."""

    @abstractmethod
    def create_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> str:
        """Create *record* in *zone* and return its provider identifier."""

    @abstractmethod
    def update_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        """Overwrite the remote record set identified by ``record.external_id``."""

    @abstractmethod
    def remove_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        """Delete *record* from *zone*.

        Raises:
            RecordNotFoundError: If no matching record exists.
        """

    # --- VPC association ---

    @abstractmethod
    def associate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        """Attach a VPC to a private zone."""

    @abstractmethod
    def disassociate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        """Detach a VPC from a private zone."""
