"""GCP Cloud DNS implementation of the DNS provider blueprint."""

from __future__ import annotations

from typing import Any, Sequence

from google.api_core import exceptions as gcp_exceptions
from google.cloud import dns as cloud_dns  # type: ignore[attr-defined]

from zonesync.base.config import GCPConfig
from zonesync.base.dns import DNSProviderBlueprint, VpcRef, ZoneHandle
from zonesync.base.exceptions import (
    DNSError,
    RecordNotFoundError,
    UnsupportedOperationError,
    ZoneAlreadyExistsError,
    ZoneNotFoundError,
)
from zonesync.recordset import (
    DnsRecordSet,
    DnsType,
    PolicyType,
    ZoneType,
    to_fqdn,
    to_relative,
)


class DNS(DNSProviderBlueprint):
    """GCP Cloud DNS driver (public zones, Simple policy only).

    Attributes:
        client: Cloud DNS client.
        project_id: GCP project ID.
    """

    provider = "gcp"
    supported_zone_types = frozenset({ZoneType.PUBLIC})
    supported_dns_types = frozenset(
        {
            DnsType.A,
            DnsType.AAAA,
            DnsType.CNAME,
            DnsType.MX,
            DnsType.NS,
            DnsType.TXT,
            DnsType.SRV,
            DnsType.SOA,
            DnsType.PTR,
            DnsType.CAA,
        }
    )
    supported_policy_types = frozenset({PolicyType.SIMPLE})

    def __init__(self, config: GCPConfig) -> None:
        """Initialize the Cloud DNS client.

        Args:
            config: GCP configuration object containing project ID and credentials.
        """
        assert config.project_id is not None  # guaranteed by GCPConfig validator
        self.project_id: str = config.project_id
        self.client = cloud_dns.Client(project=self.project_id, credentials=config.credentials)

    # --- Zone lifecycle ---

    def create_zone(
        self,
        zone_name: str,
        zone_type: ZoneType = ZoneType.PUBLIC,
        vpcs: Sequence[VpcRef] = (),
        **kwargs: Any,
    ) -> ZoneHandle:
        """Create a Cloud DNS managed zone.

        Raises:
            UnsupportedOperationError: For private zones.
            ZoneAlreadyExistsError: If the managed zone already exists.
        """
        if ZoneType(zone_type) is not ZoneType.PUBLIC:
            raise UnsupportedOperationError("Cloud DNS driver only manages public zones")
        # Cloud DNS zone names are identifiers, not FQDNs
        safe_name = zone_name.rstrip(".").replace(".", "-")
        try:
            zone = self.client.zone(
                safe_name,
                dns_name=to_fqdn("@", zone_name),
                description=kwargs.get("comment", ""),
            )
            zone.create()
        except gcp_exceptions.Conflict as e:
            raise ZoneAlreadyExistsError(f"Zone '{zone_name}' already exists") from e
        except Exception as e:
            raise DNSError(f"Failed to create zone '{zone_name}'") from e
        return ZoneHandle(external_id=safe_name, name=zone_name.rstrip("."))

    def delete_zone(self, zone: ZoneHandle) -> None:
        """Delete a Cloud DNS managed zone, clearing its records first.

        Raises:
            ZoneNotFoundError: If the zone does not exist.
        """
        apex = to_fqdn("@", zone.name)
        try:
            managed = self.client.zone(zone.external_id, dns_name=apex)
            leftovers = [
                r
                for r in managed.list_resource_record_sets()
                if not (r.name == apex and r.record_type in ("NS", "SOA"))
            ]
            if leftovers:
                changes = managed.changes()
                for r in leftovers:
                    changes.delete_record_set(r)
                changes.create()
            managed.delete()
        except gcp_exceptions.NotFound as e:
            raise ZoneNotFoundError(f"Zone '{zone.external_id}' not found") from e
        except Exception as e:
            raise DNSError(f"Failed to delete zone '{zone.external_id}'") from e

    def list_zones(self) -> list[ZoneHandle]:
        """List all Cloud DNS managed zones.

        Raises:
            DNSError: On Cloud DNS API failure.
        """
        try:
            return [
                ZoneHandle(external_id=z.name, name=z.dns_name.rstrip("."))
                for z in self.client.list_zones()
            ]
        except Exception as e:
            raise DNSError("Failed to list zones") from e

    # --- Record sets ---

    def _managed(self, zone: ZoneHandle) -> Any:
        return self.client.zone(zone.external_id, dns_name=to_fqdn("@", zone.name))

    def _list_raw(self, zone: ZoneHandle) -> list[Any]:
        try:
            return list(self._managed(zone).list_resource_record_sets())
        except gcp_exceptions.NotFound as e:
            raise ZoneNotFoundError(f"Zone '{zone.external_id}' not found") from e
        except Exception as e:
            raise DNSError(f"Failed to list records in '{zone.external_id}'") from e

    def _find_raw(self, zone: ZoneHandle, record: DnsRecordSet) -> Any:
        fqdn = to_fqdn(record.name, zone.name)
        for r in self._list_raw(zone):
            if r.name == fqdn and r.record_type == record.dns_type:
                return r
        raise RecordNotFoundError(
            f"Record '{fqdn}' {record.dns_type} not found in '{zone.external_id}'"
        )

    def _check_policy(self, record: DnsRecordSet) -> None:
        if record.policy_type is not PolicyType.SIMPLE:
            raise UnsupportedOperationError(
                f"Cloud DNS does not support {record.policy_type.value} policies"
            )

    def _apply(self, zone: ZoneHandle, *, add: Any = None, delete: Any = None) -> None:
        try:
            changes = self._managed(zone).changes()
            if delete is not None:
                changes.delete_record_set(delete)
            if add is not None:
                changes.add_record_set(add)
            changes.create()
        except gcp_exceptions.NotFound as e:
            raise ZoneNotFoundError(f"Zone '{zone.external_id}' not found") from e
        except Exception as e:
            raise DNSError(f"Failed to change records in '{zone.external_id}'") from e

    def list_record_sets(self, zone: ZoneHandle) -> list[DnsRecordSet]:
        """List every record set of a managed zone.

        Raises:
            ZoneNotFoundError: If the zone does not exist.
        """
        return [
            DnsRecordSet.from_values(
                list(r.rrdatas),
                external_id=f"{r.name}|{r.record_type}",
                name=to_relative(r.name, zone.name),
                dns_type=r.record_type,
                ttl=r.ttl,
            )
            for r in self._list_raw(zone)
        ]

    def create_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> str:
        self._check_policy(record)
        fqdn = to_fqdn(record.name, zone.name)
        rrset = self._managed(zone).resource_record_set(
            fqdn, record.dns_type, record.ttl, record.values()
        )
        self._apply(zone, add=rrset)
        return f"{fqdn}|{record.dns_type}"

    def update_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        """Replace a record set with a delete+add change set."""
        self._check_policy(record)
        current = self._find_raw(zone, record)
        replacement = self._managed(zone).resource_record_set(
            current.name, record.dns_type, record.ttl, record.values()
        )
        self._apply(zone, add=replacement, delete=current)

    def remove_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        self._apply(zone, delete=self._find_raw(zone, record))

    # --- VPC association ---

    def associate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        raise UnsupportedOperationError("Cloud DNS driver does not manage private zones")

    def disassociate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        raise UnsupportedOperationError("Cloud DNS driver does not manage private zones")
