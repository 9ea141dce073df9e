"""AWS Route 53 implementation of the DNS provider blueprint."""

from __future__ import annotations

import hashlib
import uuid
from typing import Any, NoReturn, Sequence

import boto3
from botocore.exceptions import ClientError

from zonesync.base.config import AWSConfig
from zonesync.base.dns import DNSProviderBlueprint, VpcRef, ZoneHandle
from zonesync.base.exceptions import (
    DNSError,
    RecordNotFoundError,
    UnsupportedOperationError,
    ZoneAlreadyExistsError,
    ZoneNotFoundError,
)
from zonesync.base.logger import zs_logger
from zonesync.recordset import (
    DnsRecordSet,
    DnsType,
    PolicyType,
    ZoneType,
    to_fqdn,
    to_relative,
)

_ERROR_MAP: dict[str, type[DNSError]] = {
    "NoSuchHostedZone": ZoneNotFoundError,
    "HostedZoneAlreadyExists": ZoneAlreadyExistsError,
    "ConflictingDomainExists": ZoneAlreadyExistsError,
    "HostedZoneNotPrivate": UnsupportedOperationError,
    "PublicZoneVPCAssociation": UnsupportedOperationError,
}

_EXTERNAL_ID_SEP = "|"


def _handle(e: ClientError, msg: str) -> NoReturn:
    exc = _ERROR_MAP.get(e.response["Error"]["Code"])
    raise (exc or DNSError)(f"{msg}: {e.response['Error'].get('Message', '')}") from e


def _zone_id(raw: str) -> str:
    return raw.split("/")[-1]


def _unescape(name: str) -> str:
    # Route 53 returns the wildcard label octal-escaped.
    return name.replace("\\052", "*")


def _policy_from_aws(rrset: dict[str, Any]) -> tuple[PolicyType, dict[str, Any] | None]:
    """Translate Route 53 routing fields into a provider-neutral policy."""
    if "Failover" in rrset:
        params: dict[str, Any] = {"failover": rrset["Failover"]}
        if rrset.get("HealthCheckId"):
            params["health_check_id"] = rrset["HealthCheckId"]
        return PolicyType.FAILOVER, params
    if "GeoLocation" in rrset:
        geo = rrset["GeoLocation"]
        params = {}
        if geo.get("ContinentCode"):
            params["continent_code"] = geo["ContinentCode"]
        if geo.get("CountryCode"):
            params["country_code"] = geo["CountryCode"]
        if geo.get("SubdivisionCode"):
            params["subdivision_code"] = geo["SubdivisionCode"]
        return PolicyType.BY_GEO_LOCATION, params
    if "Region" in rrset:
        return PolicyType.LATENCY, {"region": rrset["Region"]}
    if rrset.get("MultiValueAnswer"):
        return PolicyType.MULTI_VALUE_ANSWER, {"multi_value_answer": True}
    if "Weight" in rrset:
        return PolicyType.WEIGHTED, {"weight": rrset["Weight"]}
    return PolicyType.SIMPLE, None


def _policy_to_aws(record: DnsRecordSet) -> dict[str, Any]:
    params = record.policy_params or {}
    policy = record.policy_type
    if policy is PolicyType.SIMPLE:
        return {}
    if policy is PolicyType.WEIGHTED:
        return {"Weight": int(params["weight"])}
    if policy is PolicyType.FAILOVER:
        out: dict[str, Any] = {"Failover": params["failover"]}
        if params.get("health_check_id"):
            out["HealthCheckId"] = params["health_check_id"]
        return out
    if policy is PolicyType.BY_GEO_LOCATION:
        geo = {}
        if params.get("continent_code"):
            geo["ContinentCode"] = params["continent_code"]
        if params.get("country_code"):
            geo["CountryCode"] = params["country_code"]
        if params.get("subdivision_code"):
            geo["SubdivisionCode"] = params["subdivision_code"]
        return {"GeoLocation": geo}
    if policy is PolicyType.LATENCY:
        return {"Region": params["region"]}
    if policy is PolicyType.MULTI_VALUE_ANSWER:
        return {"MultiValueAnswer": True}
    raise UnsupportedOperationError(f"Route 53 does not support {policy.value} policies")


def _set_identifier(record: DnsRecordSet) -> str | None:
    """SetIdentifier for routed records; reused from the external id when known."""
    if record.policy_type is PolicyType.SIMPLE:
        return None
    if record.external_id:
        set_id = record.external_id.split(_EXTERNAL_ID_SEP)[-1]
        if set_id:
            return set_id
    digest = hashlib.sha1(str(record).encode()).hexdigest()[:10]
    return f"{record.policy_type.value}-{digest}"


def _external_id(fqdn: str, dns_type: str, set_id: str | None) -> str:
    return _EXTERNAL_ID_SEP.join((fqdn, dns_type, set_id or ""))


class DNS(DNSProviderBlueprint):
    """AWS Route 53 DNS driver.

    Attributes:
        client: boto3 Route 53 client.
    """

    provider = "aws"
    supported_zone_types = frozenset({ZoneType.PUBLIC, ZoneType.PRIVATE})
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
    supported_policy_types = frozenset(
        {
            PolicyType.SIMPLE,
            PolicyType.WEIGHTED,
            PolicyType.FAILOVER,
            PolicyType.BY_GEO_LOCATION,
            PolicyType.LATENCY,
            PolicyType.MULTI_VALUE_ANSWER,
        }
    )

    def __init__(self, config: AWSConfig) -> None:
        """Initialize the Route 53 client.

        Args:
            config: AWS configuration object containing credentials and region.
        """
        self.region_name = config.region_name or "us-east-1"
        self.client = boto3.client(
            "route53",
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            aws_session_token=config.aws_session_token,
            region_name=self.region_name,
            endpoint_url=config.endpoint_url,
        )

    # --- Zone lifecycle ---

    def create_zone(
        self,
        zone_name: str,
        zone_type: ZoneType = ZoneType.PUBLIC,
        vpcs: Sequence[VpcRef] = (),
        **kwargs: Any,
    ) -> ZoneHandle:
        """Create a Route 53 hosted zone.

        A private zone is created attached to exactly one VPC.  Further VPCs
        go through :meth:`associate_vpc` once the caller has recorded the
        zone id.
        """
        zone_type = ZoneType(zone_type)
        private = zone_type is ZoneType.PRIVATE
        if private and len(vpcs) != 1:
            raise UnsupportedOperationError(
                "A private hosted zone is created with exactly one VPC"
            )
        request: dict[str, Any] = {
            "Name": zone_name,
            "CallerReference": kwargs.get("caller_reference", uuid.uuid4().hex),
            "HostedZoneConfig": {
                "Comment": kwargs.get("comment", ""),
                "PrivateZone": private,
            },
        }
        if private:
            request["VPC"] = self._vpc_param(vpcs[0])
        try:
            resp = self.client.create_hosted_zone(**request)
        except ClientError as e:
            _handle(e, f"Failed to create zone '{zone_name}'")
        return ZoneHandle(
            external_id=_zone_id(resp["HostedZone"]["Id"]),
            name=zone_name.rstrip("."),
            zone_type=zone_type,
        )

    def delete_zone(self, zone: ZoneHandle) -> None:
        """Delete a Route 53 hosted zone.

        Route 53 refuses to delete a zone that still holds records, so
        everything except the apex NS/SOA is removed first.

        Raises:
            ZoneNotFoundError: If the zone does not exist.
        """
        apex = to_fqdn("@", zone.name)
        changes = [
            {"Action": "DELETE", "ResourceRecordSet": rrset}
            for rrset in self._list_raw(zone)
            if not (rrset["Name"] == apex and rrset["Type"] in ("NS", "SOA"))
        ]
        try:
            if changes:
                self.client.change_resource_record_sets(
                    HostedZoneId=zone.external_id, ChangeBatch={"Changes": changes}
                )
            self.client.delete_hosted_zone(Id=zone.external_id)
        except ClientError as e:
            _handle(e, f"Failed to delete zone '{zone.external_id}'")

    def list_zones(self) -> list[ZoneHandle]:
        """List all Route 53 hosted zones.

        Raises:
            DNSError: On Route 53 API failure.
        """
        try:
            paginator = self.client.get_paginator("list_hosted_zones")
            return [
                ZoneHandle(
                    external_id=_zone_id(z["Id"]),
                    name=z["Name"].rstrip("."),
                    zone_type=(
                        ZoneType.PRIVATE
                        if z.get("Config", {}).get("PrivateZone", False)
                        else ZoneType.PUBLIC
                    ),
                )
                for page in paginator.paginate()
                for z in page.get("HostedZones", [])
            ]
        except ClientError as e:
            _handle(e, "Failed to list zones")

    # --- Record sets ---

    def _list_raw(self, zone: ZoneHandle) -> list[dict[str, Any]]:
        try:
            paginator = self.client.get_paginator("list_resource_record_sets")
            return [
                rrset
                for page in paginator.paginate(HostedZoneId=zone.external_id)
                for rrset in page.get("ResourceRecordSets", [])
            ]
        except ClientError as e:
            _handle(e, f"Failed to list records in zone '{zone.external_id}'")

    def _to_record_set(self, zone: ZoneHandle, rrset: dict[str, Any]) -> DnsRecordSet:
        policy_type, params = _policy_from_aws(rrset)
        fqdn = _unescape(rrset["Name"])
        return DnsRecordSet.from_values(
            [rr["Value"] for rr in rrset.get("ResourceRecords", [])],
            external_id=_external_id(fqdn, rrset["Type"], rrset.get("SetIdentifier")),
            name=to_relative(fqdn, zone.name),
            dns_type=rrset["Type"],
            ttl=rrset.get("TTL", 0),
            policy_type=policy_type,
            policy_params=params,
        )

    def _to_rrset(self, zone: ZoneHandle, record: DnsRecordSet) -> dict[str, Any]:
        rrset: dict[str, Any] = {
            "Name": to_fqdn(record.name, zone.name),
            "Type": record.dns_type,
            "TTL": record.ttl,
            "ResourceRecords": [{"Value": v} for v in record.values()],
        }
        set_id = _set_identifier(record)
        if set_id:
            rrset["SetIdentifier"] = set_id
        rrset.update(_policy_to_aws(record))
        return rrset

    def list_record_sets(self, zone: ZoneHandle) -> list[DnsRecordSet]:
        """List every record set of a hosted zone.

        Alias records have no values of their own and are skipped.

        Raises:
            DNSError: On Route 53 API failure.
        """
        records = []
        for rrset in self._list_raw(zone):
            if "AliasTarget" in rrset:
                zs_logger.debug(
                    f"skipping alias record {rrset['Name']} {rrset['Type']}",
                    provider=self.provider,
                )
                continue
            records.append(self._to_record_set(zone, rrset))
        return records

    def _change(self, zone: ZoneHandle, action: str, rrset: dict[str, Any]) -> None:
        try:
            self.client.change_resource_record_sets(
                HostedZoneId=zone.external_id,
                ChangeBatch={"Changes": [{"Action": action, "ResourceRecordSet": rrset}]},
            )
        except ClientError as e:
            _handle(
                e,
                f"Failed to {action.lower()} record '{rrset['Name']}' in zone '{zone.external_id}'",
            )

    def create_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> str:
        rrset = self._to_rrset(zone, record)
        self._change(zone, "CREATE", rrset)
        return _external_id(rrset["Name"], rrset["Type"], rrset.get("SetIdentifier"))

    def update_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        self._change(zone, "UPSERT", self._to_rrset(zone, record))

    def remove_record_set(self, zone: ZoneHandle, record: DnsRecordSet) -> None:
        """Delete a record set.

        Route 53 only deletes an exact match, so the live record set is
        looked up first and sent back verbatim.

        Raises:
            RecordNotFoundError: If the zone holds no such record set.
        """
        wanted = self._to_rrset(zone, record)
        for rrset in self._list_raw(zone):
            if (
                _unescape(rrset["Name"]) == wanted["Name"]
                and rrset["Type"] == wanted["Type"]
                and rrset.get("SetIdentifier") == wanted.get("SetIdentifier")
            ):
                self._change(zone, "DELETE", rrset)
                return
        raise RecordNotFoundError(
            f"Record '{wanted['Name']}' {wanted['Type']} not found in zone '{zone.external_id}'"
        )

    # --- VPC association ---

    def _vpc_param(self, vpc: VpcRef) -> dict[str, str]:
        return {"VPCRegion": vpc.region_id or self.region_name, "VPCId": vpc.external_id}

    def associate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        try:
            self.client.associate_vpc_with_hosted_zone(
                HostedZoneId=zone.external_id, VPC=self._vpc_param(vpc)
            )
        except ClientError as e:
            _handle(e, f"Failed to associate VPC '{vpc.external_id}' with '{zone.external_id}'")

    def disassociate_vpc(self, zone: ZoneHandle, vpc: VpcRef) -> None:
        try:
            self.client.disassociate_vpc_from_hosted_zone(
                HostedZoneId=zone.external_id, VPC=self._vpc_param(vpc)
            )
        except ClientError as e:
            _handle(
                e, f"Failed to disassociate VPC '{vpc.external_id}' from '{zone.external_id}'"
            )
