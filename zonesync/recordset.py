"""DNS record-set value model.

:class:`DnsRecordSet` is the comparison unit shared by the diff engine,
the provider drivers and the local store.  Two record sets are
value-equal when name, type, value, TTL, enabled flag and traffic policy
match; local and remote identities and the free-form status never take
part in the comparison.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from zonesync.base.exceptions import ValidationError

# Separator used when a record set carries several values (multi-value A, MX, ...).
VALUE_SEPARATOR = "*"

APEX = "@"


class ZoneType(str, Enum):
    PUBLIC = "PublicZone"
    PRIVATE = "PrivateZone"


class DnsType(str, Enum):
    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    NS = "NS"
    TXT = "TXT"
    SRV = "SRV"
    SOA = "SOA"
    PTR = "PTR"
    CAA = "CAA"


class PolicyType(str, Enum):
    SIMPLE = "Simple"
    BY_CARRIER = "ByCarrier"
    BY_GEO_LOCATION = "ByGeoLocation"
    BY_SEARCH_ENGINE = "BySearchEngine"
    IP_RANGE = "IpRange"
    WEIGHTED = "Weighted"
    FAILOVER = "Failover"
    LATENCY = "Latency"
    MULTI_VALUE_ANSWER = "MultiValueAnswer"


# --- Policy parameters ---


def normalize_policy_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Collapse empty parameter payloads to ``None``."""
    if not params:
        return None
    return dict(params)


def policy_params_string(params: dict[str, Any] | None) -> str:
    """Canonical string form of a parameter payload (``""`` when empty)."""
    params = normalize_policy_params(params)
    if params is None:
        return ""
    return json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)


def is_policy_value_equal(a: dict[str, Any] | None, b: dict[str, Any] | None) -> bool:
    """Structural equality of two parameter payloads.

    Each side is checked against the other so that a payload one provider
    reports as ``None`` and another as ``{}`` still compares equal.
    """
    a, b = normalize_policy_params(a), normalize_policy_params(b)
    if a is not None and a != b:
        return False
    if b is not None and b != a:
        return False
    return True


class _PolicyParams(BaseModel):
    model_config = ConfigDict(extra="forbid")


class WeightedParams(_PolicyParams):
    weight: int = Field(ge=0, le=255)


class FailoverParams(_PolicyParams):
    failover: Literal["PRIMARY", "SECONDARY"]
    health_check_id: str | None = None


class GeoLocationParams(_PolicyParams):
    continent_code: str | None = None
    country_code: str | None = None
    subdivision_code: str | None = None

    @model_validator(mode="after")
    def require_location(self) -> GeoLocationParams:
        if not (self.continent_code or self.country_code or self.subdivision_code):
            raise ValueError("one of continent_code, country_code, subdivision_code is required")
        if self.continent_code and (self.country_code or self.subdivision_code):
            raise ValueError("continent_code cannot be combined with country or subdivision")
        return self


class LatencyParams(_PolicyParams):
    region: str


class MultiValueAnswerParams(_PolicyParams):
    multi_value_answer: bool = True


class CarrierParams(_PolicyParams):
    carrier: str


class SearchEngineParams(_PolicyParams):
    search_engine: str


class IpRangeParams(_PolicyParams):
    ip_range: str


POLICY_PARAMS_SCHEMA: dict[PolicyType, type[_PolicyParams]] = {
    PolicyType.WEIGHTED: WeightedParams,
    PolicyType.FAILOVER: FailoverParams,
    PolicyType.BY_GEO_LOCATION: GeoLocationParams,
    PolicyType.LATENCY: LatencyParams,
    PolicyType.MULTI_VALUE_ANSWER: MultiValueAnswerParams,
    PolicyType.BY_CARRIER: CarrierParams,
    PolicyType.BY_SEARCH_ENGINE: SearchEngineParams,
    PolicyType.IP_RANGE: IpRangeParams,
}


def validate_policy_params(
    policy_type: PolicyType | str, params: dict[str, Any] | None
) -> dict[str, Any] | None:
    """Check *params* against the schema of *policy_type*.

    Returns:
        The normalized payload (``None`` for Simple policies).

    Raises:
        ValidationError: Unknown policy type or malformed parameters.
    """
    try:
        policy_type = PolicyType(policy_type)
    except ValueError as e:
        raise ValidationError(f"Unknown policy type '{policy_type}'") from e
    params = normalize_policy_params(params)
    if policy_type is PolicyType.SIMPLE:
        if params is not None:
            raise ValidationError("Simple policy does not take parameters")
        return None
    schema = POLICY_PARAMS_SCHEMA[policy_type]
    try:
        parsed = schema(**(params or {}))
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {policy_type.value} policy params: {e}") from e
    return parsed.model_dump(exclude_none=True)


# --- Record set ---


class DnsRecordSet(BaseModel):
    """One DNS record group (name + type + value(s) + ttl + policy).

    Attributes:
        id: Local identity, assigned once at local creation.
        external_id: Provider identity, set once the remote round-trip succeeds.
        name: Zone-relative owner name (``@`` for the apex).
        dns_type: Record type (A, CNAME, MX, ...).
        dns_value: Record value; several values are joined with ``*``.
        ttl: Time-to-live in seconds.
        enabled: Whether the record is served.
        status: Provider-reported status, free-form.
        policy_type: Traffic policy kind.
        policy_params: Provider-neutral policy parameters.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    external_id: str | None = None
    name: str
    dns_type: str
    dns_value: str
    ttl: int = 300
    enabled: bool = True
    status: str = ""
    policy_type: PolicyType = PolicyType.SIMPLE
    policy_params: dict[str, Any] | None = None

    @field_validator("policy_params", mode="before")
    @classmethod
    def _normalize_params(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return normalize_policy_params(value)
        return value

    @field_validator("dns_type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> Any:
        if isinstance(value, DnsType):
            return value.value
        if isinstance(value, str):
            return value.upper()
        return value

    @classmethod
    def from_values(cls, values: list[str], **kwargs: Any) -> DnsRecordSet:
        """Build a record set from a list of values."""
        return cls(dns_value=VALUE_SEPARATOR.join(values), **kwargs)

    def values(self) -> list[str]:
        """Return the individual values of a (possibly multi-value) record."""
        return [v for v in self.dns_value.split(VALUE_SEPARATOR) if v]

    def equals(self, other: DnsRecordSet) -> bool:
        """Value equality; ``id``, ``external_id`` and ``status`` are ignored."""
        return (
            self.name == other.name
            and self.dns_type == other.dns_type
            and self.dns_value == other.dns_value
            and self.ttl == other.ttl
            and self.policy_type == other.policy_type
            and self.enabled == other.enabled
            and is_policy_value_equal(self.policy_params, other.policy_params)
        )

    def sort_key(self) -> tuple[str, str, str, str, str]:
        """Ordering key used to align local and remote entries."""
        return (
            self.name,
            self.dns_type,
            self.dns_value,
            self.policy_type.value,
            policy_params_string(self.policy_params),
        )

    def __str__(self) -> str:
        return "-".join(part for part in self.sort_key() if part)


def is_system_record(record: DnsRecordSet) -> bool:
    """NS and SOA at the apex belong to the provider, not to the zone owner."""
    return record.name == APEX and record.dns_type in (DnsType.NS.value, DnsType.SOA.value)


def filter_system_records(records: list[DnsRecordSet]) -> list[DnsRecordSet]:
    return [r for r in records if not is_system_record(r)]


# --- Name helpers shared by drivers ---


def _absolute(name: str) -> str:
    return name if name.endswith(".") else f"{name}."


def to_fqdn(name: str, zone_name: str) -> str:
    """``www`` + ``example.com`` -> ``www.example.com.``; ``@`` maps to the zone."""
    zone = _absolute(zone_name.lower())
    if name in ("", APEX):
        return zone
    if name.endswith("."):
        return name
    return f"{name}.{zone}"


def to_relative(fqdn: str, zone_name: str) -> str:
    """``www.example.com.`` + ``example.com`` -> ``www``; the zone itself maps to ``@``."""
    zone = _absolute(zone_name.lower())
    name = _absolute(fqdn).lower()
    if name == zone:
        return APEX
    suffix = f".{zone}"
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return fqdn
