"""
Zonesync exception hierarchy.

Request-side errors (validation, conflict, status) are raised synchronously
before any state transition.  Provider-side errors are raised by the DNS
drivers and mapped from each SDK's own error types.
"""


# ── Base ──────────────────────────────────────────────────────────────
class ZonesyncError(Exception):
    """Root exception for all Zonesync errors."""


# ── Request validation ───────────────────────────────────────────────
class ValidationError(ZonesyncError):
    """Input rejected before any state transition."""


class MissingParameterError(ValidationError):
    """A required parameter was not supplied."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing parameter '{name}'")
        self.name = name


class NotSupportedError(ValidationError):
    """The target provider does not support the requested zone, record or policy type."""


class ConflictError(ZonesyncError):
    """Request conflicts with existing state (duplicate cache, VPC already attached, …)."""


class InvalidStatusError(ZonesyncError):
    """Operation not allowed in the resource's current status."""


class ResourceNotFoundError(ZonesyncError):
    """A local resource (zone, VPC, account, record set) does not exist."""

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} '{ident}' not found")
        self.kind = kind
        self.ident = ident


# ── DNS providers ────────────────────────────────────────────────────
class DNSError(ZonesyncError):
    """Base exception for provider DNS operations."""


class ZoneNotFoundError(DNSError):
    """DNS zone not found."""


class ZoneAlreadyExistsError(DNSError):
    """DNS zone already exists."""


class RecordNotFoundError(DNSError):
    """DNS record not found."""


class UnsupportedOperationError(DNSError):
    """The provider cannot perform this operation (e.g. VPC association on a public zone)."""


# ── Tasks ─────────────────────────────────────────────────────────────
class TaskError(ZonesyncError):
    """Task registration or dispatch failure."""
