"""Provider blueprint and core utilities.

Every DNS driver inherits from :class:`DNSProviderBlueprint`.  Import it
to type-hint your own code or to register a custom provider through
:func:`zonesync.factory.register_provider`.
"""

from .dns import DNSProviderBlueprint, VpcRef, ZoneHandle


__all__ = [
    "DNSProviderBlueprint",
    "VpcRef",
    "ZoneHandle",
]
