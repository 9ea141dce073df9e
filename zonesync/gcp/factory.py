"""GCP service factory.

Maps service names to their GCP SDK implementations.
``SERVICE_REGISTRY`` is consumed by :func:`zonesync.factory.provider_factory`.
"""

from zonesync.gcp.dns import DNS


# Service registry for GCP
SERVICE_REGISTRY: dict[str, type] = {
    "dns": DNS,
}
