"""AWS service factory.

Maps service names to their AWS SDK implementations.
``SERVICE_REGISTRY`` is consumed by :func:`zonesync.factory.provider_factory`.
"""

from zonesync.aws.dns import DNS


# Service registry for AWS
SERVICE_REGISTRY: dict[str, type] = {
    "dns": DNS,
}
