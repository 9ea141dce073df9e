"""Provider driver factory.

Provides :func:`provider_factory`, the single entry-point for obtaining a
DNS driver for a cloud account.  The function dispatches to the
provider-specific registries (AWS, GCP, or anything added through
:func:`register_provider`), validates the account configuration and
reuses drivers through :class:`~zonesync.base.client_cache.DriverCache`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from zonesync.aws.factory import SERVICE_REGISTRY as AWS_SERVICES
from zonesync.base.client_cache import DriverCache
from zonesync.base.config import register_config, validate_config
from zonesync.base.dns import DNSProviderBlueprint
from zonesync.gcp.factory import SERVICE_REGISTRY as GCP_SERVICES

# Nested factory registry: cloud_provider -> service registry
_FACTORY_REGISTRY: dict[str, dict[str, type]] = {
    "aws": AWS_SERVICES,
    "gcp": GCP_SERVICES,
}


def register_provider(
    cloud_provider: str,
    driver_cls: type[DNSProviderBlueprint],
    config_model: type[BaseModel] | None = None,
) -> None:
    """Make *driver_cls* the DNS driver for *cloud_provider*.

    Args:
        cloud_provider: Provider name stored on cloud accounts.
        driver_cls: Blueprint implementation, built as ``driver_cls(config)``.
        config_model: Pydantic model validating account configs, if the
            provider does not have one registered yet.
    """
    _FACTORY_REGISTRY.setdefault(cloud_provider, {})["dns"] = driver_cls
    if config_model is not None:
        register_config(cloud_provider, config_model)


def unregister_provider(cloud_provider: str) -> None:
    _FACTORY_REGISTRY.pop(cloud_provider, None)


def registered_providers() -> list[str]:
    return sorted(p for p, services in _FACTORY_REGISTRY.items() if "dns" in services)


def get_driver_class(cloud_provider: str) -> type[DNSProviderBlueprint]:
    """
    Return the DNS driver class registered for a provider.

    Raises:
        ValueError: If the cloud provider is not supported.
    """
    services = _FACTORY_REGISTRY.get(cloud_provider)
    if not services or "dns" not in services:
        raise ValueError(f"Unsupported cloud provider: {cloud_provider}")
    return services["dns"]


def provider_factory(
    cloud_provider: str, config: dict[str, Any], *, cached: bool = True
) -> DNSProviderBlueprint:
    """
    Create (or reuse) the DNS driver for one cloud account.
    Args:
        cloud_provider: The cloud provider (e.g. 'aws', 'gcp').
        config: Account configuration dictionary.
        cached: Reuse a driver already built for the same provider and config.
    Returns:
        A driver implementing :class:`DNSProviderBlueprint`.
    Raises:
        ValueError: If the cloud provider is not supported.
        pydantic.ValidationError: If the config is invalid.
    """
    driver_cls = get_driver_class(cloud_provider)

    def build() -> DNSProviderBlueprint:
        return driver_cls(validate_config(cloud_provider, dict(config)))

    if not cached:
        return build()
    return DriverCache().get_or_create(cloud_provider, config, build)  # type: ignore[no-any-return]
