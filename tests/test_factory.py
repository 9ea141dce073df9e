from unittest.mock import patch, MagicMock
import pytest

from zonesync.factory import (
    get_driver_class,
    provider_factory,
    register_provider,
    registered_providers,
)
from zonesync.base import DNSProviderBlueprint
from zonesync.base.client_cache import DriverCache

from conftest import FakeConfig, FakeDNS


class TestProviderFactory:
    @patch("zonesync.aws.dns.boto3")
    def test_aws_dns(self, mock_boto):
        mock_boto.client.return_value = MagicMock()
        result = provider_factory("aws", {
            "aws_access_key_id": "k",
            "aws_secret_access_key": "s",
            "region_name": "us-east-1",
        })
        assert isinstance(result, DNSProviderBlueprint)
        assert result.provider == "aws"
        mock_boto.client.assert_called_once()
        assert mock_boto.client.call_args.args[0] == "route53"

    @patch("zonesync.gcp.dns.cloud_dns")
    def test_gcp_dns(self, mock_dns, monkeypatch):
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
        mock_dns.Client.return_value = MagicMock()
        result = provider_factory("gcp", {"project_id": "p"})
        assert isinstance(result, DNSProviderBlueprint)
        assert result.provider == "gcp"

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported cloud provider"):
            provider_factory("azure", {})

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            provider_factory("aws", {"no_such_field": 1}, cached=False)

    def test_cached_reuse(self):
        DriverCache().clear()
        d1 = provider_factory("fake", {"account": "a"})
        d2 = provider_factory("fake", {"account": "a"})
        d3 = provider_factory("fake", {"account": "b"})
        assert d1 is d2
        assert d1 is not d3
        assert isinstance(d1.config, FakeConfig)

    def test_uncached_builds_fresh(self):
        d1 = provider_factory("fake", {}, cached=False)
        d2 = provider_factory("fake", {}, cached=False)
        assert d1 is not d2


class TestRegistry:
    def test_builtin_providers(self):
        assert {"aws", "gcp"} <= set(registered_providers())

    def test_register_provider(self):
        assert "fake" in registered_providers()
        assert get_driver_class("fake") is FakeDNS

    def test_register_replaces_driver(self):
        class OtherDNS(FakeDNS):
            pass

        register_provider("fake", OtherDNS)
        assert get_driver_class("fake") is OtherDNS

    def test_capabilities(self):
        caps = get_driver_class("gcp").capabilities()
        assert caps["zone_types"] == ["PublicZone"]
        assert "A" in caps["dns_types"]
