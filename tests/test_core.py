"""Tests for core infrastructure modules."""

from unittest.mock import MagicMock
import json
import logging
import sys
import pytest

from zonesync.base.config import AWSConfig, GCPConfig, SyncSettings, validate_config
from zonesync.base.client_cache import DriverCache
from zonesync.base.logger import ZonesyncLogger, StructuredFormatter


# ══════════════════════════════════════════════════════════════════════
# Config
# ══════════════════════════════════════════════════════════════════════

class TestAWSConfig:
    def test_explicit_values(self):
        cfg = AWSConfig(
            aws_access_key_id="AKIA",
            aws_secret_access_key="secret",
            region_name="us-west-2",
        )
        assert cfg.aws_access_key_id == "AKIA"
        assert cfg.region_name == "us-west-2"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "env_key")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "env_secret")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
        cfg = AWSConfig()
        assert cfg.aws_access_key_id == "env_key"
        assert cfg.region_name == "eu-west-1"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            AWSConfig(bucket="nope")

    def test_session_and_endpoint_from_env(self, monkeypatch):
        monkeypatch.setenv("AWS_SESSION_TOKEN", "tok")
        monkeypatch.setenv("AWS_ENDPOINT_URL_ROUTE_53", "http://localhost:4566")
        cfg = AWSConfig(region_name="us-east-1")
        assert cfg.aws_session_token == "tok"
        assert cfg.endpoint_url == "http://localhost:4566"

    def test_explicit_beats_env(self, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
        assert AWSConfig(region_name="ap-south-1").region_name == "ap-south-1"


class TestGCPConfig:
    def test_explicit_values(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
        cfg = GCPConfig(project_id="my-proj")
        assert cfg.project_id == "my-proj"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "env-proj")
        cfg = GCPConfig()
        assert cfg.project_id == "env-proj"

    def test_project_required(self, monkeypatch):
        for var in ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT", "GOOGLE_APPLICATION_CREDENTIALS"):
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(ValueError, match="project_id is required"):
            GCPConfig()

    def test_missing_credentials_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
        with pytest.raises(ValueError, match="Credentials file not found"):
            GCPConfig(project_id="p", credentials_path=str(tmp_path / "missing.json"))


class TestValidateConfig:
    def test_aws(self):
        cfg = validate_config("aws", {
            "aws_access_key_id": "k",
            "aws_secret_access_key": "s",
            "region_name": "us-east-1",
        })
        assert isinstance(cfg, AWSConfig)
        assert cfg.aws_access_key_id == "k"

    def test_gcp(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
        cfg = validate_config("gcp", {"project_id": "p"})
        assert cfg.project_id == "p"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="No config model"):
            validate_config("azure", {"key": "val"})


class TestSyncSettings:
    def test_defaults(self, monkeypatch):
        for var in ("ZONESYNC_DEBOUNCE_DELAY", "ZONESYNC_WORKERS", "ZONESYNC_LOG_LEVEL"):
            monkeypatch.delenv(var, raising=False)
        s = SyncSettings()
        assert s.debounce_delay == 10.0
        assert s.worker_count == 4
        assert s.log_level == "INFO"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("ZONESYNC_DEBOUNCE_DELAY", "2.5")
        monkeypatch.setenv("ZONESYNC_WORKERS", "8")
        s = SyncSettings()
        assert s.debounce_delay == 2.5
        assert s.worker_count == 8

    def test_explicit_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("ZONESYNC_DEBOUNCE_DELAY", "2.5")
        assert SyncSettings(debounce_delay=0).debounce_delay == 0

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            SyncSettings(debounce_delay=-1)


# ══════════════════════════════════════════════════════════════════════
# Driver Cache
# ══════════════════════════════════════════════════════════════════════

class TestDriverCache:
    def test_singleton(self):
        a = DriverCache()
        b = DriverCache()
        assert a is b

    def test_caches_driver(self):
        cache = DriverCache()
        cache.clear()
        factory = MagicMock(return_value="driver_instance")
        d1 = cache.get_or_create("aws", {"region_name": "us-east-1"}, factory)
        d2 = cache.get_or_create("aws", {"region_name": "us-east-1"}, factory)
        assert d1 == d2
        factory.assert_called_once()

    def test_key_ignores_dict_order(self):
        cache = DriverCache()
        cache.clear()
        factory = MagicMock(return_value="driver")
        cache.get_or_create("aws", {"a": 1, "b": 2}, factory)
        cache.get_or_create("aws", {"b": 2, "a": 1}, factory)
        factory.assert_called_once()

    def test_different_config_different_driver(self):
        cache = DriverCache()
        cache.clear()
        factory = MagicMock(side_effect=["driver_a", "driver_b"])
        d1 = cache.get_or_create("aws", {"region_name": "us-east-1"}, factory)
        d2 = cache.get_or_create("aws", {"region_name": "eu-west-1"}, factory)
        assert d1 != d2
        assert factory.call_count == 2

    def test_invalidate(self):
        cache = DriverCache()
        cache.clear()
        factory = MagicMock(side_effect=["v1", "v2"])
        cache.get_or_create("gcp", {"project_id": "p"}, factory)
        cache.invalidate("gcp", {"project_id": "p"})
        assert cache.get_or_create("gcp", {"project_id": "p"}, factory) == "v2"

    def test_clear(self):
        cache = DriverCache()
        cache.clear()
        factory = MagicMock(side_effect=["v1", "v2"])
        cache.get_or_create("aws", {}, factory)
        cache.clear()
        d2 = cache.get_or_create("aws", {}, factory)
        assert d2 == "v2"


# ══════════════════════════════════════════════════════════════════════
# Logger
# ══════════════════════════════════════════════════════════════════════

class TestZonesyncLogger:
    def test_log_with_context(self, capfd):
        logger = ZonesyncLogger("test_zs")
        logger.logger.setLevel(logging.DEBUG)
        logger.info("test message", provider="aws", zone_id="z-1", operation="create_zone")
        captured = capfd.readouterr()
        entry = json.loads(captured.err.strip().splitlines()[-1])
        assert entry["message"] == "test message"
        assert entry["provider"] == "aws"
        assert entry["zone_id"] == "z-1"
        assert len(entry["request_id"]) == 12

    def test_unknown_context_rejected(self):
        logger = ZonesyncLogger("test_zs_ctx")
        with pytest.raises(TypeError, match="service"):
            logger.info("x", service="s3")

    def test_exception_rendered(self):
        fmt = StructuredFormatter()
        try:
            raise KeyError("zone")
        except KeyError:
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="boom", args=(), exc_info=sys.exc_info(),
            )
        assert json.loads(fmt.format(record))["exception"] == "KeyError: 'zone'"

    def test_set_level(self, capfd):
        logger = ZonesyncLogger("test_zs_level")
        logger.set_level("warning")
        logger.info("hidden")
        logger.warning("shown")
        captured = capfd.readouterr()
        assert "hidden" not in captured.err
        assert "shown" in captured.err

    def test_structured_formatter(self):
        fmt = StructuredFormatter()
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="hi", args=(), exc_info=None,
        )
        record.provider = "gcp"
        record.task = "DnsZoneCreateTask"
        record.request_id = "abc"
        output = fmt.format(record)
        assert '"provider": "gcp"' in output
        assert '"task": "DnsZoneCreateTask"' in output
        assert '"request_id": "abc"' in output
        assert "zone_id" not in output
