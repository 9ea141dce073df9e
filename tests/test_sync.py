"""Tests for pushing local record sets to a provider zone."""

import pytest

from zonesync.base.exceptions import DNSError, RecordNotFoundError, ZoneNotFoundError
from zonesync.base.dns import ZoneHandle
from zonesync.recordset import DnsRecordSet, PolicyType
from zonesync.sync import plan_record_sets, push_record_sets, pushable

from conftest import FakeDNS


def _rec(name="www", dns_type="A", dns_value="1.2.3.4", ttl=300, **kw):
    return DnsRecordSet(name=name, dns_type=dns_type, dns_value=dns_value, ttl=ttl, **kw)


@pytest.fixture
def driver():
    return FakeDNS()


@pytest.fixture
def zone(driver):
    return driver.create_zone("example.com")


# --- pushable ---

class TestPushable:
    def test_filters(self, driver):
        records = [
            _rec(name="on"),
            _rec(name="off", enabled=False),
            _rec(name="caa", dns_type="CAA", dns_value='0 issue "ca.example"'),
            _rec(name="@", dns_type="NS", dns_value="ns1.other."),
        ]
        assert [r.name for r in pushable(driver, records)] == ["on"]


# --- push_record_sets ---

class TestPush:
    def test_creates_missing(self, driver, zone):
        result = push_record_sets(driver, zone, [_rec(id="l-1"), _rec(name="api", id="l-2")])
        assert result.add_cnt == 2
        assert not result.is_error()
        assert sorted(r.name for r in driver.remote(zone.external_id)) == ["api", "www"]

    def test_removes_remote_only_and_keeps_system_records(self, driver, zone):
        driver.seed(zone.external_id, _rec(name="old"))
        result = push_record_sets(driver, zone, [])
        assert result.del_cnt == 1
        assert driver.remote(zone.external_id) == []
        assert len(driver.records[zone.external_id]) == 2

    def test_updates_with_local_shape_and_remote_identity(self, driver, zone):
        ext = driver.seed(zone.external_id, _rec(ttl=60))
        result = push_record_sets(driver, zone, [_rec(ttl=300, id="l-1")])
        assert result.update_cnt == 1
        (sent,) = [arg for op, arg in driver.calls if op == "update_record_set"]
        assert sent.ttl == 300
        assert sent.external_id == ext
        assert driver.records[zone.external_id][ext].ttl == 300

    def test_order_delete_add_update(self, driver, zone):
        driver.seed(zone.external_id, _rec(name="old"))
        driver.seed(zone.external_id, _rec(name="ttl", ttl=60))
        push_record_sets(driver, zone, [_rec(name="ttl", id="l-1"), _rec(name="new", id="l-2")])
        ops = [op for op, _ in driver.calls if op.endswith("_record_set")]
        assert ops == ["remove_record_set", "create_record_set", "update_record_set"]

    def test_in_sync_is_noop(self, driver, zone):
        driver.seed(zone.external_id, _rec())
        result = push_record_sets(driver, zone, [_rec(id="l-1")])
        assert result.as_dict()["added"] == 0
        assert result.result() == "removed 0 failed 0 updated 0 failed 0 added 0 failed 0"

    def test_disabled_record_removed_remotely(self, driver, zone):
        driver.seed(zone.external_id, _rec())
        result = push_record_sets(driver, zone, [_rec(id="l-1", enabled=False)])
        assert result.del_cnt == 1
        assert driver.remote(zone.external_id) == []

    def test_record_not_found_counts_as_deleted(self, driver, zone):
        driver.seed(zone.external_id, _rec(name="old"))
        driver.fail["remove_record_set"] = RecordNotFoundError("already gone")
        result = push_record_sets(driver, zone, [])
        assert result.del_cnt == 1
        assert not result.is_error()

    def test_errors_collected_per_record(self, driver, zone):
        driver.fail["create_record_set"] = DNSError("quota")
        result = push_record_sets(driver, zone, [_rec(name="a", id="1"), _rec(name="b", id="2")])
        assert result.add_err_cnt == 1
        assert result.add_cnt == 1
        assert "quota" in result.errors[0]

    def test_list_failure_is_global_error(self, driver):
        missing = ZoneHandle(external_id="nope", name="example.com")
        result = push_record_sets(driver, missing, [_rec()])
        assert result.is_generate_error()
        assert "nope" in result.global_error

    def test_dry_run_changes_nothing(self, driver, zone):
        driver.seed(zone.external_id, _rec(name="old"))
        result = push_record_sets(driver, zone, [_rec(id="l-1")], dry_run=True)
        assert (result.add_cnt, result.del_cnt) == (1, 1)
        assert [r.name for r in driver.remote(zone.external_id)] == ["old"]

    def test_weighted_policy_pushed(self, driver, zone):
        rec = _rec(id="l-1", policy_type=PolicyType.WEIGHTED, policy_params={"weight": 3})
        push_record_sets(driver, zone, [rec])
        (remote,) = driver.remote(zone.external_id)
        assert remote.policy_type is PolicyType.WEIGHTED
        assert remote.policy_params == {"weight": 3}


class TestPlan:
    def test_plan_raises_for_missing_zone(self, driver):
        with pytest.raises(ZoneNotFoundError):
            plan_record_sets(driver, ZoneHandle("nope", "example.com"), [])
