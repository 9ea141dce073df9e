"""Tests for the record-set diff engine."""

import random

from zonesync.diffing import SyncResult, compare_record_sets
from zonesync.recordset import DnsRecordSet, PolicyType


def _rec(name="www", dns_type="A", dns_value="1.2.3.4", ttl=300, **kw):
    return DnsRecordSet(name=name, dns_type=dns_type, dns_value=dns_value, ttl=ttl, **kw)


def _keys(records):
    return sorted(r.sort_key() for r in records)


# --- compare_record_sets ---

class TestCompare:
    def test_empty(self):
        assert compare_record_sets([], []) == ([], [], [], [])

    def test_local_only_is_add(self):
        local = [_rec(id="l-1")]
        common, add, delete, update = compare_record_sets([], local)
        assert add == local
        assert common == delete == update == []

    def test_remote_only_is_delete(self):
        remote = [_rec(external_id="r-1")]
        common, add, delete, update = compare_record_sets(remote, [])
        assert delete == remote
        assert common == add == update == []

    def test_equal_is_common_with_local_id(self):
        remote = [_rec(external_id="r-1", status="INSYNC")]
        local = [_rec(id="l-1")]
        common, add, delete, update = compare_record_sets(remote, local)
        assert add == delete == update == []
        assert len(common) == 1
        assert common[0].id == "l-1"
        assert common[0].external_id == "r-1"
        assert common[0].status == "INSYNC"

    def test_ttl_change_is_update_in_remote_shape(self):
        remote = [_rec(ttl=60, external_id="r-1")]
        local = [_rec(ttl=300, id="l-1")]
        common, add, delete, update = compare_record_sets(remote, local)
        assert common == add == delete == []
        assert len(update) == 1
        assert update[0].ttl == 60
        assert update[0].id == "l-1"
        assert update[0].external_id == "r-1"

    def test_value_change_is_delete_plus_add(self):
        remote = [_rec(dns_value="1.1.1.1")]
        local = [_rec(dns_value="2.2.2.2")]
        common, add, delete, update = compare_record_sets(remote, local)
        assert [r.dns_value for r in add] == ["2.2.2.2"]
        assert [r.dns_value for r in delete] == ["1.1.1.1"]
        assert common == update == []

    def test_policy_params_are_part_of_identity(self):
        remote = [_rec(policy_type=PolicyType.WEIGHTED, policy_params={"weight": 1})]
        local = [_rec(policy_type=PolicyType.WEIGHTED, policy_params={"weight": 2})]
        _, add, delete, _ = compare_record_sets(remote, local)
        assert len(add) == 1 and len(delete) == 1

    def test_empty_params_match_missing_params(self):
        remote = [_rec(policy_params={})]
        local = [_rec(policy_params=None)]
        common, add, delete, update = compare_record_sets(remote, local)
        assert len(common) == 1
        assert add == delete == update == []

    def test_input_order_irrelevant(self):
        records = [_rec(name=n) for n in ("a", "b", "c", "d")]
        shuffled = list(records)
        random.Random(7).shuffle(shuffled)
        common, add, delete, update = compare_record_sets(shuffled, records)
        assert _keys(common) == _keys(records)
        assert add == delete == update == []

    def test_every_entry_lands_in_exactly_one_bucket(self):
        remote = [
            _rec(name="same", external_id="r-1"),
            _rec(name="ttl", ttl=60, external_id="r-2"),
            _rec(name="gone", external_id="r-3"),
        ]
        local = [
            _rec(name="same", id="l-1"),
            _rec(name="ttl", id="l-2"),
            _rec(name="new", id="l-3"),
        ]
        common, add, delete, update = compare_record_sets(remote, local)
        assert [r.name for r in common] == ["same"]
        assert [r.name for r in update] == ["ttl"]
        assert [r.name for r in add] == ["new"]
        assert [r.name for r in delete] == ["gone"]
        assert len(common) + len(update) + len(add) == len(local)
        assert len(common) + len(update) + len(delete) == len(remote)

    def test_applying_the_diff_converges(self):
        remote = [_rec(name="a"), _rec(name="b", ttl=60), _rec(name="c")]
        local = [_rec(name="a"), _rec(name="b"), _rec(name="d")]
        _, add, delete, update = compare_record_sets(remote, local)

        applied = {r.sort_key(): r for r in remote}
        for r in delete:
            applied.pop(r.sort_key())
        for r in add:
            applied[r.sort_key()] = r
        for r in update:
            applied[r.sort_key()] = next(l for l in local if l.sort_key() == r.sort_key())

        common, add, delete, update = compare_record_sets(list(applied.values()), local)
        assert add == delete == update == []
        assert len(common) == len(local)

    def test_zone_against_itself(self):
        remote = [
            _rec(name="a", external_id="r-1"),
            _rec(name="b", dns_type="TXT", dns_value="v=spf1 -all"),
            _rec(name="c", policy_type=PolicyType.WEIGHTED, policy_params={"weight": 3}),
        ]
        common, add, delete, update = compare_record_sets(remote, remote)
        assert add == delete == update == []
        assert _keys(common) == _keys(remote)

    def test_missing_mx_removed_remotely(self):
        remote = [
            _rec(name="@", dns_type="NS", dns_value="ns1.", ttl=86400),
            _rec(name="@", dns_type="NS", dns_value="ns2.", ttl=86400),
            _rec(name="@", dns_type="MX", dns_value="mx1.", ttl=600),
            _rec(name="@", dns_type="MX", dns_value="mx2.", ttl=600),
            _rec(name="mail", dns_type="CNAME", dns_value="qiye.163.com.", ttl=600),
        ]
        local = [
            r.model_copy(update={"id": f"l-{i}"})
            for i, r in enumerate(remote)
            if r.dns_value != "mx2."
        ]
        common, add, delete, update = compare_record_sets(remote, local)
        assert len(common) == 4
        assert add == update == []
        assert [(r.dns_type, r.dns_value) for r in delete] == [("MX", "mx2.")]

    def test_policy_change_is_not_matched_with_simple(self):
        remote = [_rec(external_id="r-1")]
        local = [_rec(id="l-1", policy_type=PolicyType.WEIGHTED, policy_params={"weight": 10})]
        common, add, delete, update = compare_record_sets(remote, local)
        assert common == update == []
        assert [r.policy_type for r in add] == [PolicyType.WEIGHTED]
        assert [r.policy_type for r in delete] == [PolicyType.SIMPLE]


# --- SyncResult ---

class TestSyncResult:
    def test_counts_and_errors(self):
        r = SyncResult()
        r.add()
        r.add_error("boom")
        r.update()
        r.delete()
        r.delete()
        r.delete_error(ValueError("gone"))
        assert r.is_error()
        assert not r.is_generate_error()
        assert r.as_dict() == {
            "added": 1,
            "add_errors": 1,
            "updated": 1,
            "update_errors": 0,
            "deleted": 2,
            "delete_errors": 1,
            "errors": ["boom", "gone"],
            "error": None,
        }
        assert r.result() == "removed 2 failed 1 updated 1 failed 0 added 1 failed 1"

    def test_global_error(self):
        r = SyncResult()
        r.error("list failed")
        assert r.is_generate_error()
        assert r.is_error()

    def test_merge(self):
        a, b = SyncResult(), SyncResult()
        a.add()
        b.add()
        b.update_error("x")
        b.error("zone gone")
        a.merge(b)
        assert a.add_cnt == 2
        assert a.update_err_cnt == 1
        assert a.errors == ["x", "zone gone"]
        assert not a.is_generate_error()
