"""Traffic policy registry.

Policies are deduplicated on ``(provider, policy_type, params)`` and
referenced by record sets through join rows, so identical policies are
stored once.  A policy row is garbage-collected as soon as the last
record set referencing it lets go.
"""

from __future__ import annotations

from typing import Any

from .base.exceptions import ConflictError
from .lockman import LockManager
from .models import DnsRecordSetTrafficPolicy, DnsTrafficPolicy
from .recordset import PolicyType, is_policy_value_equal, policy_params_string
from .store import Store


class TrafficPolicyRegistry:
    def __init__(self, store: Store, locks: LockManager) -> None:
        self.store = store
        self.locks = locks

    @staticmethod
    def _policy_key(provider: str, policy_type: PolicyType, params: dict[str, Any] | None) -> str:
        return f"{provider}-{policy_type.value}-{policy_params_string(params)}"

    def _find(
        self, provider: str, policy_type: PolicyType, params: dict[str, Any] | None
    ) -> DnsTrafficPolicy | None:
        canonical = policy_params_string(params)
        matches = self.store.traffic_policies.query(
            lambda p: p.provider == provider
            and p.policy_type == policy_type
            and policy_params_string(p.params) == canonical
        )
        return matches[0] if matches else None

    def register(
        self, provider: str, policy_type: PolicyType | str, params: dict[str, Any] | None
    ) -> DnsTrafficPolicy:
        """Return the policy row for the triple, inserting it if needed."""
        policy_type = PolicyType(policy_type)
        with self.locks.lock("dns_trafficpolicy", self._policy_key(provider, policy_type, params)):
            return self._register_locked(provider, policy_type, params)

    def _register_locked(
        self, provider: str, policy_type: PolicyType, params: dict[str, Any] | None
    ) -> DnsTrafficPolicy:
        policy = self._find(provider, policy_type, params)
        if policy is not None:
            return policy
        return self.store.traffic_policies.insert(
            DnsTrafficPolicy(provider=provider, policy_type=policy_type, params=params or None)
        )

    def get_or_create(
        self, provider: str, policy_type: PolicyType | str, params: dict[str, Any] | None
    ) -> str:
        return self.register(provider, policy_type, params).id

    def get_record_policies(self, record_id: str) -> list[DnsTrafficPolicy]:
        policy_ids = [
            rp.dns_trafficpolicy_id
            for rp in self.store.record_policies.filter(dns_recordset_id=record_id)
        ]
        return self.store.traffic_policies.query(lambda p: p.id in policy_ids)

    def get_record_policy(self, record_id: str, provider: str) -> DnsTrafficPolicy | None:
        """The record's policy for *provider*, or None when it has none.

        Raises:
            ConflictError: The record references several policies for the provider.
        """
        policies = [p for p in self.get_record_policies(record_id) if p.provider == provider]
        if len(policies) > 1:
            raise ConflictError(
                f"record set {record_id} has {len(policies)} policies for {provider}"
            )
        return policies[0] if policies else None

    def default_policy(
        self, record_id: str, provider: str
    ) -> tuple[PolicyType, dict[str, Any] | None]:
        """Policy type and params the record should carry on *provider*.

        Records without an explicit policy are Simple.
        """
        policy = self.get_record_policy(record_id, provider)
        if policy is None:
            return PolicyType.SIMPLE, None
        return policy.policy_type, policy.params or None

    def set_traffic_policy(
        self,
        record_id: str,
        provider: str,
        policy_type: PolicyType | str,
        params: dict[str, Any] | None,
    ) -> DnsTrafficPolicy:
        """Point *record_id* at the given policy for *provider*.

        Runs under the record's lock: read the current policy, return early
        if it already matches, otherwise detach it and attach the new one.
        """
        policy_type = PolicyType(policy_type)
        with self.locks.lock("dns_recordset", record_id):
            current = self.get_record_policy(record_id, provider)
            if current is not None:
                if current.policy_type == policy_type and is_policy_value_equal(
                    current.params, params
                ):
                    return current
                self.remove_policy(record_id, current.id)
            return self._attach(record_id, provider, policy_type, params)

    def _attach(
        self,
        record_id: str,
        provider: str,
        policy_type: PolicyType,
        params: dict[str, Any] | None,
    ) -> DnsTrafficPolicy:
        # Lookup and join insert share the policy lock so garbage collection
        # cannot drop the row in between.
        with self.locks.lock("dns_trafficpolicy", self._policy_key(provider, policy_type, params)):
            policy = self._register_locked(provider, policy_type, params)
            self.store.record_policies.insert(
                DnsRecordSetTrafficPolicy(
                    dns_recordset_id=record_id, dns_trafficpolicy_id=policy.id
                )
            )
            return policy

    def remove_policy(self, record_id: str, policy_id: str) -> None:
        """Detach *policy_id* from the record and drop the policy if now unused."""
        for rp in self.store.record_policies.filter(
            dns_recordset_id=record_id, dns_trafficpolicy_id=policy_id
        ):
            self.store.record_policies.delete(rp.id)

        policy = self.store.traffic_policies.get(policy_id)
        if policy is None:
            return
        with self.locks.lock(
            "dns_trafficpolicy", self._policy_key(policy.provider, policy.policy_type, policy.params)
        ):
            if not self.store.record_policies.filter(dns_trafficpolicy_id=policy_id):
                self.store.traffic_policies.delete(policy_id)

    def detach_all(self, record_id: str) -> None:
        for policy in self.get_record_policies(record_id):
            self.remove_policy(record_id, policy.id)
