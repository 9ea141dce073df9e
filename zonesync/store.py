"""
In-memory persistence for zones, caches, record sets and traffic policies.

Each entity kind gets its own strongly typed :class:`Table`.  Rows are
copied on the way in and out so callers never share mutable state with
the store; the only way to change a stored row is :meth:`Table.update`,
which applies a callback to a fresh copy under the store lock and
commits it only if the callback returns without raising.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

from .base.exceptions import ResourceNotFoundError
from .models import (
    Cloudaccount,
    DnsRecordSetRow,
    DnsRecordSetTrafficPolicy,
    DnsTrafficPolicy,
    DnsZone,
    DnsZoneCache,
    DnsZoneVpc,
    Vpc,
)

T = TypeVar("T", bound=BaseModel)


class Table(Generic[T]):
    """A keyed collection of rows of one entity kind."""

    def __init__(self, kind: str, lock: threading.RLock) -> None:
        self.kind = kind
        self._lock = lock
        self._rows: dict[str, T] = {}

    def insert(self, row: T) -> T:
        with self._lock:
            if row.id in self._rows:  # type: ignore[attr-defined]
                raise ValueError(f"duplicate {self.kind} id {row.id}")  # type: ignore[attr-defined]
            self._rows[row.id] = row.model_copy(deep=True)  # type: ignore[attr-defined]
            return row.model_copy(deep=True)

    def get(self, row_id: str) -> T | None:
        with self._lock:
            row = self._rows.get(row_id)
            return row.model_copy(deep=True) if row is not None else None

    def fetch_by_id(self, row_id: str) -> T:
        """Return the row with *row_id*.

        Raises:
            ResourceNotFoundError: If there is no such row.
        """
        row = self.get(row_id)
        if row is None:
            raise ResourceNotFoundError(self.kind, row_id)
        return row

    def fetch_by_id_or_name(self, ident: str) -> T:
        """Return the row whose id, or failing that whose unique name, is *ident*."""
        with self._lock:
            if ident in self._rows:
                return self._rows[ident].model_copy(deep=True)
            named = [r for r in self._rows.values() if getattr(r, "name", None) == ident]
            if len(named) == 1:
                return named[0].model_copy(deep=True)
        raise ResourceNotFoundError(self.kind, ident)

    def all(self) -> list[T]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._rows.values()]

    def query(self, predicate: Callable[[T], bool]) -> list[T]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._rows.values() if predicate(r)]

    def filter(self, **eq: object) -> list[T]:
        """Rows whose attributes equal every keyword given."""
        return self.query(lambda r: all(getattr(r, k) == v for k, v in eq.items()))

    def update(self, row_id: str, fn: Callable[[T], None]) -> T:
        """Apply *fn* to a copy of the row and commit it atomically.

        Exceptions raised by *fn* abort the update and propagate.

        Raises:
            ResourceNotFoundError: If the row no longer exists.
        """
        with self._lock:
            current = self._rows.get(row_id)
            if current is None:
                raise ResourceNotFoundError(self.kind, row_id)
            draft = current.model_copy(deep=True)
            fn(draft)
            self._rows[row_id] = draft
            return draft.model_copy(deep=True)

    def delete(self, row_id: str) -> bool:
        """Remove a row; returns False when it was already gone."""
        with self._lock:
            return self._rows.pop(row_id, None) is not None


class Store:
    """All tables of the reconciliation subsystem, sharing one lock."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.cloudaccounts: Table[Cloudaccount] = Table("cloudaccount", self.lock)
        self.vpcs: Table[Vpc] = Table("vpc", self.lock)
        self.zones: Table[DnsZone] = Table("dns_zone", self.lock)
        self.zone_caches: Table[DnsZoneCache] = Table("dns_zonecache", self.lock)
        self.zone_vpcs: Table[DnsZoneVpc] = Table("dns_zone_vpc", self.lock)
        self.record_sets: Table[DnsRecordSetRow] = Table("dns_recordset", self.lock)
        self.traffic_policies: Table[DnsTrafficPolicy] = Table("dns_trafficpolicy", self.lock)
        self.record_policies: Table[DnsRecordSetTrafficPolicy] = Table(
            "dns_recordset_trafficpolicy", self.lock
        )
