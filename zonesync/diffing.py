"""Diff engine for DNS record sets."""

from __future__ import annotations

from typing import Any, Sequence

from .recordset import DnsRecordSet

RecordSetDiff = tuple[
    list[DnsRecordSet], list[DnsRecordSet], list[DnsRecordSet], list[DnsRecordSet]
]


def compare_record_sets(
    remote: Sequence[DnsRecordSet], local: Sequence[DnsRecordSet]
) -> RecordSetDiff:
    """Partition *remote* and *local* into ``(common, add, delete, update)``.

    Both inputs are sorted by :meth:`DnsRecordSet.sort_key` and merge-walked.
    Entries with the same key are the same logical record: they land in
    ``common`` when fully value-equal and in ``update`` otherwise, in both
    cases in the remote shape carrying the local ``id``.  Local-only
    entries go to ``add``, remote-only entries go to ``delete``.

    The engine has no knowledge of record types; callers filter system
    records (apex NS/SOA) beforehand.
    """
    remote_sorted = sorted(remote, key=DnsRecordSet.sort_key)
    local_sorted = sorted(local, key=DnsRecordSet.sort_key)
    common: list[DnsRecordSet] = []
    add: list[DnsRecordSet] = []
    delete: list[DnsRecordSet] = []
    update: list[DnsRecordSet] = []

    i, j = 0, 0
    while i < len(local_sorted) or j < len(remote_sorted):
        if i >= len(local_sorted):
            delete.append(remote_sorted[j])
            j += 1
            continue
        if j >= len(remote_sorted):
            add.append(local_sorted[i])
            i += 1
            continue

        l_rec, r_rec = local_sorted[i], remote_sorted[j]
        l_key, r_key = l_rec.sort_key(), r_rec.sort_key()
        if l_key == r_key:
            matched = r_rec.model_copy(update={"id": l_rec.id})
            if l_rec.equals(r_rec):
                common.append(matched)
            else:
                update.append(matched)
            i += 1
            j += 1
        elif l_key < r_key:
            add.append(l_rec)
            i += 1
        else:
            delete.append(r_rec)
            j += 1

    return common, add, delete, update


class SyncResult:
    """Outcome of applying a diff: per-operation counts and collected errors."""

    def __init__(self) -> None:
        self.add_cnt = 0
        self.add_err_cnt = 0
        self.update_cnt = 0
        self.update_err_cnt = 0
        self.del_cnt = 0
        self.del_err_cnt = 0
        self.errors: list[str] = []
        self.global_error: str | None = None

    def add(self) -> None:
        self.add_cnt += 1

    def add_error(self, err: BaseException | str) -> None:
        self.add_err_cnt += 1
        self.errors.append(str(err))

    def update(self) -> None:
        self.update_cnt += 1

    def update_error(self, err: BaseException | str) -> None:
        self.update_err_cnt += 1
        self.errors.append(str(err))

    def delete(self) -> None:
        self.del_cnt += 1

    def delete_error(self, err: BaseException | str) -> None:
        self.del_err_cnt += 1
        self.errors.append(str(err))

    def error(self, err: BaseException | str) -> None:
        """Record a failure that prevented the sync from running at all."""
        self.global_error = str(err)

    def is_generate_error(self) -> bool:
        return self.global_error is not None

    def is_error(self) -> bool:
        return self.is_generate_error() or bool(self.errors)

    def merge(self, other: SyncResult) -> None:
        self.add_cnt += other.add_cnt
        self.add_err_cnt += other.add_err_cnt
        self.update_cnt += other.update_cnt
        self.update_err_cnt += other.update_err_cnt
        self.del_cnt += other.del_cnt
        self.del_err_cnt += other.del_err_cnt
        self.errors.extend(other.errors)
        if other.global_error is not None:
            self.errors.append(other.global_error)

    def as_dict(self) -> dict[str, Any]:
        return {
            "added": self.add_cnt,
            "add_errors": self.add_err_cnt,
            "updated": self.update_cnt,
            "update_errors": self.update_err_cnt,
            "deleted": self.del_cnt,
            "delete_errors": self.del_err_cnt,
            "errors": list(self.errors),
            "error": self.global_error,
        }

    def result(self) -> str:
        return (
            f"removed {self.del_cnt} failed {self.del_err_cnt} "
            f"updated {self.update_cnt} failed {self.update_err_cnt} "
            f"added {self.add_cnt} failed {self.add_err_cnt}"
        )

    def __repr__(self) -> str:
        return f"SyncResult({self.result()})"
