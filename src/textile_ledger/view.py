"""Filter -> sort -> group-by-day over the ledger. Pure functions, no state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from textile_ledger.dates import day_label
from textile_ledger.records import TextileRecord


@dataclass
class DayGroup:
    label: str
    entry_date: str
    records: list[TextileRecord] = field(default_factory=list)


@dataclass
class LedgerView:
    records: list[TextileRecord]
    groups: list[DayGroup]

    def __len__(self) -> int:
        return len(self.records)


def matches(record: TextileRecord, query: str) -> bool:
    q = (query or "").lower()
    if not q:
        return True
    haystack = (
        record.dori_detail,
        record.warpin_detail,
        record.bheem_detail,
        record.delivery_detail,
        record.id,
        record.entry_date,
    )
    return any(q in s.lower() for s in haystack)


def filter_records(records: Iterable[TextileRecord], query: str) -> list[TextileRecord]:
    return [r for r in records if matches(r, query)]


def sort_records(records: Iterable[TextileRecord]) -> list[TextileRecord]:
    """Newest day first, then newest-created first within a day.

    Records tied on both keys keep their collection order (sorted() is stable
    with reverse=True).
    """
    return sorted(records, key=lambda r: (r.entry_date, r.created_at), reverse=True)


def group_by_day(records: Iterable[TextileRecord]) -> list[DayGroup]:
    """Partition already-sorted records by day label, keeping first-seen order."""
    groups: dict[str, DayGroup] = {}
    for r in records:
        label = day_label(r.entry_date)
        g = groups.get(label)
        if g is None:
            g = groups[label] = DayGroup(label=label, entry_date=r.entry_date)
        g.records.append(r)
    return list(groups.values())


def build_view(records: Iterable[TextileRecord], query: str = "") -> LedgerView:
    ordered = sort_records(filter_records(records, query))
    return LedgerView(records=ordered, groups=group_by_day(ordered))
