from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from textile_ledger.dates import DAY_MS, now_ms
from textile_ledger.db import KeyValueStore
from textile_ledger.errors import NotFound, PermissionDenied, PersistenceCorrupt
from textile_ledger.identity import is_owner
from textile_ledger.records import (
    RecordFields,
    TextileRecord,
    dump_records,
    load_records,
    random_token,
)

log = logging.getLogger(__name__)

RECORDS_KEY = "textrack_records_simplified_v2"
CORRUPT_BACKUP_KEY = RECORDS_KEY + ".corrupt"


@dataclass(frozen=True)
class LedgerStats:
    total_records: int
    recent_activity: int
    mine: int


class RecordStore:
    """In-memory ledger with write-through persistence to a KeyValueStore.

    Construct it explicitly, call load_all() once, then mutate through
    create/update/delete. Every mutation rewrites the whole collection.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        identity: str,
        *,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = random_token,
    ):
        self.kv = kv
        self.identity = identity
        self._clock = clock
        self._id_factory = id_factory
        self._records: list[TextileRecord] = []

    # ----------------------------
    # Persistence
    # ----------------------------
    def load_all(self) -> list[TextileRecord]:
        """Rehydrate from storage. Missing or unparseable state yields an empty ledger."""
        raw = self.kv.get(RECORDS_KEY)
        if raw is None:
            self._records = []
            return self.records

        try:
            self._records = load_records(raw)
        except PersistenceCorrupt as e:
            log.warning("Stored ledger unreadable, starting empty: %s", e)
            # Keep the unreadable text aside; the next save replaces RECORDS_KEY.
            self.kv.set(CORRUPT_BACKUP_KEY, raw)
            self._records = []
        return self.records

    def _commit(self, records: list[TextileRecord]) -> None:
        """Write the new collection, then adopt it. A failed write leaves memory untouched."""
        self.kv.set(RECORDS_KEY, dump_records(records))
        self._records = records

    # ----------------------------
    # Queries
    # ----------------------------
    @property
    def records(self) -> list[TextileRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> TextileRecord:
        for r in self._records:
            if r.id == record_id:
                return r
        raise NotFound(record_id)

    def find(self, ref: str) -> TextileRecord:
        """Resolve a full id, or a unique case-insensitive id prefix such as a batch label."""
        ref = (ref or "").strip()
        if not ref:
            raise NotFound(ref)
        for r in self._records:
            if r.id == ref:
                return r
        needle = ref.lower()
        hits = [r for r in self._records if r.id.lower().startswith(needle)]
        if len(hits) == 1:
            return hits[0]
        raise NotFound(ref)

    def stats(self, now: Optional[int] = None) -> LedgerStats:
        now = self._clock() if now is None else now
        return LedgerStats(
            total_records=len(self._records),
            recent_activity=sum(1 for r in self._records if now - r.created_at < DAY_MS),
            mine=sum(1 for r in self._records if is_owner(r, self.identity)),
        )

    # ----------------------------
    # Mutations
    # ----------------------------
    def _new_id(self) -> str:
        taken = {r.id for r in self._records}
        while True:
            rid = self._id_factory()
            if rid not in taken:
                return rid

    def create(self, fields: RecordFields) -> TextileRecord:
        ts = self._clock()
        rec = TextileRecord(
            id=self._new_id(),
            dori_detail=fields.dori_detail,
            warpin_detail=fields.warpin_detail,
            bheem_detail=fields.bheem_detail,
            delivery_detail=fields.delivery_detail,
            entry_date=fields.entry_date,
            created_by=self.identity,
            created_at=ts,
            updated_at=ts,
        )
        self._commit([rec] + self._records)
        log.info("Created entry %s for %s", rec.id, rec.entry_date)
        return rec

    def _owned_index(self, record_id: str, action: str) -> int:
        for i, r in enumerate(self._records):
            if r.id == record_id:
                if not is_owner(r, self.identity):
                    log.info("Refused %s of %s owned by %s", action, record_id, r.created_by)
                    raise PermissionDenied(record_id, action)
                return i
        raise NotFound(record_id)

    def update(self, record_id: str, fields: RecordFields) -> TextileRecord:
        i = self._owned_index(record_id, "edit")
        rec = self._records[i].with_fields(fields, updated_at=self._clock())
        self._commit(self._records[:i] + [rec] + self._records[i + 1 :])
        log.info("Updated entry %s", rec.id)
        return rec

    def delete(self, record_id: str) -> None:
        i = self._owned_index(record_id, "delete")
        self._commit(self._records[:i] + self._records[i + 1 :])
        log.info("Deleted entry %s", record_id)


def open_store(kv: KeyValueStore, identity: str, **kwargs) -> RecordStore:
    store = RecordStore(kv, identity, **kwargs)
    store.load_all()
    return store
