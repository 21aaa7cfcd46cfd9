from __future__ import annotations

import json
import secrets
import string
from dataclasses import dataclass, replace
from typing import Any, Mapping

from textile_ledger.dates import normalize_entry_date
from textile_ledger.errors import InvalidEntry, PersistenceCorrupt

# (attribute, persisted key, display label)
DETAIL_FIELDS: list[tuple[str, str, str]] = [
    ("dori_detail", "doriDetail", "Dori"),
    ("warpin_detail", "warpinDetail", "Warpin"),
    ("bheem_detail", "bheemDetail", "Bheem"),
    ("delivery_detail", "deliveryDetail", "Delivery Details"),
]

_ID_ALPHABET = string.digits + string.ascii_lowercase


def random_token(n: int = 7) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(n))


@dataclass(frozen=True)
class RecordFields:
    """The user-editable part of a record: four free-text details and the day."""

    dori_detail: str
    warpin_detail: str
    bheem_detail: str
    delivery_detail: str
    entry_date: str

    def __post_init__(self) -> None:
        for attr, _key, _label in DETAIL_FIELDS:
            object.__setattr__(self, attr, "" if getattr(self, attr) is None else str(getattr(self, attr)))
        normalized = normalize_entry_date(self.entry_date)
        if not normalized:
            raise InvalidEntry(f"Unrecognized entry date: {self.entry_date!r}")
        object.__setattr__(self, "entry_date", normalized)


@dataclass(frozen=True)
class TextileRecord:
    id: str
    dori_detail: str
    warpin_detail: str
    bheem_detail: str
    delivery_detail: str
    entry_date: str
    created_by: str
    created_at: int
    updated_at: int

    @property
    def fields(self) -> RecordFields:
        return RecordFields(
            dori_detail=self.dori_detail,
            warpin_detail=self.warpin_detail,
            bheem_detail=self.bheem_detail,
            delivery_detail=self.delivery_detail,
            entry_date=self.entry_date,
        )

    def with_fields(self, fields: RecordFields, updated_at: int) -> "TextileRecord":
        return replace(
            self,
            dori_detail=fields.dori_detail,
            warpin_detail=fields.warpin_detail,
            bheem_detail=fields.bheem_detail,
            delivery_detail=fields.delivery_detail,
            entry_date=fields.entry_date,
            updated_at=max(updated_at, self.created_at),
        )

    def details(self) -> dict[str, str]:
        return {key: getattr(self, attr) for attr, key, _label in DETAIL_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id}
        d.update(self.details())
        d.update({
            "entryDate": self.entry_date,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TextileRecord":
        try:
            rec = cls(
                id=d["id"],
                dori_detail=d["doriDetail"],
                warpin_detail=d["warpinDetail"],
                bheem_detail=d["bheemDetail"],
                delivery_detail=d["deliveryDetail"],
                entry_date=d["entryDate"],
                created_by=d["createdBy"],
                created_at=d["createdAt"],
                updated_at=d["updatedAt"],
            )
        except (KeyError, TypeError) as e:
            raise PersistenceCorrupt(f"Malformed record: {e}") from e

        for name in ("id", "dori_detail", "warpin_detail", "bheem_detail", "delivery_detail", "entry_date", "created_by"):
            if not isinstance(getattr(rec, name), str):
                raise PersistenceCorrupt(f"Malformed record field {name!r}")
        for name in ("created_at", "updated_at"):
            v = getattr(rec, name)
            if isinstance(v, bool) or not isinstance(v, int):
                raise PersistenceCorrupt(f"Malformed record field {name!r}")
        return rec


def short_id(record: TextileRecord) -> str:
    """Batch label shown in tables and reports."""
    return record.id[:4].upper()


def dump_records(records: list[TextileRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False)


def load_records(text: str) -> list[TextileRecord]:
    """Parse the persisted collection; raises PersistenceCorrupt on any defect."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise PersistenceCorrupt(f"Stored ledger is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise PersistenceCorrupt("Stored ledger is not a list")
    out: list[TextileRecord] = []
    for item in data:
        if not isinstance(item, dict):
            raise PersistenceCorrupt("Stored ledger contains a non-object entry")
        out.append(TextileRecord.from_dict(item))
    return out
