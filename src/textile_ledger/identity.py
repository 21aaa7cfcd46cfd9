"""Per-workspace pseudo-identity used to tag the entries it creates.

The stamp is a random string kept in the local store. It is not a credential:
anyone with access to the workspace can read or rewrite it, and the ownership
check below is a plain equality test that only keeps honest users from
editing each other's entries by accident.
"""
from __future__ import annotations

import logging

from textile_ledger.db import KeyValueStore
from textile_ledger.records import TextileRecord, random_token

log = logging.getLogger(__name__)

IDENTITY_KEY = "textrack_user_id"


def new_identity() -> str:
    return "user_" + random_token(7)


def load_or_create_identity(kv: KeyValueStore) -> str:
    """Return the persisted identity, generating and saving one on first run."""
    ident = kv.get(IDENTITY_KEY)
    if ident:
        return ident
    ident = new_identity()
    kv.set(IDENTITY_KEY, ident)
    log.info("Created session identity %s", ident)
    return ident


def is_owner(record: TextileRecord, identity: str) -> bool:
    return record.created_by == identity
