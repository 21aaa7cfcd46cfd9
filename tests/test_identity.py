import re

from textile_ledger.identity import IDENTITY_KEY, is_owner, load_or_create_identity, new_identity
from textile_ledger.records import TextileRecord


def test_new_identity_shape():
    assert re.fullmatch(r"user_[0-9a-z]{7}", new_identity())


def test_identity_created_once_and_reused(kv):
    first = load_or_create_identity(kv)
    assert kv.get(IDENTITY_KEY) == first
    assert load_or_create_identity(kv) == first


def test_existing_identity_is_respected(kv):
    kv.set(IDENTITY_KEY, "user_legacy")
    assert load_or_create_identity(kv) == "user_legacy"


def test_is_owner_is_plain_equality():
    r = TextileRecord("id1", "", "", "", "", "2024-10-25", "user_a", 1, 1)
    assert is_owner(r, "user_a")
    assert not is_owner(r, "user_A")
    assert not is_owner(r, "user_b")
