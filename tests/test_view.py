from textile_ledger.dates import day_label
from textile_ledger.records import TextileRecord
from textile_ledger.view import build_view, filter_records, group_by_day, matches, sort_records


def rec(rid, entry_date, created_at, dori="", warpin="", bheem="", delivery=""):
    return TextileRecord(rid, dori, warpin, bheem, delivery, entry_date, "user_a", created_at, created_at)


SAMPLE = [
    rec("aaa1111", "2024-10-25", 10, dori="40s Cotton"),
    rec("bbb2222", "2024-10-26", 5, warpin="Beam 7"),
    rec("ccc3333", "2024-10-25", 30, bheem="Bheem north"),
    rec("ddd4444", "2024-10-24", 50, delivery="Truck to Surat"),
]


def test_empty_query_matches_everything():
    assert filter_records(SAMPLE, "") == SAMPLE


def test_no_match_is_empty():
    assert filter_records(SAMPLE, "polyester") == []


def test_filter_is_case_insensitive_over_all_fields():
    assert [r.id for r in filter_records(SAMPLE, "COTTON")] == ["aaa1111"]
    assert [r.id for r in filter_records(SAMPLE, "beam 7")] == ["bbb2222"]
    assert [r.id for r in filter_records(SAMPLE, "NORTH")] == ["ccc3333"]
    assert [r.id for r in filter_records(SAMPLE, "surat")] == ["ddd4444"]
    assert [r.id for r in filter_records(SAMPLE, "CCC3")] == ["ccc3333"]
    assert [r.id for r in filter_records(SAMPLE, "10-24")] == ["ddd4444"]


def test_matches_on_entry_date_prefix():
    assert all(matches(r, "2024-10") for r in SAMPLE)


def test_newer_day_first_regardless_of_insertion_order():
    older = rec("old0000", "2024-10-25", 999)
    newer = rec("new0000", "2024-10-26", 1)
    assert sort_records([older, newer]) == [newer, older]
    assert sort_records([newer, older]) == [newer, older]


def test_same_day_newest_created_first():
    ids = [r.id for r in sort_records(SAMPLE)]
    assert ids == ["bbb2222", "ccc3333", "aaa1111", "ddd4444"]


def test_full_ties_keep_collection_order():
    a = rec("tie0001", "2024-10-25", 7)
    b = rec("tie0002", "2024-10-25", 7)
    assert sort_records([a, b]) == [a, b]
    assert sort_records([b, a]) == [b, a]


def test_grouping_one_group_per_day_in_sorted_order():
    groups = group_by_day(sort_records(SAMPLE))
    assert [g.entry_date for g in groups] == ["2024-10-26", "2024-10-25", "2024-10-24"]
    assert [g.label for g in groups] == [day_label(d) for d in ("2024-10-26", "2024-10-25", "2024-10-24")]
    same_day = groups[1]
    assert [r.id for r in same_day.records] == ["ccc3333", "aaa1111"]


def test_build_view_filters_then_groups():
    view = build_view(SAMPLE, "2024-10-25")
    assert len(view) == 2
    assert [r.id for r in view.records] == ["ccc3333", "aaa1111"]
    assert len(view.groups) == 1


def test_build_view_on_empty_ledger():
    view = build_view([], "")
    assert view.records == [] and view.groups == []
