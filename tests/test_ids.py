import pytest

from relicform.ids import WorkloadIDs, parse_workload_ids


def test_string_form():
    assert str(WorkloadIDs(account_id=1, id=2, guid="abc")) == "1:2:abc"


def test_parse_fields():
    parsed = parse_workload_ids("10:20:guid-value")
    assert parsed == WorkloadIDs(account_id=10, id=20, guid="guid-value")


def test_round_trip():
    ids = WorkloadIDs(account_id=123, id=-4, guid="MXxXT1JLTE9BRHxXT1JLTE9BRHwx")
    assert parse_workload_ids(str(ids)) == ids


def test_non_numeric_account_raises():
    with pytest.raises(ValueError):
        parse_workload_ids("abc:1:guid")


def test_out_of_range_raises():
    with pytest.raises(ValueError):
        parse_workload_ids("2147483648:1:guid")


def test_missing_part_raises():
    with pytest.raises(ValueError):
        parse_workload_ids("1:2")