import math

import pyarrow as pa
import pytest

from tidygroups.compute.grouping import (
    DropMode,
    drop_last_key,
    group_row_indices,
    resolve_keys,
    validate_keys,
)
from tidygroups.errors import EmptyGroupKey, InvalidSpec


@pytest.mark.parametrize(
    "keys, expected",
    [
        (("sex", "year", "name"), ("sex", "year")),
        (("sex", "year"), ("sex",)),
        (("sex",), ()),
        ((), ()),
        (["sex", "year"], ("sex",)),
    ],
)
def test_drop_last_key(keys, expected):
    assert drop_last_key(keys) == expected


def test_drop_last_key_does_not_modify_input():
    keys = ["sex", "year"]
    drop_last_key(keys)
    assert keys == ["sex", "year"]


@pytest.mark.parametrize(
    "drop, expected",
    [
        (DropMode.DROP_LAST, ("sex",)),
        ("drop_last", ("sex",)),
        (DropMode.DROP_ALL, ()),
        ("drop", ()),
        (DropMode.KEEP, ("sex", "year")),
        ("keep", ("sex", "year")),
    ],
)
def test_resolve_keys(drop, expected):
    assert resolve_keys(("sex", "year"), drop) == expected


def test_resolve_keys_drop_all_on_single_key():
    assert resolve_keys(("sex",), DropMode.DROP_ALL) == ()
    assert resolve_keys(("sex",), DropMode.DROP_LAST) == ()


def test_validate_keys():
    assert validate_keys(["sex", "year", "n"], ["year", "sex"]) == ("year", "sex")


def test_validate_keys_empty():
    with pytest.raises(EmptyGroupKey):
        validate_keys(["sex"], [])


def test_validate_keys_missing():
    with pytest.raises(InvalidSpec, match="not found in table: nope"):
        validate_keys(["sex"], ["sex", "nope"])


def test_validate_keys_duplicates():
    with pytest.raises(InvalidSpec, match="Duplicate grouping keys: sex"):
        validate_keys(["sex", "year"], ["sex", "year", "sex"])


def test_validate_keys_rejects_plain_string():
    with pytest.raises(InvalidSpec):
        validate_keys(["sex"], "sex")


def test_group_row_indices_first_occurrence_order():
    batch = pa.record_batch(
        {
            "sex": ["M", "F", "M", "F", "M"],
            "year": [2021, 2020, 2020, 2020, 2021],
        }
    )
    groups = group_row_indices(batch, ["sex", "year"])
    assert list(groups.keys()) == [("M", 2021), ("F", 2020), ("M", 2020)]
    assert list(groups.values()) == [[0, 4], [1, 3], [2]]


def test_group_row_indices_without_keys():
    batch = pa.record_batch({"v": [1, 2, 3]})
    assert group_row_indices(batch, []) == {(): [0, 1, 2]}
    assert group_row_indices(batch.slice(0, 0), []) == {}


def test_group_row_indices_on_table():
    table = pa.Table.from_batches(
        [pa.record_batch({"k": ["a", "b"]}), pa.record_batch({"k": ["a", "c"]})]
    )
    assert group_row_indices(table, ["k"]) == {("a",): [0, 2], ("b",): [1], ("c",): [3]}


def test_group_row_indices_nan_is_a_single_group():
    batch = pa.record_batch({"k": [float("nan"), 1.0, float("nan")], "v": [1, 2, 3]})
    groups = group_row_indices(batch, ["k"])
    assert len(groups) == 2
    assert list(groups.values()) == [[0, 2], [1]]
    assert math.isnan(list(groups)[0][0])


def test_group_row_indices_nan_and_null_are_different_groups():
    batch = pa.record_batch(
        {"k": [None, float("nan"), None, float("nan")], "s": ["a", "a", "a", "b"]}
    )
    groups = group_row_indices(batch, ["k", "s"])
    assert list(groups.values()) == [[0, 2], [1], [3]]


def test_group_row_indices_nan_keys_match_across_batches():
    first = group_row_indices(pa.record_batch({"k": [float("nan")]}), ["k"])
    second = group_row_indices(pa.record_batch({"k": [2.0, float("nan")]}), ["k"])
    assert list(first)[0] in second
