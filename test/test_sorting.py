import pyarrow as pa
import pytest

from tidygroups.compute.base import QueryPlanNode
from tidygroups.compute.sorting import SortNode


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        for batch in self._batches:
            yield batch

    def __str__(self):
        return "MockQueryPlanNode"


def test_sort_node_single_batch():
    data = pa.record_batch({"values": [5, 3, 1, 4, 2]})
    sort_node = SortNode(["values"], [False], MockQueryPlanNode([data]))

    sorted_batches = list(sort_node.batches())
    assert len(sorted_batches) == 1
    assert sorted_batches[0].column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_sort_node_multiple_batches():
    data1 = pa.record_batch({"values": [5, 3]})
    data2 = pa.record_batch({"values": [1, 4, 2]})
    sort_node = SortNode(["values"], [False], MockQueryPlanNode([data1, data2]))

    sorted_values = [
        val for batch in sort_node.batches() for val in batch.column(0).to_pylist()
    ]
    assert sorted_values == [1, 2, 3, 4, 5]


def test_sort_node_descending():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    sort_node = SortNode(["values"], [True], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [5, 4, 3, 2, 1]


def test_sort_node_is_stable():
    data = pa.record_batch(
        {"year": [2021, 2020, 2021, 2020], "name": ["d", "c", "b", "a"]}
    )
    sort_node = SortNode(["year"], [False], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column("name").to_pylist() == ["c", "a", "d", "b"]


def test_sort_node_multiple_keys():
    data = pa.record_batch(
        {"sex": ["M", "F", "M", "F"], "n": [1, 2, 3, 4]}
    )
    sort_node = SortNode(["sex", "n"], [False, True], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.to_pydict() == {"sex": ["F", "F", "M", "M"], "n": [4, 2, 3, 1]}


def test_sort_node_invalid_keys_and_descending_length():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    with pytest.raises(ValueError):
        SortNode(["values"], [True, False], MockQueryPlanNode([data]))


def test_sort_node_str():
    sort_node = SortNode(["values"], [True], MockQueryPlanNode([]))
    assert str(sort_node) == "SortNode(sorting=[('values', 'descending')], MockQueryPlanNode)"
