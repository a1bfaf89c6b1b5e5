"""The tidygroups compute engine

The compute engine defines the plan nodes that
group, aggregate and mutate data.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

Nodes are in charge of their own execution, so how
each operation is computed lives next to the node
that describes it.

Plans start with one ``DataSource`` node as the leaf:

>>> import pyarrow as pa
>>> data = pa.table({
...    "sex": pa.array(["F", "M", "F", "M"]),
...    "nb_births": pa.array([2, 4, 5, 100])
... })
>>>
>>> from tidygroups.compute import AggregateNode, PyArrowTableDataSource, SumAggregation
>>> query = AggregateNode(
...     ["sex"],
...     {"total": SumAggregation("nb_births")},
...     child=PyArrowTableDataSource(data)
... )
>>> for data in query.batches():
...     print(data)
pyarrow.RecordBatch
sex: string
total: int64
----
sex: ["F","M"]
total: [7,104]

Most users will not build plans directly,
but will use :class:`tidygroups.table.GroupedTable`
which builds and executes them.
"""

from .aggregate import (
    AggregateNode,
    Aggregation,
    CountAggregation,
    CountDistinctAggregation,
    CountRowsAggregation,
    FirstAggregation,
    FunctionAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    SumAggregation,
)
from .base import ColumnRef, Expression, Literal, QueryPlanNode, col, lit
from .datasources import CSVDataSource, PyArrowTableDataSource
from .expressions import FunctionCallExpression
from .filtering import FilterNode
from .grouping import DropMode, drop_last_key, resolve_keys
from .mutate import MutateNode
from .selectors import Across, ColumnSelector
from .sorting import SortNode

__all__ = (
    "QueryPlanNode",
    "Expression",
    "CSVDataSource",
    "PyArrowTableDataSource",
    "FilterNode",
    "FunctionCallExpression",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "SortNode",
    "AggregateNode",
    "MutateNode",
    "Aggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "CountRowsAggregation",
    "FirstAggregation",
    "FunctionAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "SumAggregation",
    "DropMode",
    "drop_last_key",
    "resolve_keys",
    "Across",
    "ColumnSelector",
)
