"""Query plan nodes that compute aggregations.

Summarizing grouped data means reducing each group
to a single row, computing statistics like the sum,
the number of distinct values, the mean, etc...
of the rows belonging to the group.

For example, given the following data::

    sex, year, nb_births
    F,   2020, 10
    F,   2020, 20
    M,   2020, 7
    F,   2021, 5

We could group by ``sex`` and ``year`` and sum the births to get::

    sex, year, total
    F,   2020, 30
    M,   2020, 7
    F,   2021, 5

Groups are emitted in the order they are first encountered
in the data, not in sorted order, unless sorting is explicitly requested.
"""

import abc
import logging
from typing import Any, Callable

import pyarrow as pa
import pyarrow.compute as pc

from .. import utils
from ..errors import GroupComputationError
from .base import QueryPlanNode
from .grouping import group_row_indices

log = logging.getLogger(__name__)

__all__ = (
    "AggregateNode",
    "Aggregation",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "CountAggregation",
    "CountRowsAggregation",
    "CountDistinctAggregation",
    "FirstAggregation",
    "FunctionAggregation",
)


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    >>> import pyarrow as pa
    >>> from tidygroups.compute import SumAggregation, PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'sex': pa.array(['F', 'F', 'M', 'F']),
    ...    'year': pa.array([2020, 2020, 2020, 2021]),
    ...    'nb_births': pa.array([10, 20, 7, 5])
    ... })
    >>> aggregate = AggregateNode(["sex", "year"], {"total": SumAggregation("nb_births")}, PyArrowTableDataSource(data))
    >>> next(aggregate.batches())
    pyarrow.RecordBatch
    sex: string
    year: int64
    total: int64
    ----
    sex: ["F","M","F"]
    year: [2020,2020,2021]
    total: [30,7,5]
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, "Aggregation"],
        child: QueryPlanNode,
        sort: bool = False,
    ) -> None:
        """
        :param keys: The columns to group by, ``[]`` aggregates all rows together.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param child: The child node that will provide the data to aggregate.
        :param sort: Emit the groups sorted by the keys instead of in order of appearance.
        """
        self.keys = list(keys)
        self.aggregations = aggregations
        self.child = child
        self.sort = sort

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Compute the aggregations for each group.

        For each recordbatch yielded by the child node,
        find the rows of every group and compute the
        partial aggregation results for them.

        Once all batches were consumed, the partial results
        are reduced to a single row for each group.
        """
        # Compute separate aggregation results for each batch.
        # This makes so that we need to keep in memory only one batch
        # at the time, and the aggregation results, which are far smaller
        #   chunks_data = {key_value: {aggr_name: [aggr_value1, aggr_value2, ...]}}
        chunks_data: dict[tuple[Any, ...], dict[str, list[Any]]] = {}
        schema = None
        for batch in self.child.batches():
            schema = batch.schema
            for keyvalue, indices in group_row_indices(batch, self.keys).items():
                group_batch = batch.take(pa.array(indices, type=pa.int64()))
                aggregated_values = chunks_data.setdefault(keyvalue, {})
                for name, aggregation in self.aggregations.items():
                    aggregated_values.setdefault(name, []).append(
                        _compute_for_group(
                            name, keyvalue, aggregation.compute_chunk, group_batch
                        )
                    )

        log.debug("Aggregated %d groups by %s", len(chunks_data), self.keys)
        result = self.reduce_aggregations(chunks_data, schema)
        if self.sort and self.keys:
            result = result.sort_by([(k, "ascending") for k in self.keys])
        yield result

    def reduce_aggregations(
        self,
        chunks_data: dict[tuple[Any, ...], dict[str, list[Any]]],
        schema: pa.Schema | None = None,
    ) -> pa.RecordBatch:
        """Reduce the partial aggregation results to the final aggregation results.

        For example if the group was spread over 3 batches the chunks_data could be::

            {("F", 2020): {"total": [10, 20, 30]}}

        The result will be::

            {("F", 2020): {"total": 60}}

        :param chunks_data: The partial results for each group.
        :param schema: The schema of the aggregated data, used to preserve the key types.
        """
        # Prepare one column for each key and aggregation
        result_batch_data: dict[str, list[Any]] = {
            **{k: [] for k in self.keys},
            **{k: [] for k in self.aggregations.keys()},
        }
        for keyvalue, aggregated_values in chunks_data.items():
            for i, key in enumerate(self.keys):
                result_batch_data[key].append(keyvalue[i])
            for aggrname, aggregation in self.aggregations.items():
                result_batch_data[aggrname].append(
                    _compute_for_group(
                        aggrname,
                        keyvalue,
                        aggregation.reduce,
                        aggregated_values[aggrname],
                    )
                )

        arrays = {}
        for name, values in result_batch_data.items():
            if schema is None:
                arrays[name] = _to_array(values)
            elif name in self.keys:
                arrays[name] = pa.array(values, type=schema.field(name).type)
            elif not values:
                # Without groups there are no values to infer the type from.
                output_type = _compute_for_group(
                    name, (), self.aggregations[name].output_type, schema
                )
                arrays[name] = pa.array([], type=output_type)
            else:
                arrays[name] = _to_array(values)
        return pa.record_batch(arrays)


def _compute_for_group(
    name: str, keyvalue: tuple[Any, ...], func: Callable[..., Any], *args: Any
) -> Any:
    """Invoke an aggregation step reporting which group it failed for."""
    try:
        return func(*args)
    except Exception as e:
        raise GroupComputationError(name, keyvalue, str(e)) from e


def _to_array(values: list[Any]) -> pa.Array:
    """Build an array out of pyarrow scalars or python values.

    When all the values are scalars of the same type,
    the array will be of that type, otherwise
    the type is inferred from the python values.
    """
    scalar_types = {v.type for v in values if isinstance(v, pa.Scalar)}
    arrow_type = scalar_types.pop() if len(scalar_types) == 1 else None
    return pa.array(
        [v.as_py() if isinstance(v, pa.Scalar) else v for v in values],
        type=arrow_type,
    )


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation is expected to implement
    a method to compute any needed intermediate results
    on a single chunk of data and then provide a reduce method
    to combine the intermediate results into a final result.

    The chunks are provided in the same order the rows
    appear in the data.
    """

    def __init__(self, column: str | None) -> None:
        """
        :param column: The column to aggregate.
        """
        self.column = column

    @property
    def columns(self) -> list[str]:
        """The columns that the aggregation reads."""
        return [self.column] if self.column is not None else []

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    @abc.abstractmethod
    def compute_chunk(self, batch: pa.RecordBatch) -> Any: ...

    @abc.abstractmethod
    def reduce(self, chunks: list[Any]) -> Any: ...

    def output_type(self, schema: pa.Schema) -> pa.DataType:
        """The type of the aggregated values for data with the given schema.

        By default the aggregation is computed on an empty
        batch and the type of the result is used.
        """
        empty = pa.RecordBatch.from_pylist([], schema=schema)
        return self.reduce([self.compute_chunk(empty)]).type


class SimpleAggregation(Aggregation):
    """Provide a base implementation for simple aggregations like min,max,sum.

    Simple aggregations are those where the function applied to compute
    intermediate results for a single chunk of data is the same as the function
    applied to combine the intermediate results into the final.

    For example ``sum([1, 2, 3])`` is the same as ``sum([sum([1, 2]), 3])``.
    """

    @abc.abstractmethod
    def _aggregate(self, data: Any) -> Any: ...

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        return self._aggregate(batch.column(self.column))

    def reduce(self, chunks: list[Any]) -> pa.Scalar:
        return self._aggregate(_to_array(chunks))


class SumAggregation(SimpleAggregation):
    """Compute the sum of an aggregated column."""

    def _aggregate(self, data: Any) -> Any:
        return pc.sum(data)


class MinAggregation(SimpleAggregation):
    """Compute the min of an aggregated column."""

    def _aggregate(self, data: Any) -> Any:
        return pc.min(data)


class MaxAggregation(SimpleAggregation):
    """Compute the max of an aggregated column."""

    def _aggregate(self, data: Any) -> Any:
        return pc.max(data)


class CountAggregation(Aggregation):
    """Compute the count of non null values of an aggregated column.

    This is based on computing the counts for each intermediate batch
    and then sum them to compute the final result.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        """Compute the count of the column in a single batch."""
        return pc.count(batch.column(self.column))

    def reduce(self, chunks: list[Any]) -> pa.Scalar:
        """Sum the counts of all intermediate results to the final count."""
        return pc.sum(_to_array(chunks))


class CountRowsAggregation(Aggregation):
    """Count the rows of each group, including those with null values."""

    def __init__(self) -> None:
        super().__init__(None)

    def __str__(self) -> str:
        return "CountRowsAggregation()"

    __repr__ = __str__

    def compute_chunk(self, batch: pa.RecordBatch) -> int:
        return batch.num_rows

    def reduce(self, chunks: list[int]) -> pa.Scalar:
        return pa.scalar(sum(chunks), type=pa.int64())


class CountDistinctAggregation(Aggregation):
    """Count the distinct non null values of an aggregated column.

    Distinct counts can't be summed across batches, as the same
    value might appear in more than one batch. Each batch contributes
    its unique values and the final count is computed on their union.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> pa.Array:
        return pc.unique(batch.column(self.column))

    def reduce(self, chunks: list[pa.Array]) -> pa.Scalar:
        return pc.count_distinct(pa.concat_arrays(chunks))


class FirstAggregation(Aggregation):
    """Take the value of the first row of each group.

    The first row is the first one encountered in the
    original order of the data.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> pa.Scalar:
        return batch.column(self.column)[0]

    def reduce(self, chunks: list[pa.Scalar]) -> pa.Scalar:
        return chunks[0]

    def output_type(self, schema: pa.Schema) -> pa.DataType:
        return schema.field(self.column).type


class MeanAggregation(Aggregation):
    """Compute the mean of an aggregated column.

    This is based by computing count and sum of the column
    for each intermediate batch and then dividing
    the sum of all intermediate results by the count
    of all intermediate results.
    The mean is always a floating point value.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        """Compute the count and sum of the column in a single batch."""
        column = batch.column(self.column)
        return (pc.count(column), pc.sum(column))

    def reduce(self, chunks: list[Any]) -> pa.Scalar:
        """Compute the mean of the column from the intermediate sums and counts."""
        count = pc.sum(_to_array([chunk[0] for chunk in chunks]))
        total = pc.sum(_to_array([chunk[1] for chunk in chunks]))
        return pc.divide(pc.cast(total, pa.float64()), count)


class FunctionAggregation(Aggregation):
    """Reduce a column with an arbitrary function.

    The function receives all the values of the group,
    in their original order, as a :class:`pyarrow.Array`
    and must return a single value.

    >>> import pyarrow.compute as pc
    >>> FunctionAggregation("nb_births", pc.stddev)
    FunctionAggregation(nb_births, pyarrow.compute.stddev)
    """

    def __init__(
        self,
        column: str,
        func: Callable[[pa.Array], Any],
        result_type: pa.DataType | None = None,
    ) -> None:
        """
        :param column: The column to aggregate.
        :param func: The reducing function.
        :param result_type: The type of the values returned by ``func``,
                            when omitted it's detected calling ``func``
                            on an empty array.
        """
        super().__init__(column)
        self.func = func
        self.result_type = result_type

    def __str__(self) -> str:
        return f"FunctionAggregation({self.column}, {utils.inspect.get_qualname(self.func)})"

    __repr__ = __str__

    def compute_chunk(self, batch: pa.RecordBatch) -> pa.Array:
        return batch.column(self.column)

    def reduce(self, chunks: list[pa.Array]) -> Any:
        return self.func(pa.concat_arrays(chunks))

    def output_type(self, schema: pa.Schema) -> pa.DataType:
        if self.result_type is not None:
            return self.result_type
        result = self.func(pa.array([], type=schema.field(self.column).type))
        if not isinstance(result, (pa.Scalar, pa.Array)):
            result = pa.scalar(result)
        return result.type
