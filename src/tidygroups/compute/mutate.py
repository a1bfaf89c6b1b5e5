"""Query plan nodes that compute new columns within groups.

Differently from aggregations, mutations preserve the
number of rows: each row gets a value, but the value can depend on
the other rows of the same group.

For example computing the share of births of each
name over the total of births for the same sex::

    sex, name,  nb_births          sex, name,  nb_births, pct
    F,   Alice, 30                 F,   Alice, 30,        0.75
    M,   Bob,   5        ----->    M,   Bob,   5,         1.0
    F,   Clara, 10                 F,   Clara, 10,        0.25

Rows keep their original position, regardless of the
group they belong to.
"""

import logging
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import GroupComputationError, InvalidSpec
from .base import Expression, QueryPlanNode
from .grouping import group_row_indices

log = logging.getLogger(__name__)


class MutateNode(QueryPlanNode):
    """Compute columns evaluating expressions within each group.

    Each expression is applied to a batch containing only the
    rows of one group, so reductions like ``pc.sum`` compute
    the total of the group. Expressions that return a single value
    have that value repeated for every row of the group.

    Expressions are evaluated in order, so an expression
    can refer to columns computed by the previous ones.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidygroups.compute import col, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"k": ["a", "b", "a"], "v": [1, 2, 3]})
    >>> mutate = MutateNode(["k"], {"total": FunctionCallExpression(pc.sum, col("v"))},
    ...                     PyArrowTableDataSource(data))
    >>> next(mutate.batches())
    pyarrow.RecordBatch
    k: string
    v: int64
    total: int64
    ----
    k: ["a","b","a"]
    v: [1,2,3]
    total: [4,2,4]
    """

    def __init__(
        self,
        keys: list[str],
        mutations: dict[str, Expression],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns identifying the groups, ``[]`` means the whole data is one group.
        :param mutations: The dict {name: Expression} of columns to compute.
        :param child: The node emitting the data to be mutated.
        """
        self.keys = list(keys)
        self.mutations = mutations
        self.child = child

    def __str__(self) -> str:
        return f"MutateNode(keys={self.keys}, mutations={self.mutations}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Compute the mutations and emit the data with the new columns.

        As the rows of a group might be spread across multiple
        batches, all the batches of the child are combined
        before splitting them by group.

        The results of all groups are then put back
        in the original order of the rows.
        """
        batch = _combine_batches(list(self.child.batches()))

        # An empty table is still evaluated once,
        # so that the new columns exist in the result.
        groups = group_row_indices(batch, self.keys) or {(): []}

        mutated_groups: dict[str, list[pa.Table]] = {name: [] for name in self.mutations}
        rows_order = []
        for keyvalue, indices in groups.items():
            group_batch = batch.take(pa.array(indices, type=pa.int64()))
            for name, expression in self.mutations.items():
                try:
                    values = expression.apply(group_batch)
                except Exception as e:
                    raise GroupComputationError(name, keyvalue, str(e)) from e
                values = _fit_to_group(name, keyvalue, values, group_batch.num_rows)
                group_batch = _with_column(group_batch, name, values)
            for name in self.mutations:
                mutated_groups[name].append(
                    pa.table({name: group_batch.column(name)})
                )
            rows_order.extend(indices)

        # Groups were computed one after the other, so the rows
        # are sorted by group. Sorting by the original row index puts
        # each row back where it was.
        original_order = pc.sort_indices(pa.array(rows_order, type=pa.int64()))
        for name, tables in mutated_groups.items():
            try:
                mutated = pa.concat_tables(tables, promote_options="default")
            except (pa.ArrowTypeError, pa.ArrowInvalid) as e:
                raise InvalidSpec(
                    f"Mutation {name!r} returned values of different types for different groups: {e}"
                ) from e
            values = mutated.column(name).take(original_order).combine_chunks()
            batch = _with_column(batch, name, values)
        log.debug("Mutated %d rows in %d groups", batch.num_rows, len(groups))
        yield batch


def _combine_batches(batches: list[pa.RecordBatch]) -> pa.RecordBatch:
    """Concatenates multiple batches in a single one."""
    if len(batches) == 1:
        return batches[0]
    if not batches:
        return pa.record_batch({})
    combined = pa.Table.from_batches(batches).combine_chunks()
    return pa.RecordBatch.from_arrays(
        [column.combine_chunks() for column in combined.columns],
        names=combined.column_names,
    )


def _with_column(batch: pa.RecordBatch, name: str, values: pa.Array) -> pa.RecordBatch:
    """Replace the column with the given name or append it when missing."""
    names = list(batch.schema.names)
    arrays = list(batch.columns)
    if name in names:
        arrays[names.index(name)] = values
    else:
        names.append(name)
        arrays.append(values)
    return pa.RecordBatch.from_arrays(arrays, names=names)


def _fit_to_group(name: str, keyvalue: tuple[Any, ...], values: Any, size: int) -> pa.Array:
    """Make sure there is exactly one value for each row of the group.

    Single values are repeated for all the rows,
    while arrays of a different length are rejected.
    """
    if isinstance(values, pa.ChunkedArray):
        values = values.combine_chunks()
    elif isinstance(values, (list, tuple)):
        values = pa.array(values)
    elif not isinstance(values, (pa.Array, pa.Scalar)):
        values = pa.scalar(values)

    if isinstance(values, pa.Scalar):
        return pa.repeat(values, size)

    if len(values) != size:
        raise InvalidSpec(
            f"Mutation {name!r} returned {len(values)} values "
            f"for group {keyvalue!r} of {size} rows"
        )
    return values
