"""Query plan nodes that perform sorting of data.

Arranging rows, like filtering them, ignores groups:
the whole data is sorted as a single sequence of rows.

Sorting is stable, rows that compare equal on all the
sorting keys keep their relative order, which is what makes
sorting by ``year`` after sorting by ``name`` produce rows
ordered by year and then by name.
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode

log = logging.getLogger(__name__)


class SortNode(QueryPlanNode):
    """Sort all the data emitted by the child by one or more columns.

    Rows are compared on the first key, ties are broken
    by the second key and so on.

    >>> import pyarrow as pa
    >>> from tidygroups.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"year": [2020, 2021, 2020], "n": [1, 2, 3]})
    >>> sort = SortNode(["year"], [True], PyArrowTableDataSource(data))
    >>> next(sort.batches())
    pyarrow.RecordBatch
    year: int64
    n: int64
    ----
    year: [2021,2020,2020]
    n: [2,1,3]
    """

    def __init__(
        self, keys: list[str], descending: list[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: The columns to sort by, the first one has precedence.
        :param descending: For each key, ``True`` to sort from the biggest value.
        :param child: The node emitting the rows to sort.
        """
        if len(keys) != len(descending):
            raise ValueError("Keys and descending must have the same length")

        self.sorting = [
            (key, "descending" if desc else "ascending")
            for key, desc in zip(keys, descending)
        ]
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the rows of the child in sorted order.

        Sorting needs to see every row, so all the batches of the
        child are loaded before anything is emitted.
        A single batch is sorted in place of building a table.
        """
        batches = list(self.child.batches())
        if not batches:
            return

        if len(batches) == 1:
            data = batches[0]
        else:
            # Batches share the schema, so they can be
            # wrapped in a table without copying their data.
            data = pa.Table.from_batches(batches)

        order = pc.sort_indices(data, sort_keys=self.sorting)
        log.debug("Sorting %d rows by %s", data.num_rows, self.sorting)
        result = data.take(order)
        if isinstance(result, pa.Table):
            yield from result.combine_chunks().to_batches()
        else:
            yield result
