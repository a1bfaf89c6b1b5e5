"""Query plan nodes that implement filtering of rows.

Filtering never looks at groups: each row is kept
or discarded only based on the predicate, so a grouped
table is filtered exactly like an ungrouped one.
"""

from .base import QueryPlanNode
from .expressions import Expression


class FilterNode(QueryPlanNode):
    """Keep only the rows for which a predicate is true.

    The predicate is evaluated on each batch and must
    produce a boolean array with one value for each row.
    Rows where the predicate is ``false`` or ``null`` are discarded.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidygroups.compute import col, lit, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"year": [2019, 2020, 2021]})
    >>> predicate = FunctionCallExpression(pc.greater, col("year"), lit(2019))
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data)).batches())
    pyarrow.RecordBatch
    year: int64
    ----
    year: [2020,2021]
    """

    def __init__(self, expression: Expression, child: QueryPlanNode) -> None:
        """
        :param expression: The predicate, like ``pc.greater(col("year"), lit(2019))``.
        :param child: The node emitting the rows to filter.
        """
        self.expression = expression
        self.child = child

    def __str__(self) -> str:
        return f"FilterNode(filter={self.expression}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit each batch of the child with only the matching rows.

        Batches are filtered independently, the number of
        batches emitted is the same as the child.
        """
        for batch in self.child.batches():
            yield batch.filter(self.expression.apply(batch))
