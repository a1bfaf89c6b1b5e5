"""Base classes and interfaces for the compute engine

This module defines the components necessary to
describe how grouped data is transformed: the plan
nodes that produce data and the expressions that
compute new columns out of it.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa


class QueryPlanNode(abc.ABC):
    """A node of an execution plan.

    Grouped operations are represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the last one.

    For example aggregating the data of a table
    would involve two nodes::

        PyArrowTableDataSource -> AggregateNode(keys, aggregations)

    The data source is a child of the aggregate node.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.

    The base `QueryPlanNode` class does nothing
    and purely acts as the interface that all nodes
    must implement. Actual work will be done
    in the subclasses.

    For example a node that forwards the data
    after logging how many rows it received could be::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    log.debug("Received %s rows", b.num_rows)
                    yield b

            def __str__(self):
                return f"DebugDataNode({self.child})"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node.

        Usually this happens by consuming data from the
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions compute new data out of the columns
    of a :class:`pyarrow.RecordBatch`. When mutating
    grouped data the batch an expression receives
    only contains the rows of a single group,
    so ``pc.sum(col("x"))`` is the total of the group.

    Applying an expression results either in a :class:`pyarrow.Array`
    with one value for each row of the batch, or in a
    :class:`pyarrow.Scalar` when the expression reduces the data.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Apply the expression to a RecordBatch.

        An expression summing two columns might look like::

            class SumExpression(Expression):
                def __init__(self, lcol, rcol):
                    self.lcol = lcol  # left column name
                    self.rcol = rcol  # right column name

                def apply(self, batch):
                    return pyarrow.compute.add(
                        batch[self.lcol],
                        batch[self.rcol]
                    )
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)


class ColumnRef(Expression):
    """References a column in a record batch.

    When applied to a record batch returns the data for
    the referenced column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value.

    Applying a literal always returns the same scalar,
    regardless of the batch it is applied to.
    """

    def __init__(self, value: Any) -> None:
        """
        :param value: The constant value, converted to a :class:`pyarrow.Scalar`.
        """
        self.value = value if isinstance(value, pa.Scalar) else pa.scalar(value)

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        return self.value

    def __str__(self) -> str:
        return f"Literal({self.value.as_py()!r})"


col = ColumnRef
lit = Literal
