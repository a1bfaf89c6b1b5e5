"""Expressions executed by compute engine nodes.

Filters need a ``predicate``, an expression that
returns ``true`` or ``false`` for each row.

Mutations need an expression that computes the values
of a column for the rows of a group, for example
``nb_births / sum(nb_births)``.

Both can be built combining compute functions
on columns and literals through :class:`FunctionCallExpression`.
"""

from typing import Any, Callable

import pyarrow as pa

from .. import utils
from .base import Expression


def apply_expression_if_needed(batch: pa.RecordBatch, o: Any) -> Any:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    For example the share of each row over the total
    of its group::

        FunctionCallExpression(
            pc.divide,
            ColumnRef("nb_births"),
            FunctionCallExpression(pc.sum, ColumnRef("nb_births"))
        )

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidygroups.compute import col
    >>> batch = pa.record_batch({"x": [1.0, 3.0]})
    >>> FunctionCallExpression(pc.divide, col("x"), FunctionCallExpression(pc.sum, col("x"))).apply(batch).to_pylist()
    [0.25, 0.75]
    """

    def __init__(self, func: Callable[..., Any], *args: Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Invoke the function resolving all arguments on the recordbatch.

        When the function arguments are expressions themselves,
        they are applied on the provided recordbatch first
        and the resulting data is passed to the function.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args)
