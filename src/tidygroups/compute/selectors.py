"""Apply the same computation across multiple columns.

Frequently the same aggregation has to be computed
for many columns, like summing all the numeric columns of a table.
Instead of writing one aggregation for each column,
an :class:`Across` describes which columns to pick
and which functions to apply to them::

    Across(
        ColumnSelector.by_type(pyarrow.types.is_integer),
        {"sum": SumAggregation, "max": MaxAggregation},
    )

Against a table with ``nb_births`` and ``nb_deaths`` integer columns,
would expand to ``nb_births_sum``, ``nb_births_max``,
``nb_deaths_sum`` and ``nb_deaths_max``.

Columns can be picked by name or by type,
the two cases are different constructors of the same
:class:`ColumnSelector` and are resolved only when the
selector is matched against the schema of the data.
"""

from typing import Any, Callable, Iterable

import pyarrow as pa

from .. import utils
from ..errors import InvalidSpec


class ColumnSelector:
    """Choose a set of columns of a schema.

    Selectors should be built through :meth:`by_name` or :meth:`by_type`.

    >>> import pyarrow as pa
    >>> schema = pa.schema([("sex", pa.string()), ("year", pa.int64()), ("n", pa.int32())])
    >>> ColumnSelector.by_type(pa.types.is_integer).select(schema)
    ['year', 'n']
    >>> ColumnSelector.by_name("n", "sex").select(schema)
    ['n', 'sex']
    """

    def __init__(
        self,
        names: tuple[str, ...] | None = None,
        predicate: Callable[[pa.DataType], bool] | None = None,
    ) -> None:
        if (names is None) == (predicate is None):
            raise ValueError("A selector requires either names or a type predicate")
        self.names = names
        self.predicate = predicate

    @classmethod
    def by_name(cls, *names: str) -> "ColumnSelector":
        """Select columns by their name, in the given order."""
        return cls(names=names)

    @classmethod
    def by_type(cls, predicate: Callable[[pa.DataType], bool]) -> "ColumnSelector":
        """Select the columns whose type satisfies the predicate, in schema order.

        :param predicate: A function receiving a :class:`pyarrow.DataType`,
                          like :func:`pyarrow.types.is_floating`.
        """
        return cls(predicate=predicate)

    def __str__(self) -> str:
        if self.names is not None:
            return f"ColumnSelector.by_name({', '.join(self.names)})"
        return f"ColumnSelector.by_type({utils.inspect.get_qualname(self.predicate)})"

    __repr__ = __str__

    def select(self, schema: pa.Schema, exclude: Iterable[str] = ()) -> list[str]:
        """Resolve the columns selected in the schema.

        :param schema: The schema of the data.
        :param exclude: Columns that must never be selected.
        """
        exclude = set(exclude)
        if self.names is not None:
            missing = [n for n in self.names if n not in schema.names]
            if missing:
                raise InvalidSpec(f"Selected columns not found in table: {', '.join(missing)}")
            return [n for n in self.names if n not in exclude]
        return [
            field.name
            for field in schema
            if field.name not in exclude and self.predicate(field.type)
        ]


class Across:
    """Apply one or more functions to each of the selected columns.

    Each function is a factory that receives a column
    name and returns what has to be computed for that column,
    an :class:`Aggregation` when summarizing or an
    :class:`Expression` when mutating.

    >>> import pyarrow as pa
    >>> from tidygroups.compute import MeanAggregation
    >>> across = Across(ColumnSelector.by_name("a", "b"), {"mean": MeanAggregation})
    >>> across.expand(pa.schema([("a", pa.int64()), ("b", pa.float64())]))
    {'a_mean': MeanAggregation(a), 'b_mean': MeanAggregation(b)}
    """

    def __init__(
        self,
        selector: ColumnSelector,
        functions: dict[str, Callable[[str], Any]],
        names: str = "{col}_{fn}",
    ) -> None:
        """
        :param selector: The columns to apply the functions to.
        :param functions: The {"name": factory} of functions to apply.
        :param names: Template for the resulting column names,
                      ``{col}`` and ``{fn}`` are replaced by the
                      column and the function names.
        """
        if not functions:
            raise InvalidSpec("At least one function must be applied across columns")
        self.selector = selector
        self.functions = functions
        self.names = names

    def __str__(self) -> str:
        return f"Across({self.selector}, functions={list(self.functions)}, names={self.names!r})"

    __repr__ = __str__

    def expand(self, schema: pa.Schema, exclude: Iterable[str] = ()) -> dict[str, Any]:
        """Build one spec for each selected column and function.

        :param schema: The schema of the data the specs will be applied to.
        :param exclude: Columns that must not be selected, like grouping keys.
        """
        specs = {}
        for column in self.selector.select(schema, exclude):
            for fn_name, factory in self.functions.items():
                name = self.names.format(col=column, fn=fn_name)
                if name in specs:
                    raise InvalidSpec(f"Column name {name!r} is generated more than once")
                specs[name] = factory(column)
        return specs
