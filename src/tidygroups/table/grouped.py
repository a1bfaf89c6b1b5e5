"""The GroupedTable object itself."""

import logging
from typing import Any, Iterable, Self

import pyarrow as pa

from .. import config
from ..compute import (
    AggregateNode,
    Across,
    Aggregation,
    CountRowsAggregation,
    CSVDataSource,
    DropMode,
    Expression,
    FilterNode,
    MutateNode,
    PyArrowTableDataSource,
    SortNode,
    resolve_keys,
)
from ..compute.base import QueryPlanNode
from ..compute.datasources import DataSourceNode
from ..compute.grouping import group_row_indices, validate_keys
from ..errors import InvalidSpec
from ..utils import tabulate

log = logging.getLogger(__name__)


class GroupedTable:
    """Tabular data annotated with the columns it is grouped by.

    A GroupedTable is an immutable value: all the operations
    return a new GroupedTable and never modify the existing one,
    so a grouped table and the tables derived from it are
    always independently valid.

    An empty list of keys means the table is not grouped,
    in which case all its rows are treated as a single group.

    >>> import pyarrow as pa
    >>> from tidygroups.compute import SumAggregation
    >>> births = GroupedTable(pa.table({
    ...     "sex": ["F", "F", "M", "M"],
    ...     "year": [2020, 2021, 2020, 2021],
    ...     "nb_births": [10, 20, 30, 40],
    ... }))
    >>> by_sex = births.group(["sex"]).aggregate({"total": SumAggregation("nb_births")})
    >>> by_sex.keys
    ()
    >>> by_sex.to_arrow().to_pydict()
    {'sex': ['F', 'M'], 'total': [30, 70]}
    """

    def __init__(
        self,
        data: pa.Table | pa.RecordBatch | QueryPlanNode,
        keys: Iterable[str] = (),
        sort: bool = False,
    ) -> None:
        """
        :param data: The data of the table, a `pyarrow.Table`, a
                     `pyarrow.RecordBatch` or a compute engine node
                     that will be executed to get the data.
        :param keys: The columns the table is grouped by.
        :param sort: If the groups should be emitted sorted by keys
                     instead of in order of appearance.
        """
        if isinstance(data, QueryPlanNode):
            data = _collect(data)
        elif isinstance(data, pa.RecordBatch):
            data = pa.Table.from_batches([data])

        if not isinstance(data, pa.Table):
            raise ValueError(
                "Invalid input, expected a QueryPlanNode, a PyArrow Table or RecordBatch"
            )

        keys = tuple(keys) if not isinstance(keys, str) else keys
        self._table = data
        self._keys = validate_keys(data.column_names, keys) if keys else ()
        self._sort = sort

    @classmethod
    def read_csv(cls, filename: str, block_size: int | None = None) -> Self:
        """Load a CSV file in a new ungrouped table.

        :param filename: The path to a local CSV file.
        :param block_size: Size of the chunks the file is read in.
        """
        return cls(CSVDataSource(filename, block_size=block_size))

    @property
    def table(self) -> pa.Table:
        """The data of the table, regardless of grouping."""
        return self._table

    @property
    def keys(self) -> tuple[str, ...]:
        """The columns the table is grouped by."""
        return self._keys

    @property
    def is_grouped(self) -> bool:
        return bool(self._keys)

    @property
    def num_rows(self) -> int:
        return self._table.num_rows

    @property
    def column_names(self) -> list[str]:
        return self._table.column_names

    def to_arrow(self) -> pa.Table:
        """Return the data as a pyarrow.Table, grouping is discarded."""
        return self._table

    def group(self, keys: Iterable[str], *, add: bool = False, sort: bool = False) -> Self:
        """Group the table by one or more columns.

        No data is moved or copied, the returned table
        shares the data with this one and only differs
        for the grouping keys.

        :param keys: The columns to group by, in order.
                     The order decides which key is dropped first
                     by :meth:`aggregate`.
        :param add: Add the keys to the existing grouping
                    instead of replacing it.
        :param sort: Emit aggregated groups sorted by the keys
                     instead of in the order they first appear.
        """
        new_keys = validate_keys(self.column_names, keys)
        if add:
            new_keys = validate_keys(self.column_names, self._keys + new_keys)
        return self.__class__(self._table, new_keys, sort=sort)

    def ungroup(self) -> Self:
        """Remove the grouping, rows are left untouched."""
        return self.__class__(self._table)

    def aggregate(
        self,
        aggregations: dict[str, Aggregation] | None = None,
        *,
        across: Across | Iterable[Across] = (),
        drop: DropMode | str = DropMode.DROP_LAST,
    ) -> Self:
        """Reduce each group to a single row.

        The result has one row for each distinct combination
        of the grouping keys, with the key columns followed by
        one column for each aggregation.

        By default the last grouping key is dropped from the
        result, so aggregating a table grouped by ``(sex, year)``
        returns a table still grouped by ``sex``.
        When that happens a diagnostic is logged, as a second
        aggregation would aggregate by ``sex`` and not the whole table.

        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param across: Additional aggregations applied to multiple columns.
        :param drop: Which grouping keys the result keeps, see :class:`DropMode`.
        """
        drop = _drop_mode(drop)
        specs = self._expand_specs(aggregations, across)
        if not specs:
            raise InvalidSpec("At least one aggregation is required")

        for name, aggregation in specs.items():
            if not isinstance(aggregation, Aggregation):
                raise InvalidSpec(f"Aggregation {name!r} is not an Aggregation: {aggregation!r}")
            missing = [c for c in aggregation.columns if c not in self.column_names]
            if missing:
                raise InvalidSpec(f"Aggregation {name!r} reads missing columns: {', '.join(missing)}")

        collisions = [name for name in specs if name in self._keys]
        if collisions:
            raise InvalidSpec(f"Aggregations collide with grouping keys: {', '.join(collisions)}")

        node = AggregateNode(
            list(self._keys), specs, PyArrowTableDataSource(self._table), sort=self._sort
        )
        result = _collect(node)

        new_keys = resolve_keys(self._keys, drop)
        if drop is DropMode.DROP_LAST and new_keys and config.options.inform_residual_groups:
            log.warning(
                "aggregate() has grouped output by %s. "
                "Use drop='drop' to remove all grouping or drop='keep' to keep it.",
                ", ".join(new_keys),
            )
        return self.__class__(result, new_keys, sort=self._sort)

    def mutate(
        self,
        mutations: dict[str, Expression] | None = None,
        *,
        across: Across | Iterable[Across] = (),
    ) -> Self:
        """Compute columns using the rows of each group.

        Each expression is evaluated once per group against
        the rows of that group only, so ``pc.sum(col("nb_births"))``
        is the total of births of the group each row belongs to.

        The number and order of rows and the grouping keys
        are preserved.

        :param mutations: The dict {name: Expression} of columns to add or replace.
        :param across: Additional expressions applied to multiple columns.
        """
        specs = self._expand_specs(mutations, across)
        if not specs:
            raise InvalidSpec("At least one mutation is required")

        for name, expression in specs.items():
            if not isinstance(expression, Expression):
                raise InvalidSpec(f"Mutation {name!r} is not an Expression: {expression!r}")

        on_keys = [name for name in specs if name in self._keys]
        if on_keys:
            raise InvalidSpec(f"Grouping keys can't be mutated: {', '.join(on_keys)}")

        node = MutateNode(list(self._keys), specs, PyArrowTableDataSource(self._table))
        return self.__class__(_collect(node), self._keys, sort=self._sort)

    def filter(self, predicate: Expression) -> Self:
        """Keep only the rows matching the predicate.

        Rows are filtered regardless of the groups they belong to,
        the grouping keys are preserved.

        :param predicate: The expression representing the predicate,
                          for example ``year > 2020``.
        """
        node = FilterNode(predicate, PyArrowTableDataSource(self._table))
        return self.__class__(
            _collect(node, self._table.schema), self._keys, sort=self._sort
        )

    def arrange(self, keys: Iterable[str], descending: Iterable[bool] | None = None) -> Self:
        """Sort the rows by one or more columns.

        The whole table is sorted, groups are not taken
        into account. Sorting is stable.

        :param keys: The columns to sort by.
        :param descending: For each column if it should be sorted
                           in descending order, defaults to ascending.
        """
        keys = list(keys)
        missing = [k for k in keys if k not in self.column_names]
        if missing:
            raise InvalidSpec(f"Sorting keys not found in table: {', '.join(missing)}")
        descending = [False] * len(keys) if descending is None else list(descending)

        node = SortNode(keys, descending, PyArrowTableDataSource(self._table))
        return self.__class__(
            _collect(node, self._table.schema), self._keys, sort=self._sort
        )

    def n_groups(self) -> int:
        """Number of groups in the table, an ungrouped table is a single group."""
        if not self._keys:
            return 1
        return len(group_row_indices(self._table, self._keys))

    def group_keys(self) -> pa.Table:
        """The distinct combinations of the grouping keys.

        In the same order the groups would be aggregated.
        An ungrouped table has no key columns, so the result
        is a table without columns and without rows, even if
        :meth:`n_groups` counts the whole table as one group.
        """
        if not self._keys:
            return pa.schema([]).empty_table()
        groups = group_row_indices(self._table, self._keys)
        first_rows = pa.array([indices[0] for indices in groups.values()], type=pa.int64())
        result = self._table.select(list(self._keys)).take(first_rows)
        if self._sort:
            result = result.sort_by([(k, "ascending") for k in self._keys])
        return result

    def group_sizes(self) -> pa.Table:
        """The number of rows in each group, in the ``n`` column."""
        return self.aggregate({"n": CountRowsAggregation()}, drop=DropMode.DROP_ALL).to_arrow()

    def _expand_specs(
        self, specs: dict[str, Any] | None, across: Across | Iterable[Across]
    ) -> dict[str, Any]:
        """Merge explicit specs with those generated across columns."""
        expanded = dict(specs or {})
        if isinstance(across, Across):
            across = (across,)
        for item in across:
            for name, spec in item.expand(self._table.schema, exclude=self._keys).items():
                if name in expanded:
                    raise InvalidSpec(f"Column {name!r} is computed more than once")
                expanded[name] = spec
        return expanded

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GroupedTable):
            return NotImplemented
        return self._keys == other._keys and self._table.equals(other._table)

    def __repr__(self) -> str:
        return (
            f"GroupedTable(keys={list(self._keys)}, "
            f"columns={self.column_names}, rows={self.num_rows})"
        )

    def __str__(self) -> str:
        text = tabulate.tabulate(self._table, max_rows=config.options.max_display_rows)
        if self._keys:
            text = f"# Groups: {', '.join(self._keys)} [{self.n_groups()}]\n" + text
        return text


def group(table: pa.Table | pa.RecordBatch, keys: Iterable[str], *, sort: bool = False) -> GroupedTable:
    """Group a table by one or more columns.

    >>> import pyarrow as pa
    >>> group(pa.table({"sex": ["F", "M"], "n": [1, 2]}), ["sex"]).keys
    ('sex',)
    """
    return GroupedTable(table).group(keys, sort=sort)


def ungroup(grouped: GroupedTable) -> pa.Table:
    """Discard the grouping and return the rows as a plain pyarrow.Table."""
    return grouped.ungroup().to_arrow()


def _drop_mode(drop: DropMode | str) -> DropMode:
    try:
        return DropMode(drop)
    except ValueError as e:
        choices = ", ".join(repr(m.value) for m in DropMode)
        raise InvalidSpec(f"Invalid drop mode {drop!r}, expected one of {choices}") from e


def _collect(node: QueryPlanNode, schema: pa.Schema | None = None) -> pa.Table:
    """Execute a plan and gather all its data in a table."""
    batches = list(node.batches())
    if not batches and schema is None and isinstance(node, DataSourceNode):
        schema = node.poll_schema()
    return pa.Table.from_batches(batches, schema=schema)
