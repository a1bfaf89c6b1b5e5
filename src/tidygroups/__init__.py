"""tidygroups

Grouped aggregation for Apache Arrow tables.

tidygroups allows to group tabular data by one or more columns,
summarize each group to a single row, compute columns that
depend on the rows of the same group and ungroup the data again.

The library is constituted by multiple components, each isolated
within its own package and each self documented:

* The Compute Engine, the plan nodes that group, aggregate and mutate data.
* The Table API, :class:`GroupedTable`, which tracks grouping keys
  and how they change across operations.

For example, to compute the births per sex and year:

>>> import pyarrow as pa
>>> from tidygroups import GroupedTable
>>> from tidygroups.compute import SumAggregation
>>> births = GroupedTable(pa.table({
...     "sex": ["F", "F", "M"],
...     "year": [2020, 2020, 2021],
...     "nb_births": [10, 20, 15],
... }))
>>> totals = births.group(["sex", "year"]).aggregate(
...     {"nb": SumAggregation("nb_births")}, drop="drop"
... )
>>> print(totals)
sex | year | nb
--- | ---- | --
F   | 2020 | 30
M   | 2021 | 15
"""

from . import compute, config, errors
from .table import GroupedTable, group, ungroup

__all__ = ("compute", "config", "errors", "GroupedTable", "group", "ungroup")
