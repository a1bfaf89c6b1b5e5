"""Grouped tables built on top of the tidygroups compute engine.

Analyses frequently need to compute statistics per category,
like the births per sex and year, or to compute values
that depend on the other rows of the same category, like
the share of each name over the births of the same sex.

Both are expressed grouping a table by some key columns
and then either aggregating or mutating it::

    births.group(["sex", "year"]).aggregate({"total": SumAggregation("nb_births")})

The :class:`GroupedTable` keeps track of which columns the table
is grouped by and takes care of how grouping changes
after each operation, while the actual computation is
performed by the :mod:`tidygroups.compute` plan nodes.
"""

from .grouped import GroupedTable, group, ungroup

__all__ = ("GroupedTable", "group", "ungroup")
