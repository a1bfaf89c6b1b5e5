"""Exceptions raised by tidygroups.

All the errors are raised immediately when an operation is
invoked with an invalid request and never leave a partially
computed table behind: tables are immutable values, so the
input of the failed operation is still valid and usable.
"""

from typing import Any


class GroupingError(Exception):
    """Base class for all errors raised by tidygroups."""

    pass


class InvalidSpec(GroupingError, ValueError):
    """The grouping, aggregation or mutation request is invalid.

    Raised when a grouping key references a column that doesn't
    exist or is repeated, when an aggregation output name collides
    with a grouping key, or when a mutation doesn't return one
    value for each row of the group.
    """

    pass


class EmptyGroupKey(InvalidSpec):
    """Grouping by zero columns was requested.

    An ungrouped table is expressed by :meth:`GroupedTable.ungroup`,
    grouping by nothing is always rejected.
    """

    pass


class GroupComputationError(GroupingError):
    """A reducer or a mutation failed while computing a single group.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, column: str, group_key: tuple[Any, ...], message: str) -> None:
        """
        :param column: The output column that was being computed.
        :param group_key: The values of the grouping keys for the failing group.
        :param message: Description of the failure.
        """
        self.column = column
        self.group_key = group_key
        super().__init__(f"Failed computing {column!r} for group {group_key!r}: {message}")
