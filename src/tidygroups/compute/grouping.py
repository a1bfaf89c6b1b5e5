"""Grouping keys and how they change across operations.

Grouping a table doesn't move or copy any data,
it only attaches an ordered list of key columns to it.
The rows that share the same values for all the key
columns constitute a group.

What makes grouping tricky is what happens to the keys
after an aggregation. Aggregating a table grouped by
``(sex, year)`` produces one row for each ``(sex, year)``
combination, and by default the result is still grouped by ``sex``::

    sex, year, nb_births          sex, year, total
    F,   2020, 10                 F,   2020, 30
    F,   2020, 20      ----->     F,   2021, 5       grouped by (sex,)
    F,   2021, 5                  M,   2020, 7
    M,   2020, 7

Only the last key is peeled off, so a second aggregation
on the result would compute totals per ``sex``, and not
a grand total, unless the remaining groups are dropped explicitly.
"""

import enum
import logging
import math
from typing import Any, Iterable, Sequence

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import EmptyGroupKey, InvalidSpec

log = logging.getLogger(__name__)


class DropMode(enum.Enum):
    """Which grouping keys survive an aggregation.

    >>> DropMode("drop_last")
    <DropMode.DROP_LAST: 'drop_last'>
    """

    DROP_LAST = "drop_last"
    """Remove the last grouping key (the default)."""

    DROP_ALL = "drop"
    """Remove all the grouping keys."""

    KEEP = "keep"
    """Keep the same grouping keys as the input."""


def drop_last_key(keys: Sequence[str]) -> tuple[str, ...]:
    """Remove the last key of a grouping.

    >>> drop_last_key(("sex", "year"))
    ('sex',)
    >>> drop_last_key(("sex",))
    ()
    >>> drop_last_key(())
    ()
    """
    return tuple(keys[:-1])


def resolve_keys(keys: Sequence[str], drop: DropMode | str) -> tuple[str, ...]:
    """Compute the grouping keys of an aggregation result.

    :param keys: The grouping keys of the aggregated table.
    :param drop: The :class:`DropMode` or its string value.
    """
    drop = DropMode(drop)
    if drop is DropMode.DROP_LAST:
        return drop_last_key(keys)
    elif drop is DropMode.DROP_ALL:
        return ()
    return tuple(keys)


def validate_keys(column_names: Sequence[str], keys: Sequence[str]) -> tuple[str, ...]:
    """Check that keys can be used to group a table with the given columns.

    Keys must be at least one, must all reference existing
    columns and must not be repeated.

    :param column_names: The columns of the table being grouped.
    :param keys: The requested grouping keys.
    """
    if isinstance(keys, str):
        raise InvalidSpec(f"Grouping keys must be a sequence of column names, got {keys!r}")

    keys = tuple(keys)
    if not keys:
        raise EmptyGroupKey("At least one grouping key is required, use ungroup() to remove grouping")

    missing = [k for k in keys if k not in column_names]
    if missing:
        raise InvalidSpec(f"Grouping keys not found in table: {', '.join(missing)}")

    duplicates = sorted({k for k in keys if keys.count(k) > 1})
    if duplicates:
        raise InvalidSpec(f"Duplicate grouping keys: {', '.join(duplicates)}")

    return keys


def group_row_indices(
    batch: pa.RecordBatch | pa.Table, keys: Iterable[str]
) -> dict[tuple[Any, ...], list[int]]:
    """Find the rows of each group.

    Returns a mapping from the values of the keys to the
    indices of the rows holding those values.
    Groups appear in the order they are first encountered in
    the data and indices are in ascending order, so iterating
    over the result enumerates groups and their rows in the same
    order as they appear in the input.

    When there are no keys, all the rows belong to the single ``()`` group.

    >>> batch = pa.record_batch({"k": ["b", "a", "b"], "v": [1, 2, 3]})
    >>> group_row_indices(batch, ["k"])
    {('b',): [0, 2], ('a',): [1]}

    Null and NaN are regular key values, all the rows
    holding them belong to the same group:

    >>> batch = pa.record_batch({"k": [float("nan"), 1.0, None, float("nan"), None]})
    >>> group_row_indices(batch, ["k"])
    {(nan,): [0, 3], (1.0,): [1], (None,): [2, 4]}
    """
    keys = list(keys)
    if not keys:
        return {(): list(range(batch.num_rows))} if batch.num_rows else {}

    # Dictionary encoding finds the distinct values of each key
    # through Arrow hashing, rows are then grouped by the tuple
    # of dictionary indices instead of comparing python values.
    codes = []
    distinct_values = []
    for key in keys:
        column = batch.column(key)
        if isinstance(column, pa.ChunkedArray):
            column = column.combine_chunks()
        encoded = pc.dictionary_encode(column, null_encoding="encode")
        codes.append(encoded.indices.to_pylist())
        distinct_values.append([_canonical(v) for v in encoded.dictionary.to_pylist()])

    keyvalues: dict[tuple[int, ...], tuple[Any, ...]] = {}
    groups: dict[tuple[Any, ...], list[int]] = {}
    for row_index, code in enumerate(zip(*codes)):
        keyvalue = keyvalues.get(code)
        if keyvalue is None:
            keyvalue = keyvalues[code] = tuple(
                values[idx] for values, idx in zip(distinct_values, code)
            )
        groups.setdefault(keyvalue, []).append(row_index)

    log.debug("Found %d groups for keys %s in %d rows", len(groups), keys, batch.num_rows)
    return groups


_NAN = float("nan")


def _canonical(value: Any) -> Any:
    """Replace NaN with a single shared object.

    NaN never compares equal to itself, but python containers
    check identity first, so the same NaN object always
    finds itself in dictionaries and tuples. This keeps
    NaN keys of different batches in the same group.
    """
    if isinstance(value, float) and math.isnan(value):
        return _NAN
    return value
