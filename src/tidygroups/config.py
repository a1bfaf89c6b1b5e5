"""Library wide options.

Options are stored in a single module level :data:`options`
object, which is read by the operations every time they are invoked,
so changing an option takes effect immediately::

    from tidygroups import config
    config.options.inform_residual_groups = False

For temporary changes, like in tests, :func:`option_context`
restores the previous values on exit:

>>> with option_context(max_display_rows=5):
...     options.max_display_rows
5
>>> options.max_display_rows
20
"""

import contextlib
import logging
import os
from typing import Any, Iterator

log = logging.getLogger(__name__)

INFORM_ENV_VAR = "TIDYGROUPS_INFORM_RESIDUAL_GROUPS"

_FALSE_VALUES = ("0", "false", "no", "off")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


class Options:
    """Options that tune the behavior of tidygroups.

    * ``inform_residual_groups``: log a diagnostic when an aggregation
      leaves the result still grouped by some of the keys.
    * ``max_display_rows``: how many rows are rendered when a
      table is converted to a string.
    """

    def __init__(self) -> None:
        self.inform_residual_groups = _env_flag(INFORM_ENV_VAR, True)
        self.max_display_rows = 20

    def __repr__(self) -> str:
        return (
            f"Options(inform_residual_groups={self.inform_residual_groups}, "
            f"max_display_rows={self.max_display_rows})"
        )


options = Options()


@contextlib.contextmanager
def option_context(**overrides: Any) -> Iterator[Options]:
    """Temporarily override one or more options.

    :param overrides: The options to override in the form of ``name=value``.
    """
    previous = {}
    for name, value in overrides.items():
        if not hasattr(options, name):
            raise AttributeError(f"Unknown option: {name}")
        previous[name] = getattr(options, name)
        setattr(options, name, value)
    log.debug("Overriding options %s", overrides)
    try:
        yield options
    finally:
        for name, value in previous.items():
            setattr(options, name, value)
