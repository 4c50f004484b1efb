"""Flag Store: the substrate every other component reads and writes.

All public names are re-exported here::

    from flagresolve.core.flags import FlagState, FlagStore, FlagSnapshot
"""

from flagresolve.core.flags.store import FlagSnapshot, FlagState, FlagStore

__all__ = [
    "FlagSnapshot",
    "FlagState",
    "FlagStore",
]
