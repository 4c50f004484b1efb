"""Static, versioned rule tables.

``default_table()`` returns the shared, frozen legacy crypto table. It is
built on first use and then reused read-only by every resolution.
"""

from __future__ import annotations

from functools import lru_cache

from flagresolve.tables.base import RuleTable
from flagresolve.tables.legacy_crypto import TABLE_NAME, TABLE_VERSION, build_table


@lru_cache(maxsize=1)
def default_table() -> RuleTable:
    return build_table()


__all__ = [
    "RuleTable",
    "TABLE_NAME",
    "TABLE_VERSION",
    "build_table",
    "default_table",
]
