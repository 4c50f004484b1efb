"""Resolver Engine: snapshot-per-pass fixed-point iteration.

All public names are re-exported here::

    from flagresolve.core.resolver import ResolverEngine, Resolution
"""

from flagresolve.core.resolver.engine import ResolverEngine
from flagresolve.core.resolver.explain import Derivation, Explanation, explain_flag
from flagresolve.core.resolver.models import (
    CompatNotice,
    PassRecord,
    Resolution,
    ResolverState,
)

__all__ = [
    "CompatNotice",
    "Derivation",
    "Explanation",
    "PassRecord",
    "Resolution",
    "ResolverEngine",
    "ResolverState",
    "explain_flag",
]
