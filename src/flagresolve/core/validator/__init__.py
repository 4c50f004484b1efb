"""Consistency Validator: post-convergence invariant checks.

All public names are re-exported here::

    from flagresolve.core.validator import ConsistencyValidator, MutualExclusion
"""

from flagresolve.core.validator.constraints import (
    Finding,
    FindingKind,
    FlagFamily,
    MutualExclusion,
    SupersetConstraint,
)
from flagresolve.core.validator.engine import ConsistencyValidator, raise_for_findings

__all__ = [
    "ConsistencyValidator",
    "Finding",
    "FindingKind",
    "FlagFamily",
    "MutualExclusion",
    "SupersetConstraint",
    "raise_for_findings",
]
