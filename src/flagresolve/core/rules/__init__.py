"""Rule Set: declarative implications from flag conditions to flag enables.

Submodules
----------
- ``expressions``: ``Flag``, ``Not``, ``AllOf``, ``AnyOf`` and the
  preprocessor-condition parser.
- ``models``: ``Rule`` and ``RuleCategory``.
- ``ruleset``: ``RuleSet``, the order-independent registry.
"""

from flagresolve.core.rules.expressions import (
    AllOf,
    AnyOf,
    Expression,
    Flag,
    Not,
    as_expression,
    parse_expression,
)
from flagresolve.core.rules.models import Rule, RuleCategory
from flagresolve.core.rules.ruleset import RuleSet

__all__ = [
    "AllOf",
    "AnyOf",
    "Expression",
    "Flag",
    "Not",
    "Rule",
    "RuleCategory",
    "RuleSet",
    "as_expression",
    "parse_expression",
]
