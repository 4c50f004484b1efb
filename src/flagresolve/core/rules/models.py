"""Rule and rule-category definitions.

A rule is a declarative implication: if the antecedent holds over the
previous pass's snapshot, enable the consequent flag. Rules carry no side
effects beyond that consequent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from flagresolve.core.rules.expressions import Expression
from flagresolve.exceptions import RuleDefinitionError


class RuleCategory(Enum):
    """Why a rule exists; drives how its auto-enables are reported.

    - **HARD_DEPENDENCY**: the consequent is genuinely required.
    - **LEGACY_COMPAT**: the consequent is enabled only to keep an earlier
      configuration convention working; every firing is reported as a notice.
    - **INTERNAL_ALIAS**: the consequent is an implementation-detail flag that
      is not part of the public resolved contract.
    """

    HARD_DEPENDENCY = "hard-dependency"
    LEGACY_COMPAT = "legacy-compat"
    INTERNAL_ALIAS = "internal-alias"


@dataclass(frozen=True)
class Rule:
    """An implication ``antecedent -> enable(consequent)``.

    The identifier is derived from the rule's content, not from its
    registration position, so reports do not depend on table order.

    Raises:
        RuleDefinitionError: If the consequent appears negated in its own
            antecedent (the rule would contradict itself once it fired).
    """

    antecedent: Expression
    consequent: str
    category: RuleCategory = RuleCategory.HARD_DEPENDENCY
    rationale: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.consequent:
            raise RuleDefinitionError("Rule consequent must be a flag name")
        if self.consequent in self.antecedent.negated_flags():
            raise RuleDefinitionError(
                f"Rule enabling {self.consequent} requires {self.consequent} "
                f"to be disabled: {self.antecedent}"
            )

    @property
    def rule_id(self) -> str:
        return f"{self.consequent} <= {self.antecedent}"

    @property
    def internal(self) -> bool:
        return self.category is RuleCategory.INTERNAL_ALIAS

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.rule_id}"
