"""An order-independent collection of implication rules.

Rules are evaluated, not ordered: iteration always yields rules sorted by
their content-derived identifier, whatever order they were registered in.
A rule set is populated once (typically by a rule table module) and then
frozen, after which any number of resolutions may share it read-only.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Iterator

from flagresolve.core.rules.expressions import Expression, as_expression
from flagresolve.core.rules.models import Rule, RuleCategory
from flagresolve.exceptions import RuleDefinitionError


class RuleSet:
    """Registry of rules keyed by identifier.

    Args:
        rules: Initial rules to register.
        version: Version label of the table these rules come from.
    """

    def __init__(self, rules: Iterable[Rule] = (), *, version: str | None = None) -> None:
        self._rules: dict[str, Rule] = {}
        self._frozen = False
        self.version = version
        self.extend(rules)

    def add_rule(
        self,
        antecedent: Expression | str,
        consequent: str,
        category: RuleCategory = RuleCategory.HARD_DEPENDENCY,
        rationale: str = "",
    ) -> Rule:
        """Build and register a rule.

        Args:
            antecedent: Expression object or condition text
                (``"A && (B || !C)"``).
            consequent: Flag to enable when the antecedent holds.
            category: Rationale category.
            rationale: Free-text explanation shown in notices and listings.

        Returns:
            The registered ``Rule``.

        Raises:
            RuleDefinitionError: On malformed or self-contradicting rules,
                duplicates, or when the set is frozen.
        """
        rule = Rule(
            antecedent=as_expression(antecedent),
            consequent=consequent,
            category=category,
            rationale=rationale,
        )
        return self.add(rule)

    def add(self, rule: Rule) -> Rule:
        if self._frozen:
            raise RuleDefinitionError("Rule set is frozen; cannot add rules")
        if rule.rule_id in self._rules:
            raise RuleDefinitionError(f"Duplicate rule: {rule.rule_id}")
        self._rules[rule.rule_id] = rule
        return rule

    def extend(self, rules: Iterable[Rule]) -> None:
        for rule in rules:
            self.add(rule)

    def freeze(self) -> RuleSet:
        """Make the set read-only. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def rules_for(self, flag: str) -> list[Rule]:
        """Rules whose consequent is ``flag``."""
        return [r for r in self if r.consequent == flag]

    def by_category(self, category: RuleCategory) -> list[Rule]:
        return [r for r in self if r.category is category]

    def grouped(self) -> dict[str, list[Rule]]:
        """Rules grouped by consequent flag."""
        groups: dict[str, list[Rule]] = defaultdict(list)
        for rule in self:
            groups[rule.consequent].append(rule)
        return dict(groups)

    @property
    def internal_flags(self) -> frozenset[str]:
        """Flags produced by at least one internal-alias rule."""
        return frozenset(r.consequent for r in self._rules.values() if r.internal)

    @property
    def flags(self) -> frozenset[str]:
        """Every flag mentioned by any rule."""
        out: set[str] = set()
        for rule in self._rules.values():
            out.add(rule.consequent)
            out |= rule.antecedent.flags()
        return frozenset(out)

    def __iter__(self) -> Iterator[Rule]:
        return iter([self._rules[k] for k in sorted(self._rules)])

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, Rule) and self._rules.get(item.rule_id) == item

    def __repr__(self) -> str:
        return f"RuleSet({len(self._rules)} rules, version={self.version!r})"
