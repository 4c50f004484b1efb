"""Derivation trees: why is a flag in the state it is in?

Walks a converged resolution's provenance backwards: a derived flag points at
the rules that enabled it, and each rule at the enabled flags its antecedent
tested. Explicit flags are leaves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flagresolve.core.flags import FlagState
from flagresolve.core.resolver.models import Resolution
from flagresolve.core.rules import Rule, RuleSet


@dataclass
class Derivation:
    """One rule that contributed to a flag, with its satisfied inputs."""

    rule: Rule
    inputs: list[Explanation] = field(default_factory=list)


@dataclass
class Explanation:
    """State of a flag and how it got there."""

    flag: str
    state: FlagState
    source: str | None = None
    derivations: list[Derivation] = field(default_factory=list)
    repeated: bool = False

    @property
    def derived(self) -> bool:
        return bool(self.derivations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "flag": self.flag,
            "state": self.state.value,
            "source": self.source,
            "repeated": self.repeated,
            "derivations": [
                {
                    "rule": d.rule.rule_id,
                    "category": d.rule.category.value,
                    "inputs": [i.to_dict() for i in d.inputs],
                }
                for d in self.derivations
            ],
        }


def explain_flag(resolution: Resolution, rules: RuleSet, flag: str) -> Explanation:
    """Build the derivation tree for ``flag``.

    Flags already expanded elsewhere in the tree are marked ``repeated``
    instead of being expanded again.
    """
    return _explain(resolution, rules, flag, set())


def _explain(resolution: Resolution, rules: RuleSet, flag: str, seen: set[str]) -> Explanation:
    node = Explanation(
        flag=flag,
        state=resolution.flags.state(flag),
        source=resolution.explicit.get(flag),
    )
    if flag in seen:
        node.repeated = True
        return node
    seen.add(flag)
    for rule_id in resolution.provenance.get(flag, ()):
        rule = rules.get(rule_id)
        if rule is None:
            continue
        inputs = [
            _explain(resolution, rules, name, seen)
            for name in sorted(rule.antecedent.positive_flags())
            if resolution.flags.is_enabled(name)
        ]
        node.derivations.append(Derivation(rule=rule, inputs=inputs))
    return node
