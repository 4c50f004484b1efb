"""``RuleTable``: a versioned bundle of rules, capabilities and invariants.

A rule table is the unit that ships: changing dependency semantics means
shipping a new table version. Tables are built once and frozen, after which
any number of resolutions can share them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flagresolve.core.capabilities import CapabilityLayer
from flagresolve.core.rules import RuleSet
from flagresolve.core.validator import ConsistencyValidator


@dataclass
class RuleTable:
    """Everything a resolution needs besides the user's input.

    Attributes:
        name: Table name (e.g. ``"legacy-crypto"``).
        version: Table version; recorded in every resolution it produces.
        rules: Implication rules, including capability promotion rules.
        capabilities: Capability definitions.
        validator: Post-convergence invariants.
    """

    name: str
    version: str
    rules: RuleSet = field(default_factory=RuleSet)
    capabilities: CapabilityLayer = field(default_factory=CapabilityLayer)
    validator: ConsistencyValidator = field(default_factory=ConsistencyValidator)

    def __post_init__(self) -> None:
        if self.rules.version is None:
            self.rules.version = self.label

    @property
    def label(self) -> str:
        return f"{self.name}@{self.version}"

    def freeze(self) -> RuleTable:
        """Promote capabilities into rules and make every part read-only."""
        if not self.rules.frozen:
            self.rules.extend(self.capabilities.promotion_rules())
        self.rules.freeze()
        self.capabilities.freeze()
        self.validator.freeze()
        return self

    @property
    def frozen(self) -> bool:
        return self.rules.frozen
