"""Resolver state machine and the converged ``Resolution`` record."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from flagresolve.core.flags import FlagSnapshot, FlagState


class ResolverState(Enum):
    """``IDLE -> ITERATING -> CONVERGED | FAILED_CONFLICT | FAILED_NON_TERMINATION``."""

    IDLE = "idle"
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED_CONFLICT = "failed-conflict"
    FAILED_NON_TERMINATION = "failed-non-termination"

    @property
    def terminal(self) -> bool:
        return self not in (ResolverState.IDLE, ResolverState.ITERATING)


@dataclass(frozen=True)
class PassRecord:
    """One iteration of the engine: the batch of flags it enabled."""

    number: int
    enabled: tuple[str, ...]
    fired: tuple[str, ...]


@dataclass(frozen=True)
class CompatNotice:
    """A flag auto-enabled for backward compatibility."""

    flag: str
    rule_id: str
    rationale: str
    pass_number: int

    @property
    def message(self) -> str:
        text = (
            f"{self.flag} was auto-enabled for backward compatibility with a "
            f"previous configuration convention (rule: {self.rule_id})"
        )
        if self.rationale:
            text += f": {self.rationale}"
        return text


@dataclass
class Resolution:
    """The converged outcome of one resolver run.

    Attributes:
        state: Always ``CONVERGED`` for a returned resolution; failures raise.
        flags: Frozen snapshot of the final flag store.
        passes: Productive passes in order (the final empty pass is omitted).
        provenance: ``{flag: rule ids}`` for every derived flag.
        explicit: ``{flag: source}`` for every user-set flag.
        notices: Legacy-compatibility auto-enables, in pass order.
        internal_flags: Flags derived in this run by internal-alias rules only.
            A flag also produced by a legacy or hard rule stays public.
        table_version: Version label of the rule set that was applied.
    """

    state: ResolverState
    flags: FlagSnapshot
    passes: list[PassRecord] = field(default_factory=list)
    provenance: dict[str, tuple[str, ...]] = field(default_factory=dict)
    explicit: dict[str, str] = field(default_factory=dict)
    notices: list[CompatNotice] = field(default_factory=list)
    internal_flags: frozenset[str] = frozenset()
    table_version: str | None = None

    @property
    def converged(self) -> bool:
        return self.state is ResolverState.CONVERGED

    def is_enabled(self, flag: str) -> bool:
        return self.flags.is_enabled(flag)

    def enabled_flags(self, include_internal: bool = True) -> list[str]:
        """Sorted enabled flags, optionally hiding internal aliases."""
        return sorted(
            f for f in self.flags.enabled
            if include_internal or f not in self.internal_flags
        )

    def derived_flags(self) -> list[str]:
        return sorted(self.provenance)

    def to_dict(self, include_internal: bool = True) -> dict[str, Any]:
        """Deterministic, JSON-serializable representation."""
        flags = {
            name: state
            for name, state in self.flags.to_dict().items()
            if include_internal or name not in self.internal_flags
        }
        return {
            "state": self.state.value,
            "table_version": self.table_version,
            "flags": flags,
            "derived": {
                name: list(rules)
                for name, rules in sorted(self.provenance.items())
                if include_internal or name not in self.internal_flags
            },
            "explicit": dict(sorted(self.explicit.items())),
            "notices": [
                {"flag": n.flag, "rule": n.rule_id, "pass": n.pass_number, "message": n.message}
                for n in self.notices
            ],
            "passes": [
                {"number": p.number, "enabled": list(p.enabled)} for p in self.passes
            ],
        }

    def as_input(self) -> dict[str, FlagState]:
        """The final state as a fresh input mapping (enabled and disabled only)."""
        return {
            name: self.flags[name]
            for name in self.flags
            if self.flags[name] is not FlagState.UNSET
        }
