"""Declared invariants checked against a converged flag snapshot.

- ``SupersetConstraint``: every enabled member of a *required* family must
  also be an enabled member of a *supported* family (e.g. every curve the
  application asks for must be one the builtin arithmetic was built with).
- ``MutualExclusion``: two flags that must never both be enabled.

Constraints only read the snapshot; they return ``Finding`` objects and
leave raising to the validator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from flagresolve.core.rules import Expression, as_expression
from flagresolve.core.rules.expressions import FlagLookup
from flagresolve.exceptions import RuleDefinitionError


class FindingKind(Enum):
    """Finding categories, in the order the validator reports them."""

    UNSUPPORTED_SUBSET = "unsupported-subset"
    MUTUAL_EXCLUSION = "mutual-exclusion"
    UNSATISFIABLE_REQUEST = "unsatisfiable-request"


@dataclass(frozen=True)
class Finding:
    """One validator finding.

    Attributes:
        kind: Category of the violated invariant.
        subject: Name of the violated constraint or requested capability.
        message: Human-readable diagnosis.
        flags: Every offending flag (or provider-path description).
    """

    kind: FindingKind
    subject: str
    message: str
    flags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "subject": self.subject,
            "message": self.message,
            "flags": list(self.flags),
        }


@dataclass(frozen=True)
class FlagFamily:
    """A named group of related flags keyed by member (e.g. curve name)."""

    name: str
    members: tuple[tuple[str, str], ...]

    @classmethod
    def of(cls, name: str, members: Mapping[str, str]) -> FlagFamily:
        return cls(name, tuple(sorted(members.items())))

    def flag_for(self, member: str) -> str | None:
        for key, flag in self.members:
            if key == member:
                return flag
        return None

    def enabled_members(self, snapshot: FlagLookup) -> list[str]:
        return [key for key, flag in self.members if snapshot.is_enabled(flag)]


@dataclass(frozen=True)
class SupersetConstraint:
    """``enabled(required) ⊆ enabled(supported)``, member-wise.

    Attributes:
        name: Constraint label used in findings.
        required: Family whose enabled members must be supported.
        supported: Family declaring what is supported.
        when: Optional guard; the constraint only applies while it holds.
    """

    name: str
    required: FlagFamily
    supported: FlagFamily
    when: Expression | None = None

    def __post_init__(self) -> None:
        if self.when is not None:
            object.__setattr__(self, "when", as_expression(self.when))

    def findings(self, snapshot: FlagLookup) -> list[Finding]:
        if self.when is not None and not self.when.evaluate(snapshot):
            return []
        out: list[Finding] = []
        for member in self.required.enabled_members(snapshot):
            required_flag = self.required.flag_for(member)
            supported_flag = self.supported.flag_for(member)
            if supported_flag is not None and snapshot.is_enabled(supported_flag):
                continue
            expected = supported_flag or f"<no {self.supported.name} member>"
            out.append(
                Finding(
                    kind=FindingKind.UNSUPPORTED_SUBSET,
                    subject=self.name,
                    message=(
                        f"{member!r} is required by {required_flag} but missing from "
                        f"{self.supported.name} (enable {expected})"
                    ),
                    flags=tuple(f for f in (required_flag, supported_flag) if f),
                )
            )
        return out


@dataclass(frozen=True)
class MutualExclusion:
    """Two flags that must never both be enabled."""

    first: str
    second: str
    rationale: str = ""

    def __post_init__(self) -> None:
        if self.first == self.second:
            raise RuleDefinitionError(f"{self.first} cannot exclude itself")

    @property
    def name(self) -> str:
        return f"{self.first} ^ {self.second}"

    def findings(self, snapshot: FlagLookup) -> list[Finding]:
        if not (snapshot.is_enabled(self.first) and snapshot.is_enabled(self.second)):
            return []
        message = f"{self.first} and {self.second} cannot both be enabled"
        if self.rationale:
            message += f": {self.rationale}"
        return [
            Finding(
                kind=FindingKind.MUTUAL_EXCLUSION,
                subject=self.name,
                message=message,
                flags=(self.first, self.second),
            )
        ]
