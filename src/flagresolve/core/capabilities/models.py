"""Provider paths, capabilities, and the capability availability report.

A capability answers "can this operation be performed at all?" without the
caller caring who provides it. Each ``ProviderPath`` is one way of providing
it: a conjunction of flags that must be enabled, optionally with flags that
must not be (a library path that only applies when a driver layer is off).
A capability is available iff at least one of its paths holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, NamedTuple

from flagresolve.core.rules import AllOf, Expression, Flag, Not
from flagresolve.core.rules.expressions import FlagLookup
from flagresolve.exceptions import RuleDefinitionError


class ProviderKind(Enum):
    """Who supplies the implementation behind a provider path."""

    BUILTIN = "builtin"
    DRIVER = "driver"


@dataclass(frozen=True)
class ProviderPath:
    """One conjunction of flags that supplies a capability.

    Attributes:
        name: Path label, unique within its capability (e.g. ``"builtin"``,
            ``"psa-driver"``).
        requires: Flags that must all be enabled.
        excludes: Flags that must not be enabled.
        kind: Builtin software implementation or external driver.
    """

    name: str
    requires: frozenset[str]
    excludes: frozenset[str] = frozenset()
    kind: ProviderKind = ProviderKind.BUILTIN

    def __post_init__(self) -> None:
        object.__setattr__(self, "requires", frozenset(self.requires))
        object.__setattr__(self, "excludes", frozenset(self.excludes))
        if not self.requires:
            raise RuleDefinitionError(f"Provider path {self.name!r} requires no flags")
        overlap = self.requires & self.excludes
        if overlap:
            raise RuleDefinitionError(
                f"Provider path {self.name!r} both requires and excludes "
                f"{', '.join(sorted(overlap))}"
            )

    def holds(self, snapshot: FlagLookup) -> bool:
        return all(snapshot.is_enabled(f) for f in self.requires) and not any(
            snapshot.is_enabled(f) for f in self.excludes
        )

    def missing(self, snapshot: FlagLookup) -> list[str]:
        """Required flags that are not enabled."""
        return sorted(f for f in self.requires if not snapshot.is_enabled(f))

    def blocking(self, snapshot: FlagLookup) -> list[str]:
        """Excluded flags that are enabled."""
        return sorted(f for f in self.excludes if snapshot.is_enabled(f))

    def as_expression(self) -> Expression:
        terms: list[Expression] = [Flag(f) for f in sorted(self.requires)]
        terms.extend(Not(Flag(f)) for f in sorted(self.excludes))
        return terms[0] if len(terms) == 1 else AllOf.of(*terms)

    def describe(self) -> str:
        return f"{self.name} ({self.kind.value}): {self.as_expression()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "requires": sorted(self.requires),
            "excludes": sorted(self.excludes),
        }


def builtin(*flags: str, excludes: Iterable[str] = (), name: str = "builtin") -> ProviderPath:
    """Shorthand for a builtin-software provider path."""
    return ProviderPath(name, frozenset(flags), frozenset(excludes), ProviderKind.BUILTIN)


def driver(*flags: str, excludes: Iterable[str] = (), name: str = "driver") -> ProviderPath:
    """Shorthand for an accelerator/driver provider path."""
    return ProviderPath(name, frozenset(flags), frozenset(excludes), ProviderKind.DRIVER)


@dataclass(frozen=True)
class Capability:
    """A named predicate over provider paths.

    Attributes:
        name: Capability name (e.g. ``"ecdh"``).
        paths: Provider paths, any one of which suffices.
        promote_to: If set, the flag that internal-alias rules enable whenever
            a path holds, so that rules can depend on the capability.
        description: Human-readable summary.
    """

    name: str
    paths: tuple[ProviderPath, ...]
    promote_to: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not self.paths:
            raise RuleDefinitionError(f"Capability {self.name!r} has no provider paths")
        names = [p.name for p in self.paths]
        if len(set(names)) != len(names):
            raise RuleDefinitionError(
                f"Capability {self.name!r} has duplicate provider path names"
            )
        if self.promote_to and any(
            self.promote_to in p.requires | p.excludes for p in self.paths
        ):
            raise RuleDefinitionError(
                f"Capability {self.name!r} is promoted to a flag its own paths test"
            )

    def satisfied_by(self, snapshot: FlagLookup) -> tuple[ProviderPath, ...]:
        return tuple(p for p in self.paths if p.holds(snapshot))


class CapabilityStatus(NamedTuple):
    """Availability of one capability and every path that satisfies it."""

    available: bool
    satisfied_by: tuple[ProviderPath, ...]


@dataclass(frozen=True)
class CapabilityReport:
    """Availability of every registered capability after resolution."""

    statuses: dict[str, CapabilityStatus] = field(default_factory=dict)

    def available(self) -> list[str]:
        return sorted(n for n, s in self.statuses.items() if s.available)

    def unavailable(self) -> list[str]:
        return sorted(n for n, s in self.statuses.items() if not s.available)

    def __getitem__(self, name: str) -> CapabilityStatus:
        return self.statuses[name]

    def __contains__(self, name: object) -> bool:
        return name in self.statuses

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {
                "available": self.statuses[name].available,
                "satisfied_by": [p.name for p in self.statuses[name].satisfied_by],
            }
            for name in sorted(self.statuses)
        }
