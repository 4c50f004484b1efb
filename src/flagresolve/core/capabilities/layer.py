"""Capability Abstraction Layer.

Dependent logic asks one question, "is capability X available?", instead of
branching on whether a builtin implementation or a driver provides it.
Adding a provider (a second accelerator, say) means adding a path, not
touching any rule that depends on the capability.

Capability definitions are static, like rule tables, and may be shared.
Querying requires a converged resolution: ``for_resolution()`` returns a
bound view over the same definitions, leaving the shared layer untouched.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from flagresolve.core.capabilities.models import (
    Capability,
    CapabilityReport,
    CapabilityStatus,
    ProviderPath,
)
from flagresolve.core.resolver import Resolution, ResolverState
from flagresolve.core.rules import Rule, RuleCategory
from flagresolve.exceptions import NotResolvedError, RuleDefinitionError


class CapabilityLayer:
    """Registry of capabilities plus availability queries.

    Example::

        layer = CapabilityLayer()
        layer.register_capability("ecdh", [builtin("ECDH_C"), driver("ACCEL_ECDH")])
        bound = layer.for_resolution(engine.run())
        available, paths = bound.is_available("ecdh")
    """

    def __init__(self) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._frozen = False
        self._resolution: Resolution | None = None

    def register_capability(
        self,
        name: str,
        provider_paths: Iterable[ProviderPath],
        *,
        promote_to: str | None = None,
        description: str = "",
    ) -> Capability:
        """Register a capability over one or more provider paths.

        Raises:
            RuleDefinitionError: If the name is taken, the layer is frozen,
                or the paths are malformed.
        """
        if self._frozen:
            raise RuleDefinitionError("Capability layer is frozen")
        if name in self._capabilities:
            raise RuleDefinitionError(f"Capability {name!r} already registered")
        cap = Capability(
            name=name,
            paths=tuple(provider_paths),
            promote_to=promote_to,
            description=description,
        )
        self._capabilities[name] = cap
        return cap

    def freeze(self) -> CapabilityLayer:
        self._frozen = True
        return self

    def get(self, name: str) -> Capability:
        try:
            return self._capabilities[name]
        except KeyError:
            raise KeyError(f"Unknown capability: {name!r}") from None

    def promotion_rules(self) -> list[Rule]:
        """Internal-alias rules writing promoted capabilities into the store.

        One rule per provider path, so each path shows up separately in the
        promoted flag's provenance.
        """
        rules: list[Rule] = []
        for cap in self:
            if not cap.promote_to:
                continue
            for path in cap.paths:
                rules.append(
                    Rule(
                        antecedent=path.as_expression(),
                        consequent=cap.promote_to,
                        category=RuleCategory.INTERNAL_ALIAS,
                        rationale=f"capability {cap.name!r} via {path.name} path",
                    )
                )
        return rules

    def for_resolution(self, resolution: Resolution) -> CapabilityLayer:
        """Return a view of these definitions bound to a converged resolution.

        Raises:
            NotResolvedError: If the resolution has not converged.
        """
        if resolution.state is not ResolverState.CONVERGED:
            raise NotResolvedError(
                f"Cannot bind capabilities to a {resolution.state.value} resolution"
            )
        bound = CapabilityLayer()
        bound._capabilities = self._capabilities
        bound._frozen = True
        bound._resolution = resolution
        return bound

    @property
    def bound(self) -> bool:
        return self._resolution is not None

    def is_available(self, name: str) -> CapabilityStatus:
        """Return ``(available, satisfied_by)`` for a capability.

        Raises:
            NotResolvedError: If no converged resolution is bound.
            KeyError: If the capability is not registered.
        """
        if self._resolution is None:
            raise NotResolvedError(
                f"Capability {name!r} queried before resolution converged"
            )
        cap = self.get(name)
        paths = cap.satisfied_by(self._resolution.flags)
        return CapabilityStatus(available=bool(paths), satisfied_by=paths)

    def report(self) -> CapabilityReport:
        """Availability of every registered capability."""
        return CapabilityReport({cap.name: self.is_available(cap.name) for cap in self})

    def __iter__(self) -> Iterator[Capability]:
        return iter([self._capabilities[k] for k in sorted(self._capabilities)])

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities
