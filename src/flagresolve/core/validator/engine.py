"""Consistency Validator: classifies a frozen resolution, never mutates it.

Runs once after convergence and checks, in order:

1. superset constraints between flag families,
2. mutual-exclusion pairs,
3. user-requested capabilities that resolved to unavailable.

``validate()`` returns every finding. ``check()`` raises a single error for
the first violated category, carrying all findings of that category.
"""

from __future__ import annotations

import logging
from typing import Iterable

from flagresolve.core.capabilities import CapabilityLayer
from flagresolve.core.resolver import Resolution, ResolverState
from flagresolve.core.validator.constraints import (
    Finding,
    FindingKind,
    MutualExclusion,
    SupersetConstraint,
)
from flagresolve.exceptions import (
    MutualExclusionError,
    NotResolvedError,
    RuleDefinitionError,
    UnsatisfiableRequestError,
    UnsupportedSubsetError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_ERRORS: dict[FindingKind, type[ValidationError]] = {
    FindingKind.UNSUPPORTED_SUBSET: UnsupportedSubsetError,
    FindingKind.MUTUAL_EXCLUSION: MutualExclusionError,
    FindingKind.UNSATISFIABLE_REQUEST: UnsatisfiableRequestError,
}


class ConsistencyValidator:
    """Checks declared invariants over a converged resolution.

    Args:
        supersets: Superset constraints between flag families.
        exclusions: Mutually exclusive flag pairs.
    """

    def __init__(
        self,
        supersets: Iterable[SupersetConstraint] = (),
        exclusions: Iterable[MutualExclusion] = (),
    ) -> None:
        self._supersets: list[SupersetConstraint] = []
        self._exclusions: list[MutualExclusion] = []
        self._frozen = False
        for constraint in supersets:
            self.add_superset(constraint)
        for exclusion in exclusions:
            self.add_exclusion(exclusion)

    def add_superset(self, constraint: SupersetConstraint) -> None:
        self._check_mutable()
        self._supersets.append(constraint)

    def add_exclusion(self, exclusion: MutualExclusion) -> None:
        self._check_mutable()
        self._exclusions.append(exclusion)

    def freeze(self) -> ConsistencyValidator:
        self._frozen = True
        return self

    @property
    def supersets(self) -> list[SupersetConstraint]:
        return list(self._supersets)

    @property
    def exclusions(self) -> list[MutualExclusion]:
        return list(self._exclusions)

    def validate(
        self,
        resolution: Resolution,
        capabilities: CapabilityLayer | None = None,
        requested: Iterable[str] = (),
    ) -> list[Finding]:
        """Return every finding for a converged resolution.

        Args:
            resolution: The converged resolution to classify.
            capabilities: Capability layer (bound or unbound) used to check
                requested capabilities.
            requested: Capability names the user asked to be available.

        Raises:
            NotResolvedError: If the resolution has not converged.
        """
        if resolution.state is not ResolverState.CONVERGED:
            raise NotResolvedError("Validator runs only on a converged resolution")
        snapshot = resolution.flags
        findings: list[Finding] = []
        for constraint in self._supersets:
            findings.extend(constraint.findings(snapshot))
        for exclusion in self._exclusions:
            findings.extend(exclusion.findings(snapshot))

        wanted = sorted(set(requested))
        if wanted:
            layer = capabilities if capabilities is not None else CapabilityLayer()
            if not layer.bound:
                layer = layer.for_resolution(resolution)
            for name in wanted:
                findings.extend(self._request_findings(layer, name, snapshot))

        for finding in findings:
            logger.debug("Validator finding [%s] %s", finding.kind.value, finding.message)
        return findings

    @staticmethod
    def _request_findings(layer: CapabilityLayer, name: str, snapshot) -> list[Finding]:
        if name not in layer:
            return [
                Finding(
                    kind=FindingKind.UNSATISFIABLE_REQUEST,
                    subject=name,
                    message=f"Requested capability {name!r} is not defined",
                )
            ]
        status = layer.is_available(name)
        if status.available:
            return []
        cap = layer.get(name)
        diagnostics = []
        for path in cap.paths:
            detail = path.describe()
            missing = path.missing(snapshot)
            blocking = path.blocking(snapshot)
            if missing:
                detail += f" [missing: {', '.join(missing)}]"
            if blocking:
                detail += f" [blocked by: {', '.join(blocking)}]"
            diagnostics.append(detail)
        return [
            Finding(
                kind=FindingKind.UNSATISFIABLE_REQUEST,
                subject=name,
                message=(
                    f"Requested capability {name!r} is unavailable; no provider "
                    f"path is satisfied"
                ),
                flags=tuple(diagnostics),
            )
        ]

    def check(
        self,
        resolution: Resolution,
        capabilities: CapabilityLayer | None = None,
        requested: Iterable[str] = (),
    ) -> None:
        """Raise for the first violated category, if any.

        Raises:
            UnsupportedSubsetError: Superset constraint violated.
            MutualExclusionError: Exclusive flags both enabled.
            UnsatisfiableRequestError: Requested capability unavailable.
        """
        findings = self.validate(resolution, capabilities, requested)
        raise_for_findings(findings)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuleDefinitionError("Validator is frozen")


def raise_for_findings(findings: Iterable[Finding]) -> None:
    """Raise the error for the first finding category present, if any."""
    findings = list(findings)
    for kind in FindingKind:
        of_kind = [f for f in findings if f.kind is kind]
        if of_kind:
            summary = "; ".join(f.message for f in of_kind)
            raise _ERRORS[kind](summary, findings=of_kind)
