"""End-to-end resolution pipeline.

``resolve_configuration`` wires the components together in the order the
data flows: user input -> flag store -> resolver engine -> capability layer
-> consistency validator. It either returns a ``ResolutionReport`` or raises
exactly one ``ResolutionError`` subclass.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Union

from flagresolve.core.capabilities import CapabilityLayer, CapabilityReport
from flagresolve.core.flags import FlagState, FlagStore
from flagresolve.core.resolver import Resolution, ResolverEngine
from flagresolve.core.validator import Finding, raise_for_findings
from flagresolve.tables import RuleTable, default_table

logger = logging.getLogger(__name__)

FlagInput = Union[FlagStore, Mapping[str, Union[FlagState, bool, str]]]


@dataclass
class ResolutionReport:
    """The successful output of a resolution, handed to collaborators.

    Attributes:
        resolution: Frozen flags, provenance, notices and pass history.
        capabilities: Availability of every capability in the table.
        requested: Capabilities the user required to be available.
        table: Label of the rule table that produced the report.
        findings: Validator findings (always empty for a returned report
            produced with ``strict=True``).
    """

    resolution: Resolution
    capabilities: CapabilityReport
    requested: tuple[str, ...] = ()
    table: str = ""
    findings: list[Finding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.findings

    def to_dict(self, include_internal: bool = True) -> dict[str, Any]:
        data = self.resolution.to_dict(include_internal=include_internal)
        data["table"] = self.table
        data["requested"] = list(self.requested)
        data["capabilities"] = self.capabilities.to_dict()
        data["findings"] = [f.to_dict() for f in self.findings]
        return data

    def to_json(self, include_internal: bool = True) -> str:
        """Deterministic JSON: sorted keys, two-space indent, trailing newline."""
        return json.dumps(self.to_dict(include_internal), indent=2, sort_keys=True) + "\n"


def resolve_configuration(
    user_flags: FlagInput,
    *,
    table: RuleTable | None = None,
    requested: Iterable[str] = (),
    max_passes: int | None = None,
    strict: bool = True,
) -> ResolutionReport:
    """Resolve user input against a rule table.

    Args:
        user_flags: A ``FlagStore`` holding explicit input, or a mapping of
            flag -> state (bool, state name, or ``FlagState``).
        table: Rule table to apply. Defaults to the legacy crypto table.
        requested: Capability names that must resolve to available.
        max_passes: Override of the engine's pass bound.
        strict: If True, validator findings raise; if False they are
            returned on the report.

    Returns:
        The ``ResolutionReport``.

    Raises:
        ConflictError: Rule versus explicit disable, or contradictory
            derivations.
        NonTerminationError: Pass bound exceeded.
        UnsupportedSubsetError: Superset constraint violated.
        MutualExclusionError: Exclusive flags both enabled.
        UnsatisfiableRequestError: A requested capability is unavailable.
    """
    table = table if table is not None else default_table()
    if not table.frozen:
        table.freeze()

    store = user_flags if isinstance(user_flags, FlagStore) else FlagStore.from_mapping(user_flags)
    wanted = tuple(sorted(set(requested)))

    engine = ResolverEngine(table.rules, store, max_passes=max_passes)
    resolution = engine.run()

    layer = table.capabilities.for_resolution(resolution)
    findings = table.validator.validate(resolution, layer, wanted)
    if strict:
        raise_for_findings(findings)

    report = ResolutionReport(
        resolution=resolution,
        capabilities=layer.report(),
        requested=wanted,
        table=table.label,
        findings=findings,
    )
    logger.info(
        "Resolved %d flags (%d derived, %d compatibility notices) with %s",
        len(resolution.flags.enabled), len(resolution.provenance),
        len(resolution.notices), table.label,
    )
    return report
