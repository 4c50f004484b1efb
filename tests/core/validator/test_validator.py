"""Tests for the Consistency Validator."""

from __future__ import annotations

import pytest

from flagresolve.core.capabilities import CapabilityLayer, builtin, driver
from flagresolve.core.flags import FlagStore
from flagresolve.core.resolver import Resolution, ResolverEngine, ResolverState
from flagresolve.core.rules import RuleSet
from flagresolve.core.validator import (
    ConsistencyValidator,
    FindingKind,
    FlagFamily,
    MutualExclusion,
    SupersetConstraint,
    raise_for_findings,
)
from flagresolve.exceptions import (
    MutualExclusionError,
    NotResolvedError,
    RuleDefinitionError,
    UnsatisfiableRequestError,
    UnsupportedSubsetError,
)


def _resolve(**flags: bool) -> Resolution:
    return ResolverEngine(RuleSet(), FlagStore.from_mapping(flags)).run()


CURVES = SupersetConstraint(
    name="curves",
    required=FlagFamily.of("requested curves", {"p256": "WANT_P256", "p384": "WANT_P384"}),
    supported=FlagFamily.of("builtin curves", {"p256": "DP_P256", "p384": "DP_P384"}),
    when="ECP_C",
)


class TestSupersetConstraint:
    """Family superset checks."""

    def test_satisfied(self) -> None:
        assert CURVES.findings(_resolve(ECP_C=True, WANT_P256=True, DP_P256=True).flags) == []

    def test_each_missing_member_reported(self) -> None:
        findings = CURVES.findings(_resolve(ECP_C=True, WANT_P256=True, WANT_P384=True).flags)
        assert [f.flags for f in findings] == [
            ("WANT_P256", "DP_P256"),
            ("WANT_P384", "DP_P384"),
        ]
        assert all(f.kind is FindingKind.UNSUPPORTED_SUBSET for f in findings)
        assert "enable DP_P256" in findings[0].message

    def test_guard_not_holding(self) -> None:
        assert CURVES.findings(_resolve(WANT_P256=True).flags) == []

    def test_member_without_counterpart(self) -> None:
        constraint = SupersetConstraint(
            name="c",
            required=FlagFamily.of("req", {"x": "WANT_X"}),
            supported=FlagFamily.of("sup", {}),
        )
        (finding,) = constraint.findings(_resolve(WANT_X=True).flags)
        assert finding.flags == ("WANT_X",)
        assert "<no sup member>" in finding.message


class TestMutualExclusion:
    """Exclusive pairs."""

    def test_self_exclusion_rejected(self) -> None:
        with pytest.raises(RuleDefinitionError):
            MutualExclusion("A", "A")

    def test_both_enabled(self) -> None:
        (finding,) = MutualExclusion("A", "B", "pick one").findings(_resolve(A=True, B=True).flags)
        assert finding.subject == "A ^ B"
        assert finding.message == "A and B cannot both be enabled: pick one"

    def test_one_enabled(self) -> None:
        assert MutualExclusion("A", "B").findings(_resolve(A=True, B=False).flags) == []


class TestConsistencyValidator:
    """Validator orchestration and error selection."""

    @pytest.fixture
    def layer(self) -> CapabilityLayer:
        layer = CapabilityLayer()
        layer.register_capability(
            "ecdh",
            [builtin("ECDH_C", excludes=["USE_PSA"]), driver("USE_PSA", "WANT_ECDH")],
        )
        return layer.freeze()

    def test_clean_resolution(self, layer) -> None:
        validator = ConsistencyValidator([CURVES], [MutualExclusion("A", "B")])
        resolution = _resolve(ECDH_C=True)
        assert validator.validate(resolution, layer, ["ecdh"]) == []
        validator.check(resolution, layer, ["ecdh"])

    def test_requires_converged_resolution(self) -> None:
        resolution = _resolve(A=True)
        resolution.state = ResolverState.FAILED_CONFLICT
        with pytest.raises(NotResolvedError):
            ConsistencyValidator().validate(resolution)

    def test_unavailable_request_names_paths(self, layer) -> None:
        resolution = _resolve(USE_PSA=True, ECDH_C=True)
        with pytest.raises(UnsatisfiableRequestError) as exc_info:
            ConsistencyValidator().check(resolution, layer, ["ecdh"])
        (finding,) = exc_info.value.findings
        assert finding.subject == "ecdh"
        assert finding.flags == (
            "builtin (builtin): ECDH_C && !USE_PSA [blocked by: USE_PSA]",
            "driver (driver): USE_PSA && WANT_ECDH [missing: WANT_ECDH]",
        )

    def test_unknown_requested_capability(self, layer) -> None:
        findings = ConsistencyValidator().validate(_resolve(), layer, ["teleport"])
        assert [f.subject for f in findings] == ["teleport"]
        assert "not defined" in findings[0].message

    def test_requests_without_layer(self) -> None:
        findings = ConsistencyValidator().validate(_resolve(), None, ["x"])
        assert findings[0].kind is FindingKind.UNSATISFIABLE_REQUEST

    def test_first_category_wins(self, layer) -> None:
        validator = ConsistencyValidator([CURVES], [MutualExclusion("A", "B")])
        resolution = _resolve(ECP_C=True, WANT_P256=True, A=True, B=True)
        findings = validator.validate(resolution, layer, ["ecdh"])
        assert [f.kind for f in findings] == [
            FindingKind.UNSUPPORTED_SUBSET,
            FindingKind.MUTUAL_EXCLUSION,
            FindingKind.UNSATISFIABLE_REQUEST,
        ]
        with pytest.raises(UnsupportedSubsetError) as exc_info:
            validator.check(resolution, layer, ["ecdh"])
        assert len(exc_info.value.findings) == 1

    def test_exclusion_error_carries_all_pairs(self) -> None:
        validator = ConsistencyValidator(
            exclusions=[MutualExclusion("A", "B"), MutualExclusion("C", "D")]
        )
        with pytest.raises(MutualExclusionError) as exc_info:
            validator.check(_resolve(A=True, B=True, C=True, D=True))
        assert [f.subject for f in exc_info.value.findings] == ["A ^ B", "C ^ D"]

    def test_frozen_validator(self) -> None:
        validator = ConsistencyValidator().freeze()
        with pytest.raises(RuleDefinitionError):
            validator.add_exclusion(MutualExclusion("A", "B"))

    def test_validation_never_mutates(self, layer) -> None:
        resolution = _resolve(A=True, B=True)
        before = resolution.to_dict()
        ConsistencyValidator(exclusions=[MutualExclusion("A", "B")]).validate(resolution, layer)
        assert resolution.to_dict() == before

    def test_raise_for_no_findings(self) -> None:
        raise_for_findings([])
