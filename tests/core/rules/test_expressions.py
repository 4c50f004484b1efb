"""Tests for antecedent expressions and the preprocessor-condition parser."""

from __future__ import annotations

import pytest

from flagresolve.core.flags import FlagStore
from flagresolve.core.rules import AllOf, AnyOf, Flag, Not, as_expression, parse_expression
from flagresolve.exceptions import RuleDefinitionError


def _snap(*enabled: str, disabled: tuple[str, ...] = ()):
    flags = {f: True for f in enabled}
    flags.update({f: False for f in disabled})
    return FlagStore.from_mapping(flags).snapshot()


class TestParsing:
    """Structure produced by ``parse_expression``."""

    def test_single_flag(self) -> None:
        assert parse_expression("MBEDTLS_MD_C") == Flag("MBEDTLS_MD_C")

    def test_defined_form(self) -> None:
        assert parse_expression("defined(MBEDTLS_MD_C)") == Flag("MBEDTLS_MD_C")

    def test_and_binds_tighter_than_or(self) -> None:
        expr = parse_expression("A || B && C")
        assert expr == AnyOf((Flag("A"), AllOf((Flag("B"), Flag("C")))))

    def test_not_binds_tightest(self) -> None:
        expr = parse_expression("!A && B")
        assert expr == AllOf((Not(Flag("A")), Flag("B")))

    def test_parentheses_override_precedence(self) -> None:
        expr = parse_expression("(A || B) && C")
        assert expr == AllOf((AnyOf((Flag("A"), Flag("B"))), Flag("C")))

    def test_chains_are_flattened(self) -> None:
        expr = parse_expression("A && B && C")
        assert expr == AllOf((Flag("A"), Flag("B"), Flag("C")))

    def test_header_style_condition(self) -> None:
        expr = parse_expression(
            "(defined(USE_PSA) && defined(WANT_ECDH)) || (!defined(USE_PSA) && defined(ECDH_C))"
        )
        assert expr.flags() == frozenset({"USE_PSA", "WANT_ECDH", "ECDH_C"})

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "A &&", "|| A", "(A", "A)", "A B", "A & B", "!", "defined(", "defined(&&)"],
    )
    def test_malformed_input(self, text: str) -> None:
        with pytest.raises(RuleDefinitionError):
            parse_expression(text)

    def test_as_expression_accepts_both_forms(self) -> None:
        assert as_expression("A") == Flag("A")
        assert as_expression(Flag("A")) == Flag("A")
        with pytest.raises(RuleDefinitionError):
            as_expression(42)  # type: ignore[arg-type]


class TestEvaluation:
    """Evaluation against snapshots."""

    def test_flag_requires_enabled(self) -> None:
        assert Flag("A").evaluate(_snap("A"))
        assert not Flag("A").evaluate(_snap())
        assert not Flag("A").evaluate(_snap(disabled=("A",)))

    def test_not_is_true_for_unset_and_disabled(self) -> None:
        assert Not(Flag("A")).evaluate(_snap())
        assert Not(Flag("A")).evaluate(_snap(disabled=("A",)))
        assert not Not(Flag("A")).evaluate(_snap("A"))

    def test_empty_conjunction_and_disjunction(self) -> None:
        assert AllOf(()).evaluate(_snap())
        assert not AnyOf(()).evaluate(_snap())

    def test_mixed_condition(self) -> None:
        expr = parse_expression("(USE_PSA && WANT) || (!USE_PSA && LIB)")
        assert expr.evaluate(_snap("USE_PSA", "WANT"))
        assert expr.evaluate(_snap("LIB"))
        assert not expr.evaluate(_snap("USE_PSA", "LIB"))


class TestPolarity:
    """Positive and negated flag occurrences."""

    def test_negated_flags(self) -> None:
        expr = parse_expression("A && !B && !(C || !D)")
        assert expr.negated_flags() == frozenset({"B", "C"})
        assert expr.positive_flags() == frozenset({"A", "D"})

    def test_flag_with_both_polarities(self) -> None:
        expr = parse_expression("(A && B) || (!A && C)")
        assert "A" in expr.negated_flags()
        assert "A" in expr.positive_flags()


class TestOperatorsAndRendering:
    """``&``, ``|``, ``~`` and ``str``."""

    def test_operators_build_flat_trees(self) -> None:
        expr = Flag("A") & Flag("B") & Flag("C")
        assert expr == parse_expression("A && B && C")
        assert (Flag("A") | Flag("B")) == parse_expression("A || B")
        assert ~Flag("A") == Not(Flag("A"))

    @pytest.mark.parametrize(
        "text",
        [
            "A",
            "!A",
            "A && B",
            "A || B || C",
            "(A && B) || (!A && C)",
            "A && (B || C)",
            "!(A || B)",
        ],
    )
    def test_str_matches_canonical_text(self, text: str) -> None:
        assert str(parse_expression(text)) == text

    def test_expressions_are_hashable(self) -> None:
        assert len({parse_expression("A && B"), Flag("A") & Flag("B")}) == 1
