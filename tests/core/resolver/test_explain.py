"""Tests for derivation trees."""

from __future__ import annotations

from flagresolve.core.flags import FlagState, FlagStore
from flagresolve.core.resolver import ResolverEngine, explain_flag
from flagresolve.core.rules import RuleSet


class TestExplainFlag:
    """``explain_flag`` over converged resolutions."""

    def test_chain(self, chain_rules, store_with_a) -> None:
        resolution = ResolverEngine(chain_rules, store_with_a).run()
        node = explain_flag(resolution, chain_rules, "C")
        assert node.derived
        assert node.derivations[0].rule.rule_id == "C <= B"
        b_node = node.derivations[0].inputs[0]
        assert b_node.flag == "B"
        a_node = b_node.derivations[0].inputs[0]
        assert a_node.flag == "A"
        assert a_node.source == "user"
        assert not a_node.derived

    def test_unset_flag(self, chain_rules) -> None:
        resolution = ResolverEngine(chain_rules, FlagStore()).run()
        node = explain_flag(resolution, chain_rules, "C")
        assert node.state is FlagState.UNSET
        assert node.derivations == []

    def test_shared_inputs_marked_repeated(self) -> None:
        rules = RuleSet()
        rules.add_rule("A", "B")
        rules.add_rule("A", "C")
        rules.add_rule("B && C", "D")
        rules.freeze()
        resolution = ResolverEngine(rules, FlagStore.from_mapping({"A": True})).run()
        node = explain_flag(resolution, rules, "D")
        b_node, c_node = node.derivations[0].inputs
        assert not b_node.derivations[0].inputs[0].repeated
        assert c_node.derivations[0].inputs[0].repeated

    def test_negated_inputs_not_listed(self) -> None:
        rules = RuleSet()
        rules.add_rule("A && !X", "B")
        rules.freeze()
        resolution = ResolverEngine(rules, FlagStore.from_mapping({"A": True})).run()
        node = explain_flag(resolution, rules, "B")
        assert [i.flag for i in node.derivations[0].inputs] == ["A"]

    def test_to_dict(self, chain_rules, store_with_a) -> None:
        resolution = ResolverEngine(chain_rules, store_with_a).run()
        data = explain_flag(resolution, chain_rules, "B").to_dict()
        assert data["flag"] == "B"
        assert data["state"] == "enabled"
        assert data["derivations"][0]["rule"] == "B <= A"
        assert data["derivations"][0]["category"] == "hard-dependency"
        assert data["derivations"][0]["inputs"][0]["source"] == "user"
