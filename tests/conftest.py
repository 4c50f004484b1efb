"""Shared fixtures for flagresolve tests."""

from __future__ import annotations

import pytest

from flagresolve.core.flags import FlagStore
from flagresolve.core.rules import RuleCategory, RuleSet
from flagresolve.tables import RuleTable, build_table


@pytest.fixture
def chain_rules() -> RuleSet:
    """A -> B -> C (linear hard-dependency chain)."""
    rules = RuleSet(version="test@1")
    rules.add_rule("A", "B", RuleCategory.HARD_DEPENDENCY)
    rules.add_rule("B", "C", RuleCategory.HARD_DEPENDENCY)
    return rules.freeze()


@pytest.fixture
def store_with_a() -> FlagStore:
    """A store where the user enabled A."""
    return FlagStore.from_mapping({"A": True})


@pytest.fixture
def legacy_table() -> RuleTable:
    """A fresh, frozen copy of the legacy crypto rule table."""
    return build_table()
