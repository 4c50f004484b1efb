"""Fixed-point resolver engine.

Each pass evaluates every rule against the snapshot taken at the end of the
previous pass, collects the consequents whose antecedents hold, and applies
them as a single batch. Because no rule ever sees a partially-updated store,
the fixed point is a deterministic function of the rule set and the initial
input, independent of registration or evaluation order.

Algorithm (per pass ``n >= 1``)::

    previous = snapshot(n - 1)
    batch    = { r.consequent : r in rules, r.antecedent(previous),
                 r.consequent not enabled in previous }
    if batch is empty:                 CONVERGED
    if batch hits an explicit disable: FAILED_CONFLICT
    apply batch; check every derived flag is still supported
    if n > len(rules) + 1:             FAILED_NON_TERMINATION

A derived flag must stay supported: after every pass at least one rule
targeting it has to hold on the new snapshot. Support is only ever lost when
a flag some antecedent needed to be absent gets enabled by another rule from
the same input. Both derivations cannot hold at once, so this is reported as
a conflict rather than resolved by priority. The check looks at all rules
for the flag together, so splitting a disjunction across several rules does
not change the outcome.

Every new flag is enabled at most once and flags are never disabled, so a
well-formed table converges in at most ``len(rules)`` productive passes.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from flagresolve.core.flags import FlagSnapshot, FlagState, FlagStore
from flagresolve.core.resolver.models import (
    CompatNotice,
    PassRecord,
    Resolution,
    ResolverState,
)
from flagresolve.core.rules import Rule, RuleCategory, RuleSet
from flagresolve.exceptions import (
    ConflictError,
    NonTerminationError,
    ResolverStateError,
)

logger = logging.getLogger(__name__)


class ResolverEngine:
    """Drives one resolution run over a flag store.

    An engine is single-use: ``run()`` may be called once, from ``IDLE``.
    The rule set is only read, so a frozen set may be shared by engines
    running concurrently on independent stores.

    Args:
        rules: The rule set to apply.
        store: The flag store holding the user's explicit input. It is
            mutated during the run and frozen on convergence.
        max_passes: Pass bound. Defaults to ``len(rules) + 1``.
    """

    def __init__(
        self,
        rules: RuleSet,
        store: FlagStore,
        *,
        max_passes: int | None = None,
    ) -> None:
        if max_passes is not None and max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        self._rules = rules
        self._store = store
        self._max_passes = max_passes if max_passes is not None else len(rules) + 1
        self._state = ResolverState.IDLE
        self._resolution: Resolution | None = None

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def store(self) -> FlagStore:
        return self._store

    @property
    def max_passes(self) -> int:
        return self._max_passes

    @property
    def resolution(self) -> Resolution | None:
        """The converged resolution, or None if the run has not converged."""
        return self._resolution

    def run(self) -> Resolution:
        """Iterate the rule set to a fixed point.

        Returns:
            The converged ``Resolution``.

        Raises:
            ConflictError: A rule targets an explicitly disabled flag, or two
                derivations contradict each other.
            NonTerminationError: Flags were still changing at the pass bound.
            ResolverStateError: The engine has already run.
        """
        if self._state is not ResolverState.IDLE:
            raise ResolverStateError(f"Resolver already ran (state: {self._state.value})")

        rules = list(self._rules)
        by_flag = self._rules.grouped()
        previous = self._store.snapshot()
        self._state = ResolverState.ITERATING
        logger.debug(
            "Resolving %d explicit flags against %d rules (max %d passes)",
            len(previous), len(rules), self._max_passes,
        )

        passes: list[PassRecord] = []
        notices: list[CompatNotice] = []

        for number in range(1, self._max_passes + 1):
            batch = self._collect(rules, previous)
            if not batch:
                return self._converge(passes, notices)

            if number == self._max_passes:
                break

            self._apply(batch, previous)
            current = self._store.snapshot()
            newly = sorted(batch)
            fired = [rule for flag in newly for rule in batch[flag]]
            self._check_support(by_flag, previous, current)

            for rule in fired:
                if rule.category is RuleCategory.LEGACY_COMPAT:
                    notice = CompatNotice(
                        flag=rule.consequent,
                        rule_id=rule.rule_id,
                        rationale=rule.rationale,
                        pass_number=number,
                    )
                    notices.append(notice)
                    logger.info("%s", notice.message)

            passes.append(
                PassRecord(
                    number=number,
                    enabled=tuple(newly),
                    fired=tuple(r.rule_id for r in fired),
                )
            )
            logger.debug("Pass %d enabled: %s", number, ", ".join(newly))
            previous = current

        changing = sorted(batch)
        self._state = ResolverState.FAILED_NON_TERMINATION
        logger.warning(
            "No fixed point after %d passes; still changing: %s",
            self._max_passes, ", ".join(changing),
        )
        raise NonTerminationError(
            f"Resolution did not converge within {self._max_passes} passes; "
            f"flags still changing: {', '.join(changing)}",
            changing=changing,
            passes=self._max_passes,
        )

    @staticmethod
    def _collect(rules: list[Rule], snapshot: FlagSnapshot) -> dict[str, list[Rule]]:
        """Consequents not yet enabled whose antecedents hold on ``snapshot``."""
        batch: dict[str, list[Rule]] = defaultdict(list)
        for rule in rules:
            if snapshot.is_enabled(rule.consequent):
                continue
            if rule.antecedent.evaluate(snapshot):
                batch[rule.consequent].append(rule)
        return dict(batch)

    def _apply(self, batch: dict[str, list[Rule]], previous: FlagSnapshot) -> None:
        # Check the whole batch before writing so a conflict leaves no partial pass.
        for flag in sorted(batch):
            if previous.state(flag) is FlagState.DISABLED:
                self._fail_conflict(
                    ConflictError(
                        f"{flag} is explicitly disabled by "
                        f"{self._store.explicit_source(flag) or 'user'} but rule(s) "
                        f"require it: {'; '.join(r.rule_id for r in batch[flag])}",
                        flag=flag,
                        rules=[r.rule_id for r in batch[flag]],
                        source=self._store.explicit_source(flag),
                    )
                )
        for flag in sorted(batch):
            self._store.enable_derived(flag, [r.rule_id for r in batch[flag]])

    def _check_support(
        self,
        by_flag: dict[str, list[Rule]],
        previous: FlagSnapshot,
        current: FlagSnapshot,
    ) -> None:
        """Fail if a derived flag no longer has any rule holding for it."""
        newly = current.enabled - previous.enabled
        derivations = self._store.derivations
        for derived in sorted(derivations):
            candidates = by_flag.get(derived, [])
            if any(r.antecedent.evaluate(current) for r in candidates):
                continue
            negated: set[str] = set()
            for rule in candidates:
                negated |= rule.antecedent.negated_flags()
            broken = sorted(negated & newly)
            # Support held after the previous pass, so only a new enable can break it.
            if not broken:
                continue
            flag = broken[0]
            derived_by = derivations[derived]
            enabling = self._store.provenance(flag)
            self._fail_conflict(
                ConflictError(
                    f"{derived} was derived while {flag} was not enabled "
                    f"(rule(s): {'; '.join(derived_by)}), but {flag} is now "
                    f"enabled by rule(s): {'; '.join(enabling)}",
                    flag=flag,
                    rules=(*derived_by, *enabling),
                    source=enabling[0] if enabling else None,
                )
            )

    def _fail_conflict(self, error: ConflictError) -> None:
        self._state = ResolverState.FAILED_CONFLICT
        logger.warning("Conflict on %s: %s", error.flag, error)
        raise error

    def _converge(self, passes: list[PassRecord], notices: list[CompatNotice]) -> Resolution:
        self._store.freeze()
        self._state = ResolverState.CONVERGED
        derivations = self._store.derivations
        # Internal only when nothing but internal-alias rules derived it in this run.
        internal = frozenset(
            flag
            for flag, rule_ids in derivations.items()
            if all(self._rules.get(rule_id).internal for rule_id in rule_ids)
        )
        self._resolution = Resolution(
            state=self._state,
            flags=self._store.snapshot(),
            passes=passes,
            provenance=derivations,
            explicit=self._store.explicit_sources,
            notices=notices,
            internal_flags=internal,
            table_version=self._rules.version,
        )
        logger.debug("Converged after %d productive passes", len(passes))
        return self._resolution
