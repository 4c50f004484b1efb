"""Tri-state flag storage with explicit-source tracking and freezing.

A ``FlagStore`` is created once per resolution from user input, mutated only
by the resolver engine while it iterates, and frozen when the engine
converges. Every explicit state remembers where it came from so that a
conflict can name both sides: the rule that wanted the flag and the source
that disabled it.

``FlagSnapshot`` is the immutable view handed to rule antecedents. The engine
evaluates each pass against the previous pass's snapshot, never against the
live store.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Union

from flagresolve.exceptions import ConflictError, FrozenStoreError


class FlagState(Enum):
    """State of a single flag: never touched, enabled, or explicitly disabled."""

    UNSET = "unset"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, value: Union["FlagState", bool, int, str]) -> FlagState:
        """Coerce user input into a ``FlagState``.

        Accepts ``FlagState`` members, booleans, the integers 1 and 0 (as
        YAML yields for ``FLAG: 1``), and the case-insensitive strings
        ``enabled/on/true/yes/1`` and ``disabled/off/false/no/0``.

        Raises:
            ValueError: If the value does not name a state.
        """
        if isinstance(value, FlagState):
            return value
        if isinstance(value, bool):
            return cls.ENABLED if value else cls.DISABLED
        if isinstance(value, int) and value in (0, 1):
            return cls.ENABLED if value else cls.DISABLED
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _ENABLED_WORDS:
                return cls.ENABLED
            if text in _DISABLED_WORDS:
                return cls.DISABLED
            if text == cls.UNSET.value:
                return cls.UNSET
        raise ValueError(f"Not a flag state: {value!r}")


_ENABLED_WORDS = frozenset({"enabled", "enable", "on", "true", "yes", "1"})
_DISABLED_WORDS = frozenset({"disabled", "disable", "off", "false", "no", "0"})


class FlagSnapshot(Mapping[str, FlagState]):
    """Immutable point-in-time view of a flag store.

    Only touched flags are stored; ``state()`` reports UNSET for the rest.
    Two snapshots compare equal when they hold the same flag states.
    """

    __slots__ = ("_states",)

    def __init__(self, states: Mapping[str, FlagState] | None = None) -> None:
        self._states: dict[str, FlagState] = dict(states or {})

    def __getitem__(self, flag: str) -> FlagState:
        return self._states[flag]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._states))

    def __len__(self) -> int:
        return len(self._states)

    def state(self, flag: str) -> FlagState:
        return self._states.get(flag, FlagState.UNSET)

    def is_enabled(self, flag: str) -> bool:
        return self._states.get(flag) is FlagState.ENABLED

    @property
    def enabled(self) -> frozenset[str]:
        """All flags currently enabled."""
        return frozenset(
            f for f, s in self._states.items() if s is FlagState.ENABLED
        )

    @property
    def disabled(self) -> frozenset[str]:
        """All flags explicitly disabled."""
        return frozenset(
            f for f, s in self._states.items() if s is FlagState.DISABLED
        )

    def to_dict(self) -> dict[str, str]:
        """Return ``{flag: state-name}`` sorted by flag name."""
        return {f: self._states[f].value for f in sorted(self._states)}

    def __repr__(self) -> str:
        return f"FlagSnapshot({self.to_dict()!r})"


class FlagStore:
    """Mapping from flag identifier to ``FlagState`` for one resolution run.

    Explicit states (``set``) come from user input and record their source.
    Derived enables (``enable_derived``) come from the resolver engine and
    record the rules that produced them. A derived enable never overrides an
    explicit disable: that is a ``ConflictError``.

    Thread safety: a store belongs to a single resolution run and is NOT
    thread-safe. Concurrent resolutions must use separate stores.
    """

    def __init__(self) -> None:
        self._states: dict[str, FlagState] = {}
        self._sources: dict[str, str] = {}
        self._provenance: dict[str, tuple[str, ...]] = {}
        self._frozen = False

    @classmethod
    def from_mapping(
        cls,
        flags: Mapping[str, Union[FlagState, bool, str]],
        source: str = "user",
    ) -> FlagStore:
        """Build a store from a parsed ``{flag: state}`` input mapping."""
        store = cls()
        for flag in sorted(flags):
            store.set(flag, flags[flag], source=source)
        return store

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Forbid any further mutation. Idempotent."""
        self._frozen = True

    def set(
        self,
        flag: str,
        state: Union[FlagState, bool, str],
        source: str = "user",
    ) -> None:
        """Set the explicit state of a flag.

        Setting the same explicit state twice is a no-op. Setting the
        opposite state raises ``ConflictError`` naming both sources.

        Raises:
            ConflictError: If the flag is already explicitly set to the
                contradictory state.
            FrozenStoreError: If the store has been frozen.
            ValueError: If ``state`` is UNSET or not a state at all.
        """
        self._check_mutable()
        new_state = FlagState.parse(state)
        if new_state is FlagState.UNSET:
            raise ValueError(f"Explicit state for {flag!r} must be enabled or disabled")

        previous_source = self._sources.get(flag)
        if previous_source is not None:
            if self._states[flag] is new_state:
                return
            raise ConflictError(
                f"{flag} is {self._states[flag].value} by {previous_source} "
                f"but {new_state.value} by {source}",
                flag=flag,
                source=previous_source,
            )
        if flag in self._provenance and new_state is FlagState.DISABLED:
            raise ConflictError(
                f"{flag} was already enabled by rule(s) "
                f"{', '.join(self._provenance[flag])} and cannot be disabled by {source}",
                flag=flag,
                rules=self._provenance[flag],
                source=source,
            )
        self._states[flag] = new_state
        self._sources[flag] = source

    def get(self, flag: str) -> FlagState:
        """Return the state of a flag, UNSET if never touched."""
        return self._states.get(flag, FlagState.UNSET)

    def is_enabled(self, flag: str) -> bool:
        return self._states.get(flag) is FlagState.ENABLED

    def enable_derived(self, flag: str, rules: tuple[str, ...] | list[str]) -> bool:
        """Enable a flag on behalf of one or more rules.

        Reserved for the resolver engine. Enabling an already-enabled flag is
        a no-op so that several rules may target the same flag in one pass.

        Args:
            flag: The consequent flag.
            rules: Identifiers of the rules whose antecedents held.

        Returns:
            True if the flag was newly enabled, False if it already was.

        Raises:
            ConflictError: If the flag is explicitly disabled.
            FrozenStoreError: If the store has been frozen.
        """
        self._check_mutable()
        current = self.get(flag)
        if current is FlagState.DISABLED:
            source = self._sources.get(flag, "user")
            raise ConflictError(
                f"{flag} is explicitly disabled by {source} but required by "
                f"rule(s): {', '.join(rules)}",
                flag=flag,
                rules=rules,
                source=source,
            )
        if current is FlagState.ENABLED:
            return False
        self._states[flag] = FlagState.ENABLED
        self._provenance[flag] = tuple(rules)
        return True

    def explicit_source(self, flag: str) -> str | None:
        """Return where an explicit state came from, None if derived or unset."""
        return self._sources.get(flag)

    def provenance(self, flag: str) -> tuple[str, ...]:
        """Return the rule identifiers that derived a flag (empty if explicit)."""
        return self._provenance.get(flag, ())

    @property
    def explicit_sources(self) -> dict[str, str]:
        return dict(self._sources)

    @property
    def derivations(self) -> dict[str, tuple[str, ...]]:
        return dict(self._provenance)

    def snapshot(self) -> FlagSnapshot:
        return FlagSnapshot(self._states)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenStoreError("Flag store is frozen; resolution already converged")

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        return f"FlagStore({len(self._states)} flags, frozen={self._frozen})"
