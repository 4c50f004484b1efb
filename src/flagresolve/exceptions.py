"""flagresolve exception hierarchy.

All public exceptions inherit from FlagResolveError, giving callers a single
base class to catch when they want to handle any flagresolve-specific failure
without swallowing unrelated errors.

Resolution outcomes are reported through ``ResolutionError`` subclasses. A
failed resolution raises exactly one of them, and each carries the offending
flags and rules as attributes so diagnostics never have to parse messages.
"""

from __future__ import annotations

from typing import Any, Sequence


class FlagResolveError(Exception):
    """Base exception for all flagresolve errors."""


class RuleDefinitionError(FlagResolveError):
    """Raised when a rule, capability, or constraint is authored incorrectly.

    Covers self-contradicting rules, duplicate registrations, malformed
    expressions, and additions to a frozen rule table.
    """


class FrozenStoreError(FlagResolveError):
    """Raised when a frozen flag store is mutated."""


class ResolverStateError(FlagResolveError):
    """Raised when a resolver engine is driven out of order."""


class NotResolvedError(FlagResolveError):
    """Raised when capabilities are queried before resolution converged."""


class ConfigError(FlagResolveError):
    """Raised when user configuration input cannot be loaded.

    Covers unreadable files, malformed YAML/JSON, and unknown flag states.
    """


class ResolutionError(FlagResolveError):
    """Base class for the five fatal resolution outcomes."""


class ConflictError(ResolutionError):
    """A derivation contradicts an explicit user decision or another derivation.

    Attributes:
        flag: The contested flag.
        rules: Identifiers of the rules that tried to enable the flag, or that
            relied on it staying disabled.
        source: Where the contradicting state came from (e.g. ``"user"``,
            ``"cli"``, or a rule identifier).
    """

    def __init__(
        self,
        message: str,
        *,
        flag: str,
        rules: Sequence[str] = (),
        source: str | None = None,
    ) -> None:
        super().__init__(message)
        self.flag = flag
        self.rules = tuple(rules)
        self.source = source


class NonTerminationError(ResolutionError):
    """The pass bound was exceeded while flags were still changing.

    Attributes:
        changing: Flags enabled in the last pass before giving up.
        passes: Number of passes executed.
    """

    def __init__(self, message: str, *, changing: Sequence[str], passes: int) -> None:
        super().__init__(message)
        self.changing = tuple(changing)
        self.passes = passes


class ValidationError(ResolutionError):
    """Base class for Consistency Validator findings.

    Attributes:
        findings: Every finding of this error's category.
    """

    def __init__(self, message: str, *, findings: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.findings = tuple(findings)


class UnsupportedSubsetError(ValidationError):
    """A required family member is missing from the supported family."""


class MutualExclusionError(ValidationError):
    """Two flags declared mutually exclusive are both enabled."""


class UnsatisfiableRequestError(ValidationError):
    """A user-requested capability has no satisfied provider path."""
