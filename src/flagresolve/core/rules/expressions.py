"""Boolean antecedent expressions over flag-enabled tests.

An expression is a pure predicate over a flag snapshot: ``Flag`` tests that a
flag is enabled, ``Not`` negates, ``AllOf`` and ``AnyOf`` are n-ary
conjunction and disjunction. Expressions are immutable and hashable, and
compose with ``&``, ``|`` and ``~``::

    expr = Flag("MBEDTLS_PK_PARSE_C") & Flag("MBEDTLS_ECP_C")

``parse_expression`` accepts the preprocessor condition syntax the rule
tables are written in, so a table entry reads the same as the condition it
replaces::

    parse_expression("defined(MBEDTLS_PSA_CRYPTO_C) && defined(MBEDTLS_RSA_C)")
    parse_expression("(USE_PSA && PSA_WANT_ALG_ECDH) || (!USE_PSA && ECDH_C)")

Operator precedence follows C: ``!`` binds tightest, then ``&&``, then ``||``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

from flagresolve.exceptions import RuleDefinitionError


class FlagLookup(Protocol):
    """Anything that can answer "is this flag enabled?"."""

    def is_enabled(self, flag: str) -> bool: ...


class Expression(ABC):
    """Base class for antecedent expressions."""

    @abstractmethod
    def evaluate(self, snapshot: FlagLookup) -> bool:
        """Evaluate the expression against a flag snapshot."""

    @abstractmethod
    def literals(self, negated: bool = False) -> frozenset[tuple[str, bool]]:
        """Return ``(flag, negated)`` pairs for every flag occurrence.

        ``negated`` is True when the occurrence sits under an odd number of
        negations.
        """

    def flags(self) -> frozenset[str]:
        """All flags referenced by the expression."""
        return frozenset(name for name, _ in self.literals())

    def negated_flags(self) -> frozenset[str]:
        """Flags the expression needs to be *not* enabled somewhere."""
        return frozenset(name for name, neg in self.literals() if neg)

    def positive_flags(self) -> frozenset[str]:
        """Flags the expression needs to be enabled somewhere."""
        return frozenset(name for name, neg in self.literals() if not neg)

    def __and__(self, other: Expression) -> Expression:
        return AllOf.of(self, other)

    def __or__(self, other: Expression) -> Expression:
        return AnyOf.of(self, other)

    def __invert__(self) -> Expression:
        return Not(self)


@dataclass(frozen=True)
class Flag(Expression):
    """True iff the named flag is enabled."""

    name: str

    def evaluate(self, snapshot: FlagLookup) -> bool:
        return snapshot.is_enabled(self.name)

    def literals(self, negated: bool = False) -> frozenset[tuple[str, bool]]:
        return frozenset({(self.name, negated)})

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Not(Expression):
    """True iff the operand is false (an UNSET flag counts as not enabled)."""

    operand: Expression

    def evaluate(self, snapshot: FlagLookup) -> bool:
        return not self.operand.evaluate(snapshot)

    def literals(self, negated: bool = False) -> frozenset[tuple[str, bool]]:
        return self.operand.literals(not negated)

    def __str__(self) -> str:
        if isinstance(self.operand, Flag):
            return f"!{self.operand}"
        return f"!({self.operand})"


@dataclass(frozen=True)
class AllOf(Expression):
    """Conjunction. An empty conjunction is true."""

    operands: tuple[Expression, ...]

    @classmethod
    def of(cls, *operands: Expression) -> AllOf:
        flat: list[Expression] = []
        for op in operands:
            flat.extend(op.operands if isinstance(op, AllOf) else (op,))
        return cls(tuple(flat))

    def evaluate(self, snapshot: FlagLookup) -> bool:
        return all(op.evaluate(snapshot) for op in self.operands)

    def literals(self, negated: bool = False) -> frozenset[tuple[str, bool]]:
        out: set[tuple[str, bool]] = set()
        for op in self.operands:
            out |= op.literals(negated)
        return frozenset(out)

    def __str__(self) -> str:
        return " && ".join(
            f"({op})" if isinstance(op, AnyOf) else str(op) for op in self.operands
        )


@dataclass(frozen=True)
class AnyOf(Expression):
    """Disjunction. An empty disjunction is false."""

    operands: tuple[Expression, ...]

    @classmethod
    def of(cls, *operands: Expression) -> AnyOf:
        flat: list[Expression] = []
        for op in operands:
            flat.extend(op.operands if isinstance(op, AnyOf) else (op,))
        return cls(tuple(flat))

    def evaluate(self, snapshot: FlagLookup) -> bool:
        return any(op.evaluate(snapshot) for op in self.operands)

    def literals(self, negated: bool = False) -> frozenset[tuple[str, bool]]:
        out: set[tuple[str, bool]] = set()
        for op in self.operands:
            out |= op.literals(negated)
        return frozenset(out)

    def __str__(self) -> str:
        return " || ".join(
            f"({op})" if isinstance(op, AllOf) and len(op.operands) > 1 else str(op)
            for op in self.operands
        )


# ---------------------------------------------------------------------------
# Parser for preprocessor-style conditions
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"\s*(?:(?P<op>&&|\|\||!|\(|\))|(?P<name>[A-Za-z_][A-Za-z0-9_]*))"
)
_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise RuleDefinitionError(
                f"Unexpected character {text[pos:].strip()[:1]!r} in expression {text!r}"
            )
        tokens.append(m.group("op") or m.group("name"))
        pos = m.end()
    return tokens


class _Parser:
    """Recursive-descent parser: or_expr := and_expr ('||' and_expr)*."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = _tokenize(text)
        self._pos = 0

    def parse(self) -> Expression:
        if not self._tokens:
            raise RuleDefinitionError("Empty expression")
        expr = self._or_expr()
        if self._pos != len(self._tokens):
            raise RuleDefinitionError(
                f"Unexpected token {self._tokens[self._pos]!r} in expression {self._text!r}"
            )
        return expr

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self, expected: str | None = None) -> str:
        tok = self._peek()
        if tok is None or (expected is not None and tok != expected):
            raise RuleDefinitionError(
                f"Expected {expected or 'operand'!r} in expression {self._text!r}"
            )
        self._pos += 1
        return tok

    def _or_expr(self) -> Expression:
        operands = [self._and_expr()]
        while self._peek() == "||":
            self._take("||")
            operands.append(self._and_expr())
        return operands[0] if len(operands) == 1 else AnyOf.of(*operands)

    def _and_expr(self) -> Expression:
        operands = [self._unary()]
        while self._peek() == "&&":
            self._take("&&")
            operands.append(self._unary())
        return operands[0] if len(operands) == 1 else AllOf.of(*operands)

    def _unary(self) -> Expression:
        tok = self._peek()
        if tok == "!":
            self._take("!")
            return Not(self._unary())
        if tok == "(":
            self._take("(")
            inner = self._or_expr()
            self._take(")")
            return inner
        if tok is None or tok in ("&&", "||", ")"):
            raise RuleDefinitionError(f"Missing operand in expression {self._text!r}")
        self._take()
        if tok == "defined" and self._peek() == "(":
            self._take("(")
            name = self._take()
            if not _NAME_RE.fullmatch(name):
                raise RuleDefinitionError(f"defined() needs a flag name in {self._text!r}")
            self._take(")")
            return Flag(name)
        return Flag(tok)


def parse_expression(text: str) -> Expression:
    """Parse a preprocessor-style condition into an ``Expression``.

    Raises:
        RuleDefinitionError: If the text is not a well-formed condition.
    """
    return _Parser(text).parse()


def as_expression(value: Expression | str) -> Expression:
    """Accept either an ``Expression`` or condition text."""
    if isinstance(value, Expression):
        return value
    if isinstance(value, str):
        return parse_expression(value)
    raise RuleDefinitionError(f"Not an expression: {value!r}")
