"""Tagged comparison operators used inside condition trees.

The set of operators is closed: each :class:`Operator` variant carries its
own in-memory evaluation here, and every storage adapter translates every
variant (or raises :class:`~abilitykit.errors.UnsupportedConditionError`).
Adding an operator means extending this enum, :meth:`Operator.evaluate`
and each adapter's translation together.

Operators appear in a condition tree either as helper-built values::

    {"title": in_(["Sir", "Madam"]), "age": gt(45)}

or in the ``$`` mapping form shared with YAML rule files::

    {"title": {"$in": ["Sir", "Madam"]}, "age": {"$gt": 45}}
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class _Missing:
    """Sentinel type for an attribute the instance does not have."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def is_collection(value: object) -> bool:
    """Return True for list-like values (not strings, bytes or mappings)."""
    return isinstance(value, (list, tuple, set, frozenset))


class Operator(str, Enum):
    """Comparison operators a condition tree may use."""

    EQ = "eq"
    NE = "ne"
    IN = "in"
    NIN = "nin"
    SIZE = "size"
    EXISTS = "exists"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"

    @property
    def token(self) -> str:
        """Return the ``$``-prefixed spelling, e.g. ``"$in"``."""
        return f"${self.value}"

    @classmethod
    def from_token(cls, token: str) -> Operator:
        """Parse ``"$in"`` (or ``"in"``) into an Operator.

        Raises
        ------
        ValueError
            If the token names no known operator.
        """
        return cls(token[1:] if token.startswith("$") else token)

    def evaluate(self, actual: Any, expected: Any) -> bool:
        """Return True if ``actual`` satisfies this operator against ``expected``.

        A missing attribute only satisfies ``exists: False``. A ``None``
        attribute only satisfies ``eq None`` and ``exists: False``.
        Incomparable values never match and never raise.

        On a list attribute every operator except ``size`` looks at the
        elements, as MongoDB does: ``gt``, ``in`` and ``eq`` hold when some
        element qualifies, ``ne`` and ``nin`` when no element is excluded.
        ``None`` elements behave like ``None`` attributes.
        """
        if self is Operator.EXISTS:
            present = actual is not MISSING and actual is not None
            return present == bool(expected)
        if actual is MISSING:
            return False
        if actual is None:
            return self is Operator.EQ and expected is None
        if self is Operator.SIZE:
            return is_collection(actual) and len(actual) == expected
        if not is_collection(actual):
            return self._compare(actual, expected)

        match self:
            case Operator.EQ:
                return _equals(actual, expected)
            case Operator.NE | Operator.NIN:
                excluded = Operator.EQ if self is Operator.NE else Operator.IN
                return not any(item is None or excluded.evaluate(item, expected) for item in actual)
        return any(self.evaluate(item, expected) for item in actual if item is not None)

    def _compare(self, actual: Any, expected: Any) -> bool:
        try:
            match self:
                case Operator.EQ:
                    return _equals(actual, expected)
                case Operator.NE:
                    return not _equals(actual, expected)
                case Operator.IN:
                    return actual in expected
                case Operator.NIN:
                    return actual not in expected
                case Operator.GT:
                    return actual > expected
                case Operator.GTE:
                    return actual >= expected
                case Operator.LT:
                    return actual < expected
                case Operator.LTE:
                    return actual <= expected
        except TypeError:
            logger.debug(
                "Operator %s cannot compare %r with %r; treating as no match",
                self.value,
                actual,
                expected,
            )
            return False
        raise AssertionError(f"Unhandled operator: {self!r}")


def _equals(actual: Any, expected: Any) -> bool:
    # A scalar compared with an array attribute matches when the array holds it.
    if is_collection(actual) and not is_collection(expected):
        return expected in actual
    return bool(actual == expected)


@dataclass(frozen=True)
class Condition:
    """A tagged operator and its operand, placed as a value in a condition tree."""

    operator: Operator
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the ``$`` mapping form, e.g. ``{"$gt": 45}``."""
        value = list(self.value) if is_collection(self.value) else self.value
        return {self.operator.token: value}


def is_operator_mapping(value: object) -> bool:
    """Return True for a non-empty mapping whose keys all start with ``$``."""
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


# ---------------------------------------------------------------------------
# Helper constructors
# ---------------------------------------------------------------------------


def ne(value: Any) -> Condition:
    """Attribute is present and differs from ``value``."""
    return Condition(Operator.NE, value)


def in_(values: Any) -> Condition:
    """Attribute is one of ``values``."""
    return Condition(Operator.IN, tuple(values))


def not_in(values: Any) -> Condition:
    """Attribute is present and none of ``values``."""
    return Condition(Operator.NIN, tuple(values))


def size(length: int) -> Condition:
    """Attribute is a sized value of exactly ``length`` items."""
    return Condition(Operator.SIZE, length)


def exists(flag: bool = True) -> Condition:
    """Attribute is present and not None (or, with ``flag=False``, the reverse)."""
    return Condition(Operator.EXISTS, flag)


def gt(value: Any) -> Condition:
    return Condition(Operator.GT, value)


def gte(value: Any) -> Condition:
    return Condition(Operator.GTE, value)


def lt(value: Any) -> Condition:
    return Condition(Operator.LT, value)


def lte(value: Any) -> Condition:
    return Condition(Operator.LTE, value)
