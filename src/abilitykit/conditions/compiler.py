"""Condition trees: normalisation, compilation and in-memory matching.

A condition tree is a mapping from attribute name to one of:

- a literal value, matched by equality;
- a list, tuple or set literal, matched by membership;
- a :class:`~abilitykit.conditions.operators.Condition` or a ``$`` mapping
  (``{"$gt": 3}``), matched by the tagged operator;
- a nested mapping, matched against the nested attribute (any element
  matches when the attribute is a collection).

Every key must match. :class:`ConditionCompiler` turns a tree into an
adapter-agnostic :class:`Predicate` tree. Point-wise checks evaluate that
same predicate, so bulk filters and single-record checks share one
definition of what a condition means.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from abilitykit.conditions.operators import (
    MISSING,
    Condition,
    Operator,
    is_collection,
    is_operator_mapping,
)
from abilitykit.errors import UnsupportedConditionError

logger = logging.getLogger(__name__)


def read_attribute(instance: Any, name: str) -> Any:
    """Return ``instance.name`` (or ``instance[name]`` for mappings).

    Returns :data:`MISSING` when the instance is absent or the attribute
    cannot be read; attribute access never aborts evaluation.
    """
    if instance is None:
        return MISSING
    if isinstance(instance, Mapping):
        return instance.get(name, MISSING)
    try:
        return getattr(instance, name)
    except AttributeError:
        return MISSING
    except Exception:  # noqa: BLE001
        logger.debug("Reading %r from %r failed; treating as missing", name, instance, exc_info=True)
        return MISSING


# ---------------------------------------------------------------------------
# Predicate tree
# ---------------------------------------------------------------------------


class Predicate(ABC):
    """Adapter-agnostic node of a compiled condition tree."""

    @abstractmethod
    def evaluate(self, instance: Any) -> bool:
        """Return True if ``instance`` satisfies this predicate."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return the predicate in condition-tree (``$`` mapping) form."""


@dataclass(frozen=True)
class Comparison(Predicate):
    """``attribute <operator> value`` on the current record."""

    attribute: str
    operator: Operator
    value: Any = None

    def evaluate(self, instance: Any) -> bool:
        return self.operator.evaluate(read_attribute(instance, self.attribute), self.value)

    def to_dict(self) -> dict[str, Any]:
        if self.operator is Operator.EQ:
            return {self.attribute: self.value}
        return {self.attribute: Condition(self.operator, self.value).to_dict()}


@dataclass(frozen=True)
class Conjunction(Predicate):
    """All terms must hold. An empty conjunction holds for every record."""

    terms: tuple[Predicate, ...] = ()

    def evaluate(self, instance: Any) -> bool:
        return all(term.evaluate(instance) for term in self.terms)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for term in self.terms:
            for attribute, value in term.to_dict().items():
                existing = result.get(attribute)
                if isinstance(existing, dict) and isinstance(value, dict):
                    existing.update(value)
                else:
                    result[attribute] = value
        return result

    def literal_values(self) -> dict[str, Any]:
        """Return the attributes this conjunction pins to a single value.

        Equality comparisons contribute their value; nested conjunctions
        contribute a nested dict. Other operators are skipped.
        """
        values: dict[str, Any] = {}
        for term in self.terms:
            if isinstance(term, Comparison) and term.operator is Operator.EQ:
                values[term.attribute] = term.value
            elif isinstance(term, Nested):
                nested = term.predicate.literal_values()
                if nested:
                    values[term.attribute] = nested
        return values


@dataclass(frozen=True)
class Nested(Predicate):
    """A conjunction evaluated against a nested attribute.

    A missing or ``None`` attribute does not match. A collection attribute
    matches when one of its non-``None`` elements satisfies every term, so
    an empty nested tree needs a non-empty collection.
    """

    attribute: str
    predicate: Conjunction

    def evaluate(self, instance: Any) -> bool:
        target = read_attribute(instance, self.attribute)
        if target is MISSING or target is None:
            return False
        if is_collection(target):
            return any(self.predicate.evaluate(item) for item in target if item is not None)
        return self.predicate.evaluate(target)

    def to_dict(self) -> dict[str, Any]:
        return {self.attribute: self.predicate.to_dict()}


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


class ConditionCompiler:
    """Compiles condition trees into :class:`Predicate` trees.

    Example
    -------
    >>> compiler = ConditionCompiler()
    >>> predicate = compiler.compile({"status": "open", "total": {"$gt": 10}})
    >>> predicate.evaluate({"status": "open", "total": 25})
    True
    """

    def compile(self, tree: Mapping[str, Any]) -> Conjunction:
        """Compile ``tree`` into a :class:`Conjunction`.

        Raises
        ------
        UnsupportedConditionError
            If the tree holds a construct that cannot be represented as a
            predicate: non-string keys, unknown ``$`` operators, mappings
            mixing ``$`` and plain keys, malformed operands or callables.
        """
        if not isinstance(tree, Mapping):
            raise UnsupportedConditionError(
                f"Conditions must be a mapping; got {type(tree).__name__}."
            )
        terms: list[Predicate] = []
        for attribute, value in tree.items():
            if not isinstance(attribute, str) or not attribute:
                raise UnsupportedConditionError(
                    f"Condition keys must be non-empty strings; got {attribute!r}."
                )
            terms.extend(self._compile_value(attribute, value))
        return Conjunction(tuple(terms))

    def matches(self, tree: Mapping[str, Any], instance: Any) -> bool:
        """Return True if ``instance`` satisfies every key of ``tree``."""
        return self.compile(tree).evaluate(instance)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _compile_value(self, attribute: str, value: Any) -> list[Predicate]:
        if isinstance(value, Condition):
            return [self._comparison(attribute, value.operator, value.value)]
        if is_operator_mapping(value):
            return [self._operator_entry(attribute, token, operand) for token, operand in value.items()]
        if isinstance(value, Mapping):
            if any(isinstance(k, str) and k.startswith("$") for k in value):
                raise UnsupportedConditionError(
                    f"Conditions on {attribute!r} mix operators and nested attributes."
                )
            return [Nested(attribute, self.compile(value))]
        if is_collection(value):
            return [Comparison(attribute, Operator.IN, tuple(value))]
        if callable(value):
            raise UnsupportedConditionError(
                f"Condition on {attribute!r} is a callable; use a rule callback instead."
            )
        return [Comparison(attribute, Operator.EQ, value)]

    def _operator_entry(self, attribute: str, token: str, operand: Any) -> Predicate:
        try:
            operator = Operator.from_token(token)
        except ValueError:
            raise UnsupportedConditionError(
                f"Unknown operator {token!r} in conditions on {attribute!r}."
            ) from None
        return self._comparison(attribute, operator, operand)

    def _comparison(self, attribute: str, operator: Operator, operand: Any) -> Comparison:
        match operator:
            case Operator.IN | Operator.NIN:
                if not is_collection(operand):
                    raise UnsupportedConditionError(
                        f"{operator.token} on {attribute!r} needs a list of values; got {operand!r}."
                    )
                operand = tuple(operand)
            case Operator.SIZE:
                if isinstance(operand, bool) or not isinstance(operand, int) or operand < 0:
                    raise UnsupportedConditionError(
                        f"$size on {attribute!r} needs a non-negative integer; got {operand!r}."
                    )
            case Operator.EXISTS:
                if not isinstance(operand, bool):
                    raise UnsupportedConditionError(
                        f"$exists on {attribute!r} needs true or false; got {operand!r}."
                    )
            case Operator.EQ if is_collection(operand):
                return Comparison(attribute, Operator.IN, tuple(operand))
        return Comparison(attribute, operator, operand)
