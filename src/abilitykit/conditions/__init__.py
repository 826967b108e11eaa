"""Condition trees, tagged operators and their compilation to predicates."""
from __future__ import annotations

from abilitykit.conditions.compiler import (
    Comparison,
    ConditionCompiler,
    Conjunction,
    Nested,
    Predicate,
    read_attribute,
)
from abilitykit.conditions.operators import (
    MISSING,
    Condition,
    Operator,
    exists,
    gt,
    gte,
    in_,
    lt,
    lte,
    ne,
    not_in,
    size,
)

__all__ = [
    "MISSING",
    "Comparison",
    "Condition",
    "ConditionCompiler",
    "Conjunction",
    "Nested",
    "Operator",
    "Predicate",
    "exists",
    "gt",
    "gte",
    "in_",
    "lt",
    "lte",
    "ne",
    "not_in",
    "read_attribute",
    "size",
]
