"""abilitykit — ordered permission rules for Python applications.

Declare what an actor may do as an ordered list of grant and deny rules,
then ask point-wise questions ("may this user update this order?") or
compile the same rules into a storage filter that lists every record the
actor may access.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import abilitykit as ak
>>> ability = ak.Ability()
>>> _ = ability.grant("read", ak.ALL)
>>> _ = ability.deny("read", "payroll")
>>> ability.can("show", "dashboard")
True
>>> ability.can("read", "payroll")
False
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Rules and evaluation
# ---------------------------------------------------------------------------
from abilitykit.ability import Ability
from abilitykit.aliases import DEFAULT_ALIASES, MANAGE, AliasRegistry
from abilitykit.engine import Decision, MatchEngine
from abilitykit.query import AccessibleQueryBuilder
from abilitykit.rules import ALL, OpaqueCallback, Rule, RuleSet, StructuralCondition
from abilitykit.guard import authorize

# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------
from abilitykit.conditions import (
    Condition,
    ConditionCompiler,
    Operator,
    Predicate,
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

# ---------------------------------------------------------------------------
# Storage adapters
# ---------------------------------------------------------------------------
from abilitykit.adapters import (
    AdapterRegistry,
    InMemoryAdapter,
    MongoQueryAdapter,
    RecordFilter,
    SQLAlchemyAdapter,
    StorageAdapter,
    default_adapters,
)

# ---------------------------------------------------------------------------
# Configuration and errors
# ---------------------------------------------------------------------------
from abilitykit.loader import AbilityDefinition, AbilityLoader
from abilitykit.errors import (
    AbilityConfigError,
    AbilityError,
    AccessDenied,
    NoAdapterError,
    UnsupportedConditionError,
)

__all__ = [
    "__version__",
    # Rules and evaluation
    "ALL",
    "MANAGE",
    "DEFAULT_ALIASES",
    "Ability",
    "AccessibleQueryBuilder",
    "AliasRegistry",
    "Decision",
    "MatchEngine",
    "OpaqueCallback",
    "Rule",
    "RuleSet",
    "StructuralCondition",
    "authorize",
    # Conditions
    "Condition",
    "ConditionCompiler",
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
    "size",
    # Storage adapters
    "AdapterRegistry",
    "InMemoryAdapter",
    "MongoQueryAdapter",
    "RecordFilter",
    "SQLAlchemyAdapter",
    "StorageAdapter",
    "default_adapters",
    # Configuration and errors
    "AbilityConfigError",
    "AbilityDefinition",
    "AbilityError",
    "AbilityLoader",
    "AccessDenied",
    "NoAdapterError",
    "UnsupportedConditionError",
]
